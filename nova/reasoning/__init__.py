"""Reasoning step: LLM client and decision normalization."""

from nova.reasoning.brain import ReasoningClient, format_conversation, format_memories
from nova.reasoning.normalizer import NormalizedDecision, ReasoningNormalizer

__all__ = [
    "ReasoningClient",
    "ReasoningNormalizer",
    "NormalizedDecision",
    "format_conversation",
    "format_memories",
]
