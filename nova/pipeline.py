"""Per-event orchestration: history, memory, reasoning, dispatch."""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from nova.actions.dispatcher import ActionDispatcher
from nova.actions.types import ActionExecutionResult
from nova.mail.formatting import build_incoming_email_context, build_thread_context
from nova.mail.types import EmailMessage
from nova.memory.base import MemoryClient
from nova.memory.types import MemoryItem
from nova.reasoning.brain import ReasoningClient
from nova.reasoning.normalizer import MemoryDelta, NormalizedDecision, ReasoningNormalizer
from nova.session.history import ConversationHistory


@dataclass
class PipelineResult:
    """Everything one pipeline run produced."""

    channel: str
    action_context: str
    decision: NormalizedDecision
    execution: ActionExecutionResult
    memory_queries: list[str] = field(default_factory=list)
    memory_reasoning: str = ""
    memories_used: list[MemoryItem] = field(default_factory=list)
    memory_ops: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "actionContext": self.action_context,
            "decision": self.decision.model_dump(),
            "execution": self.execution.to_dict(),
            "memoryQueries": self.memory_queries,
            "memoryReasoning": self.memory_reasoning,
            "memoriesUsed": [m.to_dict() for m in self.memories_used],
            "memoryOps": self.memory_ops,
            "metadata": self.metadata,
        }


class Pipeline:
    """
    Runs one inbound event through nova.

    Order: load history, generate memory queries, fetch memories, reason,
    normalize, apply memory updates, record history, dispatch. Action
    failures come back inside the result; only infrastructure failures
    (the reasoning provider) raise, after one best-effort owner notification.
    """

    def __init__(
        self,
        brain: ReasoningClient,
        normalizer: ReasoningNormalizer,
        dispatcher: ActionDispatcher,
        history: ConversationHistory,
        memory: MemoryClient | None = None,
        memory_search_limit: int = 8,
    ):
        self.brain = brain
        self.normalizer = normalizer
        self.dispatcher = dispatcher
        self.history = history
        self.memory = memory
        self.memory_search_limit = memory_search_limit

    async def run(
        self,
        user_input: str,
        channel: str = "sms",
        action_context: str = "general",
        metadata: dict[str, Any] | None = None,
    ) -> PipelineResult:
        text = str(user_input or "").strip()
        if not text:
            raise ValueError("Pipeline requires non-empty user input")

        logger.info(f"Pipeline started ({channel}/{action_context}): {text[:80]}")
        try:
            history = await self.history.get()

            queries, reasoning = await self._memory_queries(text, history)
            memories = await self.fetch_memories(queries)
            logger.debug(f"Memory queries {queries} returned {len(memories)} memories")

            raw = await self.brain.respond(text, history, memories, action_context)
            decision = self.normalizer.normalize(raw, action_context)
            logger.info(f"Decision: action={decision.action or 'none'} response={decision.response[:80]!r}")

            memory_ops = await self.apply_memory_updates(decision.memory)
            await self.history.append(text, decision.response)

            execution = await self.dispatcher.execute(decision.to_plan())
        except Exception as e:
            logger.error(f"Pipeline error: {e}")
            await self.dispatcher.notify_owner(f"Nova hit a snag while processing: {e}")
            raise

        return PipelineResult(
            channel=channel,
            action_context=action_context,
            decision=decision,
            execution=execution,
            memory_queries=queries,
            memory_reasoning=reasoning,
            memories_used=memories,
            memory_ops=memory_ops,
            metadata=dict(metadata or {}),
        )

    async def _memory_queries(self, text: str, history: list[dict[str, str]]) -> tuple[list[str], str]:
        if self.memory is None or not self.memory.available:
            return [], ""
        return await self.brain.generate_memory_queries(text, history)

    async def fetch_memories(self, queries: list[str]) -> list[MemoryItem]:
        """Search each query and merge the hits, dropping repeated ids."""
        if self.memory is None or not queries:
            return []

        seen: set[str] = set()
        collected = []
        for query in queries:
            if not query or not query.strip():
                continue
            try:
                items = await self.memory.search(query.strip(), self.memory_search_limit)
            except Exception as e:
                logger.error(f"Memory search failed for {query!r}: {e}")
                continue
            for item in items:
                if item.id and item.id in seen:
                    continue
                if item.id:
                    seen.add(item.id)
                collected.append(item)
        return collected

    async def apply_memory_updates(self, delta: MemoryDelta) -> dict[str, list[dict[str, Any]]]:
        """Apply a decision's memory changes one entry at a time."""
        summary: dict[str, list[dict[str, Any]]] = {"added": [], "updated": [], "deleted": []}
        if self.memory is None or delta.empty:
            return summary

        for text in delta.add:
            try:
                summary["added"].append({"text": text, "result": await self.memory.add(text)})
            except Exception as e:
                logger.error(f"Failed to add memory: {e}")

        for entry in delta.update:
            try:
                summary["updated"].append({"id": entry.id, "result": await self.memory.update(entry.id, entry.text)})
            except Exception as e:
                logger.error(f"Failed to update memory {entry.id}: {e}")

        for memory_id in delta.delete:
            try:
                summary["deleted"].append({"id": memory_id, "result": await self.memory.delete(memory_id)})
            except Exception as e:
                logger.error(f"Failed to delete memory {memory_id}: {e}")

        return summary

    async def handle_incoming_email(
        self,
        account_id: str,
        email: EmailMessage | list[EmailMessage],
    ) -> PipelineResult:
        """Let nova decide what to do with newly arrived mail (restricted action set)."""
        if isinstance(email, list):
            context = build_thread_context(account_id, email)
            latest = email[-1]
        else:
            context = build_incoming_email_context(account_id, email)
            latest = email

        logger.info(f"New email in {account_id}: from {latest.sender} - {latest.subject}")
        return await self.run(
            context,
            channel="email",
            action_context="email",
            metadata={"accountId": account_id, "subject": latest.subject, "seqno": latest.seqno},
        )

    async def on_wakeup(self, instruction: str) -> PipelineResult:
        """Reminder sweep callback."""
        return await self.run(instruction, channel="scheduler", action_context="general")
