"""Inbound HTTP gateway."""

from nova.gateway.server import GatewayServer, normalize_phone

__all__ = ["GatewayServer", "normalize_phone"]
