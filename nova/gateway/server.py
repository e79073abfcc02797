"""HTTP gateway: SMS webhook, test endpoint and health checks."""

import asyncio
import re
import time
from datetime import datetime, timezone
from typing import Callable

from aiohttp import web
from loguru import logger

from nova.mail.types import MailAccount
from nova.pipeline import Pipeline
from nova.scheduler.service import ReminderStore

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'

_NON_PHONE = re.compile(r"[^0-9+]")


def normalize_phone(value: str | None) -> str:
    """Digits and '+' only, with any channel prefix ("whatsapp:") dropped."""
    if not value:
        return ""
    value = value.strip()
    if ":" in value:
        value = value.split(":", 1)[1]
    return _NON_PHONE.sub("", value)


class GatewayServer:
    """
    aiohttp server in front of the pipeline.

    Inbound SMS/WhatsApp webhooks are accepted only from allow-listed
    numbers. An empty allow list rejects every sender.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        reminders: ReminderStore | None = None,
        accounts: Callable[[], list[MailAccount]] | None = None,
        allow_from: list[str] | None = None,
        host: str = "0.0.0.0",
        port: int = 3000,
    ):
        self.pipeline = pipeline
        self.reminders = reminders
        self._accounts = accounts or (lambda: [])
        self.allowed = {normalize_phone(n) for n in (allow_from or []) if normalize_phone(n)}
        self.host = host
        self.port = port
        self.started_at = time.monotonic()
        self.runner: web.AppRunner | None = None
        self._tasks: set[asyncio.Task] = set()

        self.app = web.Application()
        self.app.router.add_get("/", self._index)
        self.app.router.add_get("/health", self._health)
        self.app.router.add_get("/auth/status", self._auth_status)
        self.app.router.add_post("/webhook/sms", self._sms_webhook)
        self.app.router.add_get("/test/{message}", self._test)

        if not self.allowed:
            logger.warning("Gateway allow list is empty; inbound messages will be rejected")

    def is_allowed(self, sender: str | None) -> bool:
        number = normalize_phone(sender)
        return bool(number) and number in self.allowed

    @property
    def uptime(self) -> float:
        return round(time.monotonic() - self.started_at, 1)

    async def start(self) -> None:
        if self.runner is not None:
            logger.warning("Gateway already running")
            return
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        await web.TCPSite(self.runner, self.host, self.port).start()
        logger.info(f"Gateway listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self.runner is None:
            return
        await self.runner.cleanup()
        self.runner = None
        logger.info("Gateway stopped")

    # ========== Routes ==========

    async def _index(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "service": "nova",
            "uptime": self.uptime,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def _health(self, request: web.Request) -> web.Response:
        pending = len(await self.reminders.get_pending_reminders()) if self.reminders else 0
        return web.json_response({
            "status": "healthy",
            "accounts": len(self._accounts()),
            "pendingReminders": pending,
            "uptime": self.uptime,
        })

    async def _auth_status(self, request: web.Request) -> web.Response:
        return web.json_response({
            "accounts": [{"id": a.id, "email": a.email, "name": a.name} for a in self._accounts()],
        })

    async def _sms_webhook(self, request: web.Request) -> web.Response:
        if request.content_type == "application/json":
            try:
                data = await request.json()
            except ValueError as e:
                logger.warning(f"Rejected webhook with malformed JSON: {e}")
                return web.Response(status=400, text="Invalid JSON body")
            if not isinstance(data, dict):
                return web.Response(status=400, text="Expected a JSON object")
        else:
            data = dict(await request.post())

        sender = str(data.get("From") or data.get("from") or "")
        body = str(data.get("Body") or data.get("body") or "").strip()

        if not self.is_allowed(sender):
            logger.warning(f"Rejected message from non-allowed sender {sender!r}")
            return web.Response(status=403, text="Forbidden")

        if body:
            # Reply immediately; the pipeline answers through the notifier.
            task = asyncio.create_task(self._process(body, sender))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return web.Response(text=EMPTY_TWIML, content_type="text/xml")

    async def _process(self, body: str, sender: str) -> None:
        channel = "whatsapp" if sender.startswith("whatsapp:") else "sms"
        try:
            await self.pipeline.run(body, channel=channel, metadata={"from": sender})
        except Exception as e:
            logger.error(f"Error processing inbound {channel} message: {e}")

    async def _test(self, request: web.Request) -> web.Response:
        message = request.match_info["message"]
        try:
            result = await self.pipeline.run(message, channel="test", metadata={"source": "test-endpoint"})
        except Exception as e:
            return web.json_response({"success": False, "error": str(e), "input": message}, status=500)
        return web.json_response({
            "success": True,
            "input": message,
            "decision": result.decision.model_dump(),
            "execution": result.execution.to_dict(),
        })
