"""Action dispatch: route a plan to its handler and report back to the owner."""

from functools import partial
from typing import Any, Awaitable, Callable

from loguru import logger

from nova.actions.resolver import PlanResolver, ResolutionFailure
from nova.actions.types import (
    ActionExecutionResult,
    AddTaskAction,
    CheckEmailAction,
    EmailTargetAction,
    MoveEmailAction,
    PlanAction,
    ScheduleReminderAction,
    SearchEmailAction,
    SendEmailAction,
    parse_action,
)
from nova.config.schema import OwnerConfig
from nova.errors import ConfigurationError, HandlerError, NovaError, PlanValidationError
from nova.mail.base import Mailbox
from nova.mail.formatting import build_unsubscribe_summary, summarize_emails
from nova.mail.notify import Notifier
from nova.mail.types import OutgoingEmail
from nova.memory.base import MemoryClient
from nova.scheduler.service import ReminderStore, delay_until_hour, parse_delay

Handler = Callable[[Any], Awaitable[dict[str, Any]]]

CALENDAR_UNAVAILABLE = "Calendar checks are not implemented yet."
WEB_SEARCH_UNAVAILABLE = "Web search is not available in this build."


class ActionDispatcher:
    """
    Executes normalized plans against the mail, scheduling and memory collaborators.

    Every failure inside a handler becomes a failed ``ActionExecutionResult``;
    nothing a handler raises escapes ``execute``. Owner notifications are
    best-effort and never change the result.
    """

    def __init__(
        self,
        resolver: PlanResolver | None = None,
        mailbox: Mailbox | None = None,
        reminders: ReminderStore | None = None,
        memory: MemoryClient | None = None,
        notifier: Notifier | None = None,
        owner: OwnerConfig | None = None,
        email_limit: int = 5,
        default_delay_ms: int = 15 * 60 * 1000,
        daily_summary_hour: int = 18,
    ):
        self.mailbox = mailbox
        self.resolver = resolver or PlanResolver(mailbox)
        self.reminders = reminders
        self.memory = memory
        self.notifier = notifier
        self.owner = owner or OwnerConfig()
        self.email_limit = email_limit
        self.default_delay_ms = default_delay_ms
        self.daily_summary_hour = daily_summary_hour

        self._handlers: dict[str, Handler] = {
            "send_email": self._send_email,
            "check_email": self._check_email,
            "search_email": self._search_email,
            "mark_spam": partial(self._on_message, "mark_spam"),
            "mark_read": partial(self._on_message, "mark_read"),
            "mark_unread": partial(self._on_message, "mark_unread"),
            "delete_email": partial(self._on_message, "delete_email"),
            "move_email": self._move_email,
            "unsubscribe_email": self._unsubscribe_email,
            "schedule_reminder": self._schedule_reminder,
            "add_task": self._add_task,
            "check_calendar": partial(self._unavailable, CALENDAR_UNAVAILABLE),
            "web_search": partial(self._unavailable, WEB_SEARCH_UNAVAILABLE),
            "notify_owner": self._deliver_reply,
        }

    # ========== Registry ==========

    def register(self, name: str, handler: Handler) -> None:
        """Register (or replace) the handler for an action name."""
        self._handlers[name] = handler

    def has(self, name: str) -> bool:
        return name in self._handlers

    @property
    def action_names(self) -> list[str]:
        return list(self._handlers.keys())

    @property
    def owner_contact(self) -> str | None:
        """Where owner notifications go: the SMS gateway address, else the fallback email."""
        return self.owner.gateway_address or self.owner.fallback_email or None

    # ========== Execution ==========

    async def execute(self, plan: dict[str, Any] | None) -> ActionExecutionResult:
        """Run the handler for ``plan['action']`` and notify the owner as needed."""
        plan = plan or {}
        raw_name = plan.get("action")
        name = raw_name.strip() if isinstance(raw_name, str) else ""

        if not name:
            logger.warning("No action provided to dispatcher")
            return ActionExecutionResult(success=False, error="missing_action")

        handler = self._handlers.get(name)
        if handler is None:
            logger.warning(f"Unsupported action requested: {name}")
            await self.notify_owner(plan.get("response") or f'Nova planned unsupported action "{name}".')
            return ActionExecutionResult(success=False, action=name, error="unsupported_action")

        try:
            action = parse_action(plan)
            details = await handler(action)
        except NovaError as e:
            logger.warning(f"Action {name} failed: {e}")
            await self.notify_owner(f"I hit an error while executing {name}: {e}")
            return ActionExecutionResult(success=False, action=name, error=str(e))
        except Exception as e:
            err = HandlerError(name, e)
            logger.error(f"Action execution failed for {err}")
            await self.notify_owner(f"I hit an error while executing {name}: {e}")
            return ActionExecutionResult(success=False, action=name, error=str(e))

        await self.notify_if_needed(plan, details)
        return ActionExecutionResult(success=True, action=name, details=details)

    # ========== Owner notification ==========

    async def notify_if_needed(self, plan: dict[str, Any], details: dict[str, Any] | None = None) -> bool:
        """Forward the plan's reply to the owner unless the handler already did."""
        reply = plan.get("response")
        if not isinstance(reply, str) or not reply.strip() or not self.owner_contact:
            return False
        if details and details.get("skipOwnerNotification"):
            return False
        if self._is_reply_delivery(plan):
            logger.debug("Skipping owner notification: plan already delivers the reply")
            return False
        return await self.notify_owner(reply)

    def _is_reply_delivery(self, plan: dict[str, Any]) -> bool:
        to = plan.get("to")
        return (
            plan.get("action") == "send_email"
            and isinstance(to, str)
            and f"@{self.owner.sms_gateway_domain}".lower() in to.lower()
        )

    async def notify_owner(self, message: str | None) -> bool:
        """Best-effort message to the owner. Returns True if it was delivered."""
        if not message:
            return False
        target = self.owner_contact
        if self.notifier is None or not target:
            logger.debug("Owner notification skipped: no notifier or owner contact configured")
            return False
        try:
            await self.notifier.deliver(target, message)
        except Exception as e:
            logger.error(f"Failed to send owner notification: {e}")
            return False
        logger.info(f"Owner notification sent: {message[:50]}")
        return True

    # ========== Helpers ==========

    def _require_mailbox(self) -> Mailbox:
        if self.mailbox is None:
            raise ConfigurationError("Email service not configured")
        return self.mailbox

    def _require_reminders(self) -> ReminderStore:
        if self.reminders is None:
            raise ConfigurationError("Scheduling service not configured")
        return self.reminders

    async def _target(self, action: EmailTargetAction) -> tuple[str, int]:
        account_id = self.resolver.resolve_account(action.account)
        outcome = await self.resolver.resolve_email(account_id, action.target)
        if isinstance(outcome, ResolutionFailure):
            raise outcome.to_error()
        return account_id, outcome.seqno

    # ========== Handlers ==========

    async def _send_email(self, action: SendEmailAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        # The sending account is the transport's choice; it may be a send-only
        # identity outside the list of managed mailboxes.
        result = await mailbox.send_email(OutgoingEmail(
            to=action.to,
            subject=action.subject,
            body=action.body,
            html=action.html,
            priority=action.priority,
            account_id=action.account,
            sender=action.sender,
        ))
        return {"email": result}

    async def _deliver_reply(self, action: PlanAction) -> dict[str, Any]:
        if self.notifier is None or not self.owner_contact:
            raise ConfigurationError("No owner notification channel configured")
        if not action.response:
            raise PlanValidationError(action.action, "notify_owner requires a response")
        await self.notifier.deliver(self.owner_contact, action.response)
        return {"to": self.owner_contact, "skipOwnerNotification": True}

    async def _check_email(self, action: CheckEmailAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        account_id = self.resolver.resolve_account(action.account)
        emails = await mailbox.get_recent_emails(account_id, action.limit or self.email_limit)
        await self.notify_owner(summarize_emails(emails, self.email_limit))
        return {
            "accountId": account_id,
            "emails": [e.to_dict() for e in emails],
            "skipOwnerNotification": True,
        }

    async def _search_email(self, action: SearchEmailAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        account_id = self.resolver.resolve_account(action.account)
        limit = action.limit or self.email_limit

        seqnos = await mailbox.search_for_sequence_numbers(account_id, action.criteria, limit)
        results = []
        if seqnos:
            wanted = set(seqnos)
            recent = await mailbox.get_recent_emails(account_id, max(25, limit))
            results = sorted((e for e in recent if e.seqno in wanted), key=lambda e: e.seqno, reverse=True)

        await self.notify_owner(summarize_emails(results, self.email_limit, include_preview=True))
        return {
            "accountId": account_id,
            "results": [e.to_dict() for e in results],
            "criteria": action.criteria,
            "skipOwnerNotification": True,
        }

    async def _on_message(self, operation: str, action: EmailTargetAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        account_id, seqno = await self._target(action)
        method = {
            "mark_spam": mailbox.mark_spam,
            "mark_read": mailbox.mark_read,
            "mark_unread": mailbox.mark_unread,
            "delete_email": mailbox.delete_email,
        }[operation]
        await method(account_id, seqno)
        return {"accountId": account_id, "emailId": seqno}

    async def _move_email(self, action: MoveEmailAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        account_id, seqno = await self._target(action)
        await mailbox.move_email(account_id, seqno, action.folder)
        return {"accountId": account_id, "emailId": seqno, "folder": action.folder}

    async def _unsubscribe_email(self, action: EmailTargetAction) -> dict[str, Any]:
        mailbox = self._require_mailbox()
        account_id, seqno = await self._target(action)
        info = await mailbox.unsubscribe_info(account_id, seqno)
        await self.notify_owner(build_unsubscribe_summary(info))
        return {
            "accountId": account_id,
            "emailId": seqno,
            "info": info.to_dict() if info else None,
            "skipOwnerNotification": True,
        }

    async def _schedule_reminder(self, action: ScheduleReminderAction) -> dict[str, Any]:
        reminders = self._require_reminders()
        delay_ms = parse_delay(action.when)
        if delay_ms is None:
            delay_ms = action.delay_ms if action.delay_ms is not None else self.default_delay_ms

        reminder_id = await reminders.schedule_wakeup(action.task, delay_ms, action.context, action.category)
        return {
            "task": action.task,
            "delayMs": delay_ms,
            "context": action.context,
            "category": action.category,
            "id": reminder_id,
        }

    async def _add_task(self, action: AddTaskAction) -> dict[str, Any]:
        if self.memory is None:
            raise ConfigurationError("Memory service not configured")
        await self.memory.add_task(action.task, action.due_date, action.priority)
        return {"task": action.task, "dueDate": action.due_date, "priority": action.priority}

    async def _unavailable(self, message: str, action: PlanAction) -> dict[str, Any]:
        await self.notify_owner(message)
        return {"warning": message, "skipOwnerNotification": True}

    async def schedule_daily_summary(self, task: str, category: str = "daily_summary") -> dict[str, Any]:
        """Schedule ``task`` for the next occurrence of the daily summary hour."""
        reminders = self._require_reminders()
        delay_ms = delay_until_hour(self.daily_summary_hour)
        context = "Daily summary"
        reminder_id = await reminders.schedule_wakeup(task, delay_ms, context, category)
        return {"task": task, "delayMs": delay_ms, "context": context, "category": category, "id": reminder_id}
