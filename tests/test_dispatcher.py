"""Tests for action dispatch and owner notification."""

import pytest

from conftest import FakeMailbox, FakeMemory, RecordingNotifier, make_email
from nova.actions.dispatcher import CALENDAR_UNAVAILABLE, ActionDispatcher
from nova.config.schema import OwnerConfig
from nova.scheduler.service import ReminderStore

OWNER = OwnerConfig(number="+15550001111", sms_gateway_domain="sms.example")
OWNER_SMS = "+15550001111@sms.example"


def _dispatcher(mailbox=None, notifier=None, reminders=None, memory=None, owner=OWNER, **kwargs):
    return ActionDispatcher(
        mailbox=mailbox,
        reminders=reminders,
        memory=memory,
        notifier=notifier,
        owner=owner,
        **kwargs,
    )


class TestRouting:
    @pytest.mark.asyncio
    async def test_mark_spam_by_sender(self, notifier):
        mailbox = FakeMailbox(search_results=[42, 17])
        dispatcher = _dispatcher(mailbox, notifier)

        result = await dispatcher.execute({
            "action": "mark_spam",
            "account": "work",
            "sender": "newsletter@example.com",
        })

        assert mailbox.calls_to("search_for_sequence_numbers") == [("work", {"sender": "newsletter@example.com"}, 3)]
        assert mailbox.calls_to("mark_spam") == [("work", 42)]
        assert result.to_dict() == {
            "success": True,
            "action": "mark_spam",
            "details": {"accountId": "work", "emailId": 42},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("plan", [None, {}, {"action": ""}, {"action": "   "}, {"action": 7}])
    async def test_missing_action(self, plan, notifier):
        result = await _dispatcher(FakeMailbox(), notifier).execute(plan)
        assert result.success is False
        assert result.error == "missing_action"
        assert notifier.delivered == []

    @pytest.mark.asyncio
    async def test_unsupported_action_tells_owner(self, notifier):
        result = await _dispatcher(FakeMailbox(), notifier).execute({"action": "order_pizza"})
        assert result.to_dict() == {"success": False, "action": "order_pizza", "error": "unsupported_action"}
        assert notifier.messages == ['Nova planned unsupported action "order_pizza".']

    @pytest.mark.asyncio
    async def test_unsupported_action_prefers_plan_reply(self, notifier):
        await _dispatcher(FakeMailbox(), notifier).execute({"action": "order_pizza", "response": "Ordering!"})
        assert notifier.messages == ["Ordering!"]

    @pytest.mark.asyncio
    async def test_registered_handler(self, notifier):
        dispatcher = _dispatcher(FakeMailbox(), notifier)

        async def ping(action):
            return {"pong": True, "skipOwnerNotification": True}

        dispatcher.register("ping", ping)
        assert dispatcher.has("ping")
        result = await dispatcher.execute({"action": "ping", "response": "hi"})
        assert result.details == {"pong": True, "skipOwnerNotification": True}
        assert notifier.delivered == []


class TestFailures:
    @pytest.mark.asyncio
    async def test_no_match_is_a_failed_result(self, notifier):
        mailbox = FakeMailbox(search_results=[])
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "delete_email", "account": "work", "subject": "Ghost"}
        )
        assert result.success is False
        assert result.action == "delete_email"
        assert result.error == "Unable to locate email matching the provided criteria"
        assert mailbox.calls_to("delete_email") == []
        assert notifier.messages == [
            "I hit an error while executing delete_email: Unable to locate email matching the provided criteria"
        ]

    @pytest.mark.asyncio
    async def test_missing_identification(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute({"action": "mark_read", "account": "work"})
        assert result.success is False
        assert "Need email identification" in result.error
        assert mailbox.calls_to("search_for_sequence_numbers") == []

    @pytest.mark.asyncio
    async def test_unknown_account(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "mark_spam", "account": "office", "emailId": 3}
        )
        assert result.success is False
        assert 'Email account "office" not found' in result.error
        assert mailbox.calls_to("mark_spam") == []

    @pytest.mark.asyncio
    async def test_mailbox_exception_is_contained(self, notifier):
        mailbox = FakeMailbox()
        mailbox.fail_with = ConnectionError("imap timeout")
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "mark_spam", "account": "work", "emailId": 3, "response": "Done"}
        )
        assert result.success is False
        assert result.error == "imap timeout"
        assert notifier.messages == ["I hit an error while executing mark_spam: imap timeout"]

    @pytest.mark.asyncio
    async def test_validation_error(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "move_email", "account": "work", "emailId": 3}
        )
        assert result.success is False
        assert result.error == "move_email requires target folder"

    @pytest.mark.asyncio
    async def test_send_email_requires_body(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "send_email", "to": "bob@example.com", "subject": "Hi"}
        )
        assert result.error == "send_email requires body or html content"
        assert mailbox.sent == []

    @pytest.mark.asyncio
    async def test_no_mailbox(self, notifier):
        result = await _dispatcher(None, notifier).execute({"action": "check_email", "account": "work"})
        assert result.success is False
        assert "not configured" in result.error

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_change_result(self, mailbox):
        result = await _dispatcher(mailbox, RecordingNotifier(fail=True)).execute(
            {"action": "mark_read", "account": "work", "emailId": 9, "response": "Marked."}
        )
        assert result.success is True


class TestNotifyIfNeeded:
    @pytest.mark.asyncio
    async def test_reply_forwarded_after_success(self, mailbox, notifier):
        await _dispatcher(mailbox, notifier).execute(
            {"action": "mark_read", "account": "work", "emailId": 9, "response": "Marked as read."}
        )
        assert notifier.delivered == [(OWNER_SMS, "Marked as read.")]

    @pytest.mark.asyncio
    async def test_send_to_gateway_is_not_echoed(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute({
            "action": "send_email",
            "to": OWNER_SMS.upper(),
            "subject": "Nova",
            "body": "hello",
            "response": "hello",
        })
        assert result.success is True
        assert notifier.delivered == []
        assert len(mailbox.sent) == 1

    @pytest.mark.asyncio
    async def test_send_email_passes_account_through(self, mailbox, notifier):
        await _dispatcher(mailbox, notifier).execute({
            "action": "send_email",
            "account": "nova-sms",
            "to": "bob@example.com",
            "subject": "Lunch",
            "body": "Noon?",
            "from": "Nova <nova@example.com>",
        })
        sent = mailbox.sent[0]
        assert sent.account_id == "nova-sms"
        assert sent.sender == "Nova <nova@example.com>"

    @pytest.mark.asyncio
    async def test_no_owner_contact(self, mailbox, notifier):
        dispatcher = _dispatcher(mailbox, notifier, owner=OwnerConfig())
        assert dispatcher.owner_contact is None
        await dispatcher.execute({"action": "mark_read", "account": "work", "emailId": 9, "response": "ok"})
        assert notifier.delivered == []

    def test_fallback_email_contact(self):
        dispatcher = _dispatcher(owner=OwnerConfig(fallback_email="me@example.com"))
        assert dispatcher.owner_contact == "me@example.com"


class TestEmailHandlers:
    @pytest.mark.asyncio
    async def test_check_email_pushes_summary_once(self, notifier):
        mailbox = FakeMailbox(emails={"work": [make_email(5, "Invoice"), make_email(4, "Lunch")]})
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "check_email", "account": "work", "response": "Checking now"}
        )
        assert result.success is True
        assert result.details["skipOwnerNotification"] is True
        assert len(notifier.messages) == 1
        assert "• Invoice - alice@example.com (2026-01-05 09:30) [5]" in notifier.messages[0]

    @pytest.mark.asyncio
    async def test_search_email_orders_newest_first(self, notifier):
        emails = [make_email(n, f"Report {n}") for n in (30, 20, 12, 5)]
        mailbox = FakeMailbox(emails={"work": emails}, search_results=[12, 30])
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "search_email", "account": "work", "subject": "Report"}
        )
        assert [r["seqno"] for r in result.details["results"]] == [30, 12]
        assert result.details["criteria"] == {"subject": "Report"}
        assert mailbox.calls_to("get_recent_emails") == [("work", 25)]

    @pytest.mark.asyncio
    async def test_search_email_without_matches(self, notifier):
        mailbox = FakeMailbox(search_results=[])
        await _dispatcher(mailbox, notifier).execute(
            {"action": "search_email", "account": "work", "content": "tickets"}
        )
        assert notifier.messages == ["No matching emails found."]
        assert mailbox.calls_to("get_recent_emails") == []

    @pytest.mark.asyncio
    async def test_move_email(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "move_email", "account": "personal", "uid": "8", "folder": "Receipts"}
        )
        assert mailbox.calls_to("move_email") == [("personal", 8, "Receipts")]
        assert result.details == {"accountId": "personal", "emailId": 8, "folder": "Receipts"}

    @pytest.mark.asyncio
    async def test_unsubscribe_summary(self, mailbox, notifier):
        result = await _dispatcher(mailbox, notifier).execute(
            {"action": "unsubscribe_email", "account": "work", "emailId": 11}
        )
        assert result.details["info"]["sender"] == "news@news.example"
        assert "https://news.example/unsub?a=1" in notifier.messages[0]


class TestSchedulingAndTasks:
    @pytest.mark.asyncio
    async def test_schedule_reminder_defaults(self, store, clock, notifier):
        reminders = ReminderStore(store, clock=clock)
        result = await _dispatcher(notifier=notifier, reminders=reminders).execute({"action": "schedule_reminder"})

        assert result.details["task"] == "Untitled reminder"
        assert result.details["delayMs"] == 15 * 60 * 1000
        assert result.details["context"] == "Scheduled follow-up"
        reminder = await reminders.get_reminder(result.details["id"])
        assert reminder.wakeup_time == clock.now + 15 * 60 * 1000

    @pytest.mark.asyncio
    async def test_schedule_reminder_when_beats_delay(self, store, clock):
        reminders = ReminderStore(store, clock=clock)
        result = await _dispatcher(reminders=reminders).execute({
            "action": "schedule_reminder",
            "prompt": "call back Jim",
            "when": "2 hours",
            "delayMs": 60_000,
        })
        assert result.details["task"] == "call back Jim"
        assert result.details["delayMs"] == 2 * 60 * 60 * 1000

    @pytest.mark.asyncio
    async def test_schedule_without_store(self, notifier):
        result = await _dispatcher(notifier=notifier).execute({"action": "schedule_reminder", "task": "x"})
        assert result.success is False
        assert result.error == "Scheduling service not configured"

    @pytest.mark.asyncio
    async def test_daily_summary(self, store, clock):
        reminders = ReminderStore(store, clock=clock)
        details = await _dispatcher(reminders=reminders).schedule_daily_summary("Summarize today")
        assert details["category"] == "daily_summary"
        assert 0 < details["delayMs"] <= 24 * 60 * 60 * 1000

    @pytest.mark.asyncio
    async def test_add_task(self):
        memory = FakeMemory()
        result = await _dispatcher(memory=memory).execute(
            {"action": "add_task", "description": "renew passport", "dueDate": "2026-11-01"}
        )
        assert result.details == {"task": "renew passport", "dueDate": "2026-11-01", "priority": "medium"}
        assert memory.added == [(
            "TASK: renew passport (due 2026-11-01)",
            {"type": "task", "priority": "medium", "due_date": "2026-11-01"},
        )]

    @pytest.mark.asyncio
    async def test_calendar_unavailable(self, notifier):
        result = await _dispatcher(notifier=notifier).execute(
            {"action": "check_calendar", "response": "Let me look"}
        )
        assert result.success is True
        assert notifier.messages == [CALENDAR_UNAVAILABLE]


class TestNotifyOwnerAction:
    @pytest.mark.asyncio
    async def test_delivers_reply_once(self, notifier):
        result = await _dispatcher(notifier=notifier).execute(
            {"action": "notify_owner", "response": "Your 3pm moved to 4pm."}
        )
        assert result.success is True
        assert result.details == {"to": OWNER_SMS, "skipOwnerNotification": True}
        assert notifier.delivered == [(OWNER_SMS, "Your 3pm moved to 4pm.")]

    @pytest.mark.asyncio
    async def test_without_channel(self):
        result = await _dispatcher(owner=OwnerConfig()).execute({"action": "notify_owner", "response": "hi"})
        assert result.success is False
        assert result.error == "No owner notification channel configured"
