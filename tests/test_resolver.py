"""Tests for plan → account/message resolution."""

import pytest

from conftest import FakeMailbox
from nova.actions.resolver import (
    EmailTarget,
    PlanResolver,
    ResolutionFailure,
    ResolvedEmail,
    classify_fallback,
    derive_criteria,
    extract_target,
    looks_like_sender,
    looks_like_subject,
    parse_sequence,
)
from nova.mail.types import MailAccount
from nova.errors import (
    AccountResolutionError,
    ConfigurationError,
    MissingIdentificationError,
    NoMatchError,
)


# ---------------------------------------------------------------------------
# Pure extraction
# ---------------------------------------------------------------------------

class TestParseSequence:
    @pytest.mark.parametrize("value,expected", [(42, 42), ("42", 42), (" 7 ", 7), ("0", 0)])
    def test_accepts_digits(self, value, expected):
        assert parse_sequence(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "12a", "-3", "4.5", True, 4.5])
    def test_rejects_everything_else(self, value):
        assert parse_sequence(value) is None


class TestExtractTarget:
    @pytest.mark.parametrize("key", ["emailId", "emailID", "email_id", "uid", "messageId", "message_id"])
    def test_each_identifier_key(self, key):
        assert extract_target({key: "17", "subject": "ignored"}) == EmailTarget(seqno=17)

    def test_identifier_key_order(self):
        target = extract_target({"message_id": 5, "emailId": 9})
        assert target.seqno == 9

    def test_non_numeric_identifier_falls_through_to_next_key(self):
        target = extract_target({"emailId": "<abc@x>", "uid": 12})
        assert target.seqno == 12

    @pytest.mark.parametrize("alias", ["sender", "from", "author", "fromEmail", "fromAddress"])
    def test_sender_alias_only(self, alias):
        target = extract_target({alias: "  Jim Smith  "})
        assert target.seqno is None
        assert target.criteria == {"sender": "Jim Smith"}

    def test_first_alias_wins(self):
        criteria = derive_criteria({"title": "second", "subject": "first", "emailSubject": "third"})
        assert criteria == {"subject": "first"}

    def test_blank_alias_is_skipped(self):
        criteria = derive_criteria({"sender": "   ", "from": "bob@example.com"})
        assert criteria == {"sender": "bob@example.com"}

    def test_message_is_never_search_text(self):
        assert derive_criteria({"message": "Sure, deleting it now"}) == {}

    def test_fallback_used_only_without_aliases(self):
        target = extract_target({"emailId": "noreply@shop.example", "subject": "Invoice"})
        assert target.criteria == {"subject": "Invoice"}

    def test_fallback_classified_as_sender(self):
        target = extract_target({"emailId": "noreply@shop.example"})
        assert target.criteria == {"sender": "noreply@shop.example"}

    def test_fallback_classified_as_subject(self):
        target = extract_target({"messageId": "Re: lunch"})
        assert target.criteria == {"subject": "Re: lunch"}

    def test_fallback_defaults_to_content(self):
        target = extract_target({"uid": "quarterly numbers"})
        assert target.criteria == {"content": "quarterly numbers"}

    def test_nothing_identifying(self):
        assert extract_target({"action": "mark_spam", "account": "work"}) == EmailTarget()


class TestHeuristics:
    @pytest.mark.parametrize("text", ["a@b.com", "from the bank", "Sent by HR", "Support Team", "no-reply"])
    def test_sender_like(self, text):
        assert looks_like_sender(text)

    @pytest.mark.parametrize("text", ["RE: contract", "fwd: photos", "Urgent: read", "Budget meeting notes"])
    def test_subject_like(self, text):
        assert looks_like_subject(text)

    def test_sender_checked_before_subject(self):
        assert classify_fallback("invoice from acme") == "sender"

    def test_plain_text(self):
        assert not looks_like_sender("quarterly numbers")
        assert not looks_like_subject("quarterly numbers")


# ---------------------------------------------------------------------------
# Resolver against a mailbox
# ---------------------------------------------------------------------------

class TestResolveEmail:
    @pytest.mark.asyncio
    async def test_direct_identifier_skips_search(self, mailbox):
        resolver = PlanResolver(mailbox)
        outcome = await resolver.resolve_email("work", {"emailId": 42, "sender": "jim"})
        assert outcome == ResolvedEmail(account_id="work", seqno=42, via="identifier")
        assert mailbox.calls_to("search_for_sequence_numbers") == []

    @pytest.mark.asyncio
    async def test_search_uses_first_result_and_limit_three(self):
        mailbox = FakeMailbox(search_results=[31, 30, 12, 4])
        outcome = await PlanResolver(mailbox).resolve_email("work", {"from": "Jim"})
        assert isinstance(outcome, ResolvedEmail)
        assert outcome.seqno == 31
        assert outcome.via == "search"
        assert mailbox.calls_to("search_for_sequence_numbers") == [("work", {"sender": "Jim"}, 3)]

    @pytest.mark.asyncio
    async def test_missing_identification_never_searches(self, mailbox):
        outcome = await PlanResolver(mailbox).resolve_email("work", {"action": "delete_email"})
        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == "missing_identification"
        assert isinstance(outcome.to_error(), MissingIdentificationError)
        assert mailbox.calls_to("search_for_sequence_numbers") == []

    @pytest.mark.asyncio
    async def test_no_match(self, mailbox):
        outcome = await PlanResolver(mailbox).resolve_email("work", {"subject": "Nope"})
        assert isinstance(outcome, ResolutionFailure)
        assert outcome.reason == "no_match"
        err = outcome.to_error()
        assert isinstance(err, NoMatchError)
        assert err.criteria == {"subject": "Nope"}

    @pytest.mark.asyncio
    async def test_accepts_prebuilt_target(self):
        mailbox = FakeMailbox(search_results=[8])
        target = EmailTarget(criteria={"content": "tickets"})
        outcome = await PlanResolver(mailbox).resolve_email("personal", target)
        assert outcome.seqno == 8


class TestResolveAccount:
    def test_matches_id_case_insensitively(self, mailbox):
        assert PlanResolver(mailbox).resolve_account(" WORK ") == "work"

    def test_matches_email_address(self, mailbox):
        assert PlanResolver(mailbox).resolve_account("me@home.example") == "personal"

    def test_missing_account_is_an_error(self, mailbox):
        with pytest.raises(AccountResolutionError) as exc:
            PlanResolver(mailbox).resolve_account(None)
        assert exc.value.available == ["work", "personal"]
        assert "Available accounts: work, personal" in str(exc.value)

    def test_unknown_account_has_no_fallback(self, mailbox):
        with pytest.raises(AccountResolutionError, match='"office" not found'):
            PlanResolver(mailbox).resolve_account("office")

    def test_single_account_still_requires_a_match(self):
        mailbox = FakeMailbox(accounts=[MailAccount(id="only", email="only@example.com")])
        with pytest.raises(AccountResolutionError):
            PlanResolver(mailbox).resolve_account("")

    def test_no_mailbox(self):
        with pytest.raises(ConfigurationError):
            PlanResolver(None).resolve_account("work")
