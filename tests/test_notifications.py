"""Tests for web notification triage (notifications/).

Covers:
- Incoming-call wording in title or body
- Site-wide social activity vs chat messages
- Per-conversation dedupe window
- Attributing a notification to a sidebar row, including muted groups
"""

from __future__ import annotations

import pytest

from navguard.notifications.classify import (
    NotificationDeduper,
    classify_call_notification,
    is_likely_global_facebook_notification,
    normalize_text,
    tokenize,
)
from navguard.notifications.models import (
    CallClassificationReason,
    NotificationCandidate,
    NotificationMatchReason,
    NotificationPayload,
)
from navguard.notifications.target import resolve_native_notification_target, score_candidate


def _row(href: str, title: str, body: str, muted: bool = False, unread: bool = True) -> NotificationCandidate:
    return NotificationCandidate(href=href, title=title, body=body, muted=muted, unread=unread)


class TestText:
    def test_normalize_text(self) -> None:
        assert normalize_text("  Hello \n  World ") == "hello world"
        assert normalize_text(None) == ""

    def test_tokenize_drops_short_tokens(self) -> None:
        assert tokenize("Alex: I'm OK, a b") == ["alex", "ok"]
        assert tokenize("!!!") == []


class TestCallClassification:
    def test_body_pattern(self) -> None:
        result = classify_call_notification(NotificationPayload(title="Facebook", body="Alex is calling you"))
        assert result.is_incoming_call
        assert result.reason is CallClassificationReason.INCOMING_CALL_PATTERN
        assert result.matched_pattern == "calling you"

    def test_title_pattern(self) -> None:
        result = classify_call_notification(NotificationPayload(title="Incoming video call", body=""))
        assert result.is_incoming_call

    def test_not_call(self) -> None:
        result = classify_call_notification(NotificationPayload(title="Taylor", body="Call me later"))
        assert not result.is_incoming_call
        assert result.reason is CallClassificationReason.NOT_CALL
        assert result.matched_pattern is None

    def test_empty(self) -> None:
        assert not classify_call_notification(NotificationPayload()).is_incoming_call


class TestGlobalNotification:
    @pytest.mark.parametrize(
        ("title", "body", "expected"),
        [
            ("Facebook", "Sam commented on your post", True),
            ("Meta Business Suite", "You have 3 new notifications", True),
            ("facebook", "Jo sent you a friend request", True),
            ("Taylor", "Are you free tonight?", False),
            ("Facebook", "Are you free tonight?", False),
            ("Facebook", "Alex is calling you", False),
            ("Metallica Fans", "Sam commented on your post", False),
            ("", "", False),
        ],
    )
    def test_global(self, title: str, body: str, expected: bool) -> None:
        payload = NotificationPayload(title=title, body=body)
        assert is_likely_global_facebook_notification(payload) is expected


class TestNotificationDeduper:
    def test_window(self) -> None:
        deduper = NotificationDeduper(5000)
        assert not deduper.should_suppress("/t/group-project", 1000)
        assert deduper.should_suppress("/t/group-project", 2500)
        assert not deduper.should_suppress("/t/group-project", 9000)

    def test_repeats_restamp(self) -> None:
        deduper = NotificationDeduper(1000)
        assert not deduper.should_suppress("/t/a", 0)
        assert deduper.should_suppress("/t/a", 900)
        assert deduper.should_suppress("/t/a", 1800)
        assert not deduper.should_suppress("/t/a", 2800)

    def test_conversations_are_independent(self) -> None:
        deduper = NotificationDeduper()
        assert not deduper.should_suppress("/t/a", 0)
        assert not deduper.should_suppress("/t/b", 1)

    def test_key_is_normalized(self) -> None:
        deduper = NotificationDeduper()
        assert not deduper.should_suppress("/T/Group ", 0)
        assert deduper.should_suppress("/t/group", 1)

    def test_empty_href_never_suppressed(self) -> None:
        deduper = NotificationDeduper()
        assert not deduper.should_suppress("", 0)
        assert not deduper.should_suppress("  ", 1)

    def test_minimum_ttl(self) -> None:
        assert NotificationDeduper(10).ttl_ms == 100
        assert NotificationDeduper().ttl_ms == 4000


class TestScoring:
    def test_exact_match_is_clamped(self) -> None:
        payload = NotificationPayload(title="Taylor", body="Are you free?")
        assert score_candidate(payload, _row("/t/taylor", "Taylor", "Are you free?")) == 1.0

    def test_read_rows_are_penalized(self) -> None:
        payload = NotificationPayload(title="Taylor", body="Are you free?")
        score = score_candidate(payload, _row("/t/taylor", "Taylor", "Are you free?", unread=False))
        assert score == pytest.approx(0.88)

    def test_unrelated_row_scores_zero(self) -> None:
        payload = NotificationPayload(title="Taylor", body="Are you free?")
        assert score_candidate(payload, _row("/t/x", "Weekend Plans", "Dinner on Friday")) == 0.0


class TestResolveTarget:
    def test_no_candidates(self) -> None:
        match = resolve_native_notification_target(NotificationPayload(title="Taylor", body="hi"), [])
        assert match.reason is NotificationMatchReason.NO_CANDIDATES
        assert match.ambiguous
        assert match.matched_href is None

    def test_low_confidence(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Taylor", body="Are you free?"),
            [_row("/t/x", "Weekend Plans", "Dinner on Friday")],
        )
        assert match.reason is NotificationMatchReason.LOW_CONFIDENCE
        assert match.confidence == 0.0

    def test_direct_conversation(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Taylor", body="Are you free?"),
            [
                _row("/t/taylor", "Taylor", "Are you free?"),
                _row("/t/random-group", "Weekend Plans", "Dinner on Friday"),
            ],
        )
        assert match.reason is NotificationMatchReason.MATCHED
        assert not match.ambiguous
        assert match.matched_href == "/t/taylor"
        assert not match.muted

    def test_muted_individual(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Alex", body="Can you review this?"),
            [
                _row("/t/alex", "Alex", "Can you review this?", muted=True),
                _row("/t/group-project", "Project Squad", "Alex sent a message"),
            ],
        )
        assert not match.ambiguous
        assert match.matched_href == "/t/alex"
        assert match.muted

    def test_sender_title_with_muted_group_fails_closed(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Alex", body="sent a message"),
            [
                _row("/t/alex", "Alex", "sent a message"),
                _row("/t/group-project", "Project Squad", "Alex sent a message", muted=True),
            ],
        )
        assert match.reason is NotificationMatchReason.MUTED_CONFLICT
        assert match.ambiguous
        assert match.muted
        assert match.matched_href is None

    def test_muted_group_title(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Project Squad", body="Alex: shipped the fix"),
            [
                _row("/t/group-project", "Project Squad", "Alex: shipped the fix", muted=True),
                _row("/t/alex", "Alex", "shipped the fix"),
            ],
        )
        assert not match.ambiguous
        assert match.matched_href == "/t/group-project"
        assert match.muted

    def test_muted_group_preview_quotes_body(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Alex", body="deploy is done"),
            [
                _row("/t/alex", "Alex", "see you"),
                _row("/t/ops", "Ops Room", "Alex: deploy is done", muted=True),
            ],
        )
        assert match.reason is NotificationMatchReason.MUTED_CONFLICT

    def test_identical_rows_are_ambiguous(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Sam", body="hi there"),
            [_row("/t/a", "Sam", "hi there"), _row("/t/b", "Sam", "hi there")],
        )
        assert match.reason is NotificationMatchReason.AMBIGUOUS_CANDIDATES
        assert match.matched_href is None
        assert not match.muted

    def test_close_scores_with_muted_row_are_muted_conflict(self) -> None:
        match = resolve_native_notification_target(
            NotificationPayload(title="Sam", body="hi there"),
            [_row("/t/a", "Sam", "hi there"), _row("/t/b", "Sam", "hi there", muted=True)],
        )
        assert match.reason is NotificationMatchReason.MUTED_CONFLICT
