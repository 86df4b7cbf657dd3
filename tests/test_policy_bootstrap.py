"""Tests for the about:blank bootstrap trust window (policy/bootstrap.py).

Covers:
- The outgoing-call walk: blank popup, call page, brief thread hop
- Time and navigation budgets, both inclusive at the boundary
- Trusted intermediate paths and the post-call thread hop
- Clock skew and missing start time
"""

from __future__ import annotations

from navguard.core.types import BootstrapAllowedBy, RequestedAction, SiteKey, WindowOpenAction
from navguard.policy.bootstrap import (
    BootstrapWindowState,
    is_bootstrap_start_url,
    is_trusted_bootstrap_intermediate_url,
    should_allow_bootstrap_navigation,
)
from navguard.policy.window_open import decide_window_open_action

CALL_URL = "https://www.facebook.com/videochat/?call_id=1"
THREAD_URL = "https://www.facebook.com/messages/t/999/"


def _popup_action(url: str) -> WindowOpenAction:
    return decide_window_open_action(url, RequestedAction.OPEN_WINDOW)


class TestStartAndIntermediate:
    def test_start_urls(self) -> None:
        assert is_bootstrap_start_url("about:blank")
        assert not is_bootstrap_start_url("https://www.facebook.com/videochat/")
        assert not is_bootstrap_start_url("https://www.messenger.com/")

    def test_trusted_intermediate_paths(self) -> None:
        assert is_trusted_bootstrap_intermediate_url("https://www.facebook.com/rtc/relay/")
        assert is_trusted_bootstrap_intermediate_url("https://www.facebook.com/dialog/call/")
        assert is_trusted_bootstrap_intermediate_url("https://www.messenger.com/videochat/x")
        assert not is_trusted_bootstrap_intermediate_url("https://www.facebook.com/groups/1")
        assert not is_trusted_bootstrap_intermediate_url("https://example.com/rtc/relay/")


class TestOutgoingCallWalk:
    def test_call_page_is_call_safe(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            CALL_URL, _popup_action(CALL_URL), t0, 0, False, t0 + 1000,
        )
        assert decision.allowed
        assert decision.allowed_by is BootstrapAllowedBy.CALL_SAFE_ACTION
        assert decision.elapsed_ms == 1000
        assert decision.site_key is SiteKey.FACEBOOK

    def test_thread_hop_after_call_safe(self, t0: int) -> None:
        assert _popup_action(THREAD_URL) is WindowOpenAction.REROUTE_MAIN_VIEW
        decision = should_allow_bootstrap_navigation(
            THREAD_URL, WindowOpenAction.REROUTE_MAIN_VIEW, t0, 1, True, t0 + 2000,
        )
        assert decision.allowed
        assert decision.allowed_by is BootstrapAllowedBy.POST_CALL_THREAD_HOP

    def test_thread_hop_without_call_safe_is_not_trusted(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            THREAD_URL, WindowOpenAction.REROUTE_MAIN_VIEW, t0, 1, False, t0 + 2000,
        )
        assert not decision.allowed
        assert decision.allowed_by is None

    def test_expired_window_is_not_trusted(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 2, True, t0 + 31_000,
        )
        assert not decision.allowed
        assert decision.elapsed_ms == 31_000
        assert decision.allowed_by is BootstrapAllowedBy.CALL_SAFE_ACTION

    def test_trusted_intermediate(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            "https://www.facebook.com/rtc/relay/",
            WindowOpenAction.OPEN_EXTERNAL_BROWSER,
            t0, 1, False, t0 + 500,
        )
        assert decision.allowed
        assert decision.allowed_by is BootstrapAllowedBy.TRUSTED_INTERMEDIATE

    def test_external_non_intermediate_is_not_trusted(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            "https://www.facebook.com/groups/1",
            WindowOpenAction.OPEN_EXTERNAL_BROWSER,
            t0, 1, True, t0 + 500,
        )
        assert not decision.allowed


class TestBudgets:
    def test_time_budget_is_inclusive(self, t0: int) -> None:
        at_limit = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 0, False, t0 + 30_000,
        )
        past_limit = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 0, False, t0 + 30_001,
        )
        assert at_limit.allowed
        assert not past_limit.allowed

    def test_navigation_budget(self, t0: int) -> None:
        seventh = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 7, False, t0 + 10,
        )
        eighth = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 8, False, t0 + 10,
        )
        assert seventh.allowed
        assert not eighth.allowed

    def test_missing_start_time(self, t0: int) -> None:
        for started_at in (None, 0, -5):
            decision = should_allow_bootstrap_navigation(
                CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, started_at, 0, False, t0,
            )
            assert not decision.allowed
            assert decision.elapsed_ms == 0

    def test_clock_moved_backwards(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 0, False, t0 - 5000,
        )
        assert decision.elapsed_ms == 0
        assert decision.allowed


class TestUntrustedTargets:
    def test_untrusted_host_never_allowed(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(
            "https://example.com/videochat/", WindowOpenAction.ALLOW_CHILD_WINDOW, t0, 0, True, t0 + 1,
        )
        assert not decision.allowed
        assert decision.site_key is None

    def test_unknown_action_string(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(CALL_URL, "bogus", t0, 0, False, t0 + 1)
        assert not decision.allowed
        assert decision.allowed_by is None

    def test_action_string_accepted(self, t0: int) -> None:
        decision = should_allow_bootstrap_navigation(CALL_URL, "allow-child-window", t0, 0, False, t0 + 1)
        assert decision.allowed


class TestBootstrapWindowState:
    def test_record_counts_and_latches(self, t0: int) -> None:
        state = BootstrapWindowState(t0)
        first = state.evaluate(CALL_URL, _popup_action(CALL_URL), t0 + 1000)
        state.record(first)
        assert state.navigation_count == 1
        assert state.has_seen_call_safe_navigation

        second = state.evaluate(THREAD_URL, _popup_action(THREAD_URL), t0 + 2000)
        state.record(second)
        assert second.allowed_by is BootstrapAllowedBy.POST_CALL_THREAD_HOP
        assert state.navigation_count == 2

    def test_rejected_call_safe_does_not_latch(self, t0: int) -> None:
        state = BootstrapWindowState(t0)
        late = state.evaluate(CALL_URL, WindowOpenAction.ALLOW_CHILD_WINDOW, t0 + 40_000)
        state.record(late)
        assert not state.has_seen_call_safe_navigation
        assert state.navigation_count == 1

    def test_expiry(self, t0: int) -> None:
        state = BootstrapWindowState(t0)
        assert not state.is_expired(t0 + 30_000)
        assert state.is_expired(t0 + 30_001)
        state.navigation_count = 8
        assert state.is_expired(t0)

    def test_repr(self, t0: int) -> None:
        assert "navigation_count=0" in repr(BootstrapWindowState(t0))
