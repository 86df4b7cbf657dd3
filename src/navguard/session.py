"""Long-lived policy session owned by the shell's main process.

Every temporal policy in :mod:`navguard` is a pure function over
caller-owned state.  :class:`PolicySession` is that caller: it holds the
call dedupe state, the overlay hint state, one bootstrap window per call
popup, the active messenger surface and the conversation deduper, and
feeds them the clock.  The clock is read exactly once per event so every
decision made for one event sees the same ``now``.

All methods are meant to be called from a single thread (the shell's
event loop); the session does no locking.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Hashable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from navguard.calls.dedupe import (
    IncomingCallDedupeState,
    IncomingCallPayload,
    WindowFocusTarget,
    apply_incoming_call_window_focus,
)
from navguard.calls.overlay import (
    OverlayHintState,
    SurfaceId,
    apply_overlay_hint_signal,
    clear_overlay_hint_state,
    collect_stale_overlay_hint_ids,
    is_overlay_visible,
    parse_overlay_hint_visible,
    should_accept_overlay_hint_sender,
)
from navguard.core.config import ShellConfig
from navguard.core.defaults import (
    DEFAULT_NOTIFICATION_DEDUPE_TTL_MS,
    DEFAULT_OVERLAY_HINT_TTL_MS,
)
from navguard.core.types import (
    IncomingCallDecision,
    OverlayHintChange,
    RequestedAction,
    WindowFocusResult,
    WindowOpenAction,
)
from navguard.notifications.classify import NotificationDeduper
from navguard.policy.bootstrap import BootstrapWindowState, is_bootstrap_start_url
from navguard.policy.window_open import decide_window_open_action

logger = logging.getLogger(__name__)

PopupId = Hashable


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class IncomingCallOutcome(BaseModel, frozen=True):
    """What the shell should do for one incoming-call signal."""

    decision: IncomingCallDecision
    overlay_visible: bool = Field(description="The active surface is already showing its in-page call overlay.")
    show_notification: bool = Field(description="Raise a native notification.")
    focus: WindowFocusResult | None = Field(default=None, description="Set when the main window was brought forward.")


class PolicySession:
    """Single owner of all mutable navigation and call policy state.

    Args:
        config: Host-tunable settings; defaults are used when ``None``.
        clock: Returns the current time in epoch milliseconds.  Injected
            by tests; defaults to the wall clock.
    """

    def __init__(
        self,
        config: ShellConfig | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._clock = clock or _epoch_ms
        self.overlay_hint_ttl_ms = (
            config.overlay_hint_ttl_ms if config is not None else DEFAULT_OVERLAY_HINT_TTL_MS
        )
        dedupe_ttl_ms = (
            config.notification_dedupe_ttl_ms
            if config is not None
            else DEFAULT_NOTIFICATION_DEDUPE_TTL_MS
        )
        self.call_dedupe = IncomingCallDedupeState()
        self.overlay_hints = OverlayHintState()
        self.conversation_deduper = NotificationDeduper(dedupe_ttl_ms)
        self.active_surface_id: SurfaceId | None = None
        self._bootstrap: dict[PopupId, BootstrapWindowState] = {}

    def now(self) -> int:
        return self._clock()

    # -- navigation ------------------------------------------------------------

    def on_main_navigation(self, url: str) -> WindowOpenAction:
        return decide_window_open_action(url, RequestedAction.NAVIGATE)

    def on_window_open(self, url: str) -> WindowOpenAction:
        return decide_window_open_action(url, RequestedAction.OPEN_WINDOW)

    def on_child_window_created(self, popup_id: PopupId, initial_url: str) -> bool:
        """Register a freshly created popup; returns whether it entered bootstrap mode."""
        if not is_bootstrap_start_url(initial_url):
            return False
        state = BootstrapWindowState(self.now())
        self._bootstrap[popup_id] = state
        logger.info("Popup %r entered bootstrap at %d", popup_id, state.started_at)
        return True

    def on_child_window_navigation(self, popup_id: PopupId, url: str) -> WindowOpenAction:
        """Disposition for a navigation inside an existing popup.

        A popup in bootstrap mode may be loosened to ``allow-child-window``;
        otherwise the ordinary new-window disposition applies.
        """
        action = decide_window_open_action(url, RequestedAction.OPEN_WINDOW)
        state = self._bootstrap.get(popup_id)
        if state is None:
            return action

        now = self.now()
        if state.is_expired(now):
            del self._bootstrap[popup_id]
            logger.info("Popup %r left bootstrap: %r", popup_id, state)
            return action

        decision = state.evaluate(url, action, now)
        state.record(decision)
        logger.debug(
            "Bootstrap popup=%r url=%s action=%s allowed=%s allowed_by=%s",
            popup_id,
            url,
            action.value,
            decision.allowed,
            decision.allowed_by.value if decision.allowed_by else None,
        )
        if decision.allowed:
            return WindowOpenAction.ALLOW_CHILD_WINDOW
        return action

    def on_child_window_closed(self, popup_id: PopupId) -> None:
        self._bootstrap.pop(popup_id, None)

    def bootstrap_state(self, popup_id: PopupId) -> BootstrapWindowState | None:
        return self._bootstrap.get(popup_id)

    # -- overlay hints ---------------------------------------------------------

    def set_active_surface(self, surface_id: SurfaceId | None) -> None:
        """Switch the active messenger surface; the old one's overlay is cleared."""
        previous = self.active_surface_id
        if previous is not None and previous != surface_id:
            clear_overlay_hint_state(self.overlay_hints, previous)
        self.active_surface_id = surface_id

    def on_overlay_hint(self, sender_id: SurfaceId, payload: Any) -> OverlayHintChange | None:
        """Apply an overlay hint; returns ``None`` when the sender is rejected."""
        if not should_accept_overlay_hint_sender(sender_id, self.active_surface_id):
            logger.warning(
                "Ignoring overlay hint from surface %r (active=%r)", sender_id, self.active_surface_id,
            )
            return None
        change = apply_overlay_hint_signal(
            self.overlay_hints, sender_id, parse_overlay_hint_visible(payload), self.now(),
        )
        if change.changed:
            logger.debug("Overlay on surface %r visible=%s", sender_id, change.next_visible)
        return change

    def on_surface_gone(self, surface_id: SurfaceId) -> None:
        """The surface navigated away, crashed or was destroyed."""
        clear_overlay_hint_state(self.overlay_hints, surface_id)
        if self.active_surface_id == surface_id:
            self.active_surface_id = None

    def sweep_stale_overlays(self) -> list[SurfaceId]:
        """Clear every visible overlay whose heartbeat stopped; returns the ids cleared."""
        stale = collect_stale_overlay_hint_ids(self.overlay_hints, self.now(), self.overlay_hint_ttl_ms)
        for surface_id in stale:
            clear_overlay_hint_state(self.overlay_hints, surface_id)
            logger.info("Cleared stale overlay hint for surface %r", surface_id)
        return stale

    def is_active_overlay_visible(self) -> bool:
        if self.active_surface_id is None:
            return False
        return is_overlay_visible(self.overlay_hints, self.active_surface_id)

    # -- incoming calls and notifications ----------------------------------------

    def on_incoming_call(
        self,
        payload: IncomingCallPayload | Mapping[str, Any] | None,
        window: WindowFocusTarget | None = None,
    ) -> IncomingCallOutcome:
        """Decide whether an incoming-call signal raises a native notification.

        Every ``notify`` decision is recorded, so repeats of a call are
        deduped even while the active surface shows its in-page overlay.
        A notification is raised, and *window* brought forward, only for a
        ``notify`` decision with no overlay visible.
        """
        if not isinstance(payload, IncomingCallPayload):
            payload = IncomingCallPayload.from_raw(payload)

        decision = self.call_dedupe.decide(payload, self.now())
        overlay_visible = self.is_active_overlay_visible()
        show = decision.should_notify and not overlay_visible
        self.call_dedupe.record(decision, payload)

        focus = apply_incoming_call_window_focus(window) if show and window is not None else None
        logger.debug(
            "Incoming call dedupe_key=%s reason=%s overlay_visible=%s notify=%s",
            decision.call_key,
            decision.reason.value,
            overlay_visible,
            show,
        )
        return IncomingCallOutcome(
            decision=decision,
            overlay_visible=overlay_visible,
            show_notification=show,
            focus=focus,
        )

    def should_suppress_conversation_notification(self, href: str) -> bool:
        return self.conversation_deduper.should_suppress(href, self.now())
