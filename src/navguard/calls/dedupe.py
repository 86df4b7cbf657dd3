"""Incoming-call native notification deduplication.

The content layer can raise the same incoming call several times: once
per ring, once per re-render, sometimes twice within a few milliseconds.
A signal may carry a ``dedupe_key`` that correlates repeats of one call;
signals without a key are deduped on time alone.

Decision order for :func:`decide_incoming_call_notification`:

1. Normalise the key (trim, reject empty, cap at 180 chars).
2. Sweep keyed entries older than the 45 s key TTL.
3. Keyless signal within 400 ms of the last keyless notification ->
   ``no-key-jitter-window`` (near-simultaneous duplicate signals).
4. Keyed signal notified within the TTL -> ``same-key``; keyless signal
   within the 10 s cooldown -> ``no-key-cooldown`` (ring/cancel churn).
5. Otherwise ``notify``; the caller records the decision.

Keyed and keyless windows are independent: neither ever suppresses the
other.  Elapsed times are clamped at zero so a clock that moved backwards
can never produce a negative-length window.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import BaseModel, Field

from navguard.core.defaults import (
    DEDUPE_KEY_MAX_LENGTH,
    INCOMING_CALL_KEY_TTL_MS,
    INCOMING_CALL_NO_KEY_COOLDOWN_MS,
    INCOMING_CALL_NO_KEY_JITTER_GUARD_MS,
)
from navguard.core.ttl_cache import ExpiringCache
from navguard.core.types import (
    CallNotificationReason,
    IncomingCallDecision,
    WindowFocusResult,
)

logger = logging.getLogger(__name__)


class IncomingCallPayload(BaseModel, frozen=True):
    """Signal sent by the content layer when an incoming call is detected."""

    dedupe_key: str | None = Field(default=None, description="Correlates repeats of one call.")
    caller: str | None = Field(default=None, description="Display name of the caller, if known.")
    source: str | None = Field(default=None, description="Which detector raised the signal.")

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> IncomingCallPayload:
        """Build a payload from an untyped IPC message, never raising.

        Accepts both ``dedupe_key`` and ``dedupeKey`` spellings.  Values of
        the wrong type are dropped rather than rejected.
        """
        if not isinstance(raw, Mapping):
            return cls()

        def _text(*names: str) -> str | None:
            for name in names:
                value = raw.get(name)
                if isinstance(value, str):
                    return value
            return None

        return cls(
            dedupe_key=_text("dedupe_key", "dedupeKey"),
            caller=_text("caller"),
            source=_text("source"),
        )


def normalize_dedupe_key(payload: IncomingCallPayload | None) -> str | None:
    """Trimmed, length-capped dedupe key, or ``None`` if absent or blank."""
    if payload is None or not isinstance(payload.dedupe_key, str):
        return None
    trimmed = payload.dedupe_key.strip()
    if not trimmed:
        return None
    return trimmed[:DEDUPE_KEY_MAX_LENGTH]


def _elapsed(now: int, since: int | None) -> int | None:
    if not since:
        return None
    return max(0, now - since)


def decide_incoming_call_notification(
    payload: IncomingCallPayload | None,
    now: int,
    notified_by_key: ExpiringCache[str, Any],
    last_no_key_at: int | None,
) -> IncomingCallDecision:
    """Decide whether an incoming-call signal should fire a native notification.

    Args:
        payload: The signal, or ``None`` for a bare signal.
        now: Clock reading for this decision (epoch ms).
        notified_by_key: Caller-owned cache of keyed notifications.  Swept
            as a side effect.
        last_no_key_at: When the last keyless notification fired; ``None``
            or ``0`` when none has.

    Returns:
        An :class:`IncomingCallDecision`.  Nothing is recorded here: on
        ``notify`` the caller must stamp ``now`` under the key (or the
        keyless slot) itself, see :meth:`IncomingCallDedupeState.record`.
    """
    call_key = normalize_dedupe_key(payload)
    notified_by_key.sweep(now)

    if call_key is None:
        since_no_key = _elapsed(now, last_no_key_at)
        if since_no_key is not None and since_no_key < INCOMING_CALL_NO_KEY_JITTER_GUARD_MS:
            reason = CallNotificationReason.NO_KEY_JITTER_WINDOW
        elif since_no_key is not None and since_no_key < INCOMING_CALL_NO_KEY_COOLDOWN_MS:
            reason = CallNotificationReason.NO_KEY_COOLDOWN
        else:
            reason = CallNotificationReason.NOTIFY
    else:
        since_key = notified_by_key.age_ms(call_key, now)
        if since_key is not None and since_key < INCOMING_CALL_KEY_TTL_MS:
            reason = CallNotificationReason.SAME_KEY
        else:
            reason = CallNotificationReason.NOTIFY

    return IncomingCallDecision(
        should_notify=reason is CallNotificationReason.NOTIFY,
        reason=reason,
        call_key=call_key,
        now=now,
    )


class IncomingCallDedupeState:
    """Caller-owned dedupe state, typically held by the session for its lifetime."""

    def __init__(self) -> None:
        self.notified_by_key: ExpiringCache[str, str | None] = ExpiringCache(
            INCOMING_CALL_KEY_TTL_MS,
        )
        self.last_no_key_at: int | None = None

    def decide(self, payload: IncomingCallPayload | None, now: int) -> IncomingCallDecision:
        return decide_incoming_call_notification(
            payload, now, self.notified_by_key, self.last_no_key_at,
        )

    def record(
        self,
        decision: IncomingCallDecision,
        payload: IncomingCallPayload | None = None,
    ) -> None:
        """Stamp a ``notify`` decision; suppressed decisions are ignored."""
        if not decision.should_notify:
            return
        if decision.call_key is None:
            self.last_no_key_at = decision.now
        else:
            caller = payload.caller if payload is not None else None
            self.notified_by_key.put(decision.call_key, caller, decision.now)


# ---------------------------------------------------------------------------
# Window focus on incoming call
# ---------------------------------------------------------------------------


class WindowFocusTarget(Protocol):
    """The slice of a native window the call handler needs."""

    def is_minimized(self) -> bool: ...
    def restore(self) -> None: ...
    def show(self) -> None: ...
    def focus(self) -> None: ...


def apply_incoming_call_window_focus(target: WindowFocusTarget | None) -> WindowFocusResult:
    """Bring *target* to the front: restore if minimized, then show, then focus."""
    if target is None:
        return WindowFocusResult(focused=False, restored_from_minimized=False)

    restored = bool(target.is_minimized())
    if restored:
        target.restore()
    target.show()
    target.focus()
    logger.debug("Focused window for incoming call (restored=%s)", restored)
    return WindowFocusResult(focused=True, restored_from_minimized=restored)
