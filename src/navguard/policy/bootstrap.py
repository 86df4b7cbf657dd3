"""About-blank child bootstrap trust window.

Outgoing and incoming calls open a popup at ``about:blank`` and then walk
it through a handful of redirects before it reaches the actual call page.
Several of those hops would, on their own, be pushed to the system
browser or rerouted into the main view by
:func:`~navguard.policy.window_open.decide_window_open_action`.  For a
short time after such a popup is created, and for a limited number of
hops, a navigation inside it is trusted when all of these hold:

- at most :data:`BOOTSTRAP_WINDOW_MS` have elapsed since creation;
- fewer than :data:`BOOTSTRAP_MAX_NAVIGATIONS` navigations have happened;
- the target belongs to a trusted property;
- one trust reason applies (see :class:`BootstrapAllowedBy`):

  ``call-safe-action``
      the ordinary policy already allows it as a child window;
  ``trusted-intermediate``
      the ordinary policy would open it externally, but the path is a
      known call/privacy/dialog/API intermediate hop;
  ``post-call-thread-hop``
      the target is a conversation thread route and a call-safe hop has
      already been seen in this window (outgoing calls briefly route
      through ``/messages/t/<id>`` before the call URL).

Bootstrap trust only ever loosens the ordinary disposition.  Once either
budget runs out the popup is governed by the ordinary rules again.

:func:`should_allow_bootstrap_navigation` is stateless; the caller owns a
:class:`BootstrapWindowState` per popup and updates it after every
navigation via :meth:`BootstrapWindowState.record`.
"""

from __future__ import annotations

from typing import Final

from navguard.core.defaults import BOOTSTRAP_MAX_NAVIGATIONS, BOOTSTRAP_WINDOW_MS
from navguard.core.types import (
    BootstrapAllowedBy,
    BootstrapDecision,
    WindowOpenAction,
)
from navguard.policy.urls import is_thread_route, parse_url, site_key_for_url


TRUSTED_INTERMEDIATE_PATH_PREFIXES: Final[tuple[str, ...]] = (
    "/ajax/",
    "/api/",
    "/dialog/",
    "/privacy/",
    "/messenger/",
    "/rtc/",
    "/videochat/",
    "/video_call/",
    "/call/",
)

_THREAD_HOP_ACTIONS: Final[frozenset[WindowOpenAction]] = frozenset(
    {WindowOpenAction.REROUTE_MAIN_VIEW, WindowOpenAction.OPEN_EXTERNAL_BROWSER}
)


def is_bootstrap_start_url(url: str) -> bool:
    """True when a popup opened at *url* starts in bootstrap mode.

    That is any start address that cannot be attributed to a trusted
    property, ``about:blank`` being the usual one.
    """
    return site_key_for_url(url) is None


def is_trusted_bootstrap_intermediate_url(url: str) -> bool:
    """True for known intermediate call-setup paths on a trusted property."""
    if site_key_for_url(url) is None:
        return False
    parts = parse_url(url)
    if parts is None:
        return False
    path = parts.path.lower()
    return any(path.startswith(prefix) for prefix in TRUSTED_INTERMEDIATE_PATH_PREFIXES)


def _allowed_by(
    url: str,
    action: WindowOpenAction,
    has_seen_call_safe_navigation: bool,
) -> BootstrapAllowedBy | None:
    if action is WindowOpenAction.ALLOW_CHILD_WINDOW:
        return BootstrapAllowedBy.CALL_SAFE_ACTION
    if (
        action is WindowOpenAction.OPEN_EXTERNAL_BROWSER
        and is_trusted_bootstrap_intermediate_url(url)
    ):
        return BootstrapAllowedBy.TRUSTED_INTERMEDIATE
    if (
        has_seen_call_safe_navigation
        and action in _THREAD_HOP_ACTIONS
        and is_thread_route(url)
    ):
        return BootstrapAllowedBy.POST_CALL_THREAD_HOP
    return None


def should_allow_bootstrap_navigation(
    url: str,
    action: WindowOpenAction | str,
    window_started_at: int | None,
    navigation_count: int,
    has_seen_call_safe_navigation: bool,
    now: int,
) -> BootstrapDecision:
    """Decide whether a navigation inside a bootstrap popup is still trusted.

    Args:
        url: Navigation target inside the popup.
        action: Ordinary disposition of *url* from the decision engine.
        window_started_at: Popup creation time (epoch ms).  ``None`` or a
            non-positive value means there is no bootstrap window.
        navigation_count: Navigations already seen in this popup.
        has_seen_call_safe_navigation: Whether a ``call-safe-action`` hop
            has already been recorded for this popup.
        now: Current clock reading (epoch ms), read once by the caller.

    Returns:
        A :class:`BootstrapDecision`.  ``elapsed_ms`` is clamped to zero
        if the clock moved backwards.
    """
    try:
        disposition: WindowOpenAction | None = WindowOpenAction(action)
    except ValueError:
        disposition = None

    has_window = window_started_at is not None and window_started_at > 0
    elapsed_ms = max(0, now - window_started_at) if has_window else 0
    within_window = has_window and elapsed_ms <= BOOTSTRAP_WINDOW_MS
    within_budget = 0 <= navigation_count < BOOTSTRAP_MAX_NAVIGATIONS

    site_key = site_key_for_url(url)
    allowed_by = (
        _allowed_by(url, disposition, has_seen_call_safe_navigation)
        if disposition is not None
        else None
    )

    return BootstrapDecision(
        allowed=within_window and within_budget and site_key is not None and allowed_by is not None,
        elapsed_ms=elapsed_ms,
        site_key=site_key,
        allowed_by=allowed_by,
    )


class BootstrapWindowState:
    """Per-popup bootstrap bookkeeping owned by the caller.

    Args:
        started_at: Popup creation time (epoch ms).
    """

    def __init__(self, started_at: int) -> None:
        self.started_at = started_at
        self.navigation_count = 0
        self.has_seen_call_safe_navigation = False

    def elapsed_ms(self, now: int) -> int:
        return max(0, now - self.started_at)

    def is_expired(self, now: int) -> bool:
        """True once either the time or the navigation budget is exhausted."""
        return (
            self.elapsed_ms(now) > BOOTSTRAP_WINDOW_MS
            or self.navigation_count >= BOOTSTRAP_MAX_NAVIGATIONS
        )

    def evaluate(self, url: str, action: WindowOpenAction, now: int) -> BootstrapDecision:
        return should_allow_bootstrap_navigation(
            url,
            action,
            self.started_at,
            self.navigation_count,
            self.has_seen_call_safe_navigation,
            now,
        )

    def record(self, decision: BootstrapDecision) -> None:
        """Count one navigation and latch the call-safe flag if it applied."""
        self.navigation_count += 1
        if decision.allowed and decision.allowed_by is BootstrapAllowedBy.CALL_SAFE_ACTION:
            self.has_seen_call_safe_navigation = True

    def __repr__(self) -> str:
        return (
            f"BootstrapWindowState(started_at={self.started_at}, "
            f"navigation_count={self.navigation_count}, "
            f"has_seen_call_safe_navigation={self.has_seen_call_safe_navigation})"
        )
