"""Navigation and popup disposition.

:func:`decide_window_open_action` maps a target URL and the requested
action (in-place navigation or new window) to exactly one
:class:`~navguard.core.types.WindowOpenAction`.  It is a pure function of
its inputs and consults no mutable state; stateful loosening for call
popups lives in :mod:`navguard.policy.bootstrap`.

Rules, first match wins:

1. New window to ``about:blank`` -> child window (calls open blank
   popups and navigate them afterwards).
2. Policy-excluded path (marketplace) on the trusted host -> system
   browser, for either action.
3. New window to a messages or media-viewer route on the primary host
   -> reroute into the main view.
4. New window to any other URL on either trusted property -> child window.
5. Navigation to an auth/checkpoint, messages or home route on the
   primary host -> load in view (see
   :func:`~navguard.policy.urls.should_open_in_app`).
6. Navigation to any other web URL -> system browser.
7. Anything else -> deny.
"""

from __future__ import annotations

import logging

from navguard.core.defaults import ABOUT_BLANK_URL
from navguard.core.types import RequestedAction, WindowOpenAction
from navguard.policy.urls import (
    is_messages_surface_route,
    is_policy_excluded_path,
    is_web_url,
    should_open_in_app,
    site_key_for_url,
)

logger = logging.getLogger(__name__)


def is_about_blank(url: str) -> bool:
    return isinstance(url, str) and url.strip().lower() == ABOUT_BLANK_URL


def _coerce_action(requested_action: RequestedAction | str) -> RequestedAction | None:
    try:
        return RequestedAction(requested_action)
    except ValueError:
        return None


def _decide_open_window(url: str) -> WindowOpenAction:
    if is_about_blank(url):
        return WindowOpenAction.ALLOW_CHILD_WINDOW
    if is_policy_excluded_path(url):
        return WindowOpenAction.OPEN_EXTERNAL_BROWSER
    if is_messages_surface_route(url):
        return WindowOpenAction.REROUTE_MAIN_VIEW
    if site_key_for_url(url) is not None:
        return WindowOpenAction.ALLOW_CHILD_WINDOW
    return WindowOpenAction.DENY


def _decide_navigate(url: str) -> WindowOpenAction:
    if is_policy_excluded_path(url):
        return WindowOpenAction.OPEN_EXTERNAL_BROWSER
    if should_open_in_app(url):
        return WindowOpenAction.ALLOW_IN_VIEW
    if is_web_url(url):
        return WindowOpenAction.OPEN_EXTERNAL_BROWSER
    return WindowOpenAction.DENY


def decide_window_open_action(
    url: str,
    requested_action: RequestedAction | str = RequestedAction.OPEN_WINDOW,
) -> WindowOpenAction:
    """Return the disposition for *url* under *requested_action*.

    Total and deterministic: every ``(url, requested_action)`` pair yields
    one of the five dispositions, and an unrecognised action string is
    denied.

    Args:
        url: Target URL as reported by the content layer (absolute or
            relative to the trusted base origin).
        requested_action: ``"navigate"`` for in-place navigation or
            ``"open-window"`` for a popup request.

    Returns:
        The :class:`WindowOpenAction` the host must apply.
    """
    action = _coerce_action(requested_action)
    if action is None:
        logger.debug("Unknown requested action %r, denying", requested_action)
        return WindowOpenAction.DENY

    if action is RequestedAction.OPEN_WINDOW:
        result = _decide_open_window(url)
    else:
        result = _decide_navigate(url)

    logger.debug("Window policy action=%s url=%s -> %s", action.value, url, result.value)
    return result
