"""Messages viewport mode: chat, media, or other.

The shell crops the site chrome around the conversation view only in
``chat`` mode.  Media viewers (photos, videos, stories, attachment
previews) need the full surface, as does anything outside the messages
namespace.  Inputs may be full URLs or bare paths as reported by the page.
"""

from __future__ import annotations

from navguard.core.types import ViewportMode
from navguard.policy.urls import (
    MEDIA_VIEWER_PATH_PREFIXES,
    is_media_viewer_route,
    is_messages_route,
    parse_url,
)


def _to_path(url_or_path: str) -> str:
    if not url_or_path:
        return "/"
    parts = parse_url(url_or_path)
    if parts is not None:
        return (parts.path or "/").lower()
    path = url_or_path.split("?", 1)[0].split("#", 1)[0].lower() or "/"
    return path if path.startswith("/") else f"/{path}"


def is_media_route(url_or_path: str) -> bool:
    path = _to_path(url_or_path)
    return any(
        path == prefix or path.startswith(f"{prefix}/") or path.startswith(f"{prefix}.")
        for prefix in MEDIA_VIEWER_PATH_PREFIXES
    )


def is_chat_route(url_or_path: str) -> bool:
    """A ``/messages`` route that is not a media viewer."""
    path = _to_path(url_or_path)
    if not (path == "/messages" or path.startswith("/messages/")):
        return False
    return not is_media_route(path)


def resolve_viewport_mode(url_path: str, media_overlay_visible: bool = False) -> ViewportMode:
    """Viewport mode for *url_path*; a media overlay over a chat forces media mode."""
    if is_media_route(url_path):
        return ViewportMode.MEDIA
    if is_chat_route(url_path):
        return ViewportMode.MEDIA if media_overlay_visible else ViewportMode.CHAT
    return ViewportMode.OTHER


def should_apply_messages_crop(url_path: str, media_overlay_visible: bool = False) -> bool:
    return resolve_viewport_mode(url_path, media_overlay_visible) is ViewportMode.CHAT


def resolve_media_viewer_state_visible(
    media_overlay_visible: bool,
    incoming_call_overlay_visible: bool,
) -> bool:
    """Whether the page should be treated as showing a media viewer.

    An incoming-call overlay covers the chat too, but it is not media and
    must never switch the viewport into media mode.
    """
    return media_overlay_visible


def should_apply_main_crop(
    url: str,
    media_viewer_visible: bool,
    incoming_call_overlay_visible: bool,
) -> bool:
    """Whether the main view may crop to the conversation.

    Any overlay on top of the chat, media or incoming call, needs the
    uncropped surface.
    """
    return (
        is_messages_route(url)
        and not is_media_viewer_route(url)
        and not media_viewer_visible
        and not incoming_call_overlay_visible
    )
