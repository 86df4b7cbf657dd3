"""Tests for messages viewport mode (policy/viewport.py)."""

from __future__ import annotations

from navguard.core.types import ViewportMode
from navguard.policy.viewport import (
    is_chat_route,
    is_media_route,
    resolve_media_viewer_state_visible,
    resolve_viewport_mode,
    should_apply_main_crop,
    should_apply_messages_crop,
)


class TestRoutes:
    def test_media_routes(self) -> None:
        assert is_media_route("/photo/?fbid=1")
        assert is_media_route("/messages/attachment_preview/123")
        assert is_media_route("https://www.facebook.com/stories/55")
        assert not is_media_route("/messages/t/1")

    def test_chat_routes(self) -> None:
        assert is_chat_route("/messages/t/1")
        assert is_chat_route("messages/t/1")
        assert is_chat_route("https://www.facebook.com/messages/")
        assert not is_chat_route("/messages/media_viewer/1")
        assert not is_chat_route("/groups/1")


class TestViewportMode:
    def test_modes(self) -> None:
        assert resolve_viewport_mode("/messages/t/1") is ViewportMode.CHAT
        assert resolve_viewport_mode("/photo/1") is ViewportMode.MEDIA
        assert resolve_viewport_mode("/groups/1") is ViewportMode.OTHER
        assert resolve_viewport_mode("") is ViewportMode.OTHER

    def test_media_overlay_over_chat(self) -> None:
        assert resolve_viewport_mode("/messages/t/1", media_overlay_visible=True) is ViewportMode.MEDIA
        assert resolve_viewport_mode("/groups/1", media_overlay_visible=True) is ViewportMode.OTHER

    def test_crop_only_in_chat(self) -> None:
        assert should_apply_messages_crop("/messages/t/1")
        assert not should_apply_messages_crop("/messages/t/1", True)
        assert not should_apply_messages_crop("/photo/1")


class TestIncomingCallOverlay:
    def test_call_overlay_never_means_media(self) -> None:
        assert not resolve_media_viewer_state_visible(False, True)
        assert resolve_media_viewer_state_visible(True, False)
        assert resolve_media_viewer_state_visible(True, True)

    def test_main_crop(self) -> None:
        thread = "https://www.facebook.com/messages/t/1"
        assert should_apply_main_crop(thread, False, False)
        assert not should_apply_main_crop(thread, False, True)
        assert not should_apply_main_crop(thread, True, False)
        assert not should_apply_main_crop("https://www.facebook.com/messages/attachment_preview/1", False, False)
        assert not should_apply_main_crop("https://www.facebook.com/groups/1", False, False)
