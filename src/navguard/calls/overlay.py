"""Incoming-call overlay hint tracking.

The content surface reports whether its in-page incoming-call overlay is
showing.  While it is, a native notification would be redundant.  A
surface that keeps claiming "visible" must keep re-sending the hint
(a heartbeat); a surface that crashed or navigated away stops doing so
and is picked up by :func:`collect_stale_overlay_hint_ids`.

Only the surface currently recognised as the active messenger surface
may change this state; use :func:`should_accept_overlay_hint_sender`
before applying a signal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from navguard.core.types import OverlayHintChange, OverlayHintClear

SurfaceId = int


@dataclass
class OverlayHintState:
    """Caller-owned overlay state, keyed by content-surface id."""

    visible: dict[SurfaceId, bool] = field(default_factory=dict)
    last_hint_at: dict[SurfaceId, int] = field(default_factory=dict)


def parse_overlay_hint_visible(payload: Any) -> bool:
    """Read the ``visible`` flag from a hint payload.

    The payload is either a bare bool or a mapping with a bool
    ``visible`` entry; anything else reads as not visible.
    """
    if isinstance(payload, bool):
        return payload
    if isinstance(payload, Mapping):
        visible = payload.get("visible")
        return visible if isinstance(visible, bool) else False
    return False


def should_accept_overlay_hint_sender(
    sender_id: SurfaceId,
    active_surface_id: SurfaceId | None,
) -> bool:
    return active_surface_id is not None and sender_id == active_surface_id


def is_overlay_visible(state: OverlayHintState, surface_id: SurfaceId) -> bool:
    return state.visible.get(surface_id) is True


def apply_overlay_hint_signal(
    state: OverlayHintState,
    surface_id: SurfaceId,
    visible: bool,
    now: int,
) -> OverlayHintChange:
    """Record a hint from *surface_id*.

    A visible hint stamps the heartbeat; a hidden hint drops it.

    Returns:
        What changed: ``changed`` when visibility flipped, ``heartbeat``
        when a visible surface re-reported visible.
    """
    previous = is_overlay_visible(state, surface_id)
    state.visible[surface_id] = visible
    if visible:
        state.last_hint_at[surface_id] = now
    else:
        state.last_hint_at.pop(surface_id, None)

    return OverlayHintChange(
        previous_visible=previous,
        next_visible=visible,
        changed=previous != visible,
        heartbeat=visible and previous,
    )


def clear_overlay_hint_state(state: OverlayHintState, surface_id: SurfaceId) -> OverlayHintClear:
    """Force *surface_id* invisible, e.g. when it is destroyed or navigates."""
    previous = is_overlay_visible(state, surface_id)
    state.visible[surface_id] = False
    state.last_hint_at.pop(surface_id, None)
    return OverlayHintClear(previous_visible=previous, changed=previous)


def collect_stale_overlay_hint_ids(
    state: OverlayHintState,
    now: int,
    ttl_ms: int,
) -> list[SurfaceId]:
    """Surfaces still marked visible whose last heartbeat is older than *ttl_ms*.

    A visible surface with no heartbeat at all is stale.  A heartbeat
    stamped after *now* (clock moved backwards) is treated as fresh.
    """
    stale: list[SurfaceId] = []
    for surface_id, visible in state.visible.items():
        if not visible:
            continue
        last = state.last_hint_at.get(surface_id)
        if last is None or now - last > ttl_ms:
            stale.append(surface_id)
    return stale
