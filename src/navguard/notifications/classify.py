"""Notification text classification and per-conversation dedupe.

* :func:`classify_call_notification` recognises incoming-call wording in
  either the title or the body.
* :func:`is_likely_global_facebook_notification` spots site-wide social
  activity (comments, reactions, friend requests) that the page surfaces
  through the same notification API as chat messages.
* :class:`NotificationDeduper` drops repeat notifications for the same
  conversation that arrive within a short window.
"""

from __future__ import annotations

import logging
import re
from typing import Final

from navguard.core.defaults import (
    DEFAULT_NOTIFICATION_DEDUPE_TTL_MS,
    MIN_NOTIFICATION_DEDUPE_TTL_MS,
)
from navguard.core.ttl_cache import ExpiringCache
from navguard.notifications.models import (
    CallClassification,
    CallClassificationReason,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")
_NON_ALNUM: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9]+")

CALL_TEXT_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"calling you",
        r"incoming (video |audio )?call",
        r"is calling",
        r"video call from",
        r"audio call from",
        r"wants to call",
    )
)

GLOBAL_SOCIAL_BODY_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"commented on your",
        r"reacted to your",
        r"liked your",
        r"shared your",
        r"mentioned you in",
        r"tagged you",
        r"friend request",
        r"accepted your friend request",
        r"new friend suggestion",
        r"is live now",
        r"posted in",
        r"new post in",
        r"invited you",
        r"birthday",
        r"new notifications?",
    )
)

_SHELL_TITLES: Final[tuple[str, ...]] = ("facebook", "meta")


def normalize_text(value: str | None) -> str:
    """Lowercase, collapse runs of whitespace, trim."""
    return _WHITESPACE.sub(" ", (value or "").lower()).strip()


def tokenize(value: str | None) -> list[str]:
    """Alphanumeric tokens of at least two characters."""
    normalized = _NON_ALNUM.sub(" ", normalize_text(value)).strip()
    if not normalized:
        return []
    return [token for token in normalized.split(" ") if len(token) >= 2]


def classify_call_notification(payload: NotificationPayload) -> CallClassification:
    combined = f"{normalize_text(payload.title)} {normalize_text(payload.body)}".strip()
    if combined:
        for pattern in CALL_TEXT_PATTERNS:
            if pattern.search(combined):
                return CallClassification(
                    is_incoming_call=True,
                    reason=CallClassificationReason.INCOMING_CALL_PATTERN,
                    matched_pattern=pattern.pattern,
                )
    return CallClassification(is_incoming_call=False, reason=CallClassificationReason.NOT_CALL)


def _is_shell_title(title: str) -> bool:
    return any(title == name or title.startswith(f"{name} ") for name in _SHELL_TITLES)


def is_likely_global_facebook_notification(payload: NotificationPayload) -> bool:
    """True for site-wide activity alerts that are not chat messages.

    Requires both a Facebook/Meta shell title and a social-activity body so
    that a real message from someone called "Meta ..." is never dropped.
    Incoming calls are never global.
    """
    title = normalize_text(payload.title)
    body = normalize_text(payload.body)
    if not title and not body:
        return False
    if classify_call_notification(payload).is_incoming_call:
        return False
    return _is_shell_title(title) and any(p.search(body) for p in GLOBAL_SOCIAL_BODY_PATTERNS)


class NotificationDeduper:
    """Suppress repeat notifications for one conversation within *ttl_ms*.

    The conversation key is the normalised href.  Every call re-stamps the
    key, so a steady stream of repeats stays suppressed until it pauses
    for a full TTL.  An empty href is never suppressed.

    Args:
        ttl_ms: Suppression window; values below 100 ms are raised to 100.
    """

    def __init__(self, ttl_ms: int = DEFAULT_NOTIFICATION_DEDUPE_TTL_MS) -> None:
        self._seen: ExpiringCache[str, str] = ExpiringCache(
            max(MIN_NOTIFICATION_DEDUPE_TTL_MS, int(ttl_ms)),
        )

    @property
    def ttl_ms(self) -> int:
        return self._seen.ttl_ms

    def should_suppress(self, href: str, now: int) -> bool:
        key = normalize_text(href)
        if not key:
            return False
        age = self._seen.age_ms(key, now)
        self._seen.put(key, href, now)
        suppress = age is not None and age < self.ttl_ms
        if suppress:
            logger.debug("Suppressing repeat notification href=%s age_ms=%d", href, age)
        return suppress
