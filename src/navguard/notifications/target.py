"""Attribute a web notification to one sidebar conversation, or refuse to.

Each unread row is scored against the notification text:

* title equal (+0.66) or one title containing the other (+0.45);
* token overlap of the titles (x0.22), of the bodies (x0.20), and of the
  notification body against the row title (x0.12);
* the notification body naming the row title while the titles differ
  (+0.34, "Alex: ... in Project Squad");
* the row preview naming the notification title (+0.14, a group preview
  that starts with the sender's name);
* rows that are not unread lose 0.20.

Scores are clamped to ``[0, 1]``.  The best row wins only when it is
confident (>= 0.55) and clearly ahead of the runner-up (by >= 0.14).

Muted groups get special care.  A sender with an unmuted 1:1 thread and a
muted shared group produces notifications whose title is the sender's
name, so the 1:1 row usually scores highest even when the message was
posted in the muted group.  Whenever a muted row plausibly explains the
notification the result is ``muted-conflict`` so the shell can stay quiet
instead of leaking activity from a muted conversation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Final, NamedTuple

from navguard.core.defaults import (
    NOTIFICATION_AMBIGUITY_DELTA,
    NOTIFICATION_MIN_CONFIDENCE,
    NOTIFICATION_MUTED_CONFLICT_SCORE_FLOOR,
)
from navguard.notifications.classify import normalize_text, tokenize
from navguard.notifications.models import (
    NotificationCandidate,
    NotificationMatch,
    NotificationMatchReason,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

# Score a second row must reach before a group reference in the body
# counts against the top row.
_GROUP_REFERENCE_FLOOR: Final[float] = NOTIFICATION_MIN_CONFIDENCE - 0.1

_TERSE_SENDER_BODY_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(?:[a-z0-9.'_-]+\s+)?sent (?:you )?a message$",
        r"^(?:[a-z0-9.'_-]+\s+)?new message$",
        r"^(?:[a-z0-9.'_-]+\s+)?sent (?:an? )?(?:photo|video|attachment|gif|sticker)$",
    )
)


class _Scored(NamedTuple):
    candidate: NotificationCandidate
    score: float


def _overlap(a: list[str], b: list[str]) -> float:
    if not a or not b:
        return 0.0
    a_set, b_set = set(a), set(b)
    return len(a_set & b_set) / max(len(a_set), len(b_set), 1)


def score_candidate(payload: NotificationPayload, candidate: NotificationCandidate) -> float:
    """Similarity of *candidate* to *payload* in ``[0, 1]``."""
    p_title = normalize_text(payload.title)
    p_body = normalize_text(payload.body)
    c_title = normalize_text(candidate.title)
    c_body = normalize_text(candidate.body)

    score = 0.0
    if p_title and c_title:
        if p_title == c_title:
            score += 0.66
        elif p_title in c_title or c_title in p_title:
            score += 0.45

    score += _overlap(tokenize(p_title), tokenize(c_title)) * 0.22
    score += _overlap(tokenize(p_body), tokenize(c_body)) * 0.2
    score += _overlap(tokenize(p_body), tokenize(c_title)) * 0.12

    if p_body and c_title and p_title and p_title != c_title and c_title in p_body:
        score += 0.34
    if c_body and p_title and p_title in c_body:
        score += 0.14
    if not candidate.unread:
        score -= 0.2

    return max(0.0, min(1.0, score))


def _is_terse_sender_body(body: str) -> bool:
    return not body or any(p.search(body) for p in _TERSE_SENDER_BODY_PATTERNS)


def _fail(reason: NotificationMatchReason, confidence: float, muted: bool = False) -> NotificationMatch:
    return NotificationMatch(confidence=confidence, ambiguous=True, muted=muted, reason=reason)


def _muted_conflict(confidence: float) -> NotificationMatch:
    return _fail(NotificationMatchReason.MUTED_CONFLICT, confidence, muted=True)


def _muted_alternative_conflict(
    scored: list[_Scored],
    p_title: str,
    p_body: str,
) -> bool:
    """True when a muted row other than an unmuted top row explains the text."""
    top = scored[0]
    if top.candidate.muted:
        return False

    top_title = normalize_text(top.candidate.title)
    terse_sender = bool(p_title) and p_title == top_title and _is_terse_sender_body(p_body)

    for alt in scored[1:]:
        if not alt.candidate.muted:
            continue
        alt_title = normalize_text(alt.candidate.title)
        alt_body = normalize_text(alt.candidate.body)
        if not alt_title or alt_title == top_title:
            continue

        if f"in {alt_title}" in p_body and alt.score >= _GROUP_REFERENCE_FLOOR:
            return True
        if (
            terse_sender
            and alt.score >= NOTIFICATION_MUTED_CONFLICT_SCORE_FLOOR
            and p_title in alt_body
        ):
            return True
        # Group preview that quotes the notification body verbatim.
        if len(p_body) >= 6 and alt_body and p_body in alt_body:
            return True
    return False


def resolve_native_notification_target(
    payload: NotificationPayload,
    candidates: Sequence[NotificationCandidate],
) -> NotificationMatch:
    """Pick the conversation *payload* belongs to among *candidates*.

    Args:
        payload: Title and body of the web notification.
        candidates: Unread sidebar rows at the time of the notification.

    Returns:
        A :class:`NotificationMatch`.  ``matched_href`` is set only when
        ``reason`` is ``matched``; every other reason is ambiguous and
        must not be attributed to a conversation.
    """
    if not candidates:
        return _fail(NotificationMatchReason.NO_CANDIDATES, 0.0)

    scored = sorted(
        (_Scored(c, score_candidate(payload, c)) for c in candidates),
        key=lambda s: s.score,
        reverse=True,
    )
    top = scored[0]
    second = scored[1] if len(scored) > 1 else None

    if top.score < NOTIFICATION_MIN_CONFIDENCE:
        return _fail(NotificationMatchReason.LOW_CONFIDENCE, top.score)

    p_title = normalize_text(payload.title)
    p_body = normalize_text(payload.body)
    top_title = normalize_text(top.candidate.title)

    if _muted_alternative_conflict(scored, p_title, p_body):
        logger.debug("Notification muted-conflict top_score=%.2f", top.score)
        return _muted_conflict(top.score)

    if second is not None:
        second_title = normalize_text(second.candidate.title)
        refs_second = bool(second_title) and f"in {second_title}" in p_body
        refs_top = bool(top_title) and f"in {top_title}" in p_body

        if refs_second and top_title == p_title and second.score >= _GROUP_REFERENCE_FLOOR:
            if second.candidate.muted:
                return _muted_conflict(top.score)
            return _fail(NotificationMatchReason.AMBIGUOUS_CANDIDATES, top.score)

        if refs_top and second_title == p_title and second.score >= _GROUP_REFERENCE_FLOOR:
            if top.candidate.muted:
                return _muted_conflict(top.score)
            return _fail(NotificationMatchReason.AMBIGUOUS_CANDIDATES, top.score)

        if top.score - second.score < NOTIFICATION_AMBIGUITY_DELTA:
            if top.candidate.muted or second.candidate.muted:
                return _muted_conflict(top.score)
            return _fail(NotificationMatchReason.AMBIGUOUS_CANDIDATES, top.score)

    return NotificationMatch(
        matched_href=top.candidate.href,
        confidence=top.score,
        ambiguous=False,
        muted=top.candidate.muted,
        reason=NotificationMatchReason.MATCHED,
    )
