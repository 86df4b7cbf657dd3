"""Data contracts for web notification triage.

A web notification raised by the page carries only a title and a body.
To route it to a conversation, the content layer also reports the unread
rows of the sidebar as :class:`NotificationCandidate` values.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationPayload(BaseModel, frozen=True):
    title: str = ""
    body: str = ""


class NotificationCandidate(BaseModel, frozen=True):
    """One sidebar conversation row as seen when the notification arrived."""

    href: str = Field(description="Conversation link of the row.")
    title: str = Field(default="", description="Conversation name (sender or group title).")
    body: str = Field(default="", description="Preview text shown under the title.")
    muted: bool = False
    unread: bool = True


class CallClassificationReason(StrEnum):
    INCOMING_CALL_PATTERN = "incoming-call-pattern"
    NOT_CALL = "not-call"


class CallClassification(BaseModel, frozen=True):
    is_incoming_call: bool
    reason: CallClassificationReason
    matched_pattern: str | None = Field(default=None, description="Source of the pattern that matched.")


class NotificationMatchReason(StrEnum):
    """Outcome of matching a notification against sidebar rows.

    Everything other than ``MATCHED`` fails closed: the shell must not
    attribute the notification to any single conversation.
    """

    MATCHED = "matched"
    NO_CANDIDATES = "no-candidates"
    LOW_CONFIDENCE = "low-confidence"
    AMBIGUOUS_CANDIDATES = "ambiguous-candidates"
    MUTED_CONFLICT = "muted-conflict"


class NotificationMatch(BaseModel, frozen=True):
    matched_href: str | None = Field(default=None, description="Set only when reason is matched.")
    confidence: float = Field(ge=0.0, le=1.0)
    ambiguous: bool
    muted: bool = Field(description="Whether the matched (or conflicting) conversation is muted.")
    reason: NotificationMatchReason
