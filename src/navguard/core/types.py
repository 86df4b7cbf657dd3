"""Core data contracts: disposition vocabulary and decision results.

Every enumeration here is closed: members are the exact wire strings the
host shell sends and receives, so ``WindowOpenAction("deny")`` and
``WindowOpenAction.DENY`` are interchangeable.  Decision results are
frozen pydantic models so a caller can never mutate a verdict after the
fact.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from pydantic import BaseModel, Field, model_validator


class SiteKey(StrEnum):
    """Trusted property a URL belongs to."""

    FACEBOOK = "facebook.com"
    MESSENGER = "messenger.com"


class RequestedAction(StrEnum):
    """What the content layer is asking the shell to do with a URL."""

    NAVIGATE = "navigate"
    OPEN_WINDOW = "open-window"


class WindowOpenAction(StrEnum):
    """Disposition assigned to a navigation or new-window request.

    ``ALLOW_IN_VIEW``
        Load in place in the current surface.

    ``REROUTE_MAIN_VIEW``
        Do not open a popup; load the canonical messages URL in the main view.

    ``ALLOW_CHILD_WINDOW``
        Create a native child window (call windows start here).

    ``OPEN_EXTERNAL_BROWSER``
        Hand the URL to the system browser and deny it inside the shell.

    ``DENY``
        Neither load nor route anywhere.
    """

    ALLOW_IN_VIEW = "allow-in-view"
    REROUTE_MAIN_VIEW = "reroute-main-view"
    ALLOW_CHILD_WINDOW = "allow-child-window"
    OPEN_EXTERNAL_BROWSER = "open-external-browser"
    DENY = "deny"


WINDOW_OPEN_ACTIONS: Final[frozenset[str]] = frozenset(WindowOpenAction)


class BootstrapAllowedBy(StrEnum):
    """Trust reason that admitted a navigation inside a bootstrap popup."""

    CALL_SAFE_ACTION = "call-safe-action"
    TRUSTED_INTERMEDIATE = "trusted-intermediate"
    POST_CALL_THREAD_HOP = "post-call-thread-hop"


class CallNotificationReason(StrEnum):
    NOTIFY = "notify"
    SAME_KEY = "same-key"
    NO_KEY_COOLDOWN = "no-key-cooldown"
    NO_KEY_JITTER_WINDOW = "no-key-jitter-window"


class ViewportMode(StrEnum):
    """Layout mode of the messages surface."""

    CHAT = "chat"
    MEDIA = "media"
    OTHER = "other"


class BootstrapDecision(BaseModel, frozen=True):
    """Verdict for one navigation inside an about:blank bootstrap popup.

    ``allowed_by`` names the trust reason that matched even when a budget
    (time or navigation count) has been exhausted, so callers can log
    why a hop *would* have been trusted.  ``allowed`` is the only field
    that gates the navigation.
    """

    allowed: bool
    elapsed_ms: int = Field(ge=0, description="Milliseconds since the popup was created (0 on clock skew).")
    site_key: SiteKey | None = Field(default=None, description="Trusted property of the target, if any.")
    allowed_by: BootstrapAllowedBy | None = Field(default=None, description="Matching trust reason, if any.")


class IncomingCallDecision(BaseModel, frozen=True):
    """Whether an incoming-call signal should raise a native notification."""

    should_notify: bool
    reason: CallNotificationReason
    call_key: str | None = Field(default=None, description="Normalized dedupe key; None for keyless signals.")
    now: int = Field(description="Clock reading the decision was made at (epoch ms).")

    @model_validator(mode="after")
    def _check_reason(self) -> IncomingCallDecision:
        if self.should_notify != (self.reason == CallNotificationReason.NOTIFY):
            raise ValueError(
                f"reason {self.reason.value!r} is inconsistent with "
                f"should_notify={self.should_notify}"
            )
        return self


class OverlayHintChange(BaseModel, frozen=True):
    previous_visible: bool
    next_visible: bool
    changed: bool
    heartbeat: bool = Field(description="True when a visible surface re-reported visible.")


class OverlayHintClear(BaseModel, frozen=True):
    previous_visible: bool
    changed: bool


class WindowFocusResult(BaseModel, frozen=True):
    focused: bool
    restored_from_minimized: bool
