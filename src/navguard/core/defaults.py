"""Centralised default constants for navguard.

Every project-wide magic number / string lives here.
Import these instead of hard-coding values in function signatures or CLI options.

The constants in the first three groups are part of the observable
contract with the host shell and are deliberately not configurable.
"""

from __future__ import annotations

from typing import Final

# ── Trusted origins ──
FACEBOOK_DOMAIN: Final[str] = "facebook.com"
MESSENGER_DOMAIN: Final[str] = "messenger.com"
FACEBOOK_BASE_URL: Final[str] = "https://www.facebook.com"
MESSAGES_HOME_URL: Final[str] = f"{FACEBOOK_BASE_URL}/messages/"
ABOUT_BLANK_URL: Final[str] = "about:blank"

# ── About-blank child bootstrap ──
BOOTSTRAP_WINDOW_MS: Final[int] = 30_000
BOOTSTRAP_MAX_NAVIGATIONS: Final[int] = 8

# ── Incoming-call notification dedupe ──
INCOMING_CALL_KEY_TTL_MS: Final[int] = 45_000
INCOMING_CALL_NO_KEY_COOLDOWN_MS: Final[int] = 10_000
INCOMING_CALL_NO_KEY_JITTER_GUARD_MS: Final[int] = 400
DEDUPE_KEY_MAX_LENGTH: Final[int] = 180

# ── Overlay hints ──
DEFAULT_OVERLAY_HINT_TTL_MS: Final[int] = 30_000

# ── Web notification triage ──
DEFAULT_NOTIFICATION_DEDUPE_TTL_MS: Final[int] = 4_000
MIN_NOTIFICATION_DEDUPE_TTL_MS: Final[int] = 100
NOTIFICATION_MIN_CONFIDENCE: Final[float] = 0.55
NOTIFICATION_AMBIGUITY_DELTA: Final[float] = 0.14
NOTIFICATION_MUTED_CONFLICT_SCORE_FLOOR: Final[float] = 0.20

# ── Paths ──
DEFAULT_DATA_DIR: Final[str] = "data"

# ── Logging ──
DEFAULT_LOG_LEVEL: Final[str] = "INFO"
