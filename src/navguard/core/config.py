"""Shell-level configuration persistence.

Stores host-tunable policy settings as a JSON file inside the data
directory.  The contract constants in :mod:`navguard.core.defaults`
(bootstrap budgets, call dedupe windows) are not configurable; only the
knobs the host is free to tune live here.

Typical location::

    data/config.json

Usage::

    from navguard.core.config import ShellConfig

    cfg = ShellConfig(data_dir)
    cfg.overlay_hint_ttl_ms          # 30000 unless overridden
    cfg.overlay_hint_ttl_ms = 15000  # persists immediately
    cfg.as_dict()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from navguard.core.defaults import (
    DEFAULT_DATA_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NOTIFICATION_DEDUPE_TTL_MS,
    DEFAULT_OVERLAY_HINT_TTL_MS,
)

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "config.json"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_INT_KEYS = ("overlay_hint_ttl_ms", "notification_dedupe_ttl_ms")


def _positive_int(key: str, value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise ValueError(f"{key} must be positive, got {parsed}")
    return parsed


def _log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got {value!r}")
    return level


class ShellConfig:
    """Read/write access to ``config.json`` in a data directory.

    Missing keys fall back to the defaults.  All mutations are validated,
    then persisted immediately.  The file is plain JSON so it can be
    hand-edited when the CLI is not available; a corrupt or unreadable
    file is ignored with a warning rather than aborting start-up.
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR) -> None:
        self._path = Path(data_dir) / _CONFIG_FILENAME
        self._data: dict[str, Any] = self._load()

    @classmethod
    def from_path(cls, data_dir: Path | str) -> ShellConfig:
        return cls(data_dir)

    def _load(self) -> dict[str, Any]:
        if self._path.exists():
            try:
                data = json.loads(self._path.read_text("utf-8"))
            except (json.JSONDecodeError, OSError):
                logger.warning("Corrupt config at %s — using defaults", self._path)
                return {}
            if isinstance(data, dict):
                return data
            logger.warning("Config at %s is not a JSON object — using defaults", self._path)
        return {}

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2) + "\n", "utf-8")

    @property
    def path(self) -> Path:
        return self._path

    # -- overlay hint staleness ----------------------------------------------

    @property
    def overlay_hint_ttl_ms(self) -> int:
        """Heartbeat age after which a visible overlay hint is considered stale."""
        try:
            return _positive_int("overlay_hint_ttl_ms", self._data["overlay_hint_ttl_ms"])
        except (KeyError, ValueError):
            return DEFAULT_OVERLAY_HINT_TTL_MS

    @overlay_hint_ttl_ms.setter
    def overlay_hint_ttl_ms(self, value: int) -> None:
        self._data["overlay_hint_ttl_ms"] = _positive_int("overlay_hint_ttl_ms", value)
        self._persist()

    # -- per-conversation notification dedupe ----------------------------------

    @property
    def notification_dedupe_ttl_ms(self) -> int:
        try:
            return _positive_int(
                "notification_dedupe_ttl_ms", self._data["notification_dedupe_ttl_ms"],
            )
        except (KeyError, ValueError):
            return DEFAULT_NOTIFICATION_DEDUPE_TTL_MS

    @notification_dedupe_ttl_ms.setter
    def notification_dedupe_ttl_ms(self, value: int) -> None:
        self._data["notification_dedupe_ttl_ms"] = _positive_int(
            "notification_dedupe_ttl_ms", value,
        )
        self._persist()

    # -- logging ---------------------------------------------------------------

    @property
    def log_level(self) -> str:
        try:
            return _log_level(self._data["log_level"])
        except (KeyError, ValueError):
            return DEFAULT_LOG_LEVEL

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = _log_level(value)
        self._persist()

    # -- generic helpers -------------------------------------------------------

    def as_dict(self) -> dict[str, Any]:
        return {
            **self._data,
            "overlay_hint_ttl_ms": self.overlay_hint_ttl_ms,
            "notification_dedupe_ttl_ms": self.notification_dedupe_ttl_ms,
            "log_level": self.log_level,
        }

    def update(self, patch: dict[str, Any]) -> dict[str, Any]:
        """Validate and merge *patch* into the config, then persist.  Returns the full config.

        Nothing is written when any known key fails validation.
        """
        staged = dict(self._data)
        for key, val in patch.items():
            if key in _INT_KEYS:
                staged[key] = _positive_int(key, val)
            elif key == "log_level":
                staged[key] = _log_level(val)
            else:
                staged[key] = val
        self._data = staged
        self._persist()
        return self.as_dict()
