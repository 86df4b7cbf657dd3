"""Log setup for navguard with URL and caller redaction.

Policy modules log each decision as ``key=value`` pairs (``url=...``,
``caller=...``, ``dedupe_key=...``).  The values of the keys listed in
:data:`_SENSITIVE_KEYS` identify who the user talks to, so they are
replaced with ``[REDACTED]`` before any handler formats the record.  The
decision itself (``action=``, ``reason=``, ``allowed=``) stays readable.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Final

from navguard.core.defaults import DEFAULT_LOG_LEVEL

_ROOT_LOGGER_NAME: Final[str] = "navguard"

_SENSITIVE_KEYS: Final[tuple[str, ...]] = (
    "full_url",
    "url",
    "href",
    "caller",
    "dedupe_key",
    "title",
    "body",
)

_REDACTED: Final[str] = "[REDACTED]"

_LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _compile(keys: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in keys)
    return re.compile(
        rf"\b(?P<key>{alternatives})\s*[=:]\s*(?:\"[^\"]*\"|'[^']*'|\S+)",
        re.IGNORECASE,
    )


_DEFAULT_PATTERN: Final[re.Pattern[str]] = _compile(_SENSITIVE_KEYS)


def redact_message(message: str, pattern: re.Pattern[str] = _DEFAULT_PATTERN) -> str:
    """Return *message* with the value of every sensitive pair blanked.

    Quoted values are consumed whole, so ``caller='Alex Doe'`` leaves no
    trailing surname behind.
    """
    return pattern.sub(lambda m: f"{m.group('key')}={_REDACTED}", message)


class SanitizingFilter(logging.Filter):
    """Rewrites each record's message in place; never drops a record.

    Args:
        keys: Keys whose values are redacted.  Defaults to the URL,
            caller and notification-text keys the policy modules log.
    """

    def __init__(self, keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self._pattern = _DEFAULT_PATTERN if keys is None else _compile(keys)

    def filter(self, record: logging.LogRecord) -> bool:
        # Format first: the sensitive value usually arrives through args.
        record.msg = redact_message(record.getMessage(), self._pattern)
        record.args = None
        return True


def install_sanitizing_filter(
    logger: logging.Logger | None = None,
    *,
    handler_level: bool = False,
) -> SanitizingFilter:
    """Attach a fresh :class:`SanitizingFilter` and return it.

    *logger* defaults to the ``navguard`` logger.  With *handler_level*
    the filter goes on each of its handlers instead, which is the only
    placement that also sees records propagated up from child loggers.
    """
    target = logger if logger is not None else logging.getLogger(_ROOT_LOGGER_NAME)
    filt = SanitizingFilter()
    owners: list[logging.Filterer] = list(target.handlers) if handler_level else [target]
    for owner in owners:
        owner.addFilter(filt)
    return filt


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Set up a stderr handler on the ``navguard`` logger with redaction.

    Safe to call repeatedly; the handler is only added once.  An unknown
    *level* raises :class:`ValueError`.
    """
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())
    if not any(getattr(h, "_navguard", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._navguard = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        install_sanitizing_filter(logger, handler_level=True)
    return logger
