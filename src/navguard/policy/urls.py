"""URL classification for the embedded messenger surface.

Pure functions answering membership questions about a URL string: which
trusted property it belongs to, and which route family it targets on the
primary property.  Relative inputs are resolved against the trusted base
origin (``https://www.facebook.com``).

Every function is total over ``str``: a URL that cannot be parsed gets the
most conservative answer for that question ("not a match", ``None``, or
the messages home page for :func:`to_messages_url`) and never raises.

Host rules:

- The primary property (``facebook.com``) trusts the bare domain and every
  subdomain, matched on a ``.`` boundary, so ``evilfacebook.com`` is not
  trusted.
- The companion property (``messenger.com``) trusts only the bare domain
  and ``www``; it is a single logical host.
- Only ``http`` and ``https`` URLs can be trusted at all.
"""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import SplitResult, urljoin, urlsplit

from navguard.core.defaults import (
    FACEBOOK_BASE_URL,
    FACEBOOK_DOMAIN,
    MESSAGES_HOME_URL,
    MESSENGER_DOMAIN,
)
from navguard.core.types import SiteKey

_WEB_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
_MESSENGER_HOSTS: Final[frozenset[str]] = frozenset(
    {MESSENGER_DOMAIN, f"www.{MESSENGER_DOMAIN}"}
)

# Browsers strip leading/trailing C0 controls and spaces, and drop tabs and
# newlines anywhere in the input, before parsing.
_C0_AND_SPACE: Final[str] = "".join(chr(c) for c in range(0x21))
_TAB_OR_NEWLINE: Final[re.Pattern[str]] = re.compile(r"[\t\n\r]")
_SCHEME: Final[re.Pattern[str]] = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")

AUTH_PATH_PREFIXES: Final[tuple[str, ...]] = (
    "/login",
    "/checkpoint",
    "/recover",
    "/challenge",
    "/two_step_verification",
    "/two_step",
    "/two_factor",
    "/login/identify",
    "/login/device-based",
    "/dialog/oauth",
    "/v2.0/dialog",
    "/auth/",
    "/oauth/",
    "/cookie/",
    "/consent/",
    "/ajax/",
    "/api/",
    "/rti/",
    "/security/",
    "/trust",
    "/device",
    "/save-device",
    "/remember_browser",
    "/confirmemail",
    "/confirmphone",
    "/code_gen",
    "/help/",
    "/privacy",
    "/settings",
)

# Checkpoint flows sometimes keep a generic path and carry their state in
# the query string, so these are matched against path + query.
AUTH_KEYWORDS: Final[tuple[str, ...]] = (
    "checkpoint",
    "two_step",
    "two_factor",
    "remember_browser",
    "login/identify",
    "login/device-based",
)

MEDIA_VIEWER_PATH_PREFIXES: Final[tuple[str, ...]] = (
    "/messenger_media",
    "/messages/attachment_preview",
    "/messages/media_viewer",
    "/photo",
    "/photos",
    "/video",
    "/watch",
    "/reel",
    "/reels",
    "/story",
    "/stories",
)

# Paths on the trusted host that are always handed to the system browser.
POLICY_EXCLUDED_PATH_FRAGMENTS: Final[tuple[str, ...]] = ("/marketplace",)

_FACEBOOK_THREAD_PATH: Final[re.Pattern[str]] = re.compile(r"^/messages/(?:e2ee/)?t/[^/]+/?$")
_MESSENGER_THREAD_PATH: Final[re.Pattern[str]] = re.compile(r"^/(?:e2ee/)?t/[^/]+/?$")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_url(url: str) -> SplitResult | None:
    """Resolve *url* to its components, or ``None`` if it cannot be parsed.

    Empty or whitespace-only input is unparseable.  Absolute URLs are
    taken as-is; anything without a scheme is resolved against the
    trusted base origin.  For web URLs (and relative input)
    backslashes are read as ``/`` the way browsers do, so the host seen
    here is the host the webview would actually load.
    """
    if not isinstance(url, str):
        return None
    text = _TAB_OR_NEWLINE.sub("", url.strip(_C0_AND_SPACE))
    if not text:
        return None
    match = _SCHEME.match(text)
    if match is None or match.group(1).lower() in _WEB_SCHEMES:
        text = text.replace("\\", "/")
    try:
        return urlsplit(urljoin(FACEBOOK_BASE_URL, text))
    except ValueError:
        return None


def _hostname(parts: SplitResult) -> str:
    return (parts.hostname or "").lower()


def _web_parts(url: str) -> SplitResult | None:
    parts = parse_url(url)
    if parts is None or parts.scheme not in _WEB_SCHEMES:
        return None
    return parts


def is_web_url(url: str) -> bool:
    """True for an absolute or base-relative ``http(s)`` URL with a host."""
    parts = _web_parts(url)
    return parts is not None and bool(parts.hostname)


def _primary_parts(url: str) -> SplitResult | None:
    parts = _web_parts(url)
    if parts is None or not is_facebook_host(_hostname(parts)):
        return None
    return parts


# ---------------------------------------------------------------------------
# Hosts
# ---------------------------------------------------------------------------


def is_facebook_host(hostname: str) -> bool:
    """True for ``facebook.com`` and any subdomain of it."""
    host = hostname.lower()
    return host == FACEBOOK_DOMAIN or host.endswith(f".{FACEBOOK_DOMAIN}")


def is_messenger_host(hostname: str) -> bool:
    """True only for ``messenger.com`` and ``www.messenger.com``."""
    return hostname.lower() in _MESSENGER_HOSTS


def site_key_for_url(url: str) -> SiteKey | None:
    """Return the trusted property *url* belongs to, or ``None``."""
    parts = _web_parts(url)
    if parts is None:
        return None
    host = _hostname(parts)
    if is_facebook_host(host):
        return SiteKey.FACEBOOK
    if is_messenger_host(host):
        return SiteKey.MESSENGER
    return None


def is_facebook_or_messenger_url(url: str) -> bool:
    return site_key_for_url(url) is not None


# ---------------------------------------------------------------------------
# Routes on the primary host
# ---------------------------------------------------------------------------


def _is_messages_path(path: str) -> bool:
    return path == "/messages" or path.startswith("/messages/")


def _matches_media_prefix(path: str) -> bool:
    return any(
        path == prefix or path.startswith(f"{prefix}/") or path.startswith(f"{prefix}.")
        for prefix in MEDIA_VIEWER_PATH_PREFIXES
    )


def is_messages_route(url: str) -> bool:
    parts = _primary_parts(url)
    return parts is not None and _is_messages_path(parts.path.lower())


def is_media_viewer_route(url: str) -> bool:
    """True for photo/video/story/attachment viewers on the primary host."""
    parts = _primary_parts(url)
    return parts is not None and _matches_media_prefix(parts.path.lower())


def is_messages_surface_route(url: str) -> bool:
    return is_messages_route(url) or is_media_viewer_route(url)


def is_home_page(url: str) -> bool:
    parts = _primary_parts(url)
    return parts is not None and parts.path in ("", "/")


def is_auth_route(url: str) -> bool:
    """True for login, checkpoint, two-factor and device-trust flows.

    Both the path prefix list and the path+query keyword list are
    consulted; either one matching is enough.
    """
    parts = _primary_parts(url)
    if parts is None:
        return False
    path = parts.path.lower()
    if any(path.startswith(prefix) for prefix in AUTH_PATH_PREFIXES):
        return True
    full = f"{path}?{parts.query}".lower() if parts.query else path
    return any(keyword in full for keyword in AUTH_KEYWORDS)


def is_policy_excluded_path(url: str) -> bool:
    """True for trusted-host paths that must always open in the system browser."""
    parts = _primary_parts(url)
    if parts is None:
        return False
    path = parts.path.lower()
    return any(fragment in path for fragment in POLICY_EXCLUDED_PATH_FRAGMENTS)


def should_open_in_app(url: str) -> bool:
    """True when *url* may load in the main view in place of the current page."""
    if _primary_parts(url) is None or is_policy_excluded_path(url):
        return False
    return is_messages_route(url) or is_auth_route(url) or is_home_page(url)


def is_thread_route(url: str) -> bool:
    """True for one-on-one or group conversation routes on either property.

    ``/messages/t/<id>`` (optionally ``/messages/e2ee/t/<id>``) on the
    primary host, ``/t/<id>`` (optionally ``/e2ee/t/<id>``) on the
    companion host.
    """
    site_key = site_key_for_url(url)
    if site_key is None:
        return False
    parts = parse_url(url)
    if parts is None:
        return False
    path = parts.path.lower()
    if site_key is SiteKey.FACEBOOK:
        return _FACEBOOK_THREAD_PATH.match(path) is not None
    return _MESSENGER_THREAD_PATH.match(path) is not None


# ---------------------------------------------------------------------------
# Canonicalization
# ---------------------------------------------------------------------------


def _messages_path(path: str) -> str:
    path = path or "/"
    if _is_messages_path(path):
        return path
    if path.startswith("/t/") or path.startswith("/e2ee/"):
        return f"/messages{path}"
    return "/messages/"


def to_messages_url(url: str) -> str:
    """Rewrite *url* into the canonical messages namespace on the primary host.

    - ``/messages...`` paths pass through with query and fragment kept.
    - ``/t/<id>`` and ``/e2ee/...`` shorthands are moved under ``/messages``.
    - Anything else, including unparseable or non-web input, becomes
      the messages home page.

    Idempotent: ``to_messages_url(to_messages_url(x)) == to_messages_url(x)``.
    """
    parts = _web_parts(url)
    if parts is None:
        return MESSAGES_HOME_URL
    result = f"{FACEBOOK_BASE_URL}{_messages_path(parts.path)}"
    if parts.query:
        result += f"?{parts.query}"
    if parts.fragment:
        result += f"#{parts.fragment}"
    return result
