"""
Caller-side session state used to authenticate requests to the host.

The configuration UI runs inside a page served by the host. Three pieces
of ambient state matter: the configuration object the host pre-loads into
the page, the page URL, and the cookies shared with the host origin.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qs, urlsplit

CSRF_COOKIE_NAME = "__Secure-Request-Token"

# Keys looked up in the pre-loaded configuration object, in order
COMPONENT_ID_KEYS = ("componentId", "processorId")


@dataclass
class SessionContext:
    """Ambient state of the caller's session with the host."""

    preloaded_config: Optional[Mapping[str, Any]] = None
    page_url: Optional[str] = None
    cookies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_cookie_header(
        cls,
        cookie_header: Optional[str],
        *,
        preloaded_config: Optional[Mapping[str, Any]] = None,
        page_url: Optional[str] = None,
    ) -> "SessionContext":
        """Build a session from a raw ``Cookie`` header value."""
        return cls(
            preloaded_config=preloaded_config,
            page_url=page_url,
            cookies=parse_cookie_header(cookie_header),
        )

    def component_id(self) -> str:
        """Identity of the component being configured.

        Pre-loaded configuration wins, then the ``id`` query parameter of the
        page URL. Empty string when neither is available.
        """
        if self.preloaded_config:
            for key in COMPONENT_ID_KEYS:
                value = self.preloaded_config.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()

        if self.page_url:
            values = parse_qs(urlsplit(self.page_url).query).get("id")
            if values and values[0].strip():
                return values[0].strip()

        return ""

    def csrf_token(self) -> Optional[str]:
        """Request-forgery token issued by the host, if the cookie is present."""
        token = self.cookies.get(CSRF_COOKIE_NAME)
        return token or None


def parse_cookie_header(cookie_header: Optional[str]) -> Dict[str, str]:
    """Parse a ``Cookie`` header into a name/value mapping.

    Browsers send values the strict RFC grammar rejects, so pairs are split
    on ";" and "=" without further checks. Fragments without "=" are skipped.
    """
    if not cookie_header:
        return {}

    cookies: Dict[str, str] = {}
    for part in cookie_header.split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            cookies[name] = value
    return cookies
