"""User-agent based selection of the CSP response header names.

Older browsers only understood prefixed header names:
- Firefox < 23 and every Internet Explorer: ``X-Content-Security-Policy``
- Chrome < 25 and Safari < 7: ``X-WebKit-CSP``
Everything else, including unknown clients, gets the standard names.
"""

from __future__ import annotations

import re
from typing import NamedTuple


class CspHeaderNames(NamedTuple):
    enforce: str
    report: str


DEFAULT_HEADERS = CspHeaderNames(
    enforce="Content-Security-Policy",
    report="Content-Security-Policy-Report-Only",
)

X_HEADERS = CspHeaderNames(
    enforce="X-Content-Security-Policy",
    report="X-Content-Security-Policy-Report-Only",
)

WEBKIT_HEADERS = CspHeaderNames(
    enforce="X-WebKit-CSP",
    report="X-WebKit-CSP-Report-Only",
)

# Checked in order: Chrome agents also carry "Safari/", IE 11 has no "MSIE".
_BROWSER_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("chrome", re.compile(r"(?:Chrome|CriOS)/(\d+)")),
    ("firefox", re.compile(r"Firefox/(\d+)")),
    ("msie", re.compile(r"MSIE (\d+)")),
    ("msie", re.compile(r"Trident/.*?rv:(\d+)")),
    ("safari", re.compile(r"Version/(\d+).*Safari/")),
)

# Minimum major version that understands the standard header names
_MODERN_SINCE = {
    "chrome": 25,
    "firefox": 23,
    "safari": 7,
}

_LEGACY_HEADERS = {
    "chrome": WEBKIT_HEADERS,
    "firefox": X_HEADERS,
    "safari": WEBKIT_HEADERS,
}


def parse_user_agent(user_agent: str | None) -> tuple[str, int | None]:
    """Return (browser, major_version); ("unknown", None) when unrecognised."""
    if user_agent:
        for browser, pattern in _BROWSER_PATTERNS:
            match = pattern.search(user_agent)
            if match:
                return browser, int(match.group(1))
    return "unknown", None


class HeaderNameResolver:
    """Pick the enforce/report header names for a client."""

    def resolve_browser(self, browser: str, version: int | None) -> CspHeaderNames:
        if browser == "msie":
            return X_HEADERS
        minimum = _MODERN_SINCE.get(browser)
        if minimum is None or version is None or version >= minimum:
            return DEFAULT_HEADERS
        return _LEGACY_HEADERS[browser]

    def resolve(self, user_agent: str | None) -> CspHeaderNames:
        return self.resolve_browser(*parse_user_agent(user_agent))

    def enforce_header_name(self, user_agent: str | None) -> str:
        return self.resolve(user_agent).enforce

    def report_header_name(self, user_agent: str | None) -> str:
        return self.resolve(user_agent).report
