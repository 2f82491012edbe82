"""CSP 1.0 directive catalog and value grammars.

The catalog is a process-wide, read-only table: every directive name the
policy engine accepts, and the keyword vocabulary each one permits.
Source keywords are rendered single-quoted in headers; sandbox tokens and
report-uri values never are.
"""

from __future__ import annotations

import enum
import re
from types import MappingProxyType


class Directive(str, enum.Enum):
    REPORT_URI = "report-uri"
    SANDBOX = "sandbox"
    CONNECT_SRC = "connect-src"
    DEFAULT_SRC = "default-src"
    FONT_SRC = "font-src"
    FRAME_SRC = "frame-src"
    IMG_SRC = "img-src"
    MEDIA_SRC = "media-src"
    OBJECT_SRC = "object-src"
    SCRIPT_SRC = "script-src"
    STYLE_SRC = "style-src"


NONE = "none"
SELF = "self"
UNSAFE_INLINE = "unsafe-inline"
UNSAFE_EVAL = "unsafe-eval"
WILDCARD = "*"

SANDBOX_TOKENS: frozenset[str] = frozenset({
    "allow-forms",
    "allow-same-origin",
    "allow-scripts",
    "allow-top-navigation",
})

# Directive name -> keywords it accepts
KEYWORDS: MappingProxyType[str, frozenset[str]] = MappingProxyType({
    Directive.REPORT_URI.value: frozenset(),
    Directive.SANDBOX.value: SANDBOX_TOKENS,
    Directive.CONNECT_SRC.value: frozenset({NONE, SELF}),
    Directive.DEFAULT_SRC.value: frozenset({NONE, SELF}),
    Directive.FONT_SRC.value: frozenset({NONE, SELF}),
    Directive.FRAME_SRC.value: frozenset({NONE, SELF}),
    Directive.IMG_SRC.value: frozenset({NONE, SELF}),
    Directive.MEDIA_SRC.value: frozenset({NONE, SELF}),
    Directive.OBJECT_SRC.value: frozenset({NONE, SELF}),
    Directive.SCRIPT_SRC.value: frozenset({NONE, SELF, UNSAFE_INLINE, UNSAFE_EVAL}),
    Directive.STYLE_SRC.value: frozenset({NONE, SELF, UNSAFE_INLINE}),
})

SOURCE_DIRECTIVES: frozenset[str] = frozenset(
    name for name in KEYWORDS if name not in (Directive.REPORT_URI.value, Directive.SANDBOX.value)
)

# ── Host-source grammar ─────────────────────────────────────────────────

# Domain or IPv4 literal; needs at least one dot (or "localhost") somewhere
_HOST = r"(?=\S*?(?:\.|localhost))(?:[a-z\d-][a-z\d.-]*|%[a-f\d]{2})"
_WILDCARD_HOST = r"(?=\S*?(?:\.|localhost))(?:\*\.)?(?:[a-z\d-][a-z\d.-]*|%[a-f\d]{2})"
_IPV6 = r"\[(?:[a-f\d]{0,4}:)*(?:[a-f\d]{0,4})\]"
_PORT = r":\d+"
_HTTP_SCHEME = r"https?://"
_QUERY_PATH = r"/(?:[\w!#$&'()*+,./:;=?@\[\]~-]|%[a-f\d]{2})*"

_HOST_SOURCE_RE = re.compile(
    rf"(?:{_HTTP_SCHEME})?(?:{_WILDCARD_HOST}|{_IPV6})(?:{_PORT})?|data:|\*",
    re.IGNORECASE | re.ASCII,
)

# Credentials in the authority never match: "@" is only legal after the
# first path slash.
_REPORT_URI_RE = re.compile(
    rf"(?:{_HTTP_SCHEME})?(?:{_HOST}|{_IPV6})(?:{_PORT})?(?:{_QUERY_PATH})?|{_QUERY_PATH}",
    re.IGNORECASE | re.ASCII,
)


def is_keyword(value: str, directive: str) -> bool:
    """True when *value* is a bare catalog keyword for *directive*."""
    return value in KEYWORDS.get(directive, frozenset())


def quote_keyword(value: str) -> str:
    return f"'{value}'"


def unquote_keyword(value: str, directive: str) -> str:
    """Strip the quotes from an already-rendered keyword, e.g. "'self'" -> "self".

    Anything that is not a quoted keyword of *directive* is returned as-is.
    """
    if not isinstance(value, str) or len(value) <= 2:
        return value
    if value[0] == value[-1] == "'" and is_keyword(value[1:-1], directive):
        return value[1:-1]
    return value


def is_valid_host_source(value: str) -> bool:
    return _HOST_SOURCE_RE.fullmatch(value) is not None


def is_valid_report_uri(value: str) -> bool:
    return _REPORT_URI_RE.fullmatch(value) is not None
