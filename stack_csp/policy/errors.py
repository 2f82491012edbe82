"""Exceptions raised by the policy engine.

All of them are synchronous, non-retryable failures. Core code only
raises; the HTTP boundary decides what the client sees.
"""

from __future__ import annotations


class CspError(ValueError):
    """Base class for every policy error.

    ``directive`` and ``value`` name the offending input when known.
    """

    def __init__(self, message: str, *, directive: str | None = None, value: str | None = None):
        super().__init__(message)
        self.directive = directive
        self.value = value


class PolicyValidationError(CspError):
    """A policy failed grammar or conflict validation in ``parse()``."""


class InvalidDirectiveName(PolicyValidationError):
    def __init__(self, directive: str):
        super().__init__(f"'{directive}' is an invalid CSP 1.0 directive", directive=directive)


class InvalidSandboxKeyword(PolicyValidationError):
    def __init__(self, value: str):
        super().__init__(
            f"'{value}' is an invalid CSP 1.0 'sandbox' keyword",
            directive="sandbox",
            value=value,
        )


class InvalidSourceValue(PolicyValidationError):
    def __init__(self, value: str, directive: str):
        super().__init__(
            f"'{value}' is an invalid CSP 1.0 '{directive}' value",
            directive=directive,
            value=value,
        )


class InvalidReportUri(PolicyValidationError):
    def __init__(self, value: str):
        super().__init__(
            f"'{value}' is an invalid 'report-uri' value, must be of type RFC 3986",
            directive="report-uri",
            value=value,
        )


class ConflictingNoneValue(PolicyValidationError):
    def __init__(self, directive: str):
        super().__init__(
            f"'none' denies all for '{directive}' directive, but exceptions are set",
            directive=directive,
            value="none",
        )


class ConflictingWildcardValue(PolicyValidationError):
    def __init__(self, directive: str):
        super().__init__(
            f"'*' allows all for '{directive}' directive, but exceptions are set",
            directive=directive,
            value="*",
        )


class InvalidPolicyKind(CspError):
    """An unrecognised role was passed to a Config operation."""

    def __init__(self, kind: object, operation: str):
        super().__init__(f"'{kind}' is not a valid policy kind for '{operation}'", value=str(kind))
        self.operation = operation


class PolicyStateError(CspError):
    """A policy was serialized before it was validated."""
