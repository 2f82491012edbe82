"""A single CSP policy (enforce or report-only): rules, validation, serialization."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping

from stack_csp.policy import grammar
from stack_csp.policy.csp_builder import as_values, build_header_value
from stack_csp.policy.errors import (
    ConflictingNoneValue,
    ConflictingWildcardValue,
    InvalidDirectiveName,
    InvalidReportUri,
    InvalidSandboxKeyword,
    InvalidSourceValue,
    PolicyStateError,
    PolicyValidationError,
)
from stack_csp.policy.grammar import Directive

Rules = Mapping[str, Iterable[str]]


def _directive_name(directive: Directive | str) -> str:
    """Coerce to a catalog directive name, rejecting anything outside it."""
    try:
        return Directive(directive).value
    except ValueError:
        raise InvalidDirectiveName(str(directive)) from None


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _invalid_value(directive: str, value: str) -> PolicyValidationError:
    if directive == Directive.REPORT_URI.value:
        return InvalidReportUri(value)
    if directive == Directive.SANDBOX.value:
        return InvalidSandboxKeyword(value)
    return InvalidSourceValue(value, directive)


class Policy:
    """Directive -> value-list mapping for one policy role.

    A policy moves between two states. It is *unvalidated* after
    construction and after any mutation, and *validated* after a successful
    :meth:`parse`. Only a validated policy may be serialized. An empty
    mapping has nothing to validate and counts as validated.
    """

    def __init__(self, rules: Rules | None = None) -> None:
        self._rules: dict[str, Iterable[str]] = dict(rules or {})
        self._validated = not self._rules

    @property
    def rules(self) -> dict[str, list[str]]:
        """Copy of the current rules; editing it does not touch the policy."""
        return {directive: as_values(values) for directive, values in self._rules.items()}

    @property
    def is_validated(self) -> bool:
        return self._validated

    def clear(self) -> Policy:
        self._rules = {}
        self._validated = True
        return self

    def replace_rules(self, directive: str, values: str | Iterable[str]) -> Policy:
        """Overwrite one directive's list. The name is checked by :meth:`parse`."""
        self._rules[directive] = as_values(values)
        self._validated = False
        return self

    def set_rules(self, rules: Rules) -> Policy:
        """Replace the whole mapping."""
        self._rules = dict(rules)
        self._validated = not self._rules
        return self

    def replace(self, directive: Directive | str, values: str | Iterable[str]) -> Policy:
        """Overwrite a catalog directive's list."""
        return self.replace_rules(_directive_name(directive), values)

    def add(self, directive: Directive | str, *values: str) -> Policy:
        """Append values to a catalog directive, creating it when absent."""
        name = _directive_name(directive)
        current = as_values(self._rules.get(name))
        return self.replace_rules(name, current + list(values))

    def copy(self) -> Policy:
        clone = Policy.__new__(Policy)
        clone._rules = copy.deepcopy(self._rules)
        clone._validated = self._validated
        return clone

    # ── Validation ──────────────────────────────────────────────────────

    def parse(self) -> Policy:
        """Validate every directive, dedupe its values and quote keywords.

        Raises a :class:`~stack_csp.policy.errors.PolicyValidationError`
        subclass naming the offending directive or value. The stored rules
        are only replaced once every directive has passed.
        """
        validated: dict[str, list[str]] = {}
        for directive, values in self._rules.items():
            validated[directive] = self._validate(directive, as_values(values))
        self._rules = validated
        self._validated = True
        return self

    def _validate(self, directive: str, values: list[str]) -> list[str]:
        if directive not in grammar.KEYWORDS:
            raise InvalidDirectiveName(str(directive))

        # YAML happily yields ints and nulls
        for value in values:
            if not isinstance(value, str):
                raise _invalid_value(directive, str(value))

        if directive == Directive.REPORT_URI.value:
            values = _dedupe(values)
            for value in values:
                if not grammar.is_valid_report_uri(value):
                    raise InvalidReportUri(value)
            return values

        if directive == Directive.SANDBOX.value:
            values = _dedupe(values)
            for value in values:
                if value not in grammar.SANDBOX_TOKENS:
                    raise InvalidSandboxKeyword(value)
            return values

        values = _dedupe([grammar.unquote_keyword(v, directive) for v in values])

        if len(values) > 1:
            if grammar.NONE in values and grammar.is_keyword(grammar.NONE, directive):
                raise ConflictingNoneValue(directive)
            if grammar.WILDCARD in values:
                raise ConflictingWildcardValue(directive)

        rendered = []
        for value in values:
            if grammar.is_keyword(value, directive):
                rendered.append(grammar.quote_keyword(value))
            elif grammar.is_valid_host_source(value):
                rendered.append(value)
            else:
                raise InvalidSourceValue(value, directive)
        return rendered

    # ── Serialization ───────────────────────────────────────────────────

    def get_raw_header_value(self) -> str:
        """Canonical header value, e.g. ``"default-src 'self';img-src data:;"``."""
        if not self._validated:
            raise PolicyStateError("policy must be parsed before it is serialized")
        return build_header_value(self._rules)

    def __repr__(self) -> str:
        state = "validated" if self._validated else "unvalidated"
        return f"<Policy {state} {self.rules!r}>"
