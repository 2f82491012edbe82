"""The (enforce, report) pair of policies and request-scoped mutation on it."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple

import structlog

from stack_csp.models.overrides import PolicyOverrides
from stack_csp.policy import grammar
from stack_csp.policy.csp_builder import diff_rules, merge_rules
from stack_csp.policy.errors import InvalidPolicyKind
from stack_csp.policy.policy import Policy

logger = structlog.get_logger()

RESET_ALL = "all"


class PolicyKind(str, enum.Enum):
    ENFORCE = "enforce"
    REPORT = "report"

    @classmethod
    def coerce(cls, kind: PolicyKind | str, operation: str) -> PolicyKind:
        try:
            return cls(kind)
        except ValueError:
            raise InvalidPolicyKind(kind, operation) from None


class HeaderValues(NamedTuple):
    """Compiled header values; an empty string means "omit the header"."""

    enforce: str
    report: str


class Config:
    """Owns the enforce and report-only policies.

    The instance built at startup is meant to be a template: request
    handling works on :meth:`copy` so that one request's overrides never
    leak into another.
    """

    def __init__(self, policies: Mapping[str, Mapping[str, Iterable[str]]] | None = None) -> None:
        policies = policies or {}
        self._enforce = Policy(policies.get(PolicyKind.ENFORCE.value) or {})
        self._report = Policy(policies.get(PolicyKind.REPORT.value) or {})

    @property
    def enforce(self) -> Policy:
        return self._enforce

    @property
    def report(self) -> Policy:
        return self._report

    def get_policy(self, kind: PolicyKind | str) -> Policy:
        kind = PolicyKind.coerce(kind, "get_policy")
        if kind is PolicyKind.ENFORCE:
            return self._enforce
        return self._report

    def _policies(self) -> tuple[Policy, Policy]:
        return self._enforce, self._report

    def clear_policy(self, target: PolicyKind | str) -> None:
        """Empty one policy, or both when *target* is ``"all"``."""
        if target == RESET_ALL:
            for policy in self._policies():
                policy.clear()
            return
        self.get_policy(PolicyKind.coerce(target, "clear_policy")).clear()

    def add_to_policy(self, add_rules: Mapping[str, Iterable[str]], kind: PolicyKind | str) -> None:
        """Merge *add_rules* into one policy's raw rules.

        Shared directives are concatenated, duplicates kept until ``parse()``.
        """
        policy = self.get_policy(PolicyKind.coerce(kind, "add_to_policy"))
        policy.set_rules(merge_rules(policy.rules, add_rules))

    def remove_from_policy(self, remove_rules: Mapping[str, Iterable[str]], kind: PolicyKind | str) -> None:
        """Drop the listed values from existing directives.

        The diff is applied to both the enforce and the report policy,
        whatever *kind* names; *kind* must still be a valid role. Directives
        not currently set are ignored.
        """
        PolicyKind.coerce(kind, "remove_from_policy")
        for policy in self._policies():
            if not any(directive in policy.rules for directive in remove_rules):
                continue
            policy.set_rules(diff_rules(policy.rules, remove_rules, normalize=grammar.unquote_keyword))

    def copy(self) -> Config:
        clone = Config.__new__(Config)
        clone._enforce = self._enforce.copy()
        clone._report = self._report.copy()
        return clone

    def compile(self, overrides: PolicyOverrides | Mapping[str, Any] | None = None) -> HeaderValues:
        """Apply reset, removals and additions, then validate both policies.

        The work happens on a copy; on any failure this Config is left
        exactly as it was and the error propagates.
        """
        if overrides is None:
            overrides = PolicyOverrides()
        elif not isinstance(overrides, PolicyOverrides):
            overrides = PolicyOverrides.model_validate(overrides)

        working = self.copy()
        if overrides.reset:
            working.clear_policy(overrides.reset)
        for kind, rules in overrides.remove.items():
            working.remove_from_policy(rules, kind)
        for kind, rules in overrides.add.items():
            working.add_to_policy(rules, kind)

        for policy in working._policies():
            policy.parse()

        self._enforce, self._report = working._enforce, working._report
        values = self.header_values()
        logger.debug(
            "csp_policy_compiled",
            enforce=bool(values.enforce),
            report=bool(values.report),
            overrides=not overrides.is_empty,
        )
        return values

    def header_values(self) -> HeaderValues:
        return HeaderValues(
            enforce=self._enforce.get_raw_header_value(),
            report=self._report.get_raw_header_value(),
        )
