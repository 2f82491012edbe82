"""CSP 1.0 policy engine: grammar, validation, merge/diff and serialization."""

from stack_csp.policy.config import RESET_ALL, Config, HeaderValues, PolicyKind
from stack_csp.policy.errors import (
    ConflictingNoneValue,
    ConflictingWildcardValue,
    CspError,
    InvalidDirectiveName,
    InvalidPolicyKind,
    InvalidReportUri,
    InvalidSandboxKeyword,
    InvalidSourceValue,
    PolicyStateError,
    PolicyValidationError,
)
from stack_csp.policy.grammar import Directive
from stack_csp.policy.policy import Policy

__all__ = [
    "RESET_ALL",
    "Config",
    "ConflictingNoneValue",
    "ConflictingWildcardValue",
    "CspError",
    "Directive",
    "HeaderValues",
    "InvalidDirectiveName",
    "InvalidPolicyKind",
    "InvalidReportUri",
    "InvalidSandboxKeyword",
    "InvalidSourceValue",
    "Policy",
    "PolicyKind",
    "PolicyStateError",
    "PolicyValidationError",
]
