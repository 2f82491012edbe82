"""Pydantic model for per-request CSP override instructions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class PolicyOverrides(BaseModel):
    """What a request wants changed before the policies are compiled.

    ``remove`` and ``add`` are keyed by role (``enforce`` / ``report``), each
    holding a directive -> values mapping. Roles are checked by the Config
    that applies them, not here.
    """

    reset: str | None = None
    remove: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    add: dict[str, dict[str, list[str]]] = Field(default_factory=dict)

    @field_validator("remove", "add", mode="before")
    @classmethod
    def wrap_scalar_values(cls, v: Any) -> Any:
        """Allow ``{"enforce": {"img-src": "cdn.example.com"}}`` shorthand."""
        if not isinstance(v, dict):
            return v
        return {
            role: (
                {d: [vals] if isinstance(vals, str) else vals for d, vals in rules.items()}
                if isinstance(rules, dict)
                else rules
            )
            for role, rules in v.items()
        }

    @property
    def is_empty(self) -> bool:
        return not (self.reset or self.remove or self.add)
