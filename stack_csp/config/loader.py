"""YAML + env var config loading with pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from stack_csp.policy.config import Config, PolicyKind

logger = structlog.get_logger()

_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_POLICY_KEYS = frozenset(kind.value for kind in PolicyKind)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML config file, returning empty dict when it does not exist."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


class CspSettings(BaseSettings):
    """Middleware configuration, overridden by CSP_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="CSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    policy_file: str = str(_DEFAULTS_PATH)
    log_level: str = "info"
    log_json: bool = True

    # When false no CSP headers are emitted at all
    enabled: bool = True


_settings: CspSettings | None = None


def get_settings() -> CspSettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> CspSettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = CspSettings()
    logger.info("config_loaded", policy_file=_settings.policy_file, enabled=_settings.enabled)
    return _settings


def load_policy_map(path: str | Path) -> dict[str, dict[str, list[str]]]:
    """Read the enforce/report rule mappings from a YAML file.

    A missing file yields no policies. Unknown top-level keys are ignored.
    """
    raw = _load_yaml(Path(path))
    unknown = sorted(set(raw) - _POLICY_KEYS)
    if unknown:
        logger.warning("policy_file_unknown_keys", path=str(path), keys=unknown)
    return {kind: dict(raw.get(kind) or {}) for kind in _POLICY_KEYS if kind in raw}


def build_config(settings: CspSettings | None = None) -> Config:
    """Seed the template Config from the settings' policy file."""
    settings = settings or get_settings()
    policies = load_policy_map(settings.policy_file)
    logger.info("csp_policies_loaded", path=settings.policy_file, policies=sorted(policies))
    return Config(policies)
