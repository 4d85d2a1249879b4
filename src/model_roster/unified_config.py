"""Unified YAML Configuration for model roster planning.

This module describes what the planner may use and how it should decide:
- Provider access (which subscriptions are available)
- Free-tier and aggregator pins
- Scoring engine version and provider balancing
- User decisions feeding the top precedence layers

Configuration Priority: Environment Variables > YAML > Defaults

Example YAML configuration (model_roster.yaml):

    roster:
      providers:
        openai: true
        anthropic: true
        chutes: true
      free_models:
        enabled: true
        primary: opencode/big-pickle
      chutes_models:
        primary: chutes/moonshotai/Kimi-K2.5-TEE
        secondary: chutes/minimax-m2.1
      balance_provider_usage: true
      scoring_engine: v2-shadow
      overrides:
        oracle: anthropic/claude-opus-4-6
      manual_plans:
        fixer:
          primary: openai/gpt-5.3-codex
          fallback1: anthropic/claude-sonnet-4-5
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .config import AGGREGATOR_PROVIDER, FREE_PROVIDER
from .metadata.types import is_well_formed_model_id
from .roles import ROLES, SECONDARY_PIN_ROLES, is_valid_role


def _check_model_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not is_well_formed_model_id(value):
        raise ValueError(f"invalid model id '{value}', expected 'provider/model'")
    return value


def _check_role_keys(value: Dict[str, Any]) -> Dict[str, Any]:
    unknown = [role for role in value if not is_valid_role(role)]
    if unknown:
        raise ValueError(f"unknown roles {unknown}, must be among {list(ROLES)}")
    return value


# =============================================================================
# Sub-configuration Models
# =============================================================================


class ProviderAccessConfig(BaseModel):
    """Which subscription providers the user can reach."""

    openai: bool = False
    anthropic: bool = False
    github_copilot: bool = False
    zai_coding_plan: bool = False
    kimi_for_coding: bool = False
    google: bool = False
    chutes: bool = False

    def enabled_provider_ids(self) -> List[str]:
        """Catalog provider ids of enabled subscriptions, in fixed order."""
        flags = (
            (self.openai, "openai"),
            (self.anthropic, "anthropic"),
            (self.github_copilot, "github-copilot"),
            (self.zai_coding_plan, "zai-coding-plan"),
            (self.kimi_for_coding, "kimi-for-coding"),
            (self.google, "google"),
            (self.chutes, AGGREGATOR_PROVIDER),
        )
        return [provider for enabled, provider in flags if enabled]

    @property
    def has_paid_provider(self) -> bool:
        """True when a subscription other than the aggregator is enabled."""
        return any(
            (
                self.openai,
                self.anthropic,
                self.github_copilot,
                self.zai_coding_plan,
                self.kimi_for_coding,
                self.google,
            )
        )


class PinnedProviderModels(BaseModel):
    """Primary and secondary pinned models for one provider."""

    primary: Optional[str] = None
    secondary: Optional[str] = None

    @field_validator("primary", "secondary")
    @classmethod
    def validate_model_id(cls, v: Optional[str]) -> Optional[str]:
        return _check_model_id(v)

    def for_role(self, role: str) -> Optional[str]:
        """Secondary pin for light roles (falling back to primary), else primary."""
        if role in SECONDARY_PIN_ROLES:
            return self.secondary or self.primary
        return self.primary


class FreeModelConfig(PinnedProviderModels):
    """Free-tier access plus its pinned models."""

    enabled: bool = False


class ManualAgentPlan(BaseModel):
    """User-authored ordered plan for one role."""

    primary: str
    fallback1: Optional[str] = None
    fallback2: Optional[str] = None
    fallback3: Optional[str] = None

    @field_validator("primary", "fallback1", "fallback2", "fallback3")
    @classmethod
    def validate_model_id(cls, v: Optional[str]) -> Optional[str]:
        return _check_model_id(v)

    @model_validator(mode="after")
    def require_primary(self) -> "ManualAgentPlan":
        """A manual plan without a primary model is meaningless."""
        if not self.primary:
            raise ValueError("manual plan requires a primary model")
        return self

    def models(self) -> List[str]:
        """Plan models in order, skipping empty fallbacks."""
        ordered = [self.primary, self.fallback1, self.fallback2, self.fallback3]
        return [model for model in ordered if model]


# =============================================================================
# Main Configuration
# =============================================================================


class PlannerConfig(BaseModel):
    """Configuration for model roster planning."""

    providers: ProviderAccessConfig = Field(default_factory=ProviderAccessConfig)
    free_models: FreeModelConfig = Field(default_factory=FreeModelConfig)
    chutes_models: PinnedProviderModels = Field(default_factory=PinnedProviderModels)
    balance_provider_usage: bool = False
    scoring_engine: Literal["v1", "v2", "v2-shadow"] = "v1"

    # User decisions, highest precedence first
    overrides: Dict[str, str] = Field(default_factory=dict)
    manual_plans: Dict[str, ManualAgentPlan] = Field(default_factory=dict)
    pinned_models: Dict[str, str] = Field(default_factory=dict)

    @field_validator("overrides", "pinned_models")
    @classmethod
    def validate_role_models(cls, v: Dict[str, str]) -> Dict[str, str]:
        _check_role_keys(v)
        cleaned = {role: _check_model_id(model) for role, model in v.items()}
        return {role: model for role, model in cleaned.items() if model}

    @field_validator("manual_plans")
    @classmethod
    def validate_manual_roles(cls, v: Dict[str, ManualAgentPlan]) -> Dict[str, ManualAgentPlan]:
        return _check_role_keys(v)

    def get_enabled_providers(self) -> List[str]:
        """Provider ids the planner may draw from (free tier last).

        Returns:
            List of provider ids in fixed order
        """
        providers = self.providers.enabled_provider_ids()
        if self.free_models.enabled:
            providers.append(FREE_PROVIDER)
        return providers

    def get_selected_chutes_model(self, role: str) -> Optional[str]:
        """Aggregator pin for a role, if the aggregator is enabled."""
        if not self.providers.chutes:
            return None
        return self.chutes_models.for_role(role)

    def get_selected_free_model(self, role: str) -> Optional[str]:
        """Free-tier pin for a role, if free models are enabled."""
        if not self.free_models.enabled:
            return None
        return self.free_models.for_role(role)

    def get_pinned_model_for_provider(self, role: str, provider_id: str) -> Optional[str]:
        """Pin for a role on a pinned provider, or None for other providers."""
        if provider_id == AGGREGATOR_PROVIDER:
            return self.get_selected_chutes_model(role)
        if provider_id == FREE_PROVIDER:
            return self.get_selected_free_model(role)
        return None

    def get_selected_models(self) -> List[Optional[str]]:
        """Every configured provider pin, enabled or not."""
        return [
            self.chutes_models.primary,
            self.chutes_models.secondary,
            self.free_models.primary,
            self.free_models.secondary,
        ]

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string.

        Returns:
            YAML representation of the configuration
        """
        config_dict = {"roster": self.to_dict()}
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary.

        Returns:
            Dictionary representation of the configuration
        """
        return self.model_dump(exclude_none=True)


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ${VAR_NAME} syntax.
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.getenv(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _merge_dicts(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(
    config_path: Optional[Path] = None,
    strict: bool = False,
) -> PlannerConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults.
        strict: If True, raise ValueError on validation errors. If False,
                fall back to defaults on errors.

    Returns:
        PlannerConfig object

    Raises:
        ValueError: If strict=True and configuration is invalid
    """
    if config_path is None or not config_path.exists():
        return PlannerConfig()

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            return PlannerConfig()

        raw_config = _substitute_env_vars(raw_config)
        roster_config = raw_config.get("roster") or {}

        return PlannerConfig(**roster_config)

    except yaml.YAMLError as e:
        if strict:
            raise ValueError(f"Invalid YAML: {e}")
        return PlannerConfig()
    except (ValidationError, TypeError, AttributeError) as e:
        if strict:
            raise ValueError(f"Configuration error: {e}")
        return PlannerConfig()


def _find_config_file() -> Optional[Path]:
    """Find configuration file in standard locations.

    Search order:
    1. MODEL_ROSTER_CONFIG environment variable
    2. ./model_roster.yaml (current directory)
    3. ~/.config/model-roster/model_roster.yaml
    """
    env_path = os.getenv("MODEL_ROSTER_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    cwd_path = Path.cwd() / "model_roster.yaml"
    if cwd_path.exists():
        return cwd_path

    home_path = Path.home() / ".config" / "model-roster" / "model_roster.yaml"
    if home_path.exists():
        return home_path

    return None


def _apply_env_overrides(config: PlannerConfig) -> PlannerConfig:
    """Apply environment variable overrides to configuration.

    Environment variables take precedence over YAML configuration.
    """
    overrides: Dict[str, Any] = {}

    engine_env = os.getenv("MODEL_ROSTER_SCORING_ENGINE")
    if engine_env:
        overrides["scoring_engine"] = engine_env.strip().lower()

    balance_env = os.getenv("MODEL_ROSTER_BALANCE_PROVIDERS")
    if balance_env:
        overrides["balance_provider_usage"] = _env_flag(balance_env)

    free_env = os.getenv("MODEL_ROSTER_FREE_MODELS")
    if free_env:
        overrides.setdefault("free_models", {})["enabled"] = _env_flag(free_env)

    if not overrides:
        return config
    return PlannerConfig(**_merge_dicts(config.to_dict(), overrides))


def get_effective_config(config_path: Optional[Path] = None) -> PlannerConfig:
    """Get the effective configuration with all overrides applied.

    Priority: Environment Variables > YAML > Defaults

    Args:
        config_path: Optional explicit path to configuration file.
                    If None, searches standard locations.

    Returns:
        PlannerConfig with all overrides applied
    """
    if config_path is None:
        config_path = _find_config_file()

    config = load_config(config_path)
    return _apply_env_overrides(config)


# =============================================================================
# Global Configuration Instance
# =============================================================================

_global_config: Optional[PlannerConfig] = None


def get_config() -> PlannerConfig:
    """Get the global configuration instance.

    This function caches the configuration after first load.
    Use reload_config() to force a reload.

    Returns:
        PlannerConfig instance
    """
    global _global_config
    if _global_config is None:
        _global_config = get_effective_config()
    return _global_config


def reload_config() -> PlannerConfig:
    """Reload the global configuration from disk.

    Returns:
        Newly loaded PlannerConfig instance
    """
    global _global_config
    _global_config = get_effective_config()
    return _global_config
