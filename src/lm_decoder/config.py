"""Configuration system for lm-decoder.

Uses pydantic-settings for declarative, layered configuration:
init kwargs -> environment variables (LMD_*) -> .env file -> field defaults.

Per-call overrides are applied via resolve_config() which creates a new
config instance without mutating the defaults. Scorer-bound fields are
protected from per-call override.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lm_decoder.exceptions import ConfigurationError

# Fields that can be overridden per generation call. The window length and
# pad id belong to the scorer and cannot change between calls.
_PER_CALL_FIELDS: frozenset[str] = frozenset(
    {
        "window_policy",
        "max_tokens",
        "stream_max_tokens",
        "strategy",
        "top_k",
        "top_p",
        "stop_token",
        "seed",
        "log_level",
        "diagnostic_mode",
    }
)

# All known config field names (populated after class definition).
_ALL_FIELDS: frozenset[str] = frozenset()


class DecoderConfig(BaseSettings):
    """Configuration for lm-decoder.

    Resolution order: init kwargs -> env vars (LMD_*) -> .env file -> defaults.

    Fields are divided into two groups:
    - **Scorer-bound**: window length and pad id. Fixed for a given scorer,
      NOT overridable per call.
    - **Generation parameters**: strategy, limits, stop token, logging.
      Overridable per call via resolve_config().
    """

    model_config = SettingsConfigDict(
        env_prefix="LMD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Scorer-bound (NOT per-call overridable) ---

    context_length: int = Field(
        default=64,
        description="Fixed input window length W of the scorer",
    )
    pad_token_id: int = Field(
        default=0,
        description="Token id used to right-pad short windows",
    )

    # --- Context window ---

    window_policy: str = Field(
        default="prefix",
        description="Window for long sequences: 'prefix' (first W) or 'sliding' (last W)",
    )

    # --- Generation limits ---

    max_tokens: int = Field(
        default=150,
        description="Token budget for the blocking entry point",
    )
    stream_max_tokens: int = Field(
        default=512,
        description="Token budget for the streaming entry point",
    )

    # --- Decoding strategy ---

    strategy: str = Field(
        default="greedy",
        description="Decoding strategy: 'greedy', 'top_k', 'top_p', 'top_p_random'",
    )
    top_k: int = Field(
        default=100,
        description="Candidate count for the top_k strategy (must be > 0)",
    )
    top_p: float = Field(
        default=0.8,
        description="Probability mass for top_p / top_p_random, in (0, 1]",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the sampling RNG (None = OS entropy)",
    )

    # --- Stopping ---

    stop_token: str | int = Field(
        default="<|endoftext|>",
        description="End-of-text marker: a token string, or a token id (digit strings are ids)",
    )

    @field_validator("stop_token", mode="before")
    @classmethod
    def _digits_as_token_id(cls, value: Any) -> Any:
        # Env vars always arrive as text; "1" means token id 1.
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        return value

    # --- Logging ---

    log_level: str = Field(
        default="summary",
        description="Per-token logging verbosity: 'none', 'summary', 'full'",
    )
    diagnostic_mode: bool = Field(
        default=False,
        description="Store all token records in memory for analysis",
    )


# Populate _ALL_FIELDS now that the class is defined.
_ALL_FIELDS = frozenset(DecoderConfig.model_fields.keys())


def validate_overrides(overrides: dict[str, Any]) -> None:
    """Validate override keys without creating a config.

    Args:
        overrides: Mapping of field name to new value.

    Raises:
        ConfigurationError: If any key is unknown or scorer-bound.
    """
    for key in overrides:
        if key not in _ALL_FIELDS:
            raise ConfigurationError(f"Unknown config field: '{key}'")
        if key not in _PER_CALL_FIELDS:
            raise ConfigurationError(
                f"Field '{key}' is bound to the scorer and cannot be overridden per call"
            )


def resolve_config(
    defaults: DecoderConfig,
    overrides: dict[str, Any] | None,
) -> DecoderConfig:
    """Create a new config instance merging defaults with per-call overrides.

    Args:
        defaults: The base configuration loaded from environment.
        overrides: Per-call field overrides, or None.

    Returns:
        A new DecoderConfig with overrides applied, or *defaults* itself
        when there is nothing to override.

    Raises:
        ConfigurationError: If any key is unknown, scorer-bound, or a value
            fails type validation.
    """
    if not overrides:
        return defaults

    validate_overrides(overrides)

    # model_copy(update=...) skips validation; model_validate coerces types.
    merged = defaults.model_dump()
    merged.update(overrides)
    try:
        return DecoderConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config override: {exc}") from exc
