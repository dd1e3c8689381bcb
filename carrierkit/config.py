"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. An explicit path passed to load_config()
2. ./carrierkit.yaml (working directory)
3. ~/.carrierkit/config.yaml (user home)

Environment variables override YAML: CARRIERKIT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.

Carrier credentials do not belong here: they travel with each request.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from carrierkit.services.auth_fallback import DEFAULT_REFRESH_MARGIN_SECONDS
from carrierkit.services.retry import RetryPolicy
from carrierkit.utils.logging_helpers import LoggingOptions

logger = logging.getLogger(__name__)

ENV_PREFIX = "CARRIERKIT_"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to an empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class LoggingConfig(BaseModel):
    """Log output and adapter response-logging verbosity."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    max_array_items: int = Field(10, ge=0)
    max_depth: int = Field(2, ge=0)
    log_raw_response: bool | Literal["summary"] = "summary"
    log_metadata: bool = False
    silent_operations: list[str] | None = None

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        """Normalize and check the level name."""
        upper = value.upper()
        if upper not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return upper

    def to_options(self) -> LoggingOptions:
        """LoggingOptions for AdapterContext built from this config."""
        return LoggingOptions(
            max_array_items=self.max_array_items,
            max_depth=self.max_depth,
            log_raw_response=self.log_raw_response,
            log_metadata=self.log_metadata,
            silent_operations=(
                tuple(self.silent_operations) if self.silent_operations is not None else None
            ),
        )


class HttpConfig(BaseModel):
    """Defaults for the reference httpx transport."""

    timeout_seconds: float = Field(30.0, gt=0)
    headers: dict[str, str] = {}


class AuthFallbackConfig(BaseModel):
    """Token cache behaviour of the auth fallback wrapper."""

    refresh_margin_seconds: float = Field(DEFAULT_REFRESH_MARGIN_SECONDS, ge=0)


class RetryConfig(BaseModel):
    """Caller-side retry limits."""

    max_attempts: int = Field(3, ge=1)
    base_delay_ms: int = Field(1000, ge=0)
    max_delay_ms: int = Field(30_000, ge=0)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
        )


class CarrierConfig(BaseModel):
    """Endpoints for one carrier adapter."""

    base_url: str
    test_base_url: str | None = None
    token_url: str | None = None
    test_token_url: str | None = None

    def resolve_base_url(self, use_test_api: bool = False) -> str:
        """Production or test base URL. Falls back to production when no test URL is set."""
        if use_test_api and self.test_base_url:
            return self.test_base_url
        return self.base_url

    def resolve_token_url(self, use_test_api: bool = False) -> str | None:
        if use_test_api and self.test_token_url:
            return self.test_token_url
        return self.token_url


class CarrierKitConfig(BaseModel):
    """Top-level configuration for carrierkit."""

    logging: LoggingConfig = LoggingConfig()
    http: HttpConfig = HttpConfig()
    auth_fallback: AuthFallbackConfig = AuthFallbackConfig()
    retry: RetryConfig = RetryConfig()
    carriers: dict[str, CarrierConfig] = {}


def _find_config_file() -> Path | None:
    """Search for a config file in the standard locations."""
    candidates = [
        Path.cwd() / "carrierkit.yaml",
        Path.cwd() / "carrierkit.yml",
        Path.home() / ".carrierkit" / "config.yaml",
        Path.home() / ".carrierkit" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply CARRIERKIT_<SECTION>_<KEY> env var overrides to config data.

    Section names are matched longest first, so ``auth_fallback`` wins over
    a hypothetical ``auth``. ``CARRIERKIT_RETRY_MAX_ATTEMPTS=5`` sets
    ``retry.max_attempts``. The ``carriers`` mapping is not overridable
    this way.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    known_sections = sorted(
        (name for name in CarrierKitConfig.model_fields if name != "carriers"),
        key=len,
        reverse=True,
    )
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        section_data = data.setdefault(matched_section, {})
        if isinstance(section_data, dict):
            section_data[matched_field] = _coerce(value)
    return data


def load_config(config_path: str | Path | None = None) -> CarrierKitConfig:
    """Load carrierkit configuration.

    Args:
        config_path: Explicit path to a config file. If None, searches the
            standard locations (cwd, then ~/.carrierkit/).

    Returns:
        Validated CarrierKitConfig. Defaults (plus env overrides) when no
        file is found.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        pydantic.ValidationError: If the config is invalid.
    """
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults")

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return CarrierKitConfig(**data)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure root logging for a host process.

    Args:
        config: Logging section of the config. Defaults to LoggingConfig().
    """
    config = config or LoggingConfig()
    logging.basicConfig(
        level=getattr(logging, config.level),
        format=config.format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("carrierkit").setLevel(config.level)
