"""
Configuration for token_injector.

Settings can be built in code or loaded from a YAML file, either as a
top-level mapping or under a ``token_injector:`` section:

    token_injector:
      cache_enabled: true
      token_refresh_buffer: 10
      timeout: 10s
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_SECTION = "token_injector"

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse ``10``, ``10s``, ``500ms``, ``1m`` or ``1h`` into seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


class TokenInjectorConfig(BaseModel):
    """Engine settings."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    cache_enabled: bool = True
    token_refresh_buffer: int = Field(default=10, ge=0)
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices("timeout_seconds", "timeout"),
    )
    verify_ssl: bool = True
    dedupe_in_flight: bool = False

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value)
        return value


DEFAULT_CONFIG = TokenInjectorConfig()


def _parse_yaml(file_path: Path) -> Dict[str, Any]:
    logger.debug(f"Parsing YAML file: {file_path}")
    content = file_path.read_text()
    return yaml.safe_load(content) or {}


def config_from_dict(data: Dict[str, Any]) -> TokenInjectorConfig:
    """Validate a raw mapping, unwrapping the ``token_injector`` section if present."""
    section = data.get(CONFIG_SECTION, data) if isinstance(data, dict) else data
    if section is None:
        section = {}
    try:
        return TokenInjectorConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"invalid token_injector configuration: {e}") from e


def load_config(path: Union[str, Path]) -> TokenInjectorConfig:
    """Load configuration from a YAML file."""
    file_path = Path(path)
    logger.info(f"Loading token_injector config from: {file_path}")
    try:
        raw_data = _parse_yaml(file_path)
    except OSError as e:
        raise ConfigError(f"failed to read config file at {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parsing error in {file_path}: {e}") from e

    config = config_from_dict(raw_data)
    logger.info(
        f"Loaded token_injector config: cache_enabled={config.cache_enabled}, "
        f"token_refresh_buffer={config.token_refresh_buffer}, timeout_seconds={config.timeout_seconds}"
    )
    return config
