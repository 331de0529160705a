import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from typing import Final

from loguru import logger
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from imbue.simple_wait.duration import parse_duration_to_seconds
from imbue.simple_wait.errors import SettingsError
from imbue.simple_wait.logging import setup_logging
from imbue.simple_wait.models import FrozenModel
from imbue.simple_wait.primitives import NonNegativeSeconds

CONFIG_PATH_ENV_VAR: Final[str] = "SIMPLE_WAIT_CONFIG"
CONFIG_TABLE_NAME: Final[str] = "simple_wait"

# Maps each environment variable to the WaitDefaults field it overrides.
_ENV_VAR_FIELDS: Final[dict[str, str]] = {
    "SIMPLE_WAIT_TIMEOUT": "timeout",
    "SIMPLE_WAIT_POLLING_INTERVAL": "polling_interval",
    "SIMPLE_WAIT_MESSAGE": "message",
    "SIMPLE_WAIT_LOG_LEVEL": "log_level",
}
_DURATION_FIELDS: Final[frozenset[str]] = frozenset({"timeout", "polling_interval"})


class WaitDefaults(FrozenModel):
    """Defaults applied by RetryPolicy.initialize() when the caller does not set a value."""

    timeout: NonNegativeSeconds = Field(default=NonNegativeSeconds(5.0), description="Seconds before giving up")
    polling_interval: NonNegativeSeconds = Field(
        default=NonNegativeSeconds(0.5), description="Seconds between evaluations"
    )
    message: str = Field(default="", description="Suffix for timeout messages")
    log_level: str = Field(default="INFO", description="Level passed to setup_logging")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level_name = value.upper()
        # Raises ValueError for names loguru does not know.
        logger.level(level_name)
        return level_name

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "WaitDefaults":
        """Load and merge defaults from all sources.

        Precedence (lowest to highest):
        1. Built-in defaults
        2. The [simple_wait] table of a TOML file (config_path, or $SIMPLE_WAIT_CONFIG)
        3. Environment variables (SIMPLE_WAIT_TIMEOUT, SIMPLE_WAIT_POLLING_INTERVAL, ...)
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if config_path is None and env.get(CONFIG_PATH_ENV_VAR):
            config_path = Path(env[CONFIG_PATH_ENV_VAR])
        if config_path is not None:
            values.update(_read_config_table(config_path))

        for env_var, field_name in _ENV_VAR_FIELDS.items():
            if env_var in env:
                values[field_name] = env[env_var]

        for field_name in _DURATION_FIELDS & values.keys():
            raw_value = values[field_name]
            if isinstance(raw_value, str):
                values[field_name] = parse_duration_to_seconds(raw_value)

        try:
            return cls(**values)
        except ValidationError as e:
            raise SettingsError(f"Invalid wait defaults: {e}") from e

    def configure_logging(self) -> None:
        """Point loguru at stderr using the configured log level."""
        setup_logging(self.log_level)


def _read_config_table(config_path: Path) -> dict[str, Any]:
    if not config_path.is_file():
        raise SettingsError(f"Config file not found: {config_path}")
    try:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(f"Failed to parse config file {config_path}: {e}") from e

    table = raw_config.get(CONFIG_TABLE_NAME, {})
    if not isinstance(table, dict):
        raise SettingsError(f"[{CONFIG_TABLE_NAME}] in {config_path} must be a table")
    unknown_keys = set(table) - set(WaitDefaults.model_fields)
    if unknown_keys:
        raise SettingsError(f"Unknown keys in [{CONFIG_TABLE_NAME}] of {config_path}: {sorted(unknown_keys)}")
    return dict(table)
