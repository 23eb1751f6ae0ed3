"""Configuration schema and loading for flowscope build sessions.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Properties and mode are carried as metadata only: cascades copy their
properties into each child flow, and flows hand both to the external planner
untouched. Composition never branches on them.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class LoggingSettings(BaseModel):
    """Logging output for a build session."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class BuildSettings(BaseModel):
    """Defaults applied to every cascade and flow built in one session.

    Example YAML:
        properties:
          cascading.cogroup.spill.threshold: "100000"
        mode: local
        composite_rewrite: true
        logging:
          level: DEBUG
    """

    model_config = {"frozen": True}

    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Planner properties copied into every flow",
    )
    mode: Literal["local", "distributed"] = Field(
        default="distributed",
        description="Execution mode requested from the planner",
    )
    composite_rewrite: bool = Field(
        default=True,
        description="Collapse eligible group + aggregator runs into one composite stage",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("properties", mode="before")
    @classmethod
    def stringify_properties(cls, v: object) -> object:
        """Planner properties are strings; YAML scalars are converted."""
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v


def load_settings(config_path: Path) -> BuildSettings:
    """Load settings from a YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FLOWSCOPE_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: FLOWSCOPE_LOGGING__LEVEL for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FLOWSCOPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic expects the declared names
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if isinstance(raw_config.get("logging"), dict):
        raw_config["logging"] = {k.lower(): v for k, v in raw_config["logging"].items()}

    return BuildSettings(**raw_config)
