"""Configuration schema and loading for contractual.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example YAML:
    validate_output: true
    missing_target_policy: not_found
    duplicate_content:
      mode: fields
      fields: [name, ownerId]
    logging:
      level: DEBUG
      json_output: false
    drivers:
      memory: {}
      sql:
        url: sqlite:///records.db
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from contractual.contracts.enums import DuplicateContentMode, MissingTargetPolicy

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseModel):
    """Logging output options (see contractual.core.logging)."""

    model_config = {"frozen": True}

    level: str = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}'. Expected one of: {', '.join(sorted(_LOG_LEVELS))}")
        return upper


class DuplicateContentPolicy(BaseModel):
    """Which content counts as a re-post of a prior create.

    Modes:
    - full_record: the whole record, id included, must match
    - fields: only the listed fields must match (id ignored unless listed)
    - disabled: no content check, only id collisions are conflicts
    """

    model_config = {"frozen": True}

    mode: DuplicateContentMode = DuplicateContentMode.FULL_RECORD
    fields: tuple[str, ...] = ()

    @model_validator(mode="after")
    def validate_fields_for_mode(self) -> "DuplicateContentPolicy":
        if self.mode == DuplicateContentMode.FIELDS and not self.fields:
            raise ValueError("duplicate_content.mode='fields' requires at least one field")
        if self.mode != DuplicateContentMode.FIELDS and self.fields:
            raise ValueError(f"duplicate_content.fields is only valid with mode='fields', got mode='{self.mode}'")
        if len(set(self.fields)) != len(self.fields):
            raise ValueError("duplicate_content.fields contains duplicates")
        return self


class ContractualSettings(BaseModel):
    """Top-level settings.

    Attributes:
        validate_output: Default for contracts that do not set it themselves
        missing_target_policy: Answer for ownership checks on missing records
        duplicate_content: Re-post detection policy handed to every driver
        logging: Logging options
        drivers: Store kind -> driver options
    """

    model_config = {"frozen": True}

    validate_output: bool = True
    missing_target_policy: MissingTargetPolicy = MissingTargetPolicy.NOT_FOUND
    duplicate_content: DuplicateContentPolicy = Field(default_factory=DuplicateContentPolicy)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    drivers: dict[str, dict[str, Any]] = Field(default_factory=lambda: {"memory": {}})

    def driver_options(self, store_kind: str) -> dict[str, Any]:
        """Options for a store kind; empty when not configured."""
        return dict(self.drivers.get(store_kind, {}))


def load_settings(config_path: Path) -> ContractualSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (CONTRACTUAL_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: CONTRACTUAL_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ContractualSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="CONTRACTUAL",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # and filter out internal Dynaconf settings.
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    # Nested keys keep Dynaconf's casing; driver names and option keys are lowercase.
    if "drivers" in raw_config and isinstance(raw_config["drivers"], dict):
        raw_config["drivers"] = {
            str(kind).lower(): {str(k).lower(): v for k, v in (options or {}).items()}
            for kind, options in raw_config["drivers"].items()
        }
    if "logging" in raw_config and isinstance(raw_config["logging"], dict):
        raw_config["logging"] = {str(k).lower(): v for k, v in raw_config["logging"].items()}
    if "duplicate_content" in raw_config and isinstance(raw_config["duplicate_content"], dict):
        raw_config["duplicate_content"] = {str(k).lower(): v for k, v in raw_config["duplicate_content"].items()}

    return ContractualSettings(**raw_config)
