#!/usr/bin/env python3
"""
Configuration for the ccdstage CLI.

Sources, from highest to lowest priority:
1. Command-line overrides
2. Explicit config file (--config)
3. Project config (./.ccdstage_config.json)
4. User config (~/.ccdstage_config.json)
5. Environment variables (CCDSTAGE_* prefix)
6. Defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ccdstage.core.catalog import ExperimentType
from ccdstage.core.errors import InvalidExperimentTypeError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ccdstage_config.json"
ENV_PREFIX = "CCDSTAGE_"


class CLIConfig(BaseModel):
    """
    Central configuration for the ccdstage CLI.

    Paths are resolved to absolute paths. Unlike output folders, the data
    directory is never created: a missing directory is a load error.
    """

    data_dir: Path = Field(
        default=Path("."),
        description="Default directory scanned for .fits frames"
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for rotating log files"
    )
    experiment_type: ExperimentType = Field(
        default=ExperimentType.XRR,
        description="Default experiment type (xrr, xrs, other)"
    )
    parallel_workers: int = Field(
        default=6,
        ge=1,
        le=64,
        description="Number of parallel workers for staging"
    )
    polars_threads: int = Field(
        default=1,
        ge=1,
        description="POLARS_MAX_THREADS inside each worker"
    )
    verbose: bool = Field(
        default=False,
        description="Echo log messages to the terminal"
    )

    config_version: str = Field(
        default="1.0.0",
        description="Configuration schema version"
    )

    model_config = {
        "validate_assignment": True,
        "validate_default": True,
    }

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v) -> Path:
        """Relative paths are resolved against the current working directory."""
        path = Path(v).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path.resolve()

    @field_validator("experiment_type", mode="before")
    @classmethod
    def parse_experiment_type(cls, v):
        try:
            return ExperimentType.from_str(v)
        except InvalidExperimentTypeError as e:
            raise ValueError(str(e)) from None

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "CLIConfig":
        """
        Load configuration from environment variables.

        Example: CCDSTAGE_PARALLEL_WORKERS=12, CCDSTAGE_EXPERIMENT_TYPE=xrs
        """
        config_dict = {}
        for field_name, field_info in cls.model_fields.items():
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue
            if field_info.annotation is bool:
                config_dict[field_name] = env_value.lower() in ("true", "1", "yes", "on")
            else:
                # pydantic coerces ints, paths and the enum from strings
                config_dict[field_name] = env_value
        return cls(**config_dict)

    @classmethod
    def from_file(cls, config_file: Path) -> "CLIConfig":
        """
        Load configuration from a JSON config file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
        """
        config_file = Path(config_file)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_file, "r") as f:
            config_dict = json.load(f)

        # Unknown keys (comments, metadata) are ignored
        config_dict = {k: v for k, v in config_dict.items() if k in cls.model_fields}
        return cls(**config_dict)

    def save(self, config_file: Path, pretty: bool = True) -> None:
        """Save the configuration as JSON."""
        config_file = Path(config_file)
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_dict = self.model_dump(mode="json")
        with open(config_file, "w") as f:
            if pretty:
                json.dump(config_dict, f, indent=2, sort_keys=False)
                f.write("\n")
            else:
                json.dump(config_dict, f)

    def merge_with(self, **overrides) -> "CLIConfig":
        """New config with the given fields replaced."""
        config_dict = self.model_dump()
        config_dict.update(overrides)
        return CLIConfig(**config_dict)


def _apply_file(config: CLIConfig, path: Path) -> CLIConfig:
    try:
        return CLIConfig.from_file(path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Ignoring config file {path}: {e}")
        return config


def load_config_with_precedence(
    config_file: Optional[Path] = None,
    check_env: bool = True,
    check_user_config: bool = True,
    check_project_config: bool = True,
    **overrides
) -> CLIConfig:
    """
    Load configuration with proper precedence handling.

    Args:
        config_file: Explicit config file path (highest priority after overrides)
        check_env: Whether to load from CCDSTAGE_* environment variables
        check_user_config: Whether to check ~/.ccdstage_config.json
        check_project_config: Whether to check ./.ccdstage_config.json
        **overrides: Direct field overrides (highest priority)

    Raises:
        FileNotFoundError: ``config_file`` was given but does not exist
    """
    config = CLIConfig()

    if check_env:
        try:
            config = CLIConfig.from_env()
        except ValidationError as e:
            logger.warning(f"Ignoring invalid {ENV_PREFIX}* environment: {e}")

    user_config_path = Path.home() / CONFIG_FILENAME
    if check_user_config and user_config_path.exists():
        config = _apply_file(config, user_config_path)

    if check_project_config:
        project_config_path = Path.cwd() / CONFIG_FILENAME
        if project_config_path.exists() and project_config_path != user_config_path:
            config = _apply_file(config, project_config_path)

    if config_file is not None:
        config = CLIConfig.from_file(config_file)

    if overrides:
        config = config.merge_with(**overrides)

    return config
