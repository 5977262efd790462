"""Configuration handling for tendril."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tendril.errors import ConfigError, ErrorCode


class GitConfig(BaseModel):
    """Git executable configuration."""

    executable: str = Field(
        default="git",
        description="Name or path of the git executable",
    )
    history_separator: str = Field(
        default="¦",
        min_length=1,
        description="Field separator used in the commit history format",
    )


class TendrilConfig(BaseSettings):
    """Configuration for tendril."""

    model_config = SettingsConfigDict(
        env_prefix="TENDRIL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Git executable configuration",
    )
    unknown_branch_name: str = Field(
        default="Unknown Branch",
        description="Current branch name reported before the first refresh",
    )
    log_level: str = Field(
        default="INFO",
        description="Default logging level",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Parameters
        ----------
        v : str
            Log level to validate

        Returns
        -------
        str
            Validated log level

        Raises
        ------
        ValueError
            If log level is invalid
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    def save_config(self, path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Parameters
        ----------
        path : Optional[Path]
            Path to save configuration to. If None, uses default location.

        Raises
        ------
        ConfigError
            If configuration cannot be saved
        """
        if path is None:
            path = Path.home() / ".tendrilrc"

        try:
            path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                message="Failed to save configuration",
                code=ErrorCode.CONFIG_PERMISSION,
                details=str(path),
                cause=e,
            ) from e

    @classmethod
    def load_config(cls, path: Optional[str] = None) -> "TendrilConfig":
        """Load configuration from file and environment.

        Parameters
        ----------
        path : Optional[str]
            Path to configuration file. If None, uses default location.

        Returns
        -------
        TendrilConfig
            Loaded configuration

        Raises
        ------
        ConfigError
            If configuration cannot be loaded
        """
        if path is None:
            path = str(Path.home() / ".tendrilrc")

        try:
            config_path = Path(path)
            if config_path.exists():
                return cls.model_validate_json(config_path.read_text(encoding="utf-8"))
            return cls()
        except Exception as e:
            raise ConfigError(
                message="Failed to load configuration",
                code=ErrorCode.CONFIG_INVALID,
                details=str(path),
                cause=e,
            ) from e

    def get_env_settings(self) -> Dict[str, Any]:
        """Get all environment-based settings.

        Returns
        -------
        Dict[str, Any]
            Dictionary of environment-based settings
        """
        return {key: value for key, value in os.environ.items() if key.upper().startswith("TENDRIL_")}
