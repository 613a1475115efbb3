"""Configuration Management with Pydantic.

This module implements configuration models using Pydantic for parsing and
validation of YAML configuration files with environment variable overrides.
"""

import os
import threading
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_NAMES = ("entitygraph.yaml", "entitygraph.yml")
TRUE_VALUES = ("true", "1", "yes", "on")


class LoggingConfig(BaseModel):
    """Logging configuration settings.

    Attributes:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render log entries as JSON instead of console output
    """

    level: str = Field(
        default="INFO",
        description="Logging level",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class OrderingConfig(BaseModel):
    """Entity ordering policy.

    Attributes:
        allow_cycle_breaking: Pass a cycle breaker to the topological sort
        break_optional_foreign_keys: Allow ignoring groups of optional foreign keys
        break_self_references: Allow ignoring foreign keys from a table to itself
    """

    allow_cycle_breaking: bool = Field(
        default=True,
        description="Break foreign key cycles instead of failing",
    )
    break_optional_foreign_keys: bool = Field(
        default=True,
        description="Optional foreign keys may be deferred to break a cycle",
    )
    break_self_references: bool = Field(
        default=True,
        description="Self-referencing foreign keys may be deferred",
    )


class EntityGraphConfig(BaseModel):
    """Top-level configuration combining all settings.

    Attributes:
        logging: Logging configuration
        ordering: Entity ordering policy
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ordering: OrderingConfig = Field(default_factory=OrderingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EntityGraphConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            Parsed and validated EntityGraphConfig instance

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        logger.info("loading_configuration", path=str(config_path))

        try:
            with config_path.open() as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.exception("yaml_parse_error", error=str(e), path=str(config_path))
            msg = f"Invalid YAML in configuration file: {e}"
            raise ValueError(msg) from e

        if not isinstance(config_data, dict):
            msg = "Configuration file must contain a mapping"
            raise ValueError(msg)

        config = cls(**cls._apply_env_overrides(config_data))

        logger.info(
            "configuration_loaded",
            logging_level=config.logging.level,
            allow_cycle_breaking=config.ordering.allow_cycle_breaking,
        )

        return config

    @classmethod
    def _apply_env_overrides(cls, config_data: dict) -> dict:
        """Apply environment variable overrides to configuration.

        Environment variables follow the pattern: ENTITYGRAPH_<SECTION>_<KEY>
        Example: ENTITYGRAPH_LOGGING_LEVEL, ENTITYGRAPH_ORDERING_BREAK_OPTIONAL

        Args:
            config_data: Base configuration dictionary from file

        Returns:
            Configuration dictionary with environment overrides applied
        """
        env_overrides = {
            ("logging", "level"): "ENTITYGRAPH_LOGGING_LEVEL",
            ("logging", "json_logs"): "ENTITYGRAPH_LOGGING_JSON",
            ("ordering", "allow_cycle_breaking"): "ENTITYGRAPH_ORDERING_ALLOW_CYCLE_BREAKING",
            ("ordering", "break_optional_foreign_keys"): "ENTITYGRAPH_ORDERING_BREAK_OPTIONAL",
            ("ordering", "break_self_references"): "ENTITYGRAPH_ORDERING_BREAK_SELF_REFERENCES",
        }

        for path, env_var in env_overrides.items():
            value = os.environ.get(env_var)
            if value is None:
                continue

            current = config_data
            for key in path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            final_key = path[-1]
            if env_var != "ENTITYGRAPH_LOGGING_LEVEL":
                value = value.strip().lower() in TRUE_VALUES

            current[final_key] = value
            logger.debug(
                "env_override_applied",
                env_var=env_var,
                config_path=".".join(path),
            )

        return config_data


class ConfigManager:
    """Configuration manager using singleton pattern."""

    _instance: EntityGraphConfig | None = None
    _init_lock: threading.Lock = threading.Lock()

    @classmethod
    def load_config(cls, config_path: str | Path | None = None) -> EntityGraphConfig:
        """Load configuration from file.

        Args:
            config_path: Path to configuration file. If None, looks for
                entitygraph.yaml or entitygraph.yml in the current directory
                and falls back to defaults (with environment overrides).

        Returns:
            Loaded EntityGraphConfig instance

        Raises:
            FileNotFoundError: If an explicit config file is not found
            ValueError: If the config file is invalid
        """
        if config_path is None:
            for default_name in DEFAULT_CONFIG_NAMES:
                default_path = Path(default_name)
                if default_path.exists():
                    config_path = default_path
                    break
            else:
                logger.debug("no_configuration_file_using_defaults")
                return EntityGraphConfig(**EntityGraphConfig._apply_env_overrides({}))

        return EntityGraphConfig.from_yaml(config_path)

    @classmethod
    def get_config(
        cls,
        config_path: str | Path | None = None,
        reload: bool = False,
    ) -> EntityGraphConfig:
        """Get configuration instance (singleton pattern).

        Args:
            config_path: Path to configuration file. Only used on first call or when reload=True.
            reload: If True, force reload configuration from file.

        Returns:
            EntityGraphConfig instance
        """
        if cls._instance is not None and not reload:
            return cls._instance

        with cls._init_lock:
            if cls._instance is None or reload:
                cls._instance = cls.load_config(config_path)

            return cls._instance

    @classmethod
    def reset_config(cls) -> None:
        """Reset the configuration instance."""
        cls._instance = None


def load_config(config_path: str | Path | None = None) -> EntityGraphConfig:
    """Load configuration from file."""
    return ConfigManager.load_config(config_path)


def get_config(config_path: str | Path | None = None, reload: bool = False) -> EntityGraphConfig:
    """Get configuration instance (singleton pattern)."""
    return ConfigManager.get_config(config_path, reload)


def reset_config() -> None:
    """Reset the configuration instance."""
    ConfigManager.reset_config()


__all__ = [
    "ConfigManager",
    "EntityGraphConfig",
    "LoggingConfig",
    "OrderingConfig",
    "get_config",
    "load_config",
    "reset_config",
]
