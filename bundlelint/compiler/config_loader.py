"""Configuration loader for bundlelint.

Supports two config sources:

1. A standalone TOML or YAML file, given explicitly or through the
   ``BUNDLELINT_CONFIG_PATH`` env var.
2. ``pyproject.toml [tool.bundlelint]``, discovered from the working
   directory upwards.

Only the CLI loads configuration; the linting core takes a ``LintConfig``.
The core reads no environment apart from the default logging setup in
``bundlelint.kernel.logging``.
"""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Literal, cast

import yaml

from bundlelint.kernel.config.models import DEFAULT_REQUIRED_TAGS, LintConfig, LoggingConfig
from bundlelint.kernel.exceptions import ConfigurationError
from bundlelint.kernel.logging import get_logger

_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

_KNOWN_KEYS = frozenset({"required_tags", "disabled_rules", "workers", "logging"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_LOG_FORMATS = frozenset({"console", "json", "structured", "rich"})

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = sorted(_TRUTHY_VALUES | _FALSY_VALUES)
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


class ConfigLoader:
    """Loads bundlelint configuration files into a ``LintConfig``."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load(self, path: str | Path | None = None) -> LintConfig:
        """Load configuration, falling back to defaults when nothing is found.

        Parameters
        ----------
        path : str | Path | None
            Explicit config file. If None, searches using discovery order.

        Returns
        -------
        LintConfig
            Parsed configuration with environment overrides applied

        Raises
        ------
        ConfigurationError
            If an explicit path does not exist or the file is malformed
        """
        config_path = self._find_config_file(path)
        if config_path is None:
            logger.debug("No configuration file found, using defaults")
            return self._parse_config({})
        logger.info("Loading configuration from {path}", path=config_path)
        if config_path.suffix in (".yaml", ".yml"):
            data = self._load_yaml(config_path)
        else:
            data = self._load_toml(config_path)
        return self._parse_config(self._substitute_env_vars(data))

    def _load_yaml(self, config_path: Path) -> dict[str, Any]:
        with config_path.open("r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                str(config_path), f"expected a mapping, got {type(data).__name__}"
            )
        return data

    def _load_toml(self, config_path: Path) -> dict[str, Any]:
        with config_path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(str(config_path), f"invalid TOML: {e}") from e

        tool_data = data.get("tool", {}).get("bundlelint")
        if tool_data is not None:
            data = tool_data
        elif config_path.name == "pyproject.toml":
            logger.debug("No [tool.bundlelint] section in {path}", path=config_path)
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(str(config_path), "[tool.bundlelint] must be a table")
        return data

    def _find_config_file(self, path: str | Path | None) -> Path | None:
        """Find the configuration file.

        Discovery order:
        1. Explicit path argument
        2. ``BUNDLELINT_CONFIG_PATH`` env var
        3. ``pyproject.toml`` with ``[tool.bundlelint]`` in CWD or a parent
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigurationError(str(config_path), "configuration file not found")
            return config_path

        if env_path := os.getenv("BUNDLELINT_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                logger.debug("Using config from BUNDLELINT_CONFIG_PATH: {}", config_path)
                return config_path
            logger.warning("BUNDLELINT_CONFIG_PATH set but file not found: {}", config_path)

        current = Path.cwd()
        for directory in (current, *current.parents):
            pyproject = directory / "pyproject.toml"
            if not pyproject.is_file():
                continue
            with pyproject.open("rb") as f:
                try:
                    data = tomllib.load(f)
                except tomllib.TOMLDecodeError:
                    logger.debug("Skipping unparsable {}", pyproject)
                    continue
            if "bundlelint" in data.get("tool", {}):
                return pyproject
        return None

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` placeholders with environment values."""
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                value = os.environ.get(match.group(1))
                if value is None:
                    logger.debug("Environment variable {} not found, keeping placeholder", match.group(1))
                    return match.group(0)
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def _parse_config(self, data: dict[str, Any]) -> LintConfig:
        if unknown := sorted(set(data) - _KNOWN_KEYS):
            raise ConfigurationError("bundlelint", f"unknown settings: {', '.join(unknown)}")

        required_tags = data.get("required_tags", list(DEFAULT_REQUIRED_TAGS))
        disabled_rules = data.get("disabled_rules", [])
        if not isinstance(required_tags, list) or not isinstance(disabled_rules, list):
            raise ConfigurationError("bundlelint", "required_tags and disabled_rules must be lists")

        workers = data.get("workers", 1)
        if not isinstance(workers, int):
            raise ConfigurationError("bundlelint", f"workers must be an integer, got {workers!r}")

        return LintConfig(
            required_tags=tuple(str(tag) for tag in required_tags),
            disabled_rules=frozenset(str(rule) for rule in disabled_rules),
            workers=workers,
            logging=self._parse_logging_config(data.get("logging", {})),
        )

    def _parse_logging_config(self, logging_data: Any) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        Environment variables take precedence over config file values:
        - BUNDLELINT_LOG_LEVEL: Log level
        - BUNDLELINT_LOG_FORMAT: Output format (console, json, structured, rich)
        - BUNDLELINT_LOG_FILE: Optional file path for log output
        - BUNDLELINT_LOG_COLOR: Use color output (true/false)
        """
        if not isinstance(logging_data, dict):
            raise ConfigurationError("logging", "must be a table")

        level = logging_data.get("level", "WARNING")
        format_type = logging_data.get("format", "structured")
        output_file = logging_data.get("output_file")
        use_color = logging_data.get("use_color", True)
        include_timestamp = logging_data.get("include_timestamp", True)

        if env_level := os.getenv("BUNDLELINT_LOG_LEVEL"):
            level = env_level.upper()
            logger.debug("Overriding log level from env: {}", level)

        if env_format := os.getenv("BUNDLELINT_LOG_FORMAT"):
            format_type = env_format.lower()
            logger.debug("Overriding log format from env: {}", format_type)

        if env_file := os.getenv("BUNDLELINT_LOG_FILE"):
            output_file = env_file

        if env_color := os.getenv("BUNDLELINT_LOG_COLOR"):
            try:
                use_color = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Invalid BUNDLELINT_LOG_COLOR value: {}", e)

        level = str(level).upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError(
                "logging", f"unknown level {level!r}, expected one of {sorted(_LOG_LEVELS)}"
            )
        if format_type not in _LOG_FORMATS:
            raise ConfigurationError(
                "logging",
                f"unknown format {format_type!r}, expected one of {sorted(_LOG_FORMATS)}",
            )

        return LoggingConfig(
            level=cast("Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']", level),
            format=cast("Literal['console', 'json', 'structured', 'rich']", format_type),
            output_file=output_file,
            use_color=use_color,
            include_timestamp=include_timestamp,
        )


def load_config(path: str | Path | None = None) -> LintConfig:
    """Load configuration from file or return defaults."""
    return ConfigLoader().load(path)
