"""Configuration data models for bundlelint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from bundlelint.kernel.exceptions import ValidationError

DEFAULT_REQUIRED_TAGS: tuple[str, ...] = ("mondoo.com/category", "mondoo.com/platform")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration for bundlelint.

    Attributes
    ----------
    level : str, default="WARNING"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path to write logs to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.bundlelint.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export BUNDLELINT_LOG_LEVEL=DEBUG
    export BUNDLELINT_LOG_FORMAT=json
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True


@dataclass(frozen=True, slots=True)
class LintConfig:
    """Effective settings for one lint invocation.

    Attributes
    ----------
    required_tags : tuple[str, ...]
        Tag keys every policy must carry
    disabled_rules : frozenset[str]
        Rule ids that are not dispatched
    workers : int
        Number of threads used for the per-file passes (1 means inline)
    logging : LoggingConfig
        Logging configuration

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.bundlelint]
    required_tags = ["mondoo.com/category"]
    disabled_rules = ["policy-missing-require"]
    workers = 4
    ```
    """

    required_tags: tuple[str, ...] = DEFAULT_REQUIRED_TAGS
    disabled_rules: frozenset[str] = frozenset()
    workers: int = 1
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        """Validate the configuration.

        Raises
        ------
        ValidationError
            If workers is not positive or a required tag is empty
        """
        if self.workers < 1:
            raise ValidationError("workers", "must be positive", self.workers)
        if any(not tag for tag in self.required_tags):
            raise ValidationError("required_tags", "tag keys cannot be empty")

    def is_enabled(self, rule_id: str) -> bool:
        """Return True unless the rule was disabled."""
        return rule_id not in self.disabled_rules
