"""Configuration models for bundlelint."""

from bundlelint.kernel.config.models import DEFAULT_REQUIRED_TAGS, LintConfig, LoggingConfig


def __getattr__(name: str) -> object:
    """Lazy imports for config loader symbols (they live in bundlelint.compiler.config_loader)."""
    if name in {"ConfigLoader", "load_config"}:
        from bundlelint.compiler import config_loader

        return getattr(config_loader, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["DEFAULT_REQUIRED_TAGS", "LintConfig", "LoggingConfig"]
