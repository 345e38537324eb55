"""bundlelint kernel: bundle domain model, configuration, rules and the lint engine.

Parsing, formatting and compilation live in ``bundlelint.compiler``; the
kernel only depends on them from the lint orchestration in
``bundlelint.kernel.linting.linter``.
"""

from bundlelint.kernel.exceptions import (
    BundleFileError,
    BundleLintError,
    BundleParseError,
    BundleUnknownFieldError,
    ConfigurationError,
    MqlCompileError,
    RuleRegistryError,
    ValidationError,
)

__all__ = [
    "BundleFileError",
    "BundleLintError",
    "BundleParseError",
    "BundleUnknownFieldError",
    "ConfigurationError",
    "MqlCompileError",
    "RuleRegistryError",
    "ValidationError",
]
