"""Exception hierarchy for bundlelint.

All bundlelint exceptions inherit from BundleLintError. Parse failures carry
the rule id and position of the diagnostic they turn into; I/O failures are
fatal and propagate to the caller of ``lint``.
"""

from __future__ import annotations

# ============================================================================
# Base Exception
# ============================================================================


class BundleLintError(Exception):
    """Base exception for all bundlelint errors.

    Catch this to handle every error raised by the linter.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(BundleLintError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("pyproject.toml", "[tool.bundlelint] must be a table")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(BundleLintError):
    """Raised when a configuration value fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("workers", "must be positive", value=0)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


# ============================================================================
# Bundle Errors
# ============================================================================


class BundleParseError(BundleLintError):
    """Raised when a bundle document cannot be decoded.

    The linter turns this into a single file-scoped diagnostic; the file is
    skipped and the remaining files continue.

    Examples
    --------
    Example usage::

        raise BundleParseError("mapping values are not allowed here")
    """

    rule_id = "bundle-invalid"

    def __init__(self, message: str, line: int = 1, column: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


class BundleUnknownFieldError(BundleParseError):
    """Raised when a bundle document contains keys the schema does not define."""

    rule_id = "bundle-unknown-field"

    def __init__(self, fields: list[str], line: int = 1, column: int = 1) -> None:
        super().__init__(", ".join(fields), line=line, column=column)
        self.fields = fields


class BundleFileError(BundleLintError):
    """Raised when a bundle file cannot be read or written.

    Examples
    --------
    Example usage::

        raise BundleFileError("policies/missing.mql.yaml", "file does not exist")
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot access bundle file '{path}': {reason}")
        self.path = path
        self.reason = reason


class MqlCompileError(BundleLintError):
    """Raised by an MQL compiler when the merged bundle does not compile.

    Only the message is ever inspected by the linter.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RuleRegistryError(BundleLintError):
    """Raised on invalid rule registration (duplicate id, registry frozen)."""

    pass
