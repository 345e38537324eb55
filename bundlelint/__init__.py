"""bundlelint: a linter for policy bundle files.

Reads ``*.mql.yaml`` bundles of policies, queries, variants and migration
plans, and reports rule violations with their source locations as a table or
as SARIF.
"""

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("bundlelint")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for development checkouts

from bundlelint.compiler.bundle_formatter import format_bundle, format_file, walk_bundle_files
from bundlelint.compiler.bundle_parser import parse_yaml
from bundlelint.kernel.config.models import LintConfig
from bundlelint.kernel.linting.linter import lint, lint_file
from bundlelint.kernel.linting.models import Entry, Location, Results
from bundlelint.kernel.linting.registry import default_registry

__all__ = [
    "Entry",
    "LintConfig",
    "Location",
    "Results",
    "__version__",
    "default_registry",
    "format_bundle",
    "format_file",
    "lint",
    "lint_file",
    "parse_yaml",
    "walk_bundle_files",
]
