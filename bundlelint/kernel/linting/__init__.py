"""Lint engine: diagnostics, rules, registry and orchestration."""

from bundlelint.kernel.linting.context import LintContext, build_lint_context
from bundlelint.kernel.linting.linter import lint, lint_file
from bundlelint.kernel.linting.models import Entry, Location, Results
from bundlelint.kernel.linting.registry import default_registry
from bundlelint.kernel.linting.rules import LintRule, QueryLintInput, RuleKind, RuleRegistry

__all__ = [
    "Entry",
    "LintContext",
    "LintRule",
    "Location",
    "QueryLintInput",
    "Results",
    "RuleKind",
    "RuleRegistry",
    "build_lint_context",
    "default_registry",
    "lint",
    "lint_file",
]
