"""CLI command modules."""

from . import fmt_cmd, lint_cmd, rules_cmd

__all__ = ["fmt_cmd", "lint_cmd", "rules_cmd"]
