"""Lint rule protocol and the frozen rule registry."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from bundlelint.kernel.exceptions import RuleRegistryError
from bundlelint.kernel.linting.models import Entry, Level

if TYPE_CHECKING:
    from bundlelint.kernel.domain.bundle import Mquery
    from bundlelint.kernel.linting.context import LintContext


class RuleKind(StrEnum):
    """Item kind a rule is dispatched over."""

    POLICY = "policy"
    QUERY = "query"
    MIGRATION_GROUP = "migration_group"
    BUNDLE = "bundle"
    STATIC = "static"


@dataclass(frozen=True, slots=True)
class QueryLintInput:
    """A query handed to query rules, with whether it is defined globally."""

    query: Mquery
    is_global: bool


class LintRule(Protocol):
    """Protocol for a single lint rule."""

    rule_id: str
    name: str
    description: str
    severity: Level
    kind: RuleKind

    def check(self, ctx: LintContext, item: Any) -> list[Entry]:
        """Run this rule against one item and return violations."""
        ...


@dataclass(frozen=True, slots=True)
class StaticRule:
    """Rule emitted by the engine itself rather than dispatched over items.

    Static rules exist so that report formats can describe every rule id
    that may show up in the results.
    """

    rule_id: str
    name: str
    description: str
    severity: Level = "error"
    kind: RuleKind = RuleKind.STATIC

    def check(self, ctx: LintContext, item: Any) -> list[Entry]:
        return []


class RuleRegistry:
    """Ordered set of rules, registered once and frozen before dispatch.

    Registration order is kept; it defines the order in which rules run and
    the rule index used by SARIF output.
    """

    __slots__ = ("_rules", "_by_kind", "_index", "_frozen")

    def __init__(self, rules: Iterable[LintRule] = ()) -> None:
        self._rules: list[LintRule] = []
        self._by_kind: dict[RuleKind, tuple[LintRule, ...]] = {}
        self._index: dict[str, int] = {}
        self._frozen = False
        for rule in rules:
            self.register(rule)

    def register(self, rule: LintRule) -> None:
        """Add a rule.

        Raises
        ------
        RuleRegistryError
            If the registry is frozen or the rule id is already registered
        """
        if self._frozen:
            raise RuleRegistryError(f"cannot register '{rule.rule_id}': registry is frozen")
        if rule.rule_id in self._index:
            raise RuleRegistryError(f"rule '{rule.rule_id}' is already registered")
        self._index[rule.rule_id] = len(self._rules)
        self._rules.append(rule)

    def freeze(self) -> RuleRegistry:
        """Build the dispatch table and reject further registration."""
        if not self._frozen:
            self._by_kind = {
                kind: tuple(rule for rule in self._rules if rule.kind == kind) for kind in RuleKind
            }
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def rules(self) -> tuple[LintRule, ...]:
        """All rules in registration order."""
        return tuple(self._rules)

    def rules_for(self, kind: RuleKind) -> tuple[LintRule, ...]:
        """Rules dispatched over the given item kind.

        Raises
        ------
        RuleRegistryError
            If the registry has not been frozen yet
        """
        if not self._frozen:
            raise RuleRegistryError("registry must be frozen before dispatch")
        return self._by_kind[kind]

    def index_of(self, rule_id: str) -> int:
        """Registration index of a rule id, or -1 if unknown."""
        return self._index.get(rule_id, -1)

    def get(self, rule_id: str) -> LintRule | None:
        """Rule with the given id, if registered."""
        index = self._index.get(rule_id)
        return None if index is None else self._rules[index]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._index

    def __len__(self) -> int:
        return len(self._rules)
