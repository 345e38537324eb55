"""The default rule set."""

from __future__ import annotations

from bundlelint.kernel.linting.bundle_rules import ALL_BUNDLE_RULES, ALL_MIGRATION_GROUP_RULES
from bundlelint.kernel.linting.policy_rules import (
    ALL_POLICY_RULES,
    BUNDLE_INVALID_UID,
    POLICY_UID_UNIQUE,
)
from bundlelint.kernel.linting.query_rules import ALL_QUERY_RULES
from bundlelint.kernel.linting.rules import RuleRegistry, StaticRule

# Ids emitted by the engine or as a side channel of another rule
STATIC_RULES = [
    StaticRule(
        rule_id="bundle-compile-error",
        name="Bundle Compile Error",
        description="Ensures the policy bundle compiles.",
    ),
    StaticRule(
        rule_id="bundle-invalid",
        name="Invalid Bundle",
        description="Ensures the bundle file is valid YAML with the expected structure.",
    ),
    StaticRule(
        rule_id="bundle-unknown-field",
        name="Unknown Bundle Field",
        description="Ensures the bundle file only uses known fields.",
    ),
    StaticRule(
        rule_id=BUNDLE_INVALID_UID,
        name="Invalid UID",
        description="Ensures policy and query UIDs meet the format requirements.",
    ),
    StaticRule(
        rule_id=POLICY_UID_UNIQUE,
        name="Policy UID Uniqueness",
        description="Ensures policy UIDs are unique within the file.",
    ),
]


def default_registry() -> RuleRegistry:
    """Build the frozen registry of all built-in rules.

    Rules run in registration order: policy rules, query rules, migration
    group rules, bundle rules. Static rules come last and only describe ids
    for report formats.
    """
    return RuleRegistry(
        [
            *ALL_POLICY_RULES,
            *ALL_QUERY_RULES,
            *ALL_MIGRATION_GROUP_RULES,
            *ALL_BUNDLE_RULES,
            *STATIC_RULES,
        ]
    ).freeze()
