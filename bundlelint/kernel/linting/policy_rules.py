"""Policy-level lint rules."""

from __future__ import annotations

from bundlelint.kernel.domain.bundle import Mquery, Policy, PolicyGroup, is_query_definition_complete
from bundlelint.kernel.domain.identifiers import INVALID_SEMVER, is_semver, is_valid_uid
from bundlelint.kernel.linting.context import LintContext
from bundlelint.kernel.linting.models import Entry, Level
from bundlelint.kernel.linting.rules import RuleKind

BUNDLE_INVALID_UID = "bundle-invalid-uid"
POLICY_UID_UNIQUE = "policy-uid-unique"


def policy_identifier(policy: Policy) -> str:
    """Human readable reference to a policy for messages."""
    if policy.uid:
        return f"policy '{policy.uid}'"
    if policy.name:
        return f"policy '{policy.name}' (at line {policy.file_context.line})"
    return f"policy at line {policy.file_context.line}"


def _query_ref_identifier(query: Mquery) -> str:
    if query.uid:
        return query.uid
    return f"query at line {query.file_context.line}"


def _has_variants_or_filters(query: Mquery | None) -> bool:
    if query is None:
        return False
    return bool(query.variants) or (query.filters is not None and bool(query.filters.items))


def _group_has_filter(group: PolicyGroup) -> bool:
    return group.filters is not None and bool(group.filters.items)


class _PolicyRule:
    """Shared attributes of rules dispatched over policies."""

    rule_id: str
    name: str
    description: str
    severity: Level = "error"
    kind = RuleKind.POLICY

    def entry(self, ctx: LintContext, policy: Policy, message: str) -> Entry:
        return Entry(
            rule_id=self.rule_id,
            level=self.severity,
            message=message,
            locations=(ctx.location(policy),),
        )


class PolicyUidRule(_PolicyRule):
    """Policies need a well-formed UID that is unique within the file.

    A malformed UID is reported as ``bundle-invalid-uid`` and a duplicate as
    ``policy-uid-unique`` at the second occurrence.
    """

    rule_id = "policy-uid"
    name = "Policy UID Presence and Format"
    description = (
        "Checks if a policy has a UID and if it conforms to naming standards. "
        "Also checks for uniqueness within the file."
    )

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if not policy.uid:
            return [self.entry(ctx, policy, f"{policy_identifier(policy)} does not define a UID")]

        entries: list[Entry] = []
        if not is_valid_uid(policy.uid):
            entries.append(
                Entry(
                    rule_id=BUNDLE_INVALID_UID,
                    level="error",
                    message=f"{policy_identifier(policy)} UID does not meet the requirements",
                    locations=(ctx.location(policy),),
                )
            )
        if policy.uid in ctx.policy_uids_in_file:
            entries.append(
                Entry(
                    rule_id=POLICY_UID_UNIQUE,
                    level="error",
                    message=f"Policy UID '{policy.uid}' is used multiple times in the same file",
                    locations=(ctx.location(policy),),
                )
            )
        else:
            ctx.policy_uids_in_file.add(policy.uid)
        return entries


class PolicyNameRule(_PolicyRule):
    rule_id = "policy-name"
    name = "Policy Name Presence"
    description = "Ensures every policy has a `name` field."

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if policy.name:
            return []
        return [self.entry(ctx, policy, f"{policy_identifier(policy)} does not define a name")]


class PolicyRequiredTagsRule(_PolicyRule):
    """One warning per configured tag key the policy does not carry."""

    rule_id = "policy-required-tags-missing"
    name = "Policy Required Tags"
    description = (
        "Ensures policies have required tags like 'mondoo.com/category' and 'mondoo.com/platform'."
    )
    severity: Level = "warning"

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        return [
            self.entry(
                ctx,
                policy,
                f"{policy_identifier(policy)} does not contain the required tag `{tag}`",
            )
            for tag in ctx.config.required_tags
            if tag not in policy.tags
        ]


class PolicyMissingVersionRule(_PolicyRule):
    rule_id = "policy-missing-version"
    name = "Policy Version Presence"
    description = "Ensures every policy has a `version` field."

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if policy.version:
            return []
        return [self.entry(ctx, policy, f"{policy_identifier(policy)} is missing version")]


class PolicyWrongVersionRule(_PolicyRule):
    """Only present versions are checked; an absent one is a separate rule."""

    rule_id = "policy-wrong-version"
    name = "Policy Version Format"
    description = "Ensures policy versions follow semantic versioning (semver)."

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if not policy.version or is_semver(policy.version):
            return []
        return [
            self.entry(
                ctx,
                policy,
                f"{policy_identifier(policy)} has invalid version '{policy.version}': "
                f"{INVALID_SEMVER}",
            )
        ]


class PolicyMissingChecksRule(_PolicyRule):
    """A policy needs groups and every group needs content.

    A policy without groups is reported even if it lists required providers.
    """

    rule_id = "policy-missing-checks"
    name = "Policy Missing Checks or Groups"
    description = "Ensures policies have defined groups, and groups have checks or queries."

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if not policy.groups:
            return [self.entry(ctx, policy, f"{policy_identifier(policy)} has no groups defined")]

        return [
            Entry(
                rule_id=self.rule_id,
                level=self.severity,
                message=(
                    f"{policy_identifier(policy)}, group '{group.title}' "
                    f"(line {group.file_context.line}) has no checks, data queries, "
                    "or sub-policies defined"
                ),
                locations=(ctx.location(group),),
            )
            for group in policy.groups
            if group.is_empty()
        ]


class PolicyMissingAssetFilterRule(_PolicyRule):
    """Checks in an unfiltered group need filters or variants of their own.

    References are resolved against the global queries of the file.
    """

    rule_id = "policy-missing-asset-filter"
    name = "Policy Group Missing Asset Filter"
    description = "Warns if a policy group or its checks lack asset filters or variants."
    severity: Level = "warning"

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        entries: list[Entry] = []
        for group in policy.groups:
            if _group_has_filter(group):
                continue
            for check in group.checks:
                if is_query_definition_complete(check):
                    if _has_variants_or_filters(check):
                        continue
                elif _has_variants_or_filters(ctx.global_queries_by_uid.get(check.uid)):
                    continue
                entries.append(
                    Entry(
                        rule_id=self.rule_id,
                        level=self.severity,
                        message=(
                            f"{policy_identifier(policy)}, group '{group.title}' "
                            f"(line {group.file_context.line}): Check "
                            f"'{_query_ref_identifier(check)}' lacks an asset filter or "
                            "variants, and the group also has no filter."
                        ),
                        locations=(ctx.location(group),),
                    )
                )
        return entries


class PolicyMissingAssignedQueryRule(_PolicyRule):
    """Query references in groups must name a global query of the file."""

    rule_id = "policy-missing-assigned-query"
    name = "Policy Assigned Query Existence"
    description = (
        "Ensures that queries assigned in policy groups exist globally or are valid "
        "embedded queries."
    )

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        entries: list[Entry] = []
        for group in policy.groups:
            for label, queries in (("check", group.checks), ("data", group.queries)):
                for ref in queries:
                    if is_query_definition_complete(ref) or not ref.uid:
                        continue
                    if ref.uid in ctx.global_queries_by_uid:
                        continue
                    entries.append(
                        Entry(
                            rule_id=self.rule_id,
                            level=self.severity,
                            message=(
                                f"{policy_identifier(policy)}, group '{group.title}': "
                                f"Assigned {label} query UID '{ref.uid}' does not exist as "
                                "a global query."
                            ),
                            locations=(ctx.location(ref),),
                        )
                    )
        return entries


class PolicyMissingRequireRule(_PolicyRule):
    rule_id = "policy-missing-require"
    name = "Policy Require Providers"
    description = "Ensures that policies define required providers."
    severity: Level = "warning"

    def check(self, ctx: LintContext, policy: Policy) -> list[Entry]:
        if policy.require:
            return []
        return [
            self.entry(
                ctx, policy, f"{policy_identifier(policy)} does not define any required providers"
            )
        ]


ALL_POLICY_RULES: list[_PolicyRule] = [
    PolicyUidRule(),
    PolicyNameRule(),
    PolicyRequiredTagsRule(),
    PolicyMissingVersionRule(),
    PolicyWrongVersionRule(),
    PolicyMissingChecksRule(),
    PolicyMissingAssetFilterRule(),
    PolicyMissingAssignedQueryRule(),
    PolicyMissingRequireRule(),
]
