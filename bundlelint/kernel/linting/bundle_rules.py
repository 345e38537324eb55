"""Bundle-level and migration lint rules."""

from __future__ import annotations

from bundlelint.kernel.domain.bundle import Bundle, MigrationGroup
from bundlelint.kernel.domain.identifiers import is_semver, is_valid_uid
from bundlelint.kernel.domain.migrations import (
    StageSummary,
    lint_cross_stage,
    summarize_stage,
    validate_migration,
)
from bundlelint.kernel.linting.context import LintContext
from bundlelint.kernel.linting.models import Entry, Level, Location
from bundlelint.kernel.linting.rules import RuleKind


class GlobalPropsDeprecatedRule:
    rule_id = "bundle-global-props-deprecated"
    name = "Policy Bundle Global Properties Deprecated"
    description = "Checks if the policy bundle defines global properties"
    severity: Level = "warning"
    kind = RuleKind.BUNDLE

    def check(self, ctx: LintContext, bundle: Bundle) -> list[Entry]:
        if not bundle.props:
            return []
        return [
            Entry(
                rule_id=self.rule_id,
                level=self.severity,
                message=(
                    "Defining global properties in a policy bundle is deprecated. Define "
                    "properties within individual policies and queries instead."
                ),
                locations=(ctx.location(bundle.props[0]),),
            )
        ]


class MigrationConfigurationRule:
    """Each migration carries the source/destination UIDs its action needs."""

    rule_id = "bundle-migrations-configuration-validation"
    name = "Migrations Configuration Validation"
    description = "Ensures that migrations are defined correctly."
    severity: Level = "error"
    kind = RuleKind.MIGRATION_GROUP

    def check(self, ctx: LintContext, group: MigrationGroup) -> list[Entry]:
        return [
            Entry(self.rule_id, self.severity, message, (ctx.location(migration),))
            for stage in group.stages
            for migration in stage.migrations
            for message in validate_migration(migration)
        ]


class MigrationStagesRule:
    """Within a stage a UID is consumed at most once, produced at most once, never both."""

    rule_id = "bundle-migrations-validate-stages"
    name = "Migrations Stages Validation"
    description = "Validates the logical consistency of individual migration stages."
    severity: Level = "error"
    kind = RuleKind.MIGRATION_GROUP

    def check(self, ctx: LintContext, group: MigrationGroup) -> list[Entry]:
        entries: list[Entry] = []
        for index, stage in enumerate(group.stages):
            summary, errors = summarize_stage(stage, index)
            errors.extend(summary.lint_consume_produce())
            entries.extend(
                Entry(self.rule_id, self.severity, message, (ctx.location(stage),))
                for message in errors
            )
        return entries


class MigrationGroupConditionsRule:
    """Declared conditions name a valid target policy and distinct semver versions."""

    rule_id = "bundle-migrations-validate-group-conditions"
    name = "Migrations Group Conditions Validation"
    description = (
        "Validates that migration groups have valid source and target policy conditions."
    )
    severity: Level = "error"
    kind = RuleKind.MIGRATION_GROUP

    def check(self, ctx: LintContext, group: MigrationGroup) -> list[Entry]:
        conditions = group.conditions
        if conditions is None:
            return []

        messages: list[str] = []
        target = conditions.target_policy
        source = conditions.source_policy
        if target is None or not target.uid:
            messages.append(f"migration group '{group.title}' must define conditions.target_policy.uid")

        for label, ref in (("source_policy", source), ("target_policy", target)):
            if ref is None:
                continue
            if ref.uid and not is_valid_uid(ref.uid):
                messages.append(
                    f"migration group '{group.title}': {label} UID '{ref.uid}' does not meet "
                    "the requirements"
                )
            if ref.version and not is_semver(ref.version):
                messages.append(
                    f"migration group '{group.title}': {label} has invalid version "
                    f"'{ref.version}'"
                )

        if (
            source is not None
            and target is not None
            and source.uid == target.uid
            and source.version == target.version
        ):
            messages.append(
                f"migration group '{group.title}': source_policy and target_policy are identical"
            )

        return [Entry(self.rule_id, self.severity, m, (ctx.location(group),)) for m in messages]


class MigrationCrossStageRule:
    """Stages of the migration groups that lead to this bundle end in its query set.

    A group takes part only when its target policy UID and version match a
    policy of this bundle.
    """

    rule_id = "bundle-migrations-validate-cross-stage-produce"
    name = "Migrations Cross-Stage Produce Validation"
    description = (
        "Validates that produced UIDs in one stage are consumed in subsequent stages and "
        "matches queries in the bundle."
    )
    severity: Level = "error"
    kind = RuleKind.BUNDLE

    @staticmethod
    def _applies(bundle: Bundle, group: MigrationGroup) -> bool:
        target = group.conditions.target_policy if group.conditions is not None else None
        if target is None:
            return False
        return any(
            policy.uid == target.uid and policy.version == target.version
            for policy in bundle.policies
        )

    def check(self, ctx: LintContext, bundle: Bundle) -> list[Entry]:
        stages: list[StageSummary] = []
        for group in bundle.migration_groups:
            if not self._applies(bundle, group):
                continue
            for index, stage in enumerate(group.stages):
                summary, _ = summarize_stage(stage, index)
                stages.append(summary)
        if not stages:
            return []

        final = [query.uid for query in bundle.queries if query.uid]
        return [
            Entry(self.rule_id, self.severity, message, (Location(ctx.file_path, 1, 1),))
            for message in lint_cross_stage(stages, final)
        ]


ALL_BUNDLE_RULES = [GlobalPropsDeprecatedRule(), MigrationCrossStageRule()]

ALL_MIGRATION_GROUP_RULES = [
    MigrationConfigurationRule(),
    MigrationStagesRule(),
    MigrationGroupConditionsRule(),
]
