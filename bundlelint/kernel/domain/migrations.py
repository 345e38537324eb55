"""Analysis of migration stages.

A migration stage is an unordered set of migrations. Each migration consumes
and/or produces query UIDs:

- ``create`` produces ``destination.uid``
- ``remove`` consumes ``source.uid``
- ``modify`` consumes ``source.uid`` and produces ``destination.uid`` (a rename)

``summarize_stage`` collects these effects, ``validate_migration`` checks a
single migration's shape and ``lint_cross_stage`` checks a sequence of stage
summaries against the UIDs present in the final bundle.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from bundlelint.kernel.domain.bundle import Migration, MigrationAction, MigrationStage


@dataclass(slots=True)
class StageSummary:
    """Effects of one migration stage on query UIDs.

    Attributes
    ----------
    index : int
        Position of the stage in its group
    title : str
        Stage title, used in messages
    consumes : dict[str, Migration]
        UID consumed by the stage, mapped to the consuming migration
    produces : dict[str, Migration]
        UID produced by the stage, mapped to the producing migration
    renames : dict[str, str]
        Source UID to destination UID for ``modify`` migrations
    deletes : set[str]
        UIDs removed by the stage
    creates : set[str]
        UIDs created by the stage
    """

    index: int
    title: str
    consumes: dict[str, Migration] = field(default_factory=dict)
    produces: dict[str, Migration] = field(default_factory=dict)
    renames: dict[str, str] = field(default_factory=dict)
    deletes: set[str] = field(default_factory=set)
    creates: set[str] = field(default_factory=set)

    def _consume(self, uid: str, migration: Migration, errors: list[str]) -> None:
        if uid in self.consumes:
            errors.append(f'UID "{uid}" consumed multiple times in stage "{self.title}"')
        self.consumes[uid] = migration

    def _produce(self, uid: str, migration: Migration, errors: list[str]) -> None:
        if uid in self.produces:
            errors.append(f'UID "{uid}" produced multiple times in stage "{self.title}"')
        self.produces[uid] = migration

    def lint_consume_produce(self) -> list[str]:
        """Report UIDs that the stage both consumes and produces.

        Migrations inside a stage have no order, so such a UID usually means
        a rename chain that has to be split over two stages.
        """
        return [
            f'UID "{uid}" is both consumed and produced in stage "{self.title}" '
            "(unordered execution, likely a rename chain)"
            for uid in self.consumes
            if uid in self.produces
        ]


def _uids(migration: Migration) -> tuple[str, str]:
    source = migration.source.uid if migration.source is not None else ""
    destination = migration.destination.uid if migration.destination is not None else ""
    return source, destination


def summarize_stage(stage: MigrationStage, index: int) -> tuple[StageSummary, list[str]]:
    """Summarize the UID effects of a stage.

    Parameters
    ----------
    stage : MigrationStage
        Stage to summarize
    index : int
        Position of the stage within its migration group

    Returns
    -------
    tuple[StageSummary, list[str]]
        The summary and one message per UID consumed or produced twice.
        Migrations with an unknown action are ignored here; they are
        reported by ``validate_migration``.
    """
    summary = StageSummary(index=index, title=stage.title)
    errors: list[str] = []

    for migration in stage.migrations:
        source, destination = _uids(migration)
        match migration.action:
            case MigrationAction.MODIFY:
                summary._consume(source, migration, errors)
                summary._produce(destination, migration, errors)
                summary.renames[source] = destination
            case MigrationAction.REMOVE:
                summary._consume(source, migration, errors)
                summary.deletes.add(source)
            case MigrationAction.CREATE:
                summary._produce(destination, migration, errors)
                summary.creates.add(destination)

    return summary, errors


def validate_migration(migration: Migration) -> list[str]:
    """Check that a migration carries the UIDs its action needs.

    Examples
    --------
    >>> from bundlelint.kernel.domain.bundle import Migration
    >>> validate_migration(Migration(action="remove"))
    ['REMOVE migrations must have source defined']
    """
    source, destination = _uids(migration)
    match migration.action:
        case MigrationAction.REMOVE:
            if migration.source is None:
                return ["REMOVE migrations must have source defined"]
            if not source:
                return ["REMOVE migrations must have source.uid defined"]
        case MigrationAction.MODIFY:
            if migration.source is None or migration.destination is None:
                return ["MODIFY migrations must have both source and destination defined"]
            if not source or not destination:
                return ["MODIFY migrations must have both source.uid and destination.uid defined"]
        case MigrationAction.CREATE:
            if migration.destination is None:
                return ["CREATE migrations must have destination defined"]
            if not destination:
                return ["CREATE migrations must have destination.uid defined"]
        case _:
            return [f"unknown migration action: {migration.action.upper() or 'UNSPECIFIED'}"]
    return []


def lint_cross_stage(stages: Sequence[StageSummary], final: Iterable[str]) -> list[str]:
    """Check a sequence of stages against the UIDs of the final bundle.

    Stages are walked backwards. A UID produced by a stage must be part of
    the final state or be consumed by a later stage. A UID deleted or renamed
    by a stage must not be part of the final state unless a later stage
    produces it again.

    Parameters
    ----------
    stages : Sequence[StageSummary]
        Stage summaries in execution order
    final : Iterable[str]
        Query UIDs present in the final bundle

    Returns
    -------
    list[str]
        One message per violation, latest stage first
    """
    final_uids = set(final)
    errors: list[str] = []

    for i in range(len(stages) - 1, -1, -1):
        stage = stages[i]
        later_consumes: set[str] = set()
        later_produces: set[str] = set()
        for later in stages[i + 1 :]:
            later_consumes.update(later.consumes)
            later_produces.update(later.produces)

        for uid in stage.produces:
            if uid not in final_uids and uid not in later_consumes:
                errors.append(
                    f'stage "{stage.title}" produces UID "{uid}" which is not part of '
                    "final state and not consumed by later stages"
                )

        for uid in stage.consumes:
            if uid not in final_uids or uid in later_produces:
                continue
            if uid in stage.deletes:
                errors.append(
                    f'stage "{stage.title}" deletes UID "{uid}" which is still referenced '
                    "in final state"
                )
            elif stage.renames.get(uid):
                errors.append(
                    f'stage "{stage.title}" renames UID "{uid}" to "{stage.renames[uid]}", '
                    f'but "{uid}" is still referenced in final state'
                )

    return errors
