"""Diagnostic models for the bundle linter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from bundlelint.kernel.domain.bundle import FileContext

Level = Literal["error", "warning", "note", "none"]

LEVEL_ERROR: Level = "error"
LEVEL_WARNING: Level = "warning"
LEVEL_NOTE: Level = "note"
LEVEL_NONE: Level = "none"

_LEVEL_RANK: dict[str, int] = {"error": 0, "warning": 1, "note": 2, "none": 3}


def level_rank(level: str) -> int:
    """Sort rank of a level; unknown levels sort after ``none``."""
    return _LEVEL_RANK.get(level, len(_LEVEL_RANK))


@dataclass(frozen=True, slots=True)
class Location:
    """Position of a diagnostic in a bundle file."""

    file: str
    line: int = 1
    column: int = 1

    @classmethod
    def of(cls, file: str, position: FileContext) -> Location:
        """Location of a record, falling back to ``1:1`` when its position is unknown."""
        return cls(file=file, line=max(position.line, 1), column=max(position.column, 1))


@dataclass(frozen=True, slots=True)
class Entry:
    """A single rule violation."""

    rule_id: str
    level: Level
    message: str
    locations: tuple[Location, ...] = ()

    @property
    def location(self) -> Location | None:
        """First location, if any."""
        return self.locations[0] if self.locations else None


@dataclass(slots=True)
class Results:
    """Aggregated lint results of one invocation.

    Attributes
    ----------
    bundle_locations : list[str]
        Absolute paths of the linted files, in input order
    entries : list[Entry]
        Diagnostics in emission order
    cancelled : bool
        True when the run stopped early on cancellation
    """

    bundle_locations: list[str] = field(default_factory=list)
    entries: list[Entry] = field(default_factory=list)
    cancelled: bool = False

    def add(self, entry: Entry) -> None:
        """Add a diagnostic."""
        self.entries.append(entry)

    def extend(self, other: Results) -> None:
        """Merge another result into this one."""
        self.bundle_locations.extend(other.bundle_locations)
        self.entries.extend(other.entries)

    @property
    def errors(self) -> list[Entry]:
        """Entries with level 'error'."""
        return [e for e in self.entries if e.level == LEVEL_ERROR]

    @property
    def warnings(self) -> list[Entry]:
        """Entries with level 'warning'."""
        return [e for e in self.entries if e.level == LEVEL_WARNING]

    @property
    def has_error(self) -> bool:
        """True if any error-level entry exists."""
        return any(e.level == LEVEL_ERROR for e in self.entries)

    @property
    def has_warning(self) -> bool:
        """True if any warning-level entry exists."""
        return any(e.level == LEVEL_WARNING for e in self.entries)

    @property
    def is_clean(self) -> bool:
        """True if no entries were emitted."""
        return not self.entries

    def sorted_entries(self) -> list[Entry]:
        """Entries ordered by level (error first), then rule id; stable otherwise."""
        return sorted(self.entries, key=lambda e: (level_rank(e.level), e.rule_id))

    def by_rule(self, rule_id: str) -> list[Entry]:
        """Entries emitted by one rule."""
        return [e for e in self.entries if e.rule_id == rule_id]
