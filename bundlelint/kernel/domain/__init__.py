"""Domain layer exports: the typed bundle tree and identifier syntax."""

from bundlelint.kernel.domain.bundle import (
    Bundle,
    FileContext,
    Filters,
    Impact,
    Migration,
    MigrationGroup,
    MigrationStage,
    Mquery,
    Policy,
    PolicyGroup,
    Property,
    is_query_definition_complete,
)
from bundlelint.kernel.domain.identifiers import is_semver, is_valid_uid

__all__ = [
    "Bundle",
    "FileContext",
    "Filters",
    "Impact",
    "Migration",
    "MigrationGroup",
    "MigrationStage",
    "Mquery",
    "Policy",
    "PolicyGroup",
    "Property",
    "is_query_definition_complete",
    "is_semver",
    "is_valid_uid",
]
