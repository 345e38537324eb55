"""SARIF v2.1.0 rendering of lint results.

The document has a single run whose driver describes every registered rule;
results reference their rule by id and registration index.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bundlelint.kernel.linting.models import Location, Results
from bundlelint.kernel.linting.registry import default_registry
from bundlelint.kernel.linting.rules import RuleRegistry

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
TOOL_NAME = "cnspec"
TOOL_URI = "https://cnspec.io"
SRCROOT = "%SRCROOT%"

# Largest line/column many SARIF consumers accept
_MAX_SAFE_POSITION = 2**31 - 1

_SARIF_LEVELS = {"error": "error", "warning": "warning", "note": "note"}


class _SarifModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Message(_SarifModel):
    text: str


class ReportingDescriptor(_SarifModel):
    id: str
    name: str
    short_description: Message
    full_description: Message | None = None


class ToolComponent(_SarifModel):
    name: str
    information_uri: str
    rules: list[ReportingDescriptor] = Field(default_factory=list)


class Tool(_SarifModel):
    driver: ToolComponent


class ArtifactLocation(_SarifModel):
    uri: str
    uri_base_id: str | None = None


class Artifact(_SarifModel):
    location: ArtifactLocation


class Region(_SarifModel):
    start_line: int
    start_column: int


class PhysicalLocation(_SarifModel):
    artifact_location: ArtifactLocation
    region: Region


class SarifLocation(_SarifModel):
    physical_location: PhysicalLocation


class SarifResult(_SarifModel):
    rule_id: str
    rule_index: int | None = None
    level: str
    message: Message
    locations: list[SarifLocation] = Field(default_factory=list)


class Run(_SarifModel):
    tool: Tool
    artifacts: list[Artifact] = Field(default_factory=list)
    results: list[SarifResult] = Field(default_factory=list)


class SarifReport(_SarifModel):
    schema_uri: str = Field(default=SARIF_SCHEMA, alias="$schema")
    version: str = SARIF_VERSION
    runs: list[Run] = Field(default_factory=list)


def _rule_index(registry: RuleRegistry, rule_id: str) -> int | None:
    index = registry.index_of(rule_id)
    return index if index >= 0 else None


def to_sarif_level(level: str) -> str:
    """Map an entry level onto a SARIF level; unknown levels become ``none``."""
    return _SARIF_LEVELS.get(level.lower(), "none")


def sanitize_position(value: int) -> int:
    """Replace line/column values outside ``1..2**31-1`` with 1."""
    if value <= 0 or value > _MAX_SAFE_POSITION:
        return 1
    return value


def artifact_location(root_dir: Path | None, filename: str) -> ArtifactLocation:
    """Artifact location of a file, relative to ``root_dir`` when possible."""
    if root_dir is not None:
        try:
            relative = Path(filename).relative_to(root_dir, walk_up=True)
        except ValueError:
            pass
        else:
            return ArtifactLocation(uri=relative.as_posix(), uri_base_id=SRCROOT)

    if "://" not in filename:
        filename = "file://" + filename
    return ArtifactLocation(uri=filename)


def _sarif_location(root_dir: Path | None, location: Location) -> SarifLocation:
    return SarifLocation(
        physical_location=PhysicalLocation(
            artifact_location=artifact_location(root_dir, location.file),
            region=Region(
                start_line=sanitize_position(location.line),
                start_column=sanitize_position(location.column),
            ),
        )
    )


def build_sarif_report(
    results: Results,
    root_dir: str | Path | None = None,
    registry: RuleRegistry | None = None,
) -> SarifReport:
    """Build the SARIF document for a set of results.

    Parameters
    ----------
    results : Results
        Lint results; entries keep their emission order
    root_dir : str | Path | None
        Directory artifact URIs are made relative to; absolute ``file://``
        URIs are used when None
    registry : RuleRegistry | None
        Registry providing the rule descriptors, the default rule set if None
    """
    registry = registry or default_registry()
    root = Path(root_dir).absolute() if root_dir is not None else None

    driver = ToolComponent(
        name=TOOL_NAME,
        information_uri=TOOL_URI,
        rules=[
            ReportingDescriptor(
                id=rule.rule_id,
                name=rule.name,
                short_description=Message(text=rule.description),
            )
            for rule in registry.rules
        ],
    )
    run = Run(
        tool=Tool(driver=driver),
        artifacts=[
            Artifact(location=artifact_location(root, file)) for file in results.bundle_locations
        ],
        results=[
            SarifResult(
                rule_id=entry.rule_id,
                rule_index=_rule_index(registry, entry.rule_id),
                level=to_sarif_level(entry.level),
                message=Message(text=entry.message),
                locations=[_sarif_location(root, location) for location in entry.locations],
            )
            for entry in results.entries
        ],
    )
    return SarifReport(runs=[run])


def render_sarif(
    results: Results,
    root_dir: str | Path | None = None,
    registry: RuleRegistry | None = None,
) -> str:
    """Serialize the SARIF document as indented JSON."""
    report = build_sarif_report(results, root_dir, registry)
    return report.model_dump_json(by_alias=True, exclude_none=True, indent=2)
