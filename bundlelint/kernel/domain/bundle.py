"""Typed policy bundle tree.

Every record derives from ``BundleRecord``, a pydantic model that rejects
unknown keys and remembers the 1-based ``(line, column)`` of the YAML node it
was decoded from. Positions never take part in equality or serialization.

The parser hands records position-carrying containers (``PositionedDict`` and
``PositionedList``); records decoded from bare scalars (a string ``filters``,
an integer ``impact``) receive the position of the value node recorded by the
parent mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    SerializerFunctionWrapHandler,
    ValidatorFunctionWrapHandler,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)

# ---------------------------------------------------------------------------
# Source positions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileContext:
    """1-based source position of a record. ``(0, 0)`` means unknown."""

    line: int = 0
    column: int = 0

    @property
    def is_known(self) -> bool:
        return self.line > 0


class PositionedDict(dict):
    """Mapping decoded from YAML, remembering where it and its entries start."""

    __slots__ = ("position", "key_positions", "value_positions")

    def __init__(self, position: FileContext) -> None:
        super().__init__()
        self.position = position
        self.key_positions: dict[str, FileContext] = {}
        self.value_positions: dict[str, FileContext] = {}


class PositionedList(list):
    """Sequence decoded from YAML, remembering where it and its items start."""

    __slots__ = ("position", "item_positions")

    def __init__(self, position: FileContext) -> None:
        super().__init__()
        self.position = position
        self.item_positions: list[FileContext] = []


def position_of(raw: Any) -> FileContext | None:
    """Return the source position of a decoded container, if it has one."""
    if isinstance(raw, PositionedDict | PositionedList):
        return raw.position
    return None


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class _LowercaseEnum(StrEnum):
    """StrEnum matched case-insensitively against its values."""

    @classmethod
    def _missing_(cls, value: object) -> Self | None:
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class QueryAction(_LowercaseEnum):
    """What a policy does with a query it references."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    MODIFY = "modify"
    PREVIEW = "preview"
    OUT_OF_SCOPE = "out_of_scope"

    @classmethod
    def _missing_(cls, value: object) -> Self | None:
        if isinstance(value, str) and value.strip().lower() == "ignore":
            return cls.PREVIEW
        return super()._missing_(value)


class ScoringSystem(_LowercaseEnum):
    """Scoring systems for policies and query impacts."""

    AVERAGE = "average"
    WEIGHTED = "weighted"
    WORST = "worst"
    BANDED = "banded"
    DECAYED = "decayed"
    HIGHEST_IMPACT = "highest_impact"
    IGNORE_SCORE = "ignore_score"
    DATA_ONLY = "data_only"
    DISABLED = "disabled"


class GroupType(_LowercaseEnum):
    """Kind of policy group."""

    UNCATEGORIZED = "uncategorized"
    CHAPTER = "chapter"
    IMPORT = "import"
    OVERRIDE = "override"
    IGNORED = "ignored"
    DISABLE = "disable"
    OUT_OF_SCOPE = "out_of_scope"


# ---------------------------------------------------------------------------
# Base record
# ---------------------------------------------------------------------------


class BundleRecord(BaseModel):
    """Base class for every bundle record.

    Subclasses that accept more than one YAML shape override
    ``coerce_shape`` to turn the alternative shapes into the plain record
    mapping.
    """

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    _file_context: FileContext = PrivateAttr(default_factory=FileContext)

    @property
    def file_context(self) -> FileContext:
        """Source position of this record."""
        return self._file_context

    def with_position(self, position: FileContext) -> Self:
        """Set the source position if it is still unknown and return self."""
        if not self._file_context.is_known:
            self._file_context = position
        return self

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        """Turn an alternative YAML shape into the record mapping."""
        return data

    @model_validator(mode="wrap")
    @classmethod
    def attach_position(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        """Decode the record and copy the source node position onto it."""
        if isinstance(data, BundleRecord):
            return handler(data)

        shaped = cls.coerce_shape(data)
        if isinstance(shaped, dict):
            shaped = {key: value for key, value in shaped.items() if value is not None}
        record = handler(shaped)

        if (position := position_of(data)) is not None:
            record._file_context = position
        if isinstance(data, PositionedDict):
            for key, value_position in data.value_positions.items():
                child = getattr(record, key, None) if key in type(record).model_fields else None
                if isinstance(child, BundleRecord):
                    child.with_position(value_position)
        return record

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.__dict__ == other.__dict__

    __hash__ = None  # type: ignore[assignment]


def _sorted_tags(tags: dict[str, str]) -> dict[str, str]:
    return dict(sorted(tags.items()))


# ---------------------------------------------------------------------------
# Query records
# ---------------------------------------------------------------------------


class MqueryRef(BundleRecord):
    """External reference attached to a query's documentation."""

    title: str = ""
    url: str = ""


class TypedDoc(BundleRecord):
    """One remediation entry."""

    id: str = ""
    desc: str = ""


class Remediation(BundleRecord):
    """Remediation guidance.

    Accepts a bare string (one item with id ``default``), a sequence of
    ``{id, desc}`` items, or ``{items: [...]}``.
    """

    items: list[TypedDoc] = Field(default_factory=list)

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"items": [{"id": "default", "desc": data}]}
        if isinstance(data, list):
            return {"items": data}
        if isinstance(data, dict):
            return data
        raise ValueError(
            "can't unmarshal remediation: expected a string, a sequence of "
            f"{{id, desc}} items or a mapping with 'items', got {type(data).__name__}"
        )

    @model_serializer(mode="wrap")
    def preserve_shape(self, handler: SerializerFunctionWrapHandler) -> Any:
        if len(self.items) == 1 and self.items[0].id == "default":
            return self.items[0].desc
        return handler(self).get("items", [])


class MqueryDocs(BundleRecord):
    """Documentation of a query."""

    desc: str = ""
    audit: str = ""
    remediation: Remediation | None = None
    refs: list[MqueryRef] = Field(default_factory=list)


class ImpactValue(BundleRecord):
    """Numeric impact, 0..100."""

    value: int = 0

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        if isinstance(data, int) and not isinstance(data, bool):
            return {"value": data}
        return data


class Impact(BundleRecord):
    """Impact of a failing check.

    Accepts a bare integer (``{value: {value: N}}``) or the full record.
    """

    value: ImpactValue | None = None
    scoring: ScoringSystem | None = None
    weight: int = 0
    action: QueryAction | None = None

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        if isinstance(data, int) and not isinstance(data, bool):
            return {"value": {"value": data}}
        if isinstance(data, dict):
            return data
        raise ValueError(
            "can't unmarshal impact: expected an integer or a mapping, "
            f"got {type(data).__name__}"
        )

    @model_serializer(mode="wrap")
    def preserve_shape(self, handler: SerializerFunctionWrapHandler) -> Any:
        if self.scoring is None and self.action is None and self.weight < 1:
            # An empty record stays a mapping so it reads back as an Impact
            return {} if self.value is None else self.value.value
        return handler(self)


class Property(BundleRecord):
    """Property that can be overridden by policies."""

    uid: str = ""
    mrn: str = ""
    title: str = ""
    type: str = ""
    desc: str = ""
    mql: str = ""


class Filters(BundleRecord):
    """Asset filters, keyed by position or by name.

    Shapes are probed in order: a bare string (key ``""``), a sequence of
    strings and/or query mappings (keys ``"0"``, ``"1"``, ...), a mapping
    ``{items: {key: query}}`` and finally a plain ``{key: query}`` mapping.
    """

    items: dict[str, Mquery] = Field(default_factory=dict)

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        attempts: list[str] = []

        if isinstance(data, str):
            return {"items": {"": {"mql": data}}}
        attempts.append("string")

        if isinstance(data, list):
            items: dict[str, Any] = {}
            for index, item in enumerate(data):
                if isinstance(item, str):
                    items[str(index)] = _positioned_mql(data, index, item)
                elif isinstance(item, dict):
                    items[str(index)] = item
                else:
                    break
            else:
                return {"items": items}
        attempts.append("sequence of strings or queries")

        if isinstance(data, dict):
            if set(data) == {"items"} and isinstance(data["items"], dict):
                return data
            attempts.append("mapping with 'items'")
            if all(isinstance(value, dict) for value in data.values()):
                return {"items": data}
            attempts.append("mapping of queries")
        else:
            attempts.extend(["mapping with 'items'", "mapping of queries"])

        raise ValueError(f"can't unmarshal filters: tried {', '.join(attempts)}")

    @model_serializer(mode="wrap")
    def preserve_shape(self, handler: SerializerFunctionWrapHandler) -> Any:
        dumped: dict[str, Any] = handler(self).get("items", {})
        keys = list(self.items)
        if keys == [""] and _is_mql_only(self.items[""]):
            return self.items[""].mql
        if keys == [str(i) for i in range(len(keys))]:
            return [
                self.items[key].mql if _is_mql_only(self.items[key]) else dumped[key]
                for key in keys
            ]
        return {"items": dumped}


def _positioned_mql(data: list, index: int, mql: str) -> dict[str, Any]:
    if isinstance(data, PositionedList) and index < len(data.item_positions):
        item = PositionedDict(data.item_positions[index])
        item["mql"] = mql
        return item
    return {"mql": mql}


def _is_mql_only(query: Mquery) -> bool:
    return query.model_dump(exclude_defaults=True, exclude={"mql"}) == {}


class Mquery(BundleRecord):
    """A query: check, data query, variant, filter or reference."""

    uid: str = ""
    mrn: str = ""
    title: str = ""
    impact: Impact | None = None
    action: QueryAction | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    filters: Filters | None = None
    props: list[Property] = Field(default_factory=list)
    mql: str = ""
    variants: list[Mquery] = Field(default_factory=list)
    docs: MqueryDocs | None = None
    refs: list[MqueryRef] = Field(default_factory=list)

    @field_serializer("tags")
    def _serialize_tags(self, tags: dict[str, str]) -> dict[str, str]:
        return _sorted_tags(tags)

    @property
    def is_definition(self) -> bool:
        """True unless the query only points at another query by UID."""
        return is_query_definition_complete(self)


def is_query_definition_complete(query: Mquery) -> bool:
    """Return True when the query carries a body rather than just a reference.

    A query is a definition when any of mql, title, variants or docs.desc is
    set; otherwise it is a reference to a query defined elsewhere.
    """
    return bool(
        query.mql or query.title or query.variants or (query.docs is not None and query.docs.desc)
    )


# ---------------------------------------------------------------------------
# Policy records
# ---------------------------------------------------------------------------


class Author(BundleRecord):
    """Policy author."""

    name: str = ""
    email: str = ""


class Requirement(BundleRecord):
    """Provider a policy requires."""

    provider: str = ""
    id: str = ""


class PolicyDocs(BundleRecord):
    """Documentation of a policy or bundle."""

    desc: str = ""


class PolicyGroupDocs(BundleRecord):
    """Documentation of a policy group."""

    desc: str = ""


class PolicyRef(BundleRecord):
    """Reference from a group to another policy, by MRN or UID."""

    mrn: str = ""
    uid: str = ""
    action: QueryAction | None = None
    impact: Impact | None = None


class PolicyGroup(BundleRecord):
    """Group of checks, data queries and sub-policies."""

    title: str = ""
    type: GroupType | None = None
    filters: Filters | None = None
    start_date: str = ""
    end_date: str = ""
    reminder_date: str = ""
    checks: list[Mquery] = Field(default_factory=list)
    queries: list[Mquery] = Field(default_factory=list)
    policies: list[PolicyRef] = Field(default_factory=list)
    docs: PolicyGroupDocs | None = None

    def is_empty(self) -> bool:
        """True when the group holds no checks, data queries or sub-policies."""
        return not (self.checks or self.queries or self.policies)


class Policy(BundleRecord):
    """A named, versioned collection of groups."""

    uid: str = ""
    mrn: str = ""
    name: str = ""
    version: str = ""
    license: str = ""
    tags: dict[str, str] = Field(default_factory=dict)
    authors: list[Author] = Field(default_factory=list)
    docs: PolicyDocs | None = None
    summary: str = ""
    owner_mrn: str = ""
    require: list[Requirement] = Field(default_factory=list)
    props: list[Property] = Field(default_factory=list)
    groups: list[PolicyGroup] = Field(default_factory=list)
    scoring_system: ScoringSystem | None = None

    @field_serializer("tags")
    def _serialize_tags(self, tags: dict[str, str]) -> dict[str, str]:
        return _sorted_tags(tags)


# ---------------------------------------------------------------------------
# Migration records
# ---------------------------------------------------------------------------


class MigrationAction(_LowercaseEnum):
    """Known migration actions."""

    CREATE = "create"
    REMOVE = "remove"
    MODIFY = "modify"


class MigrationTarget(BundleRecord):
    """Source or destination of a migration."""

    uid: str = ""
    sha256: str = ""


class Migration(BundleRecord):
    """One query migration.

    ``action`` stays a free string so that unknown actions are reported by
    the migration rules instead of failing the parse.
    """

    action: str = ""
    source: MigrationTarget | None = None
    destination: MigrationTarget | None = None

    @field_validator("action")
    @classmethod
    def _normalize_action(cls, value: str) -> str:
        return value.strip().lower()


class MigrationStage(BundleRecord):
    """Ordered step of a migration group."""

    title: str = ""
    migrations: list[Migration] = Field(default_factory=list)


class PolicyVersionRef(BundleRecord):
    """Policy UID and version a migration group applies to."""

    uid: str = ""
    version: str = ""


class MigrationConditions(BundleRecord):
    """Source and target policy of a migration group."""

    source_policy: PolicyVersionRef | None = None
    target_policy: PolicyVersionRef | None = None


class MigrationGroup(BundleRecord):
    """Ordered migration stages moving query UIDs between policy versions."""

    title: str = ""
    conditions: MigrationConditions | None = None
    stages: list[MigrationStage] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


class Bundle(BundleRecord):
    """A single policy bundle document."""

    TOP_LEVEL_KEYS: ClassVar[tuple[str, ...]] = (
        "owner_mrn",
        "policies",
        "queries",
        "props",
        "docs",
        "migration_groups",
    )

    owner_mrn: str = ""
    policies: list[Policy] = Field(default_factory=list)
    props: list[Property] = Field(default_factory=list)
    queries: list[Mquery] = Field(default_factory=list)
    docs: PolicyDocs | None = None
    migration_groups: list[MigrationGroup] = Field(default_factory=list)

    @classmethod
    def coerce_shape(cls, data: Any) -> Any:
        if data is None:
            return {}
        return data


Filters.model_rebuild()
Mquery.model_rebuild()
