"""Per-file lint context and the indexer that builds it."""

from __future__ import annotations

from dataclasses import dataclass, field

from bundlelint.kernel.config.models import LintConfig
from bundlelint.kernel.domain.bundle import (
    Bundle,
    BundleRecord,
    Mquery,
    is_query_definition_complete,
)
from bundlelint.kernel.linting.models import Location


@dataclass(slots=True)
class LintContext:
    """Everything rules need to know about the file being linted.

    Attributes
    ----------
    file_path : str
        Absolute path of the file
    bundle : Bundle
        Parsed bundle
    config : LintConfig
        Effective configuration
    global_queries_by_uid : dict[str, Mquery]
        Top-level queries by UID; the first definition wins
    policy_uids_in_file : set[str]
        Policy UIDs seen so far, filled by the policy UID rule
    global_query_uids_in_file : set[str]
        Global query UIDs seen so far, filled by the query UID rule
    assigned_query_uids : set[str]
        UIDs referenced from any policy group, including variants
    query_usage_as_check : set[str]
        UIDs used in a group's ``checks``
    query_usage_as_data : set[str]
        UIDs used in a group's ``queries``
    variant_mapping : dict[str, str]
        Variant UID to parent UID
    embedded_queries : list[Mquery]
        Query definitions that are not global queries: those in policy
        groups and inline variants of global queries, in discovery order
    """

    file_path: str
    bundle: Bundle
    config: LintConfig = field(default_factory=LintConfig)
    global_queries_by_uid: dict[str, Mquery] = field(default_factory=dict)
    policy_uids_in_file: set[str] = field(default_factory=set)
    global_query_uids_in_file: set[str] = field(default_factory=set)
    assigned_query_uids: set[str] = field(default_factory=set)
    query_usage_as_check: set[str] = field(default_factory=set)
    query_usage_as_data: set[str] = field(default_factory=set)
    variant_mapping: dict[str, str] = field(default_factory=dict)
    embedded_queries: list[Mquery] = field(default_factory=list)
    _inline_variants: set[int] = field(default_factory=set)

    def location(self, record: BundleRecord) -> Location:
        """Location of a record in the current file."""
        return Location.of(self.file_path, record.file_context)

    def is_variant(self, query: Mquery) -> bool:
        """True if the query is listed as a variant of some other query."""
        if query.uid:
            return query.uid in self.variant_mapping
        return id(query) in self._inline_variants


class _Indexer:
    """Single depth-first walk over a bundle filling a ``LintContext``."""

    def __init__(self, ctx: LintContext) -> None:
        self.ctx = ctx
        self._embedded_ids: set[int] = set()
        self._expanded: set[str] = set()

    def run(self) -> LintContext:
        bundle = self.ctx.bundle
        for query in bundle.queries:
            if query.uid and query.uid not in self.ctx.global_queries_by_uid:
                self.ctx.global_queries_by_uid[query.uid] = query
        for query in bundle.queries:
            self._map_variants(query, set())
        for query in bundle.queries:
            for variant in query.variants:
                if (
                    is_query_definition_complete(variant)
                    and variant.uid not in self.ctx.global_queries_by_uid
                ):
                    self._add_embedded(variant)

        for policy in bundle.policies:
            for group in policy.groups:
                for check in group.checks:
                    self._index_group_query(check, self.ctx.query_usage_as_check)
                for query in group.queries:
                    self._index_group_query(query, self.ctx.query_usage_as_data)
        return self.ctx

    def _map_variants(self, parent: Mquery, visiting: set[int]) -> None:
        if id(parent) in visiting:
            return
        visiting.add(id(parent))
        for variant in parent.variants:
            if variant.uid:
                self.ctx.variant_mapping.setdefault(variant.uid, parent.uid)
            else:
                self.ctx._inline_variants.add(id(variant))
            self._map_variants(variant, visiting)

    def _index_group_query(self, query: Mquery, usage: set[str]) -> None:
        if query.uid:
            self.ctx.assigned_query_uids.add(query.uid)
            usage.add(query.uid)

        if is_query_definition_complete(query):
            # A definition sharing a global UID is that global query, not an embedded one
            if query.uid not in self.ctx.global_queries_by_uid:
                self._add_embedded(query)
            self._map_variants(query, set())
            self._assign_variants(query)
        elif query.uid in self.ctx.global_queries_by_uid:
            self._assign_variants(self.ctx.global_queries_by_uid[query.uid])

    def _add_embedded(self, query: Mquery) -> None:
        if id(query) in self._embedded_ids:
            return
        self._embedded_ids.add(id(query))
        self.ctx.embedded_queries.append(query)
        for variant in query.variants:
            if is_query_definition_complete(variant):
                self._add_embedded(variant)

    def _assign_variants(self, parent: Mquery) -> None:
        """Mark every variant below ``parent`` as assigned.

        Variant references are followed into the global queries they name;
        each global UID is expanded at most once, so cyclic variant lists
        terminate.
        """
        for variant in parent.variants:
            if not variant.uid:
                self._assign_variants(variant)
                continue
            self.ctx.assigned_query_uids.add(variant.uid)
            if variant.uid in self._expanded:
                continue
            self._expanded.add(variant.uid)
            self._assign_variants(variant)
            if (target := self.ctx.global_queries_by_uid.get(variant.uid)) is not None:
                self._assign_variants(target)


def build_lint_context(
    file_path: str, bundle: Bundle, config: LintConfig | None = None
) -> LintContext:
    """Index a parsed bundle into a fresh ``LintContext``.

    Within each policy group, checks are visited before data queries and a
    query before its variants, so diagnostics come out in a stable order.

    Parameters
    ----------
    file_path : str
        Absolute path of the file the bundle was read from
    bundle : Bundle
        Parsed bundle
    config : LintConfig | None
        Effective configuration, defaults if None

    Returns
    -------
    LintContext
        Context with all indexes filled; the ``*_in_file`` UID sets start
        empty and are filled while the uniqueness rules run
    """
    ctx = LintContext(file_path=file_path, bundle=bundle, config=config or LintConfig())
    return _Indexer(ctx).run()
