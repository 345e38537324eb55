"""Query-level lint rules.

Query rules run over global queries (``is_global=True``) and over the query
definitions embedded in policy groups or written inline as variants of a
global query. Pure references are never handed to these rules.
"""

from __future__ import annotations

from bundlelint.kernel.domain.bundle import Mquery, is_query_definition_complete
from bundlelint.kernel.domain.identifiers import is_valid_uid
from bundlelint.kernel.linting.context import LintContext
from bundlelint.kernel.linting.models import Entry, Level
from bundlelint.kernel.linting.policy_rules import BUNDLE_INVALID_UID
from bundlelint.kernel.linting.rules import QueryLintInput, RuleKind

MIN_DOCS_LENGTH = 50


def query_identifier(query: Mquery, is_global: bool) -> str:
    """Human readable reference to a query for messages."""
    prefix = "Global query" if is_global else "Embedded query"
    if query.uid:
        return f"{prefix} '{query.uid}'"
    return f"{prefix} at line {query.file_context.line}"


def _variant_name(query: Mquery) -> str:
    return query.uid or f"at line {query.file_context.line}"


class _QueryRule:
    """Shared attributes of rules dispatched over queries."""

    rule_id: str
    name: str
    description: str
    severity: Level = "error"
    kind = RuleKind.QUERY

    def entry(self, ctx: LintContext, query: Mquery, message: str) -> Entry:
        return Entry(
            rule_id=self.rule_id,
            level=self.severity,
            message=message,
            locations=(ctx.location(query),),
        )


class QueryUidRule(_QueryRule):
    """Global queries need a well-formed UID.

    A malformed UID is reported under the shared ``bundle-invalid-uid`` id.
    """

    rule_id = "query-uid"
    name = "Query UID Validation"
    description = "Ensures global queries have a UID and that it is correctly formatted."

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if not item.is_global:
            return []
        if not query.uid:
            return [self.entry(ctx, query, f"{query_identifier(query, True)} does not define a UID")]
        if not is_valid_uid(query.uid):
            return [
                Entry(
                    rule_id=BUNDLE_INVALID_UID,
                    level="error",
                    message=f"{query_identifier(query, True)} UID does not meet the requirements",
                    locations=(ctx.location(query),),
                )
            ]
        return []


class QueryUidUniqueRule(_QueryRule):
    """Second and later global definitions of a UID in the same file."""

    rule_id = "query-uid-unique"
    name = "Query UID Uniqueness"
    description = "Ensures global query UIDs are unique within the file."

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if not item.is_global or not query.uid:
            return []
        if query.uid in ctx.global_query_uids_in_file:
            return [
                self.entry(
                    ctx,
                    query,
                    f"Global query UID '{query.uid}' is used multiple times in the same file",
                )
            ]
        ctx.global_query_uids_in_file.add(query.uid)
        return []


class QueryTitleRule(_QueryRule):
    rule_id = "query-name"
    name = "Query Title Presence"
    description = "Ensures non-variant queries have a `title` field."

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if query.title or ctx.is_variant(query):
            return []
        if not (item.is_global or is_query_definition_complete(query)):
            return []
        return [
            self.entry(ctx, query, f"{query_identifier(query, item.is_global)} does not define a title")
        ]


class QueryVariantFieldsRule(_QueryRule):
    """Variants inherit impact, title and tags from their parent and cannot nest."""

    rule_id = "query-variant-uses-non-default-fields"
    name = "Query Variant Field Restrictions"
    description = (
        "Ensures variant queries do not define fields like impact, title, tags, or nested variants."
    )

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if not ctx.is_variant(query):
            return []

        name = _variant_name(query)
        fields = [
            ("'impact'", query.impact is not None),
            ("'title'", bool(query.title)),
            ("'tags'", bool(query.tags)),
            ("nested 'variants'", bool(query.variants)),
        ]
        return [
            self.entry(ctx, query, f"Query variant '{name}' should not define {field}")
            for field, present in fields
            if present
        ]


class QueryMissingMqlRule(_QueryRule):
    """Variants need MQL; other queries need MQL unless they have variants."""

    rule_id = "query-missing-mql"
    name = "Query MQL Presence (for Variants and Non-Variant Parents)"
    description = (
        "Ensures variant queries have MQL. Ensures parent queries without variants have MQL."
    )

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if query.mql:
            return []
        if ctx.is_variant(query):
            return [self.entry(ctx, query, f"Query variant '{_variant_name(query)}' must define MQL")]
        if query.variants:
            return []
        if not (item.is_global or is_query_definition_complete(query)):
            return []
        return [
            self.entry(
                ctx,
                query,
                f"{query_identifier(query, item.is_global)} has no variants and must define MQL",
            )
        ]


class QueryDocsTooShortRule(_QueryRule):
    """Audit text, description and every remediation item need real content.

    Variants and pure references are skipped; queries without ``docs`` pass.
    """

    rule_id = "query-docs-too-short"
    name = "Query Documentation Length"
    description = (
        "Ensures query documentation (desc, audit, remediation desc) meets minimum length "
        f"of {MIN_DOCS_LENGTH} characters for non-variant queries."
    )

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        docs = query.docs
        if docs is None or ctx.is_variant(query):
            return []
        if not (item.is_global or is_query_definition_complete(query)):
            return []

        identifier = query_identifier(query, item.is_global)
        messages = []
        if len(docs.audit) <= MIN_DOCS_LENGTH:
            messages.append(
                f"{identifier} must define longer audit text (min {MIN_DOCS_LENGTH} chars)"
            )
        if len(docs.desc) <= MIN_DOCS_LENGTH:
            messages.append(
                f"{identifier} must define longer description text (min {MIN_DOCS_LENGTH} chars)"
            )
        if docs.remediation is not None:
            messages.extend(
                f"{identifier} remediation item '{remediation.id}' must have longer "
                f"description (min {MIN_DOCS_LENGTH} chars)"
                for remediation in docs.remediation.items
                if len(remediation.desc) <= MIN_DOCS_LENGTH
            )
        return [self.entry(ctx, query, message) for message in messages]


class QueryUnassignedRule(_QueryRule):
    """Global queries that no policy in the file references, directly or as a variant."""

    rule_id = "query-unassigned"
    name = "Unassigned Query"
    description = "Warns if a global query is defined but not assigned to any policy."
    severity: Level = "warning"

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if not item.is_global or not query.uid or ctx.is_variant(query):
            return []
        if query.uid in ctx.assigned_query_uids:
            return []
        return [
            self.entry(
                ctx,
                query,
                f"Global query UID '{query.uid}' is defined but not assigned to any policy",
            )
        ]


class QueryUsageConsistencyRule(_QueryRule):
    rule_id = "query-used-as-different-types"
    name = "Query Usage Consistency"
    description = "Ensures a query is not used as both a check and a data query within policies."

    def check(self, ctx: LintContext, item: QueryLintInput) -> list[Entry]:
        query = item.query
        if not query.uid:
            return []
        if query.uid in ctx.query_usage_as_check and query.uid in ctx.query_usage_as_data:
            return [
                self.entry(
                    ctx,
                    query,
                    f"Query UID '{query.uid}' is used as both a check and a data query in policies",
                )
            ]
        return []


ALL_QUERY_RULES: list[_QueryRule] = [
    QueryUidRule(),
    QueryUidUniqueRule(),
    QueryTitleRule(),
    QueryVariantFieldsRule(),
    QueryMissingMqlRule(),
    QueryDocsTooShortRule(),
    QueryUnassignedRule(),
    QueryUsageConsistencyRule(),
]
