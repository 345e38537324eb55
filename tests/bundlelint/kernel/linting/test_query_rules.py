"""Tests for bundlelint.kernel.linting.query_rules."""

from __future__ import annotations

from bundlelint.compiler.bundle_parser import parse_yaml
from bundlelint.kernel.domain.bundle import Mquery
from bundlelint.kernel.linting.context import LintContext, build_lint_context
from bundlelint.kernel.linting.models import Entry, Location
from bundlelint.kernel.linting.policy_rules import BUNDLE_INVALID_UID
from bundlelint.kernel.linting.query_rules import (
    QueryDocsTooShortRule,
    QueryMissingMqlRule,
    QueryTitleRule,
    QueryUidRule,
    QueryUidUniqueRule,
    QueryUnassignedRule,
    QueryUsageConsistencyRule,
    QueryVariantFieldsRule,
    query_identifier,
)
from bundlelint.kernel.linting.rules import QueryLintInput

FILE = "/bundles/test.mql.yaml"


def _context(text: str) -> LintContext:
    return build_lint_context(FILE, parse_yaml(text))


def _run(rule, text: str) -> list[Entry]:
    """Run a query rule over global then embedded queries, like the linter does."""
    ctx = _context(text)
    entries: list[Entry] = []
    for query in ctx.bundle.queries:
        entries.extend(rule.check(ctx, QueryLintInput(query=query, is_global=True)))
    for query in ctx.embedded_queries:
        entries.extend(rule.check(ctx, QueryLintInput(query=query, is_global=False)))
    return entries


def test_query_identifier() -> None:
    assert query_identifier(Mquery(uid="sshd-01"), True) == "Global query 'sshd-01'"
    assert query_identifier(Mquery(uid="sshd-01"), False) == "Embedded query 'sshd-01'"
    bundle = parse_yaml("queries:\n  - title: Anonymous\n")
    assert query_identifier(bundle.queries[0], True) == "Global query at line 2"


class TestQueryUidRule:
    def test_missing_uid(self) -> None:
        entries = _run(QueryUidRule(), "queries:\n  - title: Anonymous\n    mql: 'true'\n")
        assert entries == [
            Entry(
                rule_id="query-uid",
                level="error",
                message="Global query at line 2 does not define a UID",
                locations=(Location(FILE, 2, 5),),
            )
        ]

    def test_invalid_uid(self) -> None:
        entries = _run(QueryUidRule(), "queries:\n  - uid: Bad Uid\n")
        assert [(e.rule_id, e.message) for e in entries] == [
            (BUNDLE_INVALID_UID, "Global query 'Bad Uid' UID does not meet the requirements")
        ]

    def test_embedded_queries_skipped(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - title: Inline without uid\n"
            "            mql: 'true'\n"
        )
        assert _run(QueryUidRule(), text) == []


class TestQueryUidUniqueRule:
    def test_duplicate(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
            "  - uid: sshd-01\n"
            "    mql: 'false'\n"
            "  - uid: sshd-01\n"
        )
        entries = _run(QueryUidUniqueRule(), text)
        assert [e.locations[0].line for e in entries] == [4, 6]
        assert entries[0].message == (
            "Global query UID 'sshd-01' is used multiple times in the same file"
        )

    def test_embedded_same_uid_not_counted(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-01\n"
            "            mql: 'true'\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryUidUniqueRule(), text) == []


class TestQueryTitleRule:
    def test_missing_title(self) -> None:
        entries = _run(QueryTitleRule(), "queries:\n  - uid: sshd-01\n    mql: 'true'\n")
        assert [e.message for e in entries] == ["Global query 'sshd-01' does not define a title"]

    def test_variants_need_no_title(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryTitleRule(), text) == []

    def test_embedded_definition(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-inline\n"
            "            mql: 'true'\n"
        )
        entries = _run(QueryTitleRule(), text)
        assert [e.message for e in entries] == [
            "Embedded query 'sshd-inline' does not define a title"
        ]
        assert entries[0].locations == (Location(FILE, 5, 13),)


class TestQueryVariantFieldsRule:
    def test_variant_with_forbidden_fields(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    title: Linux\n"
            "    impact: 80\n"
            "    tags:\n"
            "      os: linux\n"
            "    mql: 'true'\n"
            "    variants:\n"
            "      - uid: sshd-01-deep\n"
        )
        entries = _run(QueryVariantFieldsRule(), text)
        assert [e.message for e in entries] == [
            "Query variant 'sshd-01-linux' should not define 'impact'",
            "Query variant 'sshd-01-linux' should not define 'title'",
            "Query variant 'sshd-01-linux' should not define 'tags'",
            "Query variant 'sshd-01-linux' should not define nested 'variants'",
        ]
        assert {e.level for e in entries} == {"error"}
        assert {e.locations[0].line for e in entries} == {6}

    def test_plain_variant(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    mql: 'true'\n"
            "    filters: 'true'\n"
        )
        assert _run(QueryVariantFieldsRule(), text) == []

    def test_parent_with_tags(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    tags:\n"
            "      mondoo.com/category: security\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryVariantFieldsRule(), text) == []

    def test_inline_variant_of_global_query(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "        title: Linux\n"
            "        mql: 'true'\n"
        )
        entries = _run(QueryVariantFieldsRule(), text)
        assert [e.message for e in entries] == [
            "Query variant 'sshd-01-linux' should not define 'title'"
        ]
        assert entries[0].locations == (Location(FILE, 5, 9),)

    def test_non_variant_may_define_fields(self) -> None:
        text = "queries:\n  - uid: sshd-01\n    title: Root login\n    impact: 80\n"
        assert _run(QueryVariantFieldsRule(), text) == []


class TestQueryMissingMqlRule:
    def test_query_without_mql_or_variants(self) -> None:
        entries = _run(QueryMissingMqlRule(), "queries:\n  - uid: sshd-01\n    title: Root\n")
        assert [e.message for e in entries] == [
            "Global query 'sshd-01' has no variants and must define MQL"
        ]

    def test_parent_with_variants(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
        )
        entries = _run(QueryMissingMqlRule(), text)
        assert [e.message for e in entries] == ["Query variant 'sshd-01-linux' must define MQL"]
        assert entries[0].locations[0].line == 5

    def test_inline_variant_without_mql(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "        tags:\n"
            "          os: linux\n"
        )
        entries = _run(QueryMissingMqlRule(), text)
        assert [e.message for e in entries] == ["Query variant 'sshd-01-linux' must define MQL"]

    def test_embedded_reference_not_checked(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-01\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryMissingMqlRule(), text) == []


class TestQueryDocsTooShortRule:
    LONG = "x" * 51

    def _text(self, audit: str, desc: str, remediation: str = "") -> str:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    title: Root login\n"
            "    mql: 'true'\n"
            "    docs:\n"
            f"      audit: {audit}\n"
            f"      desc: {desc}\n"
        )
        if remediation:
            text += f"      remediation:\n        - id: cli\n          desc: {remediation}\n"
        return text

    def test_long_docs(self) -> None:
        assert _run(QueryDocsTooShortRule(), self._text(self.LONG, self.LONG, self.LONG)) == []

    def test_short_docs(self) -> None:
        entries = _run(QueryDocsTooShortRule(), self._text("Check it", "x" * 50, "Fix it"))
        assert [e.message for e in entries] == [
            "Global query 'sshd-01' must define longer audit text (min 50 chars)",
            "Global query 'sshd-01' must define longer description text (min 50 chars)",
            "Global query 'sshd-01' remediation item 'cli' must have longer description "
            "(min 50 chars)",
        ]
        assert {e.level for e in entries} == {"error"}
        assert {e.locations[0].line for e in entries} == {2}

    def test_no_docs(self) -> None:
        text = "queries:\n  - uid: sshd-01\n    title: Root login\n    mql: 'true'\n"
        assert _run(QueryDocsTooShortRule(), text) == []

    def test_variants_skipped(self) -> None:
        text = (
            "queries:\n"
            "  - uid: sshd-01\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    mql: 'true'\n"
            "    docs:\n"
            "      desc: Short\n"
        )
        entries = _run(QueryDocsTooShortRule(), text)
        assert entries == []

    def test_embedded_definition(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-inline\n"
            "            mql: 'true'\n"
            "            docs:\n"
            f"              audit: {self.LONG}\n"
            "              desc: Short\n"
        )
        entries = _run(QueryDocsTooShortRule(), text)
        assert [e.message for e in entries] == [
            "Embedded query 'sshd-inline' must define longer description text (min 50 chars)"
        ]


class TestQueryUnassignedRule:
    def test_unassigned(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-01\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
            "  - uid: sshd-02\n"
            "    mql: 'true'\n"
        )
        entries = _run(QueryUnassignedRule(), text)
        assert [(e.level, e.message) for e in entries] == [
            ("warning", "Global query UID 'sshd-02' is defined but not assigned to any policy")
        ]

    def test_variants_of_assigned_query(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - queries:\n"
            "          - uid: sshd-01\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    variants:\n"
            "      - uid: sshd-01-linux\n"
            "  - uid: sshd-01-linux\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryUnassignedRule(), text) == []

    def test_no_policies(self) -> None:
        entries = _run(QueryUnassignedRule(), "queries:\n  - uid: sshd-01\n    mql: 'true'\n")
        assert len(entries) == 1


class TestQueryUsageConsistencyRule:
    def test_check_and_data(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-01\n"
            "      - queries:\n"
            "          - uid: sshd-01\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
        )
        entries = _run(QueryUsageConsistencyRule(), text)
        assert [e.message for e in entries] == [
            "Query UID 'sshd-01' is used as both a check and a data query in policies"
        ]
        assert entries[0].locations[0].line == 9

    def test_single_usage(self) -> None:
        text = (
            "policies:\n"
            "  - uid: ssh-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: sshd-01\n"
            "queries:\n"
            "  - uid: sshd-01\n"
            "    mql: 'true'\n"
        )
        assert _run(QueryUsageConsistencyRule(), text) == []
