"""Tests for bundlelint.kernel.linting.context."""

from __future__ import annotations

from bundlelint.compiler.bundle_parser import parse_yaml
from bundlelint.kernel.config.models import LintConfig
from bundlelint.kernel.linting.context import build_lint_context
from bundlelint.kernel.linting.models import Location

FILE = "/bundles/test.mql.yaml"

BUNDLE = """\
policies:
  - uid: ssh-policy
    groups:
      - title: Checks
        checks:
          - uid: sshd-01
          - uid: sshd-inline
            title: Inline check
            mql: sshd.config.params['UsePAM'] == 'yes'
            variants:
              - uid: sshd-inline-linux
        queries:
          - uid: sshd-data
          - uid: sshd-01
queries:
  - uid: sshd-01
    title: Root login
    variants:
      - uid: sshd-01-linux
      - uid: sshd-01-mac
  - uid: sshd-01-linux
    mql: sshd.config.params['PermitRootLogin'] == 'no'
    variants:
      - uid: sshd-01-deep
  - uid: sshd-01-mac
    mql: 'true'
  - uid: sshd-data
    title: SSH params
    mql: sshd.config.params
  - uid: sshd-01
    title: Duplicate
    mql: 'false'
  - uid: unused-query
    mql: 'true'
"""


class TestBuildLintContext:
    def test_defaults(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert ctx.file_path == FILE
        assert ctx.config == LintConfig()
        assert ctx.policy_uids_in_file == set()
        assert ctx.global_query_uids_in_file == set()

    def test_config_passed_through(self) -> None:
        config = LintConfig(workers=2)
        assert build_lint_context(FILE, parse_yaml(BUNDLE), config).config is config

    def test_first_global_definition_wins(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert ctx.global_queries_by_uid["sshd-01"].title == "Root login"
        assert set(ctx.global_queries_by_uid) == {
            "sshd-01",
            "sshd-01-linux",
            "sshd-01-mac",
            "sshd-data",
            "unused-query",
        }

    def test_usage_sets(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert ctx.query_usage_as_check == {"sshd-01", "sshd-inline"}
        assert ctx.query_usage_as_data == {"sshd-data", "sshd-01"}

    def test_assigned_includes_variants(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert ctx.assigned_query_uids == {
            "sshd-01",
            "sshd-01-linux",
            "sshd-01-mac",
            "sshd-01-deep",
            "sshd-inline",
            "sshd-inline-linux",
            "sshd-data",
        }
        assert "unused-query" not in ctx.assigned_query_uids

    def test_variant_mapping(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert ctx.variant_mapping == {
            "sshd-01-linux": "sshd-01",
            "sshd-01-mac": "sshd-01",
            "sshd-01-deep": "sshd-01-linux",
            "sshd-inline-linux": "sshd-inline",
        }

    def test_embedded_queries(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(BUNDLE))
        assert [q.uid for q in ctx.embedded_queries] == ["sshd-inline"]

    def test_inline_variants_of_global_queries_are_embedded(self) -> None:
        bundle = parse_yaml(
            "queries:\n"
            "  - uid: parent-query\n"
            "    variants:\n"
            "      - uid: parent-query-linux\n"
            "        mql: 'true'\n"
            "      - uid: other-query\n"
            "        mql: 'true'\n"
            "      - uid: reference-only\n"
            "  - uid: other-query\n"
            "    mql: 'false'\n"
        )
        ctx = build_lint_context(FILE, bundle)
        assert [q.uid for q in ctx.embedded_queries] == ["parent-query-linux"]

    def test_is_variant(self) -> None:
        bundle = parse_yaml(BUNDLE)
        ctx = build_lint_context(FILE, bundle)
        by_uid = {q.uid: q for q in bundle.queries}
        assert ctx.is_variant(by_uid["sshd-01-linux"])
        assert not ctx.is_variant(by_uid["sshd-01"])

    def test_inline_variant_without_uid(self) -> None:
        bundle = parse_yaml(
            "queries:\n"
            "  - uid: parent-query\n"
            "    variants:\n"
            "      - mql: 'true'\n"
        )
        ctx = build_lint_context(FILE, bundle)
        parent = bundle.queries[0]
        assert ctx.is_variant(parent.variants[0])
        assert not ctx.is_variant(parent)

    def test_cyclic_variants_terminate(self) -> None:
        bundle = parse_yaml(
            "policies:\n"
            "  - uid: cycle-policy\n"
            "    groups:\n"
            "      - checks:\n"
            "          - uid: query-a\n"
            "queries:\n"
            "  - uid: query-a\n"
            "    variants:\n"
            "      - uid: query-b\n"
            "  - uid: query-b\n"
            "    variants:\n"
            "      - uid: query-a\n"
        )
        ctx = build_lint_context(FILE, bundle)
        assert ctx.assigned_query_uids == {"query-a", "query-b"}
        assert ctx.variant_mapping == {"query-b": "query-a", "query-a": "query-b"}

    def test_location(self) -> None:
        bundle = parse_yaml(BUNDLE)
        ctx = build_lint_context(FILE, bundle)
        assert ctx.location(bundle.policies[0]) == Location(FILE, 2, 5)
        assert ctx.location(bundle.queries[0]) == Location(FILE, 16, 5)

    def test_empty_bundle(self) -> None:
        ctx = build_lint_context(FILE, parse_yaml(""))
        assert ctx.embedded_queries == []
        assert ctx.assigned_query_uids == set()
