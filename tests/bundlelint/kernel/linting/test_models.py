"""Tests for bundlelint.kernel.linting.models."""

from __future__ import annotations

from bundlelint.kernel.domain.bundle import FileContext
from bundlelint.kernel.linting.models import Entry, Location, Results, level_rank


def _entry(rule_id: str, level: str = "error") -> Entry:
    return Entry(rule_id=rule_id, level=level, message=f"{rule_id} failed")


class TestLocation:
    def test_of_known_position(self) -> None:
        assert Location.of("/a.mql.yaml", FileContext(3, 7)) == Location("/a.mql.yaml", 3, 7)

    def test_of_unknown_position(self) -> None:
        assert Location.of("/a.mql.yaml", FileContext()) == Location("/a.mql.yaml", 1, 1)


class TestEntry:
    def test_first_location(self) -> None:
        entry = Entry(
            "rule-a",
            "error",
            "msg",
            (Location("/a.mql.yaml", 2, 1), Location("/b.mql.yaml", 1, 1)),
        )
        assert entry.location == Location("/a.mql.yaml", 2, 1)
        assert _entry("rule-a").location is None


class TestResults:
    def test_levels(self) -> None:
        results = Results(entries=[_entry("rule-a", "warning"), _entry("rule-b", "note")])
        assert results.has_warning
        assert not results.has_error
        assert results.warnings == [results.entries[0]]
        assert results.errors == []
        assert not results.is_clean

        results.add(_entry("rule-c"))
        assert results.has_error
        assert [e.rule_id for e in results.errors] == ["rule-c"]

    def test_empty(self) -> None:
        results = Results()
        assert results.is_clean
        assert not results.has_error
        assert not results.cancelled

    def test_sorted_entries(self) -> None:
        results = Results(
            entries=[
                _entry("query-name", "warning"),
                _entry("policy-uid", "error"),
                _entry("bundle-invalid", "note"),
                _entry("bundle-compile-error", "error"),
                _entry("odd", "custom"),
            ]
        )
        assert [e.rule_id for e in results.sorted_entries()] == [
            "bundle-compile-error",
            "policy-uid",
            "query-name",
            "bundle-invalid",
            "odd",
        ]
        assert results.entries[0].rule_id == "query-name"

    def test_sort_is_stable_within_rule(self) -> None:
        first = Entry("rule-a", "error", "first")
        second = Entry("rule-a", "error", "second")
        assert Results(entries=[first, second]).sorted_entries() == [first, second]

    def test_extend(self) -> None:
        results = Results(bundle_locations=["/a.mql.yaml"], entries=[_entry("rule-a")])
        results.extend(Results(bundle_locations=["/b.mql.yaml"], entries=[_entry("rule-b")]))
        assert results.bundle_locations == ["/a.mql.yaml", "/b.mql.yaml"]
        assert [e.rule_id for e in results.entries] == ["rule-a", "rule-b"]

    def test_by_rule(self) -> None:
        results = Results(entries=[_entry("rule-a"), _entry("rule-b"), _entry("rule-a")])
        assert len(results.by_rule("rule-a")) == 2


def test_level_rank() -> None:
    assert level_rank("error") < level_rank("warning") < level_rank("note") < level_rank("none")
    assert level_rank("unknown") > level_rank("none")
