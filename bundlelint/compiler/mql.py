"""Compilation of merged policy bundles.

The linter treats the MQL compiler as a black box: ``compile(bundle)`` either
returns or raises ``MqlCompileError`` with a message. ``BundleCompiler`` is
the built-in implementation; it resolves references across the merged
bundle and checks MQL for lexical errors without executing anything.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Protocol

from bundlelint.kernel.domain.bundle import (
    Bundle,
    Filters,
    Mquery,
    is_query_definition_complete,
)
from bundlelint.kernel.domain.identifiers import is_mrn
from bundlelint.kernel.exceptions import MqlCompileError
from bundlelint.kernel.logging import get_logger

logger = get_logger(__name__)

_BRACKETS = {"(": ")", "[": "]", "{": "}"}
_CLOSING = {close: open_ for open_, close in _BRACKETS.items()}
# A "/" after one of these starts a regex literal rather than a division
_REGEX_PRECEDERS = frozenset("(,[{=!&|:<>+-*%?~")
_DANGLING_OPERATORS = ("&&", "||", "==", "!=", "=", ".", ",")


class MqlCompiler(Protocol):
    """Compiles a merged bundle; raises ``MqlCompileError`` on failure."""

    def compile(self, bundle: Bundle) -> None: ...


def _scan_literal(mql: str, start: int, quote: str) -> int:
    """Index of the closing quote of the literal opened at ``start``, or -1."""
    i = start + 1
    while i < len(mql):
        ch = mql[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        if quote == "/" and ch == "\n":
            return -1
        i += 1
    return -1


def check_mql_syntax(mql: str) -> str | None:
    """Check an MQL snippet for lexical errors.

    Detects unbalanced brackets, unterminated string and regex literals and
    expressions that end in a binary operator. ``#`` and ``//`` start
    comments that run to the end of the line.

    Returns
    -------
    str | None
        Description of the first problem, or None if none was found

    Examples
    --------
    >>> check_mql_syntax("sshd.config.params['X11Forwarding'] == 'no'") is None
    True
    >>> check_mql_syntax("users.list { name == 'root' ")
    "missing '}' for '{' at offset 11"
    """
    stack: list[tuple[str, int]] = []
    previous = ""
    last_significant = -1
    i = 0
    while i < len(mql):
        ch = mql[i]
        if ch == "#" or mql.startswith("//", i):
            newline = mql.find("\n", i)
            i = len(mql) if newline < 0 else newline
            continue
        if ch in "\"'" or (ch == "/" and (not previous or previous in _REGEX_PRECEDERS)):
            end = _scan_literal(mql, i, ch)
            if end < 0:
                kind = "regex" if ch == "/" else "string"
                return f"unterminated {kind} literal at offset {i}"
            previous = ch
            last_significant = end
            i = end + 1
            continue
        if ch in _BRACKETS:
            stack.append((ch, i))
        elif ch in _CLOSING:
            if not stack or stack[-1][0] != _CLOSING[ch]:
                return f"unexpected '{ch}' at offset {i}"
            stack.pop()
        if not ch.isspace():
            previous = ch
            last_significant = i
        i += 1

    if stack:
        opener, offset = stack[-1]
        return f"missing '{_BRACKETS[opener]}' for '{opener}' at offset {offset}"
    code = mql[: last_significant + 1]
    if code.endswith(_DANGLING_OPERATORS):
        return "expression ends with an incomplete operator"
    return None


def _filter_queries(filters: Filters | None) -> Iterator[Mquery]:
    if filters is not None:
        yield from filters.items.values()


class BundleCompiler:
    """Structural compiler for merged bundles.

    Fails when a check, data query, variant or sub-policy reference does not
    resolve, when a query definition has neither MQL nor variants, or when
    any MQL snippet has a lexical error. MRN references point outside the
    bundle and are not resolved.
    """

    def compile(self, bundle: Bundle) -> None:
        problems = list(self._problems(bundle))
        if problems:
            logger.debug("Bundle failed to compile with {count} problems", count=len(problems))
            raise MqlCompileError("; ".join(problems))

    def _problems(self, bundle: Bundle) -> Iterator[str]:
        query_uids = {query.uid for query in bundle.queries if query.uid}
        policy_uids = {policy.uid for policy in bundle.policies if policy.uid}

        for prop in bundle.props:
            yield from self._check_mql(prop.mql, f"property '{prop.uid}'")

        for query in bundle.queries:
            yield from self._check_query(query, query_uids)

        for policy in bundle.policies:
            for prop in policy.props:
                yield from self._check_mql(prop.mql, f"property '{prop.uid}'")
            for group in policy.groups:
                for query in _filter_queries(group.filters):
                    yield from self._check_mql(query.mql, f"filter of policy '{policy.uid}'")
                for query in [*group.checks, *group.queries]:
                    if is_query_definition_complete(query):
                        yield from self._check_query(query, query_uids)
                    elif query.uid and query.uid not in query_uids and not query.mrn:
                        yield f"cannot find query '{query.uid}' referenced in policy '{policy.uid}'"
                for ref in group.policies:
                    if ref.uid and ref.uid not in policy_uids and not is_mrn(ref.mrn):
                        yield f"cannot find policy '{ref.uid}' referenced in policy '{policy.uid}'"

    def _check_query(self, query: Mquery, query_uids: set[str]) -> Iterator[str]:
        name = f"query '{query.uid}'" if query.uid else f"query at line {query.file_context.line}"
        if not query.mql and not query.variants:
            yield f"{name} is not implemented, it has no MQL and no variants"
        yield from self._check_mql(query.mql, name)
        for prop in query.props:
            yield from self._check_mql(prop.mql, f"property '{prop.uid}' of {name}")
        for filter_query in _filter_queries(query.filters):
            yield from self._check_mql(filter_query.mql, f"filter of {name}")
        for variant in query.variants:
            if is_query_definition_complete(variant):
                yield from self._check_query(variant, query_uids)
            elif variant.uid and variant.uid not in query_uids:
                yield f"cannot find variant '{variant.uid}' of {name}"

    @staticmethod
    def _check_mql(mql: str, owner: str) -> Iterator[str]:
        if mql and (problem := check_mql_syntax(mql)) is not None:
            yield f"failed to compile {owner}: {problem}"


def merge_bundles(bundles: Sequence[Bundle]) -> Bundle:
    """Merge the bundles of several files into one.

    Raises
    ------
    MqlCompileError
        If a policy or global query UID is defined in more than one file
    """
    merged = Bundle()
    policy_owner: dict[str, int] = {}
    query_owner: dict[str, int] = {}
    for index, bundle in enumerate(bundles):
        for policy in bundle.policies:
            if policy.uid and policy_owner.setdefault(policy.uid, index) != index:
                raise MqlCompileError(f"policy '{policy.uid}' is defined in more than one file")
        for query in bundle.queries:
            if query.uid and query_owner.setdefault(query.uid, index) != index:
                raise MqlCompileError(f"query '{query.uid}' is defined in more than one file")
        merged.policies.extend(bundle.policies)
        merged.queries.extend(bundle.queries)
        merged.props.extend(bundle.props)
        merged.migration_groups.extend(bundle.migration_groups)
    return merged


def compile_bundles(bundles: Sequence[Bundle], compiler: MqlCompiler | None = None) -> None:
    """Merge per-file bundles and compile the result.

    Raises
    ------
    MqlCompileError
        If the files conflict or the merged bundle does not compile
    """
    (compiler or BundleCompiler()).compile(merge_bundles(bundles))
