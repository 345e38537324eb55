"""Lint orchestration: parse, index, dispatch rules, compile.

``lint`` runs one pass per unique file and then the compiler gate over the
merged bundles of all files that parsed. Each pass has its own
``LintContext``; with ``workers > 1`` passes run on a thread pool and their
results are merged in input order.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from bundlelint.compiler.bundle_parser import parse_file
from bundlelint.compiler.mql import MqlCompiler, compile_bundles
from bundlelint.kernel.config.models import LintConfig
from bundlelint.kernel.domain.bundle import Bundle
from bundlelint.kernel.exceptions import BundleParseError, MqlCompileError
from bundlelint.kernel.linting.context import LintContext, build_lint_context
from bundlelint.kernel.linting.models import Entry, Location, Results
from bundlelint.kernel.linting.registry import default_registry
from bundlelint.kernel.linting.rules import QueryLintInput, RuleKind, RuleRegistry
from bundlelint.kernel.logging import get_logger

logger = get_logger(__name__)

BUNDLE_COMPILE_ERROR = "bundle-compile-error"


@dataclass(slots=True)
class _FilePass:
    """Outcome of linting one file."""

    results: Results
    bundle: Bundle | None


def _dispatch(ctx: LintContext, registry: RuleRegistry) -> list[Entry]:
    """Run every enabled rule over its items.

    Order: policies, global queries, embedded queries, migration groups,
    then the bundle as a whole.
    """
    config = ctx.config
    entries: list[Entry] = []

    def run(kind: RuleKind, item: object) -> None:
        for rule in registry.rules_for(kind):
            if config.is_enabled(rule.rule_id):
                entries.extend(rule.check(ctx, item))

    bundle = ctx.bundle
    for policy in bundle.policies:
        run(RuleKind.POLICY, policy)
    for query in bundle.queries:
        run(RuleKind.QUERY, QueryLintInput(query=query, is_global=True))
    for query in ctx.embedded_queries:
        run(RuleKind.QUERY, QueryLintInput(query=query, is_global=False))
    for group in bundle.migration_groups:
        run(RuleKind.MIGRATION_GROUP, group)
    run(RuleKind.BUNDLE, bundle)
    return entries


def _lint_path(path: Path, config: LintConfig, registry: RuleRegistry) -> _FilePass:
    file_path = str(path)
    results = Results(bundle_locations=[file_path])
    try:
        bundle = parse_file(path)
    except BundleParseError as e:
        logger.debug("Could not parse {path}: {error}", path=file_path, error=e)
        if e.rule_id == "bundle-unknown-field":
            message = f"Bundle file {path.name} contains unknown fields: {e.message}"
        else:
            message = f"cannot parse the yaml file {path.name}: {e.message}"
        results.add(
            Entry(
                rule_id=e.rule_id,
                level="error",
                message=message,
                locations=(Location(file_path, max(e.line, 1), max(e.column, 1)),),
            )
        )
        return _FilePass(results=results, bundle=None)

    ctx = build_lint_context(file_path, bundle, config)
    results.entries.extend(_dispatch(ctx, registry))
    logger.debug(
        "Linted {path}: {count} entries", path=file_path, count=len(results.entries)
    )
    return _FilePass(results=results, bundle=bundle)


def _unique_paths(files: Iterable[str | Path]) -> list[Path]:
    seen: set[Path] = set()
    unique: list[Path] = []
    for file in files:
        path = Path(file).absolute()
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return unique


def run_compiler_gate(
    results: Results,
    bundles: Sequence[Bundle],
    files: Sequence[str],
    compiler: MqlCompiler | None = None,
) -> None:
    """Compile the merged bundles and record a failure as one diagnostic.

    The diagnostic carries one ``1:1`` location per input file.
    """
    try:
        compile_bundles(bundles, compiler)
    except MqlCompileError as e:
        logger.info("Policy bundle does not compile: {error}", error=e.message)
        results.add(
            Entry(
                rule_id=BUNDLE_COMPILE_ERROR,
                level="error",
                message=f"could not compile policy bundle: {e.message}",
                locations=tuple(Location(file, 1, 1) for file in files),
            )
        )


def lint(
    files: Iterable[str | Path],
    *,
    config: LintConfig | None = None,
    compiler: MqlCompiler | None = None,
    cancel_event: threading.Event | None = None,
    workers: int | None = None,
    registry: RuleRegistry | None = None,
) -> Results:
    """Lint a set of bundle files.

    Parameters
    ----------
    files : Iterable[str | Path]
        Bundle files; duplicates (by absolute path) are linted once
    config : LintConfig | None
        Effective configuration, defaults if None
    compiler : MqlCompiler | None
        Compiler used by the gate, ``BundleCompiler`` if None
    cancel_event : threading.Event | None
        Checked between file passes and before the compiler gate; when set,
        the partial results are returned with ``cancelled=True``
    workers : int | None
        Thread count for the per-file passes, ``config.workers`` if None
    registry : RuleRegistry | None
        Frozen rule registry, the default rule set if None

    Returns
    -------
    Results
        Diagnostics of all files followed by the compiler gate's

    Raises
    ------
    BundleFileError
        If a file cannot be read; no partial result is returned
    """
    config = config or LintConfig()
    registry = registry or default_registry()
    paths = _unique_paths(files)
    workers = workers or config.workers
    results = Results()

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    logger.info("Linting {count} bundle files", count=len(paths))
    passes: list[_FilePass] = []
    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_lint_path, path, config, registry) for path in paths]
            for future in futures:
                if cancelled():
                    for pending in futures:
                        pending.cancel()
                    break
                passes.append(future.result())
    else:
        for path in paths:
            if cancelled():
                break
            passes.append(_lint_path(path, config, registry))

    for file_pass in passes:
        results.extend(file_pass.results)

    if len(passes) < len(paths) or cancelled():
        logger.info(
            "Linting cancelled after {done} of {total} files", done=len(passes), total=len(paths)
        )
        results.cancelled = True
        return results

    bundles = [p.bundle for p in passes]
    if all(bundle is not None for bundle in bundles):
        run_compiler_gate(
            results,
            [b for b in bundles if b is not None],
            [str(path) for path in paths],
            compiler,
        )
    return results


def lint_file(path: str | Path, config: LintConfig | None = None) -> Results:
    """Lint a single bundle file, including the compiler gate."""
    return lint([path], config=config)
