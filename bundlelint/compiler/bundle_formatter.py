"""Canonical YAML formatting of policy bundles.

The output uses two-space indentation with indented sequences, keeps the
field order of the bundle records, sorts tags and writes multi-line strings
as literal blocks. Polymorphic fields keep their short forms (a bare string
filter, an integer impact, a string remediation). Comments are not kept.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from functools import cmp_to_key
from pathlib import Path
from typing import Any

import yaml

from bundlelint.compiler.bundle_parser import parse_yaml
from bundlelint.kernel.domain.bundle import Bundle, Mquery, Policy
from bundlelint.kernel.exceptions import BundleFileError
from bundlelint.kernel.logging import get_logger

logger = get_logger(__name__)

BUNDLE_SUFFIXES = (".mql.yaml", ".mql.yml")
FILE_MODE = 0o644

# Free-text fields whose lines are cleaned before writing
_TEXT_FIELDS = frozenset({"name", "title", "mql", "desc", "audit", "remediation", "summary"})
_NON_PRINTABLE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


class _BundleDumper(yaml.SafeDumper):
    """SafeDumper that indents sequences under their key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_str(data)


_BundleDumper.add_representer(str, _represent_str)


def sanitize_text(value: str) -> str:
    """Prepare a string for literal block output.

    Trailing whitespace is removed from every line, tabs become two spaces
    and other non-printable characters are dropped.

    Examples
    --------
    >>> sanitize_text("a \\n\\tb\\x00")
    'a\\n  b'
    """
    lines = value.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    cleaned = []
    for line in lines:
        cleaned.append(_NON_PRINTABLE.sub("", line).rstrip().replace("\t", "  "))
    return "\n".join(cleaned)


def _clean(data: Any, key: str | None = None) -> Any:
    """Drop empty values and sanitize free-text fields."""
    if isinstance(data, dict):
        result = {}
        for k, v in data.items():
            cleaned = _clean(v, k)
            if cleaned is None:
                continue
            result[k] = cleaned
        return result
    if isinstance(data, list):
        return [_clean(item, key) for item in data]
    if isinstance(data, str) and key in _TEXT_FIELDS:
        return sanitize_text(data)
    return data


def _compare_by_mrn_or_uid(a: Mquery | Policy, b: Mquery | Policy) -> int:
    if not a.mrn or not b.mrn:
        left, right = a.uid, b.uid
    else:
        left, right = a.mrn, b.mrn
    return (left > right) - (left < right)


_MRN_OR_UID = cmp_to_key(_compare_by_mrn_or_uid)


def _sort_variants(queries: Iterable[Mquery]) -> None:
    for query in queries:
        query.variants.sort(key=_MRN_OR_UID)


def sort_contents(bundle: Bundle) -> Bundle:
    """Return a copy of the bundle with queries, policies and variants sorted.

    Entries are ordered by MRN when both sides of a comparison carry one,
    otherwise by UID. The sort is stable.
    """
    result = bundle.model_copy(deep=True)
    result.queries.sort(key=_MRN_OR_UID)
    result.policies.sort(key=_MRN_OR_UID)
    _sort_variants(result.queries)
    for policy in result.policies:
        for group in policy.groups:
            _sort_variants(group.queries)
            _sort_variants(group.checks)
    return result


def format_bundle(bundle: Bundle, sort: bool = False) -> str:
    """Render a bundle as canonical YAML.

    Parameters
    ----------
    bundle : Bundle
        Bundle to render
    sort : bool, default=False
        Sort queries, policies and variants by MRN or UID first

    Returns
    -------
    str
        YAML document
    """
    if sort:
        bundle = sort_contents(bundle)
    data = _clean(bundle.model_dump(mode="json", exclude_defaults=True))
    return yaml.dump(
        data,
        Dumper=_BundleDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        indent=2,
        width=4096,
    )


def walk_bundle_files(paths: Iterable[str | Path]) -> list[Path]:
    """Expand paths into bundle files.

    Directories are searched recursively for ``*.mql.yaml`` and
    ``*.mql.yml`` files; other paths are taken as given.

    Raises
    ------
    BundleFileError
        If a path does not exist
    """
    files: list[Path] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.exists():
            raise BundleFileError(str(path), "could not load policy bundle file")
        if path.is_dir():
            found = sorted(
                candidate
                for candidate in path.rglob("*")
                if candidate.is_file() and candidate.name.endswith(BUNDLE_SUFFIXES)
            )
            logger.debug("Found {count} bundle files in {path}", count=len(found), path=path)
            files.extend(found)
        else:
            files.append(path)
    return files


def format_file(path: str | Path, sort: bool = False) -> bool:
    """Rewrite a bundle file in canonical form.

    Returns
    -------
    bool
        True if the file content changed

    Raises
    ------
    BundleFileError
        If the file cannot be read or written
    BundleParseError
        If the file is not a valid bundle
    """
    file_path = Path(path)
    logger.info("Formatting {path}", path=file_path)
    try:
        original = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise BundleFileError(str(file_path), e.strerror or str(e)) from e

    formatted = format_bundle(parse_yaml(original), sort=sort)
    try:
        file_path.write_text(formatted, encoding="utf-8")
        os.chmod(file_path, FILE_MODE)
    except OSError as e:
        raise BundleFileError(str(file_path), e.strerror or str(e)) from e
    return formatted != original


def format_paths(paths: Iterable[str | Path], sort: bool = False) -> list[Path]:
    """Format every bundle file under the given paths.

    Returns
    -------
    list[Path]
        Files whose content changed
    """
    return [path for path in walk_bundle_files(paths) if format_file(path, sort=sort)]
