"""YAML parser for policy bundles.

The document is composed into a PyYAML node graph first so that every
mapping and sequence keeps the position of its node. The position-carrying
containers are then validated into the typed ``Bundle`` tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from bundlelint.kernel.domain.bundle import Bundle, FileContext, PositionedDict, PositionedList
from bundlelint.kernel.exceptions import BundleFileError, BundleParseError, BundleUnknownFieldError
from bundlelint.kernel.logging import get_logger

logger = get_logger(__name__)

# Scalars kept as their source text so string fields see exactly what was written
_VERBATIM_TAGS = frozenset({"tag:yaml.org,2002:float", "tag:yaml.org,2002:timestamp"})


def _position(node: Node) -> FileContext:
    return FileContext(line=node.start_mark.line + 1, column=node.start_mark.column + 1)


class _NodeConverter:
    """Turns a composed node graph into positioned Python containers."""

    def __init__(self, loader: yaml.SafeLoader) -> None:
        self._loader = loader

    def convert(self, node: Node) -> Any:
        if isinstance(node, MappingNode):
            return self._convert_mapping(node)
        if isinstance(node, SequenceNode):
            result = PositionedList(_position(node))
            for item in node.value:
                result.append(self.convert(item))
                result.item_positions.append(_position(item))
            return result
        if isinstance(node, ScalarNode) and node.tag in _VERBATIM_TAGS:
            return node.value
        return self._loader.construct_object(node, deep=True)

    def _convert_mapping(self, node: MappingNode) -> PositionedDict:
        self._loader.flatten_mapping(node)
        result = PositionedDict(_position(node))
        for key_node, value_node in node.value:
            key = self._loader.construct_object(key_node, deep=True)
            if not isinstance(key, str):
                position = _position(key_node)
                raise BundleParseError(
                    f"line {position.line}: mapping keys must be strings, got {key!r}",
                    line=position.line,
                    column=position.column,
                )
            result[key] = self.convert(value_node)
            result.key_positions[key] = _position(key_node)
            result.value_positions[key] = _position(value_node)
        return result


def compose_positioned(data: bytes | str) -> Any:
    """Decode a YAML document into positioned containers.

    Raises
    ------
    BundleParseError
        If the document is not well-formed YAML
    """
    loader = yaml.SafeLoader(data)
    try:
        node = loader.get_single_node()
        return None if node is None else _NodeConverter(loader).convert(node)
    except yaml.YAMLError as e:
        raise BundleParseError(str(e)) from e
    finally:
        loader.dispose()


def _resolve_key_position(raw: Any, loc: tuple[int | str, ...]) -> FileContext | None:
    """Find the position of the key an error location points at.

    Segments that do not exist in the raw tree (introduced by shape
    coercion, such as ``items``) are skipped.
    """
    current = raw
    for index, segment in enumerate(loc):
        is_last = index == len(loc) - 1
        if isinstance(current, PositionedDict) and segment in current:
            if is_last:
                return current.key_positions.get(str(segment))
            current = current[segment]
        elif isinstance(current, PositionedList) and str(segment).isdigit():
            position = int(segment)
            if position >= len(current):
                return None
            current = current[position]
        elif is_last and isinstance(current, PositionedDict):
            return None
    return None


def _format_loc(loc: tuple[int | str, ...]) -> str:
    parts: list[str] = []
    for segment in loc:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        else:
            parts.append(f".{segment}" if parts else str(segment))
    return "".join(parts)


def _translate_validation_error(raw: Any, error: PydanticValidationError) -> BundleParseError:
    errors = error.errors(include_url=False)
    unknown = [e for e in errors if e["type"] == "extra_forbidden"]
    if unknown:
        fields: list[str] = []
        first: FileContext | None = None
        for e in unknown:
            position = _resolve_key_position(raw, e["loc"])
            name = str(e["loc"][-1]) if e["loc"] else "?"
            if position is not None:
                first = first or position
                fields.append(f"line {position.line}: field {name} not found")
            else:
                fields.append(f"field {name} not found at {_format_loc(e['loc'])}")
        first = first or FileContext(1, 1)
        return BundleUnknownFieldError(fields, line=first.line, column=first.column)

    details = [
        f"{_format_loc(e['loc']) or 'bundle'}: {e['msg']}" for e in errors
    ]
    return BundleParseError("; ".join(details))


def parse_yaml(data: bytes | str) -> Bundle:
    """Parse a policy bundle document.

    Parameters
    ----------
    data : bytes | str
        UTF-8 YAML document

    Returns
    -------
    Bundle
        Typed bundle tree with source positions on every record

    Raises
    ------
    BundleUnknownFieldError
        If a mapping contains a key its record does not define
    BundleParseError
        If the document is malformed or a value has an unsupported shape

    Examples
    --------
    >>> bundle = parse_yaml("queries:\\n  - uid: sshd-01\\n    mql: sshd.config\\n")
    >>> bundle.queries[0].file_context.line
    2
    """
    raw = compose_positioned(data)
    try:
        return Bundle.model_validate(raw)
    except PydanticValidationError as e:
        raise _translate_validation_error(raw, e) from e


def parse_file(path: str | Path) -> Bundle:
    """Read and parse a bundle file.

    Raises
    ------
    BundleFileError
        If the file cannot be read
    BundleParseError
        If the content is not a valid bundle
    """
    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise BundleFileError(str(file_path), e.strerror or str(e)) from e
    logger.debug("Parsing bundle {path} ({size} bytes)", path=file_path, size=len(data))
    return parse_yaml(data)
