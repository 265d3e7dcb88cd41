"""Field path resolution over nested JSON values.

A field path addresses a location inside a JSON value:

- ``a.b``      object descent
- ``a[0].b``   fixed list index
- ``a[*].b``   every element of a list

Reads with ``[*]`` return a list of every matched value. Writes never
mutate the input: ``set_value`` returns a deep copy with the value written,
creating intermediate containers as needed.
"""

import copy
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

WILDCARD = "*"

_SPLIT_RE = re.compile(r"[.\[\]]+")
_INDEX_RE = re.compile(r"^\d+$")


def parse_path(path: str) -> list[str]:
    """Split a field path into segments.

    >>> parse_path("competitions[0].competitors[*].score")
    ['competitions', '0', 'competitors', '*', 'score']
    """
    if not path:
        return []
    return [segment for segment in _SPLIT_RE.split(path) if segment]


def is_index(segment: str) -> bool:
    return bool(_INDEX_RE.match(segment))


def has_wildcard(path: str) -> bool:
    return WILDCARD in parse_path(path)


def format_path(segments: list[str]) -> str:
    """Inverse of parse_path: ``["a", "0", "b"]`` -> ``a[0].b``."""
    path = ""
    for segment in segments:
        if segment == WILDCARD or is_index(segment):
            path += f"[{segment}]"
        else:
            path += f".{segment}" if path else segment
    return path


def expand_wildcards(root: Any, path: str) -> list[tuple[str, list[int]]]:
    """Concrete paths for every location a ``[*]`` path matches.

    Each entry pairs the concrete path with the list indices its wildcards
    resolved to. Matching follows get_value, so the concrete paths are the
    locations whose values a wildcard read returns, in the same order.
    """
    matches: list[tuple[Any, list[str], list[int]]] = [(root, [], [])]

    for segment in parse_path(path):
        expanded: list[tuple[Any, list[str], list[int]]] = []
        for node, prefix, indices in matches:
            if segment == WILDCARD:
                if isinstance(node, list):
                    for i, item in enumerate(node):
                        expanded.append((item, prefix + [str(i)], indices + [i]))
            elif is_index(segment):
                index = int(segment)
                if isinstance(node, list) and index < len(node):
                    expanded.append((node[index], prefix + [segment], indices))
            elif isinstance(node, dict) and segment in node:
                expanded.append((node[segment], prefix + [segment], indices))
        matches = expanded

    return [(format_path(prefix), indices) for _, prefix, indices in matches]


def bind_wildcards(path: str, indices: list[int]) -> str:
    """Replace the leading ``[*]`` segments of ``path`` with ``indices``.

    Wildcards beyond the supplied indices are kept and still broadcast.
    """
    remaining = list(indices)
    segments = []
    for segment in parse_path(path):
        if segment == WILDCARD and remaining:
            segment = str(remaining.pop(0))
        segments.append(segment)
    return format_path(segments)


def get_value(root: Any, path: str) -> Any:
    """Read the value at ``path``.

    Missing keys, out-of-range indices and descent into scalars resolve to
    None. An empty path returns ``root``. A path containing ``[*]`` returns
    a list of every matched value.
    """
    segments = parse_path(path)
    if not segments:
        return root
    if WILDCARD in segments:
        return _get_with_wildcard(root, segments)

    current = root
    for segment in segments:
        if current is None:
            return None
        current = _step(current, segment)
    return current


def _step(current: Any, segment: str) -> Any:
    if is_index(segment):
        if isinstance(current, list):
            index = int(segment)
            return current[index] if index < len(current) else None
        if isinstance(current, dict):
            return current.get(segment)
        return None
    if isinstance(current, dict):
        return current.get(segment)
    return None


def _get_with_wildcard(root: Any, segments: list[str]) -> list[Any]:
    results: list[Any] = [root]

    for segment in segments:
        matched: list[Any] = []
        if segment == WILDCARD:
            for current in results:
                if isinstance(current, list):
                    matched.extend(current)
        elif is_index(segment):
            index = int(segment)
            for current in results:
                if isinstance(current, list) and index < len(current):
                    matched.append(current[index])
        else:
            for current in results:
                if isinstance(current, dict) and segment in current:
                    matched.append(current[segment])
        results = matched

    return results


def set_value(root: Any, path: str, value: Any) -> Any:
    """Return a copy of ``root`` with ``value`` written at ``path``.

    Intermediate containers are created as lists when the next segment is
    numeric and as dicts otherwise. Writing past the end of a list pads it
    with None. ``[*]`` writes the same value into every element of the
    matched list.
    """
    segments = parse_path(path)
    if not segments:
        return copy.deepcopy(value)

    if root is None:
        result: Any = [] if is_index(segments[0]) else {}
    else:
        result = copy.deepcopy(root)

    if not isinstance(result, (dict, list)):
        logger.warning(
            f"Cannot write '{path}' into a {type(result).__name__} value"
        )
        return result

    _write(result, segments, value, path)
    return result


def _new_container(next_segment: str) -> Any:
    return [] if is_index(next_segment) else {}


def _write(node: Any, segments: list[str], value: Any, path: str) -> None:
    head, rest = segments[0], segments[1:]

    if head == WILDCARD:
        if not isinstance(node, list):
            logger.warning(f"Expected list for '[*]' in path '{path}'")
            return
        for i, item in enumerate(node):
            if not rest:
                node[i] = copy.deepcopy(value)
            elif isinstance(item, (dict, list)):
                _write(item, rest, value, path)
        return

    if isinstance(node, list):
        if not is_index(head):
            logger.warning(
                f"Expected index at segment '{head}' of path '{path}', got list"
            )
            return
        index = int(head)
        while len(node) <= index:
            node.append(None)
        key: Any = index
    elif isinstance(node, dict):
        key = head
    else:
        logger.warning(
            f"Cannot descend into {type(node).__name__} at segment "
            f"'{head}' of path '{path}'"
        )
        return

    if not rest:
        node[key] = copy.deepcopy(value)
        return

    child = node[key] if isinstance(node, list) else node.get(key)
    if not isinstance(child, (dict, list)):
        child = _new_container(rest[0])
        node[key] = child
    _write(child, rest, value, path)
