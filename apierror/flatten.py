"""Flatten nested upstream error payloads into ordered human-readable lines.

The upstream API reports failures as a tree keyed by field name or list
index. Every value in that tree is classified into exactly one variant
before anything is rendered:

- ``ListErrors``: ``{"_errors": [{"message": ...}, ...]}`` validation failures
- ``CodeMessage``: ``{"code": ..., "message": ...}`` direct errors
- ``PlainString``: a bare message string
- ``NestedMap``: anything else, walked recursively

Paths use bracket notation for list indices (``embeds[0]``) and dotted
notation for field names (``embeds[0].description``).
"""

from __future__ import annotations

from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from typing import Union
import re

from apierror.core.config import get_error_settings

_INDEX_KEY = re.compile(r"[0-9]+")
_SKIPPED_KEY = "message"


class ErrorPayloadDepthError(ValueError):
    """Raised when an error payload nests deeper than the configured depth guard."""


@dataclass(frozen=True)
class ListErrors:
    messages: tuple[str, ...]

    def render(self, path: str) -> str:
        return f"{path}: {' '.join(self.messages)}"


@dataclass(frozen=True)
class CodeMessage:
    code: Any
    message: str

    def render(self, path: str) -> str:
        prefix = f"{self.code}: " if self.code is not None else ""
        return f"{prefix}{self.message}".strip()


@dataclass(frozen=True)
class PlainString:
    text: str

    def render(self, path: str) -> str:
        # Bare strings stand on their own; the path is not shown.
        return self.text


@dataclass(frozen=True)
class NestedMap:
    node: Any


ErrorVariant = Union[ListErrors, CodeMessage, PlainString, NestedMap]
LeafVariant = Union[ListErrors, CodeMessage, PlainString]


def is_index_key(key: str) -> bool:
    """Return whether a payload key is a plain non-negative base-10 list index."""
    return _INDEX_KEY.fullmatch(key) is not None


def join_path(prefix: str, key: str) -> str:
    """Append a payload key to a displayed field path."""
    if not prefix:
        return key
    if is_index_key(key):
        return f"{prefix}[{key}]"
    return f"{prefix}.{key}"


def classify(value: Any) -> ErrorVariant:
    """Decide which error shape a payload value carries."""
    if isinstance(value, Mapping):
        sub_errors = value.get("_errors")
        if sub_errors is not None:
            return ListErrors(messages=tuple(_sub_error_message(item) for item in sub_errors))

        code = value.get("code")
        message = value.get("message")
        if code is not None or message is not None:
            return CodeMessage(code=code, message="" if message is None else str(message))

        return NestedMap(node=value)

    if isinstance(value, str):
        return PlainString(text=value)

    return NestedMap(node=value)


def flatten_entries(
    node: Any,
    path_prefix: str = "",
    *,
    max_depth: int | None = None,
) -> Iterator[tuple[str, LeafVariant]]:
    """Yield ``(path, variant)`` for every renderable error in payload order."""
    if max_depth is None:
        max_depth = get_error_settings().max_flatten_depth
    yield from _walk(node, path_prefix, 0, max_depth)


def flatten(node: Any, path_prefix: str = "", *, max_depth: int | None = None) -> list[str]:
    """Flatten an error payload into ordered ``path: message`` lines.

    Keys named ``message`` are skipped at every level; the top-level message
    is composed separately by :class:`apierror.core.errors.UpstreamAPIError`.
    """
    return [variant.render(path) for path, variant in flatten_entries(node, path_prefix, max_depth=max_depth)]


def _walk(node: Any, prefix: str, depth: int, max_depth: int) -> Iterator[tuple[str, LeafVariant]]:
    for key, value in _entries(node):
        if key == _SKIPPED_KEY:
            continue

        path = join_path(prefix, key)
        variant = classify(value)
        if not isinstance(variant, NestedMap):
            yield path, variant
            continue

        # Scalars have no entries and never count as a level.
        if not isinstance(variant.node, (Mapping, list, tuple)):
            continue
        if depth + 1 > max_depth:
            raise ErrorPayloadDepthError(
                f"Error payload nests deeper than {max_depth} levels at `{path}`",
            )
        yield from _walk(variant.node, path, depth + 1, max_depth)


def _entries(node: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(node, Mapping):
        for key, value in node.items():
            yield str(key), value
    elif isinstance(node, (list, tuple)):
        for index, value in enumerate(node):
            yield str(index), value


def _sub_error_message(item: Any) -> str:
    if not isinstance(item, Mapping):
        return ""
    message = item.get("message")
    return "" if message is None else str(message)
