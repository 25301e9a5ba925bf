"""Bracket-depth aware scanning shared by the type grammar and directive lines."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

OPENERS = "<{("
CLOSERS = ">})"

# Characters that keep a type expression going across a top-level space,
# e.g. "A | B" or "integer, integer".
_JOINERS = ",|"


def iter_depth(text: str) -> Iterator[tuple[int, str, int]]:
    """Yield ``(index, char, depth)`` where depth excludes the char itself.

    Openers report the depth outside of the bracket they open and closers the
    depth outside of the bracket they close, so a separator at depth 0 is
    always a top-level separator.
    """
    depth = 0
    for index, char in enumerate(text):
        if char in OPENERS:
            yield index, char, depth
            depth += 1
        elif char in CLOSERS:
            depth -= 1
            yield index, char, depth
        else:
            yield index, char, depth


def is_balanced(text: str) -> bool:
    """Return True when every bracket in ``text`` is closed in order."""
    stack: list[str] = []
    for char in text:
        if char in OPENERS:
            stack.append(CLOSERS[OPENERS.index(char)])
        elif char in CLOSERS:
            if not stack or stack.pop() != char:
                return False
    return not stack


def split_top_level(text: str, sep: str) -> list[str]:
    """Split ``text`` on ``sep`` occurrences at bracket depth 0.

    Empty parts are dropped and each part is stripped.
    """
    parts: list[str] = []
    current: list[str] = []
    for _, char, depth in iter_depth(text):
        if char == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def partition_top_level(text: str, sep: str) -> tuple[str, str]:
    """Split ``text`` at the first ``sep`` at bracket depth 0; both halves stripped."""
    for index, char, depth in iter_depth(text):
        if char == sep and depth == 0:
            return text[:index].strip(), text[index + 1 :].strip()
    return text.strip(), ""


def find_closing(text: str, open_index: int) -> int:
    """Return the index of the bracket closing the one at ``open_index``.

    Returns -1 when the bracket is never closed.
    """
    target_depth: int | None = None
    for index, char, depth in iter_depth(text):
        if index == open_index:
            target_depth = depth
            continue
        if target_depth is not None and char in CLOSERS and depth == target_depth:
            return index
    return -1


def wraps_whole(text: str, opener: str) -> bool:
    """Return True if ``text`` is one bracket pair opened by ``opener``."""
    if not text or text[0] != opener:
        return False
    return find_closing(text, 0) == len(text) - 1


def split_type_and_description(text: str) -> tuple[str, str]:
    """Split a directive remainder into its type expression and description.

    A space at depth 0 ends the type expression unless it sits next to a
    joiner (``,`` or ``|``), so ``integer, integer`` and ``A | B`` stay whole.
    A leading ``#`` on the description is dropped.
    """
    stripped = text.strip()
    end = len(stripped)
    for index, char, depth in iter_depth(stripped):
        if char != " " or depth != 0:
            continue
        prev = stripped[:index].rstrip()
        nxt = stripped[index:].lstrip()
        if prev and prev[-1] in _JOINERS:
            continue
        if nxt and nxt[0] in _JOINERS:
            continue
        if prev.endswith(":"):
            continue
        end = index
        break

    type_text = stripped[:end].strip()
    description = stripped[end:].strip()
    if description.startswith("#"):
        description = description[1:].strip()
    return type_text, description


__all__ = [
    "find_closing",
    "is_balanced",
    "iter_depth",
    "partition_top_level",
    "split_top_level",
    "split_type_and_description",
    "wraps_whole",
]
