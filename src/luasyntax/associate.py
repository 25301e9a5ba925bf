"""Bind documentation comment blocks to the statements they document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from docparse.directives import CommentDirective, Directive, parse_directives

if TYPE_CHECKING:
    from collections.abc import Sequence

    from luasyntax.nodes import Comment, Statement


@dataclass(frozen=True)
class CommentBlock:
    """Directives parsed from a run of line-adjacent comments.

    ``first_line``/``last_line`` are inclusive; an empty block (no comments)
    uses 0 for both.
    """

    directives: tuple[Directive, ...] = field(default_factory=tuple)
    first_line: int = 0
    last_line: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.directives

    @property
    def comments(self) -> tuple[str, ...]:
        return tuple(
            d.text for d in self.directives if isinstance(d, CommentDirective)
        )

    @property
    def has_annotations(self) -> bool:
        return any(not isinstance(d, CommentDirective) for d in self.directives)


EMPTY_BLOCK = CommentBlock()


@dataclass(frozen=True)
class Association:
    attached: dict[Statement, CommentBlock]
    orphaned: tuple[CommentBlock, ...]

    def block_for(self, statement: Statement) -> CommentBlock:
        return self.attached.get(statement, EMPTY_BLOCK)


def _group_comments(comments: Sequence[Comment]) -> list[list[Comment]]:
    groups: list[list[Comment]] = []
    for comment in sorted(comments, key=lambda c: (c.line, c.end_line)):
        if groups and comment.line == groups[-1][-1].end_line + 1:
            groups[-1].append(comment)
        else:
            groups.append([comment])
    return groups


def _build_block(group: list[Comment]) -> CommentBlock:
    lines: list[str] = []
    numbers: list[int] = []
    for comment in group:
        for offset, text in enumerate(comment.raw.splitlines() or [""]):
            lines.append(text)
            numbers.append(comment.line + offset)
    return CommentBlock(
        directives=tuple(parse_directives(lines, line_numbers=numbers)),
        first_line=group[0].line,
        last_line=group[-1].end_line,
    )


def associate(
    statements: Sequence[Statement], comments: Sequence[Comment]
) -> Association:
    """Group comments into blocks and attach each to the statement below it.

    A block attaches when it ends on the line directly above a statement.
    Every statement gets an entry (possibly :data:`EMPTY_BLOCK`). Blocks that
    attach nowhere and carry at least one directive are returned as orphans
    in source order.

    Raises:
        MalformedType, MalformedDirective: propagated from directive parsing.
    """
    blocks = [_build_block(group) for group in _group_comments(comments)]

    # Later blocks overwrite earlier ones that end on the same line.
    by_last_line: dict[int, int] = {}
    for index, block in enumerate(blocks):
        by_last_line[block.last_line] = index

    attached: dict[Statement, CommentBlock] = {}
    used: set[int] = set()
    for statement in statements:
        index = by_last_line.get(statement.span.start_line - 1)
        if index is None:
            attached[statement] = EMPTY_BLOCK
            continue
        attached[statement] = blocks[index]
        used.add(index)

    orphaned = tuple(
        block
        for index, block in enumerate(blocks)
        if index not in used and not block.is_empty
    )
    return Association(attached=attached, orphaned=orphaned)


__all__ = ["EMPTY_BLOCK", "Association", "CommentBlock", "associate"]
