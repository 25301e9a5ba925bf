from __future__ import annotations

from docparse.directives import ClassDirective, CommentDirective, FieldDirective
from docparse.types import SimpleType
from luasyntax.associate import EMPTY_BLOCK, associate
from luasyntax.nodes import Comment, OtherStatement, SourceSpan


def _statement(line: int) -> OtherStatement:
    return OtherStatement(SourceSpan(line, 1, line, 10), "expression_statement")


def test_block_ending_directly_above_statement_attaches() -> None:
    statement = _statement(5)
    comments = [
        Comment(raw="---@class Foo", line=3, end_line=3),
        Comment(raw="---@field x integer", line=4, end_line=4),
    ]

    association = associate([statement], comments)

    block = association.block_for(statement)
    assert block.first_line == 3
    assert block.last_line == 4
    assert block.directives == (
        ClassDirective(line=3, name="Foo"),
        FieldDirective(line=4, name="x", type=SimpleType("number")),
    )
    assert association.orphaned == ()


def test_block_separated_by_blank_line_is_orphaned() -> None:
    statement = _statement(5)
    comments = [
        Comment(raw="---@class Foo", line=2, end_line=2),
        Comment(raw="---@field x integer", line=3, end_line=3),
    ]

    association = associate([statement], comments)

    assert association.block_for(statement) is EMPTY_BLOCK
    assert len(association.orphaned) == 1
    assert association.orphaned[0].last_line == 3


def test_gap_splits_comments_into_separate_blocks() -> None:
    statement = _statement(4)
    comments = [
        Comment(raw="---@alias Id string", line=1, end_line=1),
        Comment(raw="---Builds things", line=3, end_line=3),
    ]

    association = associate([statement], comments)

    assert association.block_for(statement).directives == (
        CommentDirective(line=3, text="Builds things"),
    )
    assert [block.first_line for block in association.orphaned] == [1]


def test_plain_dash_comments_are_not_orphans() -> None:
    comments = [Comment(raw="-- just a note", line=1, end_line=1)]

    association = associate([], comments)

    assert association.orphaned == ()


def test_multi_line_comment_counts_every_line() -> None:
    statement = _statement(4)
    comments = [Comment(raw="--[[\nnotes\n]]", line=1, end_line=3)]

    association = associate([statement], comments)

    block = association.block_for(statement)
    assert (block.first_line, block.last_line) == (1, 3)
    assert block.is_empty
    assert not block.has_annotations


def test_every_statement_gets_a_block() -> None:
    first, second = _statement(1), _statement(2)

    association = associate([first, second], [])

    assert association.attached == {first: EMPTY_BLOCK, second: EMPTY_BLOCK}
