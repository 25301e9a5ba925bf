"""Structural Lua syntax: nodes, the tree-sitter adapter and comment association."""

from luasyntax.associate import Association, CommentBlock, associate
from luasyntax.nodes import Chunk, Comment, Statement
from luasyntax.treesitter_lua import parse_chunk

__all__ = [
    "Association",
    "Chunk",
    "Comment",
    "CommentBlock",
    "Statement",
    "associate",
    "parse_chunk",
]
