"""Closed classification of comment lexical forms."""

from __future__ import annotations

from enum import Enum


class CommentVariant(str, Enum):
    """Comment family a literal was extracted from."""

    LINE_DOC = "line_doc"
    INNER_LINE_DOC = "inner_line_doc"
    BLOCK_DOC = "block_doc"
    INNER_BLOCK_DOC = "inner_block_doc"
    PLAIN_LINE = "plain_line"
    PLAIN_BLOCK = "plain_block"
    MARKDOWN = "markdown"

    @property
    def marker(self) -> str:
        """Opening marker written before the text of the first physical line."""

        return _MARKERS[self]

    @property
    def is_multiline_token(self) -> bool:
        """True when one token may span several physical lines."""

        return self in _BLOCK_VARIANTS

    @property
    def needs_gap(self) -> bool:
        """True when continuation text must be separated from the marker by a space."""

        return self in _LINE_VARIANTS

    @property
    def is_documentation(self) -> bool:
        return self in {
            CommentVariant.LINE_DOC,
            CommentVariant.INNER_LINE_DOC,
            CommentVariant.BLOCK_DOC,
            CommentVariant.INNER_BLOCK_DOC,
        }

    @property
    def is_developer(self) -> bool:
        return self in {CommentVariant.PLAIN_LINE, CommentVariant.PLAIN_BLOCK}


_MARKERS = {
    CommentVariant.LINE_DOC: "///",
    CommentVariant.INNER_LINE_DOC: "//!",
    CommentVariant.BLOCK_DOC: "/**",
    CommentVariant.INNER_BLOCK_DOC: "/*!",
    CommentVariant.PLAIN_LINE: "//",
    CommentVariant.PLAIN_BLOCK: "/*",
    CommentVariant.MARKDOWN: "",
}

_LINE_VARIANTS = frozenset({CommentVariant.LINE_DOC, CommentVariant.INNER_LINE_DOC, CommentVariant.PLAIN_LINE})
_BLOCK_VARIANTS = frozenset({CommentVariant.BLOCK_DOC, CommentVariant.INNER_BLOCK_DOC, CommentVariant.PLAIN_BLOCK})


def classify_comment(token: str) -> CommentVariant | None:
    """Classify raw comment token text, or return None when it is not a comment."""

    if token.startswith("//"):
        if token.startswith("///") and not token.startswith("////"):
            return CommentVariant.LINE_DOC
        if token.startswith("//!"):
            return CommentVariant.INNER_LINE_DOC
        return CommentVariant.PLAIN_LINE
    if token.startswith("/*"):
        if token.startswith("/**") and not token.startswith("/***") and not token.startswith("/**/"):
            return CommentVariant.BLOCK_DOC
        if token.startswith("/*!"):
            return CommentVariant.INNER_BLOCK_DOC
        return CommentVariant.PLAIN_BLOCK
    return None
