"""Comment literal extraction from Rust sources via tree-sitter."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterator

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from docspell.errors import MalformedLiteral
from docspell.extraction.span import ByteToCharMapper, FileSpan, LineIndex, Position
from docspell.extraction.variant import CommentVariant, classify_comment

LOGGER = logging.getLogger(__name__)

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_COMMENT_NODE_TYPES = {"line_comment", "block_comment"}


@dataclass(frozen=True, slots=True)
class LineUnit:
    """One physical source line contributing text to a chunk."""

    line: int
    line_start: int
    content_start: int
    text: str
    lead: str
    trail: str
    indent: str
    marker: str
    gap: str

    @property
    def content_end(self) -> int:
        return self.content_start + len(self.text)

    @property
    def width(self) -> int:
        """Physical width of the line up to the end of the literal."""

        return len(self.lead) + len(self.text) + len(self.trail.rstrip("\r"))


@dataclass(frozen=True, slots=True)
class Literal:
    """One physical line of a comment token, with its trimmed view.

    ``delta`` is the number of characters between the raw start and the
    trimmed text. ``lead`` is the full source text from the start of the
    physical line to the trimmed text.
    """

    path: Path
    variant: CommentVariant
    raw: str
    start: int
    line: int
    column: int
    line_start: int
    delta: int
    trimmed: str
    indent: str
    marker: str
    lead: str
    token: int
    trailing: bool = False

    @property
    def end(self) -> int:
        return self.start + len(self.raw)

    @property
    def content_start(self) -> int:
        return self.start + self.delta

    @property
    def content_end(self) -> int:
        return self.content_start + len(self.trimmed)

    @property
    def gap(self) -> str:
        return self.raw[len(self.marker) : self.delta]

    @property
    def trail(self) -> str:
        return self.raw[self.delta + len(self.trimmed) :]

    @property
    def span(self) -> FileSpan:
        """Absolute span of the raw token text."""

        return FileSpan(
            path=self.path,
            start=self.start,
            end=self.end,
            start_pos=Position(self.line, self.column),
            end_pos=Position(self.line, self.column + len(self.raw)),
        )

    def to_unit(self) -> LineUnit:
        return LineUnit(
            line=self.line,
            line_start=self.line_start,
            content_start=self.content_start,
            text=self.trimmed,
            lead=self.lead,
            trail=self.trail,
            indent=self.indent,
            marker=self.marker,
            gap=self.gap,
        )


def _split_decoration(raw: str, marker: str, closer: str = "") -> tuple[int, str]:
    body = raw[len(marker) : len(raw) - len(closer)]
    leading = len(body) - len(body.lstrip())
    return len(marker) + leading, body.strip()


class RustLiteralExtractor:
    """Yield comment literals of a Rust file in document order."""

    def __init__(self, *, doc_comments: bool = True, dev_comments: bool = False) -> None:
        self._doc_comments = doc_comments
        self._dev_comments = dev_comments
        self._parser = Parser(RUST_LANGUAGE)

    def wants(self, variant: CommentVariant) -> bool:
        if variant.is_documentation:
            return self._doc_comments
        if variant.is_developer:
            return self._dev_comments
        return False

    def extract(self, path: Path, content: str) -> list[Literal]:
        """Extract every selected literal, raising MalformedLiteral on broken tokens."""

        return list(self.iter_literals(path, content))

    def iter_literals(self, path: Path, content: str) -> Iterator[Literal]:
        source = content.encode("utf-8")
        tree = self._parser.parse(source)
        index = LineIndex(content)
        mapper = ByteToCharMapper(source)

        for token_index, node in enumerate(self._comment_nodes(path, source, tree.root_node)):
            start = mapper.to_char(node.start_byte)
            end = mapper.to_char(node.end_byte)
            token = content[start:end].rstrip("\r\n")
            variant = classify_comment(token)
            if variant is None:
                LOGGER.debug("Skipping non-comment token at offset %d in %s", start, path)
                continue
            if node.type == "block_comment" and (node.has_error or not token.endswith("*/") or len(token) < 4):
                raise MalformedLiteral(path, index.position(start).line, "Unterminated block comment")
            if not self.wants(variant):
                continue

            if variant.is_multiline_token:
                yield from self._block_literals(path, content, index, token, start, variant, token_index)
            else:
                yield self._line_literal(path, content, index, token, start, variant, token_index)

    def _comment_nodes(self, path: Path, source: bytes, root: Node) -> list[Node]:
        nodes: list[Node] = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type in _COMMENT_NODE_TYPES:
                nodes.append(node)
                continue
            if node.type == "ERROR" or node.is_missing:
                snippet = source[node.start_byte : node.end_byte + 1]
                opener = snippet.find(b"/*")
                if opener >= 0 and b"*/" not in snippet[opener + 2 :]:
                    line = node.start_point[0] + 1
                    raise MalformedLiteral(path, line, "Unparsable comment token")
            stack.extend(node.children)

        nodes.sort(key=lambda item: item.start_byte)
        return nodes

    def _line_literal(
        self,
        path: Path,
        content: str,
        index: LineIndex,
        token: str,
        start: int,
        variant: CommentVariant,
        token_index: int,
    ) -> Literal:
        position = index.position(start)
        line_start = index.line_start(position.line)
        prefix = content[line_start:start]
        trailing = bool(prefix.strip())
        delta, trimmed = _split_decoration(token, variant.marker)
        return Literal(
            path=path,
            variant=variant,
            raw=token,
            start=start,
            line=position.line,
            column=position.column,
            line_start=line_start,
            delta=delta,
            trimmed=trimmed,
            indent=" " * position.column if trailing else prefix,
            marker=variant.marker,
            lead=content[line_start : start + delta],
            token=token_index,
            trailing=trailing,
        )

    def _block_literals(
        self,
        path: Path,
        content: str,
        index: LineIndex,
        token: str,
        start: int,
        variant: CommentVariant,
        token_index: int,
    ) -> Iterator[Literal]:
        segments = token.split("\n")
        segment_start = start
        last = len(segments) - 1

        for number, segment in enumerate(segments):
            segment = segment.rstrip("\r") if number < last else segment
            if number == 0:
                raw_start = segment_start
                raw = segment
                marker = variant.marker
            else:
                indentation = len(segment) - len(segment.lstrip(" \t"))
                raw_start = segment_start + indentation
                raw = segment[indentation:]
                marker = "*" if raw.startswith("*") and not raw.startswith("*/") else ""

            closer = "*/" if number == last else ""
            delta, trimmed = _split_decoration(raw, marker, closer)
            position = index.position(raw_start)
            line_start = index.line_start(position.line)
            prefix = content[line_start:raw_start]
            trailing = number == 0 and bool(prefix.strip())

            yield Literal(
                path=path,
                variant=variant,
                raw=raw,
                start=raw_start,
                line=position.line,
                column=position.column,
                line_start=line_start,
                delta=delta,
                trimmed=trimmed,
                indent=" " * position.column if trailing else prefix,
                marker=marker,
                lead=content[line_start : raw_start + delta],
                token=token_index,
                trailing=trailing,
            )
            segment_start += len(segments[number]) + 1
