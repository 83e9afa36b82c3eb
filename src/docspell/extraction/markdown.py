"""Markdown block segmentation and inline text extraction."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any, Iterator

import mistune

from docspell.extraction.chunk import SEPARATOR, Chunk, Fragment
from docspell.extraction.literal import LineUnit, Literal
from docspell.extraction.span import LineIndex
from docspell.extraction.variant import CommentVariant

LOGGER = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_HEADING_RE = re.compile(r"^ {0,3}#{1,6}(?:[ \t]+|$)")
_HEADING_CLOSE_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_THEMATIC_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_SETEXT_RE = re.compile(r"^ {0,3}(?:=+|-+)[ \t]*$")
_LIST_RE = re.compile(r"^[ \t]*(?:[-+*]|\d{1,9}[.)])(?:[ \t]+(?:\[[ xX]\][ \t]+)?|$)")
_QUOTE_RE = re.compile(r"^ {0,3}>[ \t]?")
_TABLE_RE = re.compile(r"^[ \t]*\|")
_HTML_RE = re.compile(r"^ {0,3}<(?:[A-Za-z][A-Za-z0-9-]*|/[A-Za-z]|!--)")
_REFERENCE_RE = re.compile(r"^ {0,3}\[[^\]]+\]:[ \t]")

_BLOCK_TYPES = {"paragraph", "heading", "block_text", "block_quote", "list_item"}


@dataclass(slots=True)
class _Block:
    kind: str
    lines: list[LineUnit] = field(default_factory=list)


def _make_unit(line: int, line_start: int, raw: str, offset: int) -> LineUnit:
    body = raw[offset:]
    text = body.rstrip()
    lead = raw[:offset]
    stripped = lead.strip()
    indent = lead[: len(lead) - len(lead.lstrip())]
    return LineUnit(
        line=line,
        line_start=line_start,
        content_start=line_start + offset,
        text=text,
        lead=lead,
        trail=body[len(text) :],
        indent=indent,
        marker=stripped,
        gap=lead[len(indent) + len(stripped) :] if stripped else "",
    )


def _quote_depth(raw: str) -> int:
    offset = 0
    while True:
        match = _QUOTE_RE.match(raw[offset:])
        if not match:
            return offset
        offset += match.end()


def iter_blocks(content: str) -> Iterator[_Block]:
    """Yield checkable blocks (paragraphs, headings, list items) in order."""

    index = LineIndex(content)
    fence: str | None = None
    current: _Block | None = None

    for line in range(1, index.line_count + 1):
        line_start = index.line_start(line)
        raw = index.line_text(line)

        if fence is not None:
            if raw.strip().startswith(fence) and not raw.strip().strip(fence[0]):
                fence = None
            continue

        fence_match = _FENCE_RE.match(raw)
        if fence_match:
            if current is not None:
                yield current
                current = None
            fence = fence_match.group(1)
            continue

        offset = _quote_depth(raw)
        body = raw[offset:]

        if not body.strip():
            if current is not None:
                yield current
                current = None
            continue

        if _SETEXT_RE.match(body) and current is not None and current.kind == "paragraph":
            current.kind = "heading"
            yield current
            current = None
            continue

        if _THEMATIC_RE.match(body) or _TABLE_RE.match(body) or _HTML_RE.match(body) or _REFERENCE_RE.match(body):
            if current is not None:
                yield current
                current = None
            continue

        heading = _HEADING_RE.match(body)
        if heading:
            if current is not None:
                yield current
                current = None
            closing = _HEADING_CLOSE_RE.search(body, heading.end())
            end = closing.start() if closing else len(body.rstrip())
            unit = _make_unit(line, line_start, raw[: offset + end], offset + heading.end())
            if unit.text:
                yield _Block(kind="heading", lines=[unit])
            continue

        item = _LIST_RE.match(body)
        if item:
            if current is not None:
                yield current
            current = _Block(kind="list_item")
            unit = _make_unit(line, line_start, raw, offset + item.end())
            if unit.text:
                current.lines.append(unit)
            continue

        leading = len(body) - len(body.lstrip(" \t"))
        if current is None and leading >= 4 and not offset:
            continue

        if current is None:
            current = _Block(kind="paragraph")
        current.lines.append(_make_unit(line, line_start, raw, offset + leading))

    if current is not None:
        yield current


def _is_autolink(children: list[dict[str, Any]], url: str) -> bool:
    if len(children) != 1 or children[0].get("type") != "text":
        return False
    text = children[0].get("raw", "")
    return url in {text, f"mailto:{text}"}


def _walk_inline(tokens: list[dict[str, Any]]) -> Iterator[tuple[str, str]]:
    for token in tokens:
        kind = token.get("type")
        if kind == "text":
            yield "text", token.get("raw", "")
        elif kind in {"codespan", "inline_html", "block_code", "block_html"}:
            yield "skip", token.get("raw", "")
        elif kind in {"softbreak", "linebreak"}:
            yield "break", ""
        elif kind == "link":
            children = token.get("children", [])
            url = token.get("attrs", {}).get("url", "")
            if _is_autolink(children, url):
                yield "skip", children[0].get("raw", "")
                continue
            yield from _walk_inline(children)
            yield "skip", url
        elif kind == "image":
            yield "skip", token.get("attrs", {}).get("url", "")
        elif "children" in token:
            yield from _walk_inline(token["children"])
            if kind in _BLOCK_TYPES:
                yield "break", ""


def _markdown_literals(path: Path, units: list[LineUnit]) -> list[Literal]:
    return [
        Literal(
            path=path,
            variant=CommentVariant.MARKDOWN,
            raw=unit.text,
            start=unit.content_start,
            line=unit.line,
            column=len(unit.lead),
            line_start=unit.line_start,
            delta=0,
            trimmed=unit.text,
            indent=unit.indent,
            marker="",
            lead=unit.lead,
            token=number,
        )
        for number, unit in enumerate(units)
    ]


class MarkdownExtractor:
    """Turn a markdown document into one chunk per flow-content block."""

    def __init__(self) -> None:
        self._markdown = mistune.create_markdown(renderer=None)

    def extract(self, path: Path, content: str) -> list[Chunk]:
        chunks: list[Chunk] = []
        for block in iter_blocks(content):
            if not block.lines:
                continue
            chunk = self.erase(
                Chunk(
                    path=path,
                    variant=CommentVariant.MARKDOWN,
                    text="",
                    fragments=[],
                    units=list(block.lines),
                    literals=_markdown_literals(path, block.lines),
                    kind=block.kind,
                )
            )
            if chunk.fragments:
                chunks.append(chunk)
        return chunks

    def erase(self, chunk: Chunk) -> Chunk:
        """Return a chunk over the same units with code, URLs and HTML left out.

        Only prose text is copied into the result. Hidden markup sits between
        fragments, so edits can never reach into it.
        """

        units = chunk.units
        path = chunk.path
        content = SEPARATOR.join(unit.text for unit in units)
        starts: list[int] = []
        cursor = 0
        for unit in units:
            starts.append(cursor)
            cursor += len(unit.text) + len(SEPARATOR)

        pieces: list[str] = []
        fragments: list[Fragment] = []
        length = 0
        cursor = 0

        def add_text(position: int, size: int) -> None:
            nonlocal length
            number = bisect_right(starts, position) - 1
            unit = units[number]
            intra = position - starts[number]
            file_start = unit.content_start + intra
            previous = fragments[-1] if fragments else None
            if previous is not None and previous.chunk_end == length and previous.file_end == file_start:
                fragments[-1] = Fragment(
                    chunk_start=previous.chunk_start,
                    chunk_end=previous.chunk_end + size,
                    file_start=previous.file_start,
                    line=previous.line,
                    column=previous.column,
                    unit=previous.unit,
                )
            else:
                fragments.append(
                    Fragment(
                        chunk_start=length,
                        chunk_end=length + size,
                        file_start=file_start,
                        line=unit.line,
                        column=len(unit.lead) + intra,
                        unit=number,
                    )
                )
            pieces.append(content[position : position + size])
            length += size

        def add_break() -> None:
            nonlocal length
            if not fragments or (pieces and pieces[-1] == SEPARATOR):
                return
            pieces.append(SEPARATOR)
            length += len(SEPARATOR)

        for kind, value in _walk_inline(self._parse_inline(content)):
            if kind == "break":
                add_break()
                continue
            if not value:
                continue
            found = content.find(value, cursor)
            if found < 0:
                LOGGER.debug("Could not align markdown token %r in %s at line %d", value, path, units[0].line)
                continue
            if kind == "skip":
                cursor = found + len(value)
                continue

            position = found
            for number, part in enumerate(value.split(SEPARATOR)):
                if number:
                    add_break()
                    position += len(SEPARATOR)
                if part:
                    add_text(position, len(part))
                position += len(part)
            cursor = found + len(value)

        if pieces and pieces[-1] == SEPARATOR:
            pieces.pop()

        return Chunk(
            path=path,
            variant=chunk.variant,
            text="".join(pieces),
            fragments=fragments,
            units=units,
            literals=chunk.literals,
            kind=chunk.kind if chunk.variant is CommentVariant.MARKDOWN else "prose",
        )

    def _parse_inline(self, content: str) -> list[dict[str, Any]]:
        tokens = self._markdown(content)
        if isinstance(tokens, str):
            raise TypeError("mistune returned rendered output instead of AST tokens")
        return tokens
