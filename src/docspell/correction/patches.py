"""Patch construction from chunk ranges and offset-safe application."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, Iterator

from docspell.errors import SpanResolutionError, StalePatch
from docspell.extraction.chunk import Chunk, render_line
from docspell.extraction.span import CharRange, FileSpan
from docspell.extraction.translate import resolve

LOGGER = logging.getLogger(__name__)


class PatchKind(str, Enum):
    REPLACE = "replace"
    INSERT_BEFORE = "insert_before"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Patch:
    """File-local edit expressed against original content offsets.

    ``expected`` is the original text at ``start..end``; for insertions it
    is the text of the line the insertion goes before.
    """

    path: Path
    kind: PatchKind
    line: int
    start: int
    end: int
    text: str = ""
    expected: str = ""

    @property
    def range(self) -> CharRange:
        return CharRange(self.start, self.end)

    def found_in(self, content: str) -> str:
        if self.kind is PatchKind.INSERT_BEFORE:
            return content[self.start : self.start + len(self.expected)]
        return content[self.start : self.end]

    def to_payload(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "line": self.line,
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "expected": self.expected,
        }


class FirstAidKit:
    """Ordered patch collection for one file, applied in descending offset order."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._patches: list[Patch] = []

    def __len__(self) -> int:
        return len(self._patches)

    def __iter__(self) -> Iterator[Patch]:
        return iter(self._patches)

    def add(self, patch: Patch) -> None:
        self.extend([patch])

    def extend(self, patches: Iterable[Patch]) -> None:
        """Add a group of patches, all or none."""

        batch = list(patches)
        for patch in batch:
            if patch.path != self.path:
                raise ValueError(f"Patch for {patch.path} does not belong to kit for {self.path}")
            for existing in self._patches + [other for other in batch if other is not patch]:
                if patch.range.overlaps(existing.range):
                    raise ValueError(
                        f"Patch at line {patch.line} overlaps patch at line {existing.line} in {self.path}"
                    )
        self._patches.extend(batch)

    def ordered(self) -> list[Patch]:
        """Patches in application order: descending start, replacements before insertions."""

        indexed = list(enumerate(self._patches))
        indexed.sort(key=lambda item: (item[1].start, item[1].end, item[0]), reverse=True)
        return [patch for _, patch in indexed]

    def verify(self, content: str) -> None:
        for patch in self._patches:
            found = patch.found_in(content)
            if found != patch.expected:
                raise StalePatch(self.path, patch.line, patch.expected, found)

    def apply(self, content: str) -> str:
        """Render patched content, raising StalePatch before any edit is made."""

        self.verify(content)
        result = content
        for patch in self.ordered():
            result = result[: patch.start] + patch.text + result[patch.end :]
        return result


def _replace(chunk: Chunk, content: str, line: int, start: int, end: int, text: str) -> Patch:
    kind = PatchKind.DELETE if not text else PatchKind.REPLACE
    return Patch(path=chunk.path, kind=kind, line=line, start=start, end=end, text=text, expected=content[start:end])


def line_delimiter(content: str, offset: int = 0) -> str:
    """Line ending used by the line holding ``offset``, else by the first line."""

    newline = content.find("\n", offset)
    if newline < 0:
        newline = content.find("\n")
    if newline > 0 and content[newline - 1] == "\r":
        return "\r\n"
    return "\n"


def _line_text(content: str, start: int) -> str:
    end = content.find("\n", start)
    return content[start:] if end < 0 else content[start:end]


def rewrite_units(
    chunk: Chunk,
    content: str,
    first: int,
    start: int,
    last: int,
    end: int,
    replacement: str,
) -> list[Patch]:
    """Replace text between two unit-local positions, one patch per physical line.

    ``start`` is an offset into the text of unit ``first`` and ``end`` an
    offset into the text of unit ``last``. Lines after the first are rebuilt
    with the continuation prefix of the first affected unit.
    """

    units = chunk.units
    head_unit = units[first]
    tail_unit = units[last]
    lines = (head_unit.text[:start] + replacement + tail_unit.text[end:]).split("\n")
    lead = chunk.continuation_lead(first)
    delimiter = line_delimiter(content, head_unit.content_end)
    span = last - first
    patches: list[Patch] = []

    if span == 0:
        if len(lines) == 1:
            patches.append(
                _replace(
                    chunk,
                    content,
                    head_unit.line,
                    head_unit.content_start + start,
                    head_unit.content_start + end,
                    replacement,
                )
            )
        else:
            text = lines[0] + "".join(delimiter + render_line(lead, line) for line in lines[1:])
            patches.append(_replace(chunk, content, head_unit.line, head_unit.content_start, head_unit.content_end, text))
        return [patch for patch in patches if patch.text != patch.expected]

    patches.append(_replace(chunk, content, head_unit.line, head_unit.content_start, head_unit.content_end, lines[0]))

    if len(lines) == 1:
        patches.append(
            Patch(
                path=chunk.path,
                kind=PatchKind.DELETE,
                line=head_unit.line,
                start=head_unit.content_end,
                end=tail_unit.content_end,
                expected=content[head_unit.content_end : tail_unit.content_end],
            )
        )
        return [patch for patch in patches if patch.text != patch.expected]

    kept = min(span, len(lines) - 1)
    for number in range(1, kept):
        unit = units[first + number]
        patches.append(_replace(chunk, content, unit.line, unit.line_start, unit.content_end, render_line(lead, lines[number])))

    if len(lines) - 1 > span:
        extra = lines[span : len(lines) - 1]
        patches.append(
            Patch(
                path=chunk.path,
                kind=PatchKind.INSERT_BEFORE,
                line=tail_unit.line,
                start=tail_unit.line_start,
                end=tail_unit.line_start,
                text="".join(render_line(lead, line) + delimiter for line in extra),
                expected=_line_text(content, tail_unit.line_start),
            )
        )
    elif len(lines) - 1 < span:
        removed_from = units[first + kept]
        patches.append(
            Patch(
                path=chunk.path,
                kind=PatchKind.DELETE,
                line=removed_from.line,
                start=removed_from.line_start,
                end=tail_unit.line_start,
                expected=content[removed_from.line_start : tail_unit.line_start],
            )
        )

    patches.append(
        _replace(chunk, content, tail_unit.line, tail_unit.line_start, tail_unit.content_end, render_line(lead, lines[-1]))
    )
    return [patch for patch in patches if patch.kind is PatchKind.INSERT_BEFORE or patch.text != patch.expected]


def _unit_bounds(chunk: Chunk, spans: list[FileSpan]) -> tuple[int, int, int, int]:
    first_fragment = chunk.fragments[spans[0].fragment]
    last_fragment = chunk.fragments[spans[-1].fragment]
    first = first_fragment.unit
    last = last_fragment.unit

    for previous, current in zip(spans, spans[1:]):
        previous_unit = chunk.units[chunk.fragments[previous.fragment].unit]
        current_unit = chunk.units[chunk.fragments[current.fragment].unit]
        if current_unit.line != previous_unit.line + 1:
            raise SpanResolutionError("Range crosses markup hidden from the checked text", chunk.path)
        if previous.end != previous_unit.content_end or current.start != current_unit.content_start:
            raise SpanResolutionError("Range crosses markup hidden from the checked text", chunk.path)

    start = spans[0].start - chunk.units[first].content_start
    end = spans[-1].end - chunk.units[last].content_start
    if spans[-1].covers_separator:
        if spans[-1].end != chunk.units[last].content_end or last + 1 >= len(chunk.units):
            raise SpanResolutionError("Range crosses markup hidden from the checked text", chunk.path)
        last += 1
        end = 0
    return first, start, last, end


def build_patches(chunk: Chunk, content: str, chunk_range: CharRange, replacement: str) -> list[Patch]:
    """Translate a chunk-local replacement into file patches."""

    spans = resolve(chunk, chunk_range)
    first, start, last, end = _unit_bounds(chunk, spans)
    patches = rewrite_units(chunk, content, first, start, last, end, replacement)
    LOGGER.debug(
        "Built %d patch(es) for %s range %d..%d",
        len(patches),
        chunk.path,
        chunk_range.start,
        chunk_range.end,
    )
    return patches
