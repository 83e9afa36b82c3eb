"""Chunk model: one checkable text body with its source index."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
from pathlib import Path

from docspell.errors import InvariantViolation
from docspell.extraction.literal import LineUnit, Literal
from docspell.extraction.span import CharRange
from docspell.extraction.variant import CommentVariant

SEPARATOR = "\n"


@dataclass(frozen=True, slots=True)
class Fragment:
    """Chunk text slice that is a verbatim copy of one single-line file region."""

    chunk_start: int
    chunk_end: int
    file_start: int
    line: int
    column: int
    unit: int

    @property
    def chunk_range(self) -> CharRange:
        return CharRange(self.chunk_start, self.chunk_end)

    @property
    def file_end(self) -> int:
        return self.file_start + (self.chunk_end - self.chunk_start)


@dataclass(slots=True)
class Chunk:
    """Contiguous logical text assembled from literals or a markdown block.

    ``fragments`` are sorted by chunk offset. Between two fragments the
    chunk text holds either nothing (hidden markup) or exactly one
    ``SEPARATOR``, which belongs to the preceding fragment.

    ``plain`` is the markup-erased view of a doc comment chunk. It shares
    ``units`` with this chunk and its fragments point into the same file.
    """

    path: Path
    variant: CommentVariant
    text: str
    fragments: list[Fragment]
    units: list[LineUnit]
    literals: list[Literal] = field(default_factory=list)
    kind: str = "comment"
    plain: Chunk | None = None

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    @property
    def checked(self) -> Chunk:
        """View handed to checkers, with markdown markup erased when it applies."""

        return self.plain if self.plain is not None else self

    @property
    def first_line(self) -> int:
        return self.units[0].line if self.units else 0

    def separator_after(self, fragment_index: int) -> bool:
        """True when a separator follows the fragment in the chunk text."""

        fragment = self.fragments[fragment_index]
        if fragment_index + 1 < len(self.fragments):
            gap = self.fragments[fragment_index + 1].chunk_start - fragment.chunk_end
        else:
            gap = len(self.text) - fragment.chunk_end
        return gap == 1 and self.text[fragment.chunk_end] == SEPARATOR

    def continuation_lead(self, first: int = 0) -> str:
        """Prefix for lines rebuilt after the first affected unit."""

        unit = self.units[first]
        if self.variant is CommentVariant.MARKDOWN:
            if first + 1 < len(self.units):
                return self.units[first + 1].lead
            if self.kind == "list_item":
                return " " * len(unit.lead)
            return unit.lead
        if self.variant.needs_gap:
            return unit.indent + self.variant.marker + (unit.gap or " ")

        for later in self.units[1:]:
            if later.marker == "*":
                return later.indent + "*" + (later.gap or " ")
        if len(self.units) > 1:
            return self.units[1].indent
        return unit.indent + " " * (len(unit.marker) + len(unit.gap))

    def verify(self) -> None:
        """Check that the text is the joined unit texts of comment chunks."""

        if self.kind != "comment":
            return
        expected = SEPARATOR.join(literal.trimmed for literal in self.literals)
        if expected != self.text:
            raise InvariantViolation(f"Chunk text diverged from literals in {self.path} at line {self.first_line}")


def render_line(lead: str, text: str) -> str:
    """Join a prefix with text, dropping trailing prefix whitespace on empty lines."""

    if not text:
        return lead.rstrip()
    return lead + text
