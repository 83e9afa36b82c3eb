"""Character range algebra and file coordinates for extracted text."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path

from docspell.errors import InvariantViolation


@dataclass(frozen=True, slots=True, order=True)
class CharRange:
    """Half-open range of code point offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise InvariantViolation(f"Invalid range {self.start}..{self.end}")

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def contains_range(self, other: CharRange) -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: CharRange) -> bool:
        return self.start < other.end and other.start < self.end

    def intersection(self, other: CharRange) -> CharRange | None:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start > end:
            return None
        return CharRange(start, end)

    def shift(self, delta: int) -> CharRange:
        return CharRange(self.start + delta, self.end + delta)


def merge_ranges(ranges: list[CharRange]) -> list[CharRange]:
    """Merge overlapping or touching ranges into a sorted disjoint list."""

    merged: list[CharRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end:
            previous = merged[-1]
            merged[-1] = CharRange(previous.start, max(previous.end, current.end))
            continue
        merged.append(current)
    return merged


@dataclass(frozen=True, slots=True, order=True)
class Position:
    """1-based line and 0-based code point column."""

    line: int
    column: int


@dataclass(frozen=True, slots=True)
class FileSpan:
    """Absolute file region covered by part of a chunk.

    ``fragment`` names the chunk fragment the span came from and
    ``intra_start``/``intra_end`` are offsets inside that fragment's text.
    ``covers_separator`` is set when the chunk range also included the
    line separator that follows the fragment.
    """

    path: Path
    start: int
    end: int
    start_pos: Position
    end_pos: Position
    fragment: int = 0
    intra_start: int = 0
    intra_end: int = 0
    covers_separator: bool = False

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvariantViolation(f"Negative-length file span {self.start}..{self.end} in {self.path}")

    @property
    def range(self) -> CharRange:
        return CharRange(self.start, self.end)

    @property
    def line(self) -> int:
        return self.start_pos.line

    def to_payload(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "start": {"line": self.start_pos.line, "column": self.start_pos.column},
            "end": {"line": self.end_pos.line, "column": self.end_pos.column},
        }


class LineIndex:
    """Maps code point offsets of a text to line/column positions."""

    def __init__(self, text: str) -> None:
        self._text = text
        starts = [0]
        for index, char in enumerate(text):
            if char == "\n":
                starts.append(index + 1)
        self._starts = starts

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def position(self, offset: int) -> Position:
        if offset < 0 or offset > len(self._text):
            raise InvariantViolation(f"Offset {offset} outside text of length {len(self._text)}")
        line_index = bisect_right(self._starts, offset) - 1
        return Position(line=line_index + 1, column=offset - self._starts[line_index])

    def line_start(self, line: int) -> int:
        return self._starts[line - 1]

    def line_end(self, line: int) -> int:
        """Offset of the line's newline, or end of text for the last line."""

        if line < len(self._starts):
            return self._starts[line] - 1
        return len(self._text)

    def line_text(self, line: int) -> str:
        return self._text[self.line_start(line) : self.line_end(line)]


class ByteToCharMapper:
    """Incremental UTF-8 byte offset to code point offset conversion.

    Offsets must be requested in non-decreasing order.
    """

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._byte = 0
        self._char = 0

    def to_char(self, byte_offset: int) -> int:
        if byte_offset < self._byte:
            self._byte = 0
            self._char = 0
        self._char += len(self._data[self._byte : byte_offset].decode("utf-8"))
        self._byte = byte_offset
        return self._char
