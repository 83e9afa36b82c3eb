"""Greedy re-wrapping of chunk text to a maximum line width."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import Sequence

from docspell.correction.patches import Patch, rewrite_units
from docspell.extraction.chunk import Chunk
from docspell.extraction.literal import LineUnit
from docspell.extraction.span import CharRange, merge_ranges
from docspell.extraction.variant import CommentVariant

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 80

_TOKEN_RE = re.compile(r"\S+")
_INNER_NEWLINE_RE = re.compile(r"[ \t]*\n[ \t]*")
_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")

_UNBREAKABLE_RES = (
    re.compile(r"(`+).+?\1", re.DOTALL),
    re.compile(r"!?\[[^\]]*\]\([^)]*\)"),
    re.compile(r"!?\[[^\]]*\]\[[^\]]*\]"),
    re.compile(r"<[A-Za-z][A-Za-z0-9+.-]*:[^>\s]*>"),
    re.compile(r"https?://\S+"),
)

_BLOCK_START_RE = re.compile(r"^(?:[-+*]|[-=_*]{3,}|#{1,6}|\d{1,9}[.)]|>.*|\|.*|`{3,}.*|~{3,}.*)$")
_FENCE_RE = re.compile(r"^(?:`{3,}|~{3,})")
_BOUNDARY_RE = re.compile(r"^(?:#{1,6}(?:\s|$)|(?:[-=*_][ \t]*){3,}$|\||>|<|\[[^\]]+\]:\s)")
_LIST_ITEM_RE = re.compile(r"^(?:[-+*]|\d{1,9}[.)])[ \t]+")


class ReflowState(str, Enum):
    SCANNING = "scanning"
    WRAPPING = "wrapping"
    EMITTING = "emitting"
    DONE = "done"


_TRANSITIONS = {
    ReflowState.SCANNING: ReflowState.WRAPPING,
    ReflowState.WRAPPING: ReflowState.EMITTING,
    ReflowState.EMITTING: ReflowState.DONE,
}


@dataclass(slots=True)
class _ParagraphReflow:
    """One paragraph moving through scanning, wrapping and emitting."""

    text: str
    first_budget: int
    rest_budget: int
    whitelist: Sequence[re.Pattern[str]]
    hanging: str = ""
    state: ReflowState = ReflowState.SCANNING
    unbreakables: list[CharRange] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)

    def _advance(self, target: ReflowState) -> None:
        if _TRANSITIONS.get(self.state) is not target:
            raise RuntimeError(f"Invalid reflow transition {self.state.value} -> {target.value}")
        LOGGER.debug("Reflow %s -> %s", self.state.value, target.value)
        self.state = target

    def run(self) -> str:
        self.scan()
        self.wrap()
        return self.emit()

    def scan(self) -> None:
        ranges: list[CharRange] = []
        for pattern in (*_UNBREAKABLE_RES, *self.whitelist):
            for match in pattern.finditer(self.text):
                if match.end() > match.start():
                    ranges.append(CharRange(match.start(), match.end()))
        self.unbreakables = merge_ranges(ranges)
        self._advance(ReflowState.WRAPPING)

    def _words(self) -> list[str]:
        words: list[str] = []
        group: CharRange | None = None

        for match in _TOKEN_RE.finditer(self.text):
            token = CharRange(match.start(), match.end())
            if group is not None and any(
                locked.overlaps(group) and locked.overlaps(token) for locked in self.unbreakables
            ):
                group = CharRange(group.start, token.end)
                continue
            if group is not None:
                words.append(_INNER_NEWLINE_RE.sub(" ", self.text[group.start : group.end]))
            group = token

        if group is not None:
            words.append(_INNER_NEWLINE_RE.sub(" ", self.text[group.start : group.end]))
        return words

    def wrap(self) -> None:
        lines: list[str] = []
        current = ""
        budget = self.first_budget

        for word in self._words():
            if not current:
                current = word
                continue
            if len(current) + 1 + len(word) <= budget or _BLOCK_START_RE.match(word):
                current = f"{current} {word}"
                continue
            lines.append(current)
            current = word
            budget = self.rest_budget

        if current:
            lines.append(current)
        self.lines = lines
        self._advance(ReflowState.EMITTING)

    def emit(self) -> str:
        rendered = "\n".join([self.lines[0], *(self.hanging + line for line in self.lines[1:])]) if self.lines else ""
        self._advance(ReflowState.DONE)
        return rendered


def compile_whitelist(patterns: Sequence[str | re.Pattern[str]]) -> list[re.Pattern[str]]:
    return [pattern if isinstance(pattern, re.Pattern) else re.compile(pattern) for pattern in patterns]


def reflow_text(text: str, width: int, *, unbreakable: Sequence[str | re.Pattern[str]] = ()) -> str:
    """Wrap plain text to ``width``; text whose lines all fit is returned unchanged."""

    if width < 1:
        raise ValueError("width must be positive")
    if all(len(line) <= width for line in text.split("\n")):
        return text

    whitelist = compile_whitelist(unbreakable)
    paragraphs = _BLANK_LINE_RE.split(text)
    return "\n\n".join(
        _ParagraphReflow(text=paragraph, first_budget=width, rest_budget=width, whitelist=whitelist).run()
        for paragraph in paragraphs
    )


def _ends_paragraph(unit: LineUnit) -> bool:
    return unit.text.endswith("\\") or unit.trail.startswith("  ")


def split_paragraphs(chunk: Chunk) -> list[tuple[int, int, str]]:
    """Return ``(first, last, hanging)`` unit ranges that may be re-wrapped."""

    if chunk.variant is CommentVariant.MARKDOWN:
        if chunk.kind == "heading":
            return []
        paragraphs: list[tuple[int, int, str]] = []
        start = 0
        for number, unit in enumerate(chunk.units):
            if _ends_paragraph(unit) or number == len(chunk.units) - 1:
                paragraphs.append((start, number, ""))
                start = number + 1
        return paragraphs

    paragraphs = []
    current: tuple[int, str] | None = None
    in_fence = False

    def close(last: int) -> None:
        nonlocal current
        if current is not None and last >= current[0]:
            paragraphs.append((current[0], last, current[1]))
        current = None

    for number, unit in enumerate(chunk.units):
        text = unit.text
        if in_fence:
            if _FENCE_RE.match(text):
                in_fence = False
            continue
        if _FENCE_RE.match(text):
            close(number - 1)
            in_fence = True
            continue
        if not text or _BOUNDARY_RE.match(text):
            close(number - 1)
            continue

        item = _LIST_ITEM_RE.match(text)
        if item:
            close(number - 1)
            current = (number, " " * item.end())
        elif current is None:
            current = (number, "")

        if text.endswith("\\"):
            close(number)

    close(len(chunk.units) - 1)
    return paragraphs


class ReflowEngine:
    """Re-wrap chunks and express the result as patches."""

    def __init__(
        self,
        max_width: int = DEFAULT_MAX_WIDTH,
        unbreakable: Sequence[str | re.Pattern[str]] = (),
    ) -> None:
        if max_width < 1:
            raise ValueError("max_width must be positive")
        self.max_width = max_width
        self._whitelist = compile_whitelist(unbreakable)

    def reflow(self, chunk: Chunk, content: str) -> list[Patch] | None:
        """Return patches for the chunk, or None when nothing needs re-wrapping."""

        patches: list[Patch] = []
        for first, last, hanging in split_paragraphs(chunk):
            patches.extend(self._reflow_paragraph(chunk, content, first, last, hanging))
        return patches or None

    def _reflow_paragraph(self, chunk: Chunk, content: str, first: int, last: int, hanging: str) -> list[Patch]:
        units = chunk.units[first : last + 1]
        if all(unit.width <= self.max_width for unit in units):
            return []

        continuation = chunk.continuation_lead(first)
        paragraph = _ParagraphReflow(
            text="\n".join(unit.text for unit in units),
            first_budget=max(1, self.max_width - len(units[0].lead)),
            rest_budget=max(1, self.max_width - len(continuation) - len(hanging)),
            whitelist=self._whitelist,
            hanging=hanging,
        )
        replacement = paragraph.run()
        if paragraph.lines == [unit.text for unit in units]:
            return []

        LOGGER.debug("Re-wrapping %s lines %d-%d into %d line(s)", chunk.path, units[0].line, units[-1].line, len(paragraph.lines))
        return rewrite_units(chunk, content, first, 0, last, len(units[-1].text), replacement)
