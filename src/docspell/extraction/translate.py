"""Bidirectional mapping between chunk-local ranges and file spans."""

from __future__ import annotations

from typing import Sequence

from docspell.errors import SpanResolutionError
from docspell.extraction.chunk import Chunk
from docspell.extraction.span import CharRange, FileSpan, Position


def resolve(chunk: Chunk, chunk_range: CharRange) -> list[FileSpan]:
    """Return the file spans covered by a chunk-local range.

    Each fragment owns its text plus the separator that follows it, so a
    range that ends on or starts at a separator is attributed to the
    preceding fragment.
    """

    if chunk_range.is_empty:
        raise SpanResolutionError(f"Empty range {chunk_range.start}..{chunk_range.end} cannot be resolved", chunk.path)
    if chunk_range.end > len(chunk.text):
        raise SpanResolutionError(
            f"Range {chunk_range.start}..{chunk_range.end} exceeds chunk of length {len(chunk.text)}",
            chunk.path,
        )

    spans: list[FileSpan] = []
    for number, fragment in enumerate(chunk.fragments):
        has_separator = chunk.separator_after(number)
        owned_end = fragment.chunk_end + (1 if has_separator else 0)
        if chunk_range.end <= fragment.chunk_start:
            break
        if chunk_range.start >= owned_end:
            continue

        start = max(chunk_range.start, fragment.chunk_start)
        end = min(chunk_range.end, fragment.chunk_end)
        covers_separator = has_separator and chunk_range.start <= fragment.chunk_end < chunk_range.end
        if start == end and not covers_separator:
            continue

        intra_start = start - fragment.chunk_start
        intra_end = end - fragment.chunk_start
        spans.append(
            FileSpan(
                path=chunk.path,
                start=fragment.file_start + intra_start,
                end=fragment.file_start + intra_end,
                start_pos=Position(fragment.line, fragment.column + intra_start),
                end_pos=Position(fragment.line, fragment.column + intra_end),
                fragment=number,
                intra_start=intra_start,
                intra_end=intra_end,
                covers_separator=covers_separator,
            )
        )

    if not spans:
        raise SpanResolutionError(
            f"Range {chunk_range.start}..{chunk_range.end} does not cover any source text",
            chunk.path,
        )
    return spans


def _locate(chunk: Chunk, span: FileSpan) -> int:
    candidates = [
        number
        for number, fragment in enumerate(chunk.fragments)
        if fragment.file_start <= span.start and span.end <= fragment.file_end
    ]
    if not candidates:
        raise SpanResolutionError(
            f"File span {span.start}..{span.end} at line {span.line} is not inside trimmed content",
            chunk.path,
        )
    if span.fragment in candidates:
        return span.fragment
    return candidates[0]


def find_covering(chunk: Chunk, file_spans: FileSpan | Sequence[FileSpan]) -> CharRange:
    """Inverse of ``resolve``: map file spans back to one chunk-local range."""

    spans = [file_spans] if isinstance(file_spans, FileSpan) else list(file_spans)
    if not spans:
        raise SpanResolutionError("No file spans given", chunk.path)

    located = [(_locate(chunk, span), span) for span in spans]
    for (previous, previous_span), (current, current_span) in zip(located, located[1:]):
        if current != previous + 1:
            raise SpanResolutionError("File spans are not contiguous in chunk order", chunk.path)
        if previous_span.end != chunk.fragments[previous].file_end:
            raise SpanResolutionError("File span stops before the end of its fragment", chunk.path)
        if current_span.start != chunk.fragments[current].file_start:
            raise SpanResolutionError("File span starts after the beginning of its fragment", chunk.path)

    first_index, first_span = located[0]
    last_index, last_span = located[-1]
    first = chunk.fragments[first_index]
    last = chunk.fragments[last_index]

    start = first.chunk_start + (first_span.start - first.file_start)
    end = last.chunk_start + (last_span.end - last.file_start)
    if last_span.covers_separator:
        if not chunk.separator_after(last_index):
            raise SpanResolutionError("File span claims a separator that does not exist", chunk.path)
        end += 1
    return CharRange(start, end)


def resolve_target(chunk: Chunk, chunk_range: CharRange) -> list[FileSpan]:
    """Resolve a suggestion range that must cover at least one file character."""

    spans = resolve(chunk, chunk_range)
    if all(span.start == span.end for span in spans):
        raise SpanResolutionError(
            f"Range {chunk_range.start}..{chunk_range.end} only covers a line separator",
            chunk.path,
        )
    return spans
