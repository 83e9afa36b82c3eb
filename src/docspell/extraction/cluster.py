"""Cluster adjacent comment literals into chunks."""

from __future__ import annotations

from docspell.extraction.chunk import SEPARATOR, Chunk, Fragment
from docspell.extraction.literal import Literal


def _continues(previous: Literal, current: Literal) -> bool:
    if previous.variant is not current.variant:
        return False
    if previous.path != current.path:
        return False
    if current.variant.is_multiline_token:
        return previous.token == current.token
    if previous.trailing or current.trailing:
        return False
    return current.line == previous.line + 1


def _iter_runs(literals: list[Literal]) -> list[list[Literal]]:
    runs: list[list[Literal]] = []
    current: list[Literal] = []

    for literal in literals:
        if current and not _continues(current[-1], literal):
            runs.append(current)
            current = []
        current.append(literal)

    if current:
        runs.append(current)
    return runs


def chunk_from_literals(literals: list[Literal]) -> Chunk:
    """Join a run of literals into one chunk with a fragment per literal."""

    if not literals:
        raise ValueError("Cannot build a chunk from zero literals")

    fragments: list[Fragment] = []
    pieces: list[str] = []
    cursor = 0

    for number, literal in enumerate(literals):
        if number:
            pieces.append(SEPARATOR)
            cursor += len(SEPARATOR)
        fragments.append(
            Fragment(
                chunk_start=cursor,
                chunk_end=cursor + len(literal.trimmed),
                file_start=literal.content_start,
                line=literal.line,
                column=literal.column + literal.delta,
                unit=number,
            )
        )
        pieces.append(literal.trimmed)
        cursor += len(literal.trimmed)

    chunk = Chunk(
        path=literals[0].path,
        variant=literals[0].variant,
        text="".join(pieces),
        fragments=fragments,
        units=[literal.to_unit() for literal in literals],
        literals=list(literals),
    )
    chunk.verify()
    return chunk


def build_chunks(literals: list[Literal]) -> list[Chunk]:
    """Split a literal sequence into deterministic chunks in document order."""

    return [chunk_from_literals(run) for run in _iter_runs(literals)]
