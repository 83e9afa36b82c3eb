from __future__ import annotations

from pathlib import Path

import pytest

from docspell.errors import SpanResolutionError
from docspell.extraction.cluster import build_chunks
from docspell.extraction.literal import RustLiteralExtractor
from docspell.extraction.markdown import MarkdownExtractor
from docspell.extraction.span import CharRange, FileSpan, Position
from docspell.extraction.translate import find_covering, resolve, resolve_target


def _rust_chunk(content: str):
    literals = RustLiteralExtractor().extract(Path("src/lib.rs"), content)
    return build_chunks(literals)[0]


def _all_ranges(length: int):
    for start in range(length):
        for end in range(start + 1, length + 1):
            yield CharRange(start, end)


def test_single_line_range_maps_to_file_columns() -> None:
    content = "/// Fun facets shalld cause some erroris.\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("shalld")

    spans = resolve(chunk, CharRange(start, start + len("shalld")))

    assert len(spans) == 1
    assert content[spans[0].start : spans[0].end] == "shalld"
    assert spans[0].start_pos == Position(1, 15)
    assert spans[0].end_pos == Position(1, 21)


def test_resolve_and_find_covering_are_inverse_for_comment_chunks() -> None:
    content = "fn a() {}\n    /// Alpha beta\n    ///\n    /// gamma delta\nfn b() {}\n"
    chunk = _rust_chunk(content)
    assert chunk.text == "Alpha beta\n\ngamma delta"

    for chunk_range in _all_ranges(len(chunk.text)):
        assert find_covering(chunk, resolve(chunk, chunk_range)) == chunk_range


def test_resolve_and_find_covering_are_inverse_for_markdown_chunks() -> None:
    content = "Some `code` and [a link](http://example.com)\nacross lines.\n"
    chunk = MarkdownExtractor().extract(Path("README.md"), content)[0]

    for chunk_range in _all_ranges(len(chunk.text)):
        assert find_covering(chunk, resolve(chunk, chunk_range)) == chunk_range


def test_multiline_range_yields_one_span_per_literal() -> None:
    content = "/// first word\n/// second word\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("word")
    end = chunk.text.index("second") + len("second")

    spans = resolve(chunk, CharRange(start, end))

    assert [span.line for span in spans] == [1, 2]
    assert content[spans[0].start : spans[0].end] == "word"
    assert content[spans[1].start : spans[1].end] == "second"
    assert spans[0].covers_separator


def test_separator_is_attributed_to_the_earlier_literal() -> None:
    content = "/// one\n/// two\nfn main() {}\n"
    chunk = _rust_chunk(content)

    spans = resolve(chunk, CharRange(3, 4))

    assert len(spans) == 1
    assert spans[0].line == 1
    assert spans[0].start == spans[0].end == content.index("one") + 3
    assert spans[0].covers_separator


def test_out_of_bounds_and_empty_ranges_are_rejected() -> None:
    chunk = _rust_chunk("/// short\nfn main() {}\n")

    with pytest.raises(SpanResolutionError, match="exceeds chunk"):
        resolve(chunk, CharRange(0, 99))
    with pytest.raises(SpanResolutionError, match="Empty range"):
        resolve(chunk, CharRange(2, 2))


def test_find_covering_rejects_prefix_bytes() -> None:
    content = "/// short\nfn main() {}\n"
    chunk = _rust_chunk(content)
    prefix = FileSpan(
        path=chunk.path,
        start=0,
        end=5,
        start_pos=Position(1, 0),
        end_pos=Position(1, 5),
    )

    with pytest.raises(SpanResolutionError, match="not inside trimmed content"):
        find_covering(chunk, prefix)


def test_resolve_target_rejects_separator_only_ranges() -> None:
    chunk = _rust_chunk("/// Alpha\n/// beta\nfn main() {}\n")
    separator = chunk.text.index("\n")

    assert resolve(chunk, CharRange(separator, separator + 1))[0].covers_separator
    with pytest.raises(SpanResolutionError, match="only covers a line separator"):
        resolve_target(chunk, CharRange(separator, separator + 1))
    assert [span.line for span in resolve_target(chunk, CharRange(separator - 1, separator + 2))] == [1, 2]
