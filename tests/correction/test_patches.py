from __future__ import annotations

from pathlib import Path

import pytest

from docspell.errors import SpanResolutionError, StalePatch
from docspell.correction.patches import FirstAidKit, Patch, PatchKind, build_patches
from docspell.extraction.cluster import build_chunks
from docspell.extraction.literal import RustLiteralExtractor
from docspell.extraction.markdown import MarkdownExtractor
from docspell.extraction.span import CharRange

_PATH = Path("src/lib.rs")


def _rust_chunk(content: str):
    return build_chunks(RustLiteralExtractor().extract(_PATH, content))[0]


def _apply(chunk, content: str, chunk_range: CharRange, replacement: str) -> tuple[list[Patch], str]:
    kit = FirstAidKit(chunk.path)
    patches = build_patches(chunk, content, chunk_range, replacement)
    kit.extend(patches)
    return kit.ordered(), kit.apply(content)


def test_single_word_fix_changes_only_the_target_line() -> None:
    content = "/// Fun facets shalld cause some erroris.\n/// Second line.\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("shalld")

    patches, patched = _apply(chunk, content, CharRange(start, start + 6), "shall")

    assert len(patches) == 1
    assert patches[0].kind is PatchKind.REPLACE
    assert (patches[0].start, patches[0].end) == (15, 21)
    assert patched == "/// Fun facets shall cause some erroris.\n/// Second line.\nfn main() {}\n"


def test_patched_file_re_extracts_to_substituted_chunk_text() -> None:
    content = "fn a() {}\n    /// Teh first line\n    /// and teh second.\nfn b() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("teh")

    _, patched = _apply(chunk, content, CharRange(start, start + 3), "the")

    expected = chunk.text[:start] + "the" + chunk.text[start + 3 :]
    assert _rust_chunk(patched).text == expected
    assert patched.replace("and the second", "and teh second") == content


def test_multiline_suggestion_yields_one_patch_per_line_in_descending_order() -> None:
    content = "/// foo bar\n/// baz qux\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("bar")
    end = chunk.text.index("baz") + 3

    patches, patched = _apply(chunk, content, CharRange(start, end), "BAR\nBAZ")

    assert len(patches) == 2
    assert [patch.line for patch in patches] == [2, 1]
    assert patched == "/// foo BAR\n/// BAZ qux\nfn main() {}\n"


def test_multiline_replacement_normalizes_continuation_indentation() -> None:
    content = "    /// foo bar\n  /// baz qux\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("bar")
    end = chunk.text.index("baz") + 3

    _, patched = _apply(chunk, content, CharRange(start, end), "BAR\nBAZ")

    assert patched == "    /// foo BAR\n    /// BAZ qux\nfn main() {}\n"


def test_replacement_with_more_lines_inserts_prefixed_lines() -> None:
    content = "/// alpha beta\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("beta")

    _, patched = _apply(chunk, content, CharRange(start, start + 4), "beta\ngamma")

    assert patched == "/// alpha beta\n/// gamma\nfn main() {}\n"


def test_replacement_with_fewer_lines_deletes_lines() -> None:
    content = "/// one two\n/// three four\n/// five six\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("two")
    end = chunk.text.index("five") + 4

    _, patched = _apply(chunk, content, CharRange(start, end), "2")

    assert patched == "/// one 2 six\nfn main() {}\n"


def test_three_line_replacement_across_two_literals_inserts_before_tail() -> None:
    content = "/// one two\n/// three four\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("two")
    end = chunk.text.index("three") + 5

    patches, patched = _apply(chunk, content, CharRange(start, end), "2\nmiddle\n3")

    assert PatchKind.INSERT_BEFORE in {patch.kind for patch in patches}
    assert patched == "/// one 2\n/// middle\n/// 3 four\nfn main() {}\n"


def test_stale_kit_is_rejected_before_any_edit() -> None:
    content = "/// Fun facets shalld cause some erroris.\nfn main() {}\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("shalld")
    kit = FirstAidKit(_PATH)
    kit.extend(build_patches(chunk, content, CharRange(start, start + 6), "shall"))

    changed = content.replace("shalld", "should")

    with pytest.raises(StalePatch, match="Stale patch at line 1"):
        kit.apply(changed)


def test_overlapping_patches_are_rejected() -> None:
    kit = FirstAidKit(_PATH)
    kit.add(Patch(path=_PATH, kind=PatchKind.REPLACE, line=1, start=4, end=10, text="x", expected="abcdef"))

    with pytest.raises(ValueError, match="overlaps"):
        kit.add(Patch(path=_PATH, kind=PatchKind.REPLACE, line=1, start=8, end=12, text="y", expected="ghij"))

    assert len(kit) == 1


def test_patch_for_other_file_is_rejected() -> None:
    kit = FirstAidKit(_PATH)

    with pytest.raises(ValueError, match="does not belong"):
        kit.add(Patch(path=Path("other.rs"), kind=PatchKind.DELETE, line=1, start=0, end=1, expected="x"))


def test_markdown_fix_inside_one_text_run() -> None:
    content = "Teh quick `fox`.\n"
    chunk = MarkdownExtractor().extract(Path("README.md"), content)[0]

    _, patched = _apply(chunk, content, CharRange(0, 3), "The")

    assert patched == "The quick `fox`.\n"


def test_markdown_range_crossing_hidden_markup_is_rejected() -> None:
    content = "Some `code` here.\n"
    chunk = MarkdownExtractor().extract(Path("README.md"), content)[0]

    with pytest.raises(SpanResolutionError, match="hidden"):
        build_patches(chunk, content, CharRange(0, len(chunk.text)), "replacement")


def test_multiline_fix_keeps_crlf_line_endings() -> None:
    content = "/// foo bar\r\n/// baz qux\r\nfn main() {}\r\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("bar")
    end = chunk.text.index("baz") + 3

    patches, patched = _apply(chunk, content, CharRange(start, end), "BAR\nMID\nBAZ")

    assert PatchKind.INSERT_BEFORE in {patch.kind for patch in patches}
    assert patched == "/// foo BAR\r\n/// MID\r\n/// BAZ qux\r\nfn main() {}\r\n"


def test_line_split_inside_one_crlf_line() -> None:
    content = "/// foo bar\r\nfn main() {}\r\n"
    chunk = _rust_chunk(content)
    start = chunk.text.index("bar")

    _, patched = _apply(chunk, content, CharRange(start, start + 3), "bar\nand more")

    assert patched == "/// foo bar\r\n/// and more\r\nfn main() {}\r\n"
    assert patched.count("\n") == patched.count("\r\n")
