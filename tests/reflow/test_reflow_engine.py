from __future__ import annotations

from pathlib import Path

import pytest

from docspell.correction.patches import FirstAidKit
from docspell.extraction.cluster import build_chunks
from docspell.extraction.literal import RustLiteralExtractor
from docspell.extraction.markdown import MarkdownExtractor
from docspell.reflow.engine import ReflowEngine, reflow_text

_SAMPLE = (
    "The quick brown fox jumps over the lazy dog while `inline code stays` whole "
    "and [a labelled link](http://example.com/some/path) is never split apart."
)


def _reflow_rust(content: str, width: int, **options) -> str | None:
    chunks = build_chunks(RustLiteralExtractor().extract(Path("src/lib.rs"), content))
    return _apply(chunks, content, ReflowEngine(max_width=width, **options))


def _reflow_markdown(content: str, width: int) -> str | None:
    chunks = MarkdownExtractor().extract(Path("README.md"), content)
    return _apply(chunks, content, ReflowEngine(max_width=width))


def _apply(chunks, content: str, engine: ReflowEngine) -> str | None:
    kit = FirstAidKit(chunks[0].path) if chunks else None
    for chunk in chunks:
        patches = engine.reflow(chunk, content)
        if patches is not None:
            kit.extend(patches)
    if kit is None or not len(kit):
        return None
    return kit.apply(content)


def test_two_line_doc_chunk_wraps_at_width_nine() -> None:
    content = "/// AAAA BBBB\n/// CCCC\n"

    assert _reflow_rust(content, 9) == "/// AAAA\n/// BBBB\n/// CCCC\n"


def test_reflow_is_idempotent_on_comment_chunks() -> None:
    content = "/// " + _SAMPLE + "\nfn main() {}\n"

    once = _reflow_rust(content, 40)

    assert once is not None
    assert _reflow_rust(once, 40) is None
    assert all(len(line) <= 40 for line in once.splitlines() if "`" not in line and "](" not in line)


def test_conforming_chunk_reports_no_change() -> None:
    assert _reflow_rust("/// short line\n/// another\nfn main() {}\n", 80) is None


def test_list_item_gets_hanging_indent() -> None:
    content = "/// - item text that is long enough to wrap around\n"

    assert _reflow_rust(content, 30) == "/// - item text that is long\n///   enough to wrap around\n"


def test_code_span_is_never_split() -> None:
    content = "/// see `some code span here` now\n"

    result = _reflow_rust(content, 20)

    assert result is not None
    assert any("`some code span here`" in line for line in result.splitlines())


def test_configured_pattern_is_kept_together() -> None:
    content = "/// call the Foo Bar Baz helper\n"

    result = _reflow_rust(content, 12, unbreakable=[r"Foo Bar Baz"])

    assert result == "/// call the\n/// Foo Bar Baz\n/// helper\n"


def test_fenced_code_inside_comments_is_left_alone() -> None:
    content = (
        "/// ```\n"
        "/// let very_long_identifier_name = another_very_long_function_call();\n"
        "/// ```\n"
    )

    assert _reflow_rust(content, 20) is None


def test_block_comment_lines_keep_star_prefix() -> None:
    content = "/**\n * alpha beta gamma delta\n */\n"

    assert _reflow_rust(content, 16) == "/**\n * alpha beta\n * gamma delta\n */\n"


def test_markdown_paragraph_is_wrapped_and_headings_are_not() -> None:
    assert _reflow_markdown("alpha beta gamma delta epsilon zeta\n", 20) == "alpha beta gamma\ndelta epsilon zeta\n"
    assert _reflow_markdown("# a heading that is much too long for the width\n", 20) is None


def test_reflow_text_preserves_characters_and_is_idempotent() -> None:
    for width in range(1, 60):
        once = reflow_text(_SAMPLE, width)
        assert reflow_text(once, width) == once
        assert "".join(once.split()) == "".join(_SAMPLE.split())


def test_reflow_text_rejects_non_positive_width() -> None:
    with pytest.raises(ValueError, match="width must be positive"):
        reflow_text("text", 0)


def test_reflow_keeps_crlf_line_endings() -> None:
    content = "/// AAAA BBBB\r\n/// CCCC\r\nfn main() {}\r\n"

    assert _reflow_rust(content, 9) == "/// AAAA\r\n/// BBBB\r\n/// CCCC\r\nfn main() {}\r\n"


def test_markdown_reflow_keeps_crlf_line_endings() -> None:
    content = "alpha beta gamma delta\r\n"

    reflowed = _reflow_markdown(content, 11)

    assert reflowed is not None
    assert reflowed.count("\n") == reflowed.count("\r\n")
    assert reflowed.replace("\r\n", "\n") == "alpha beta\ngamma delta\n"
