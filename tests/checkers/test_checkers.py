from __future__ import annotations

import json
from pathlib import Path

import pytest

from docspell.checkers import (
    CachedChecker,
    Checker,
    CheckerContext,
    CheckerKind,
    DummyChecker,
    SubstitutionChecker,
    Suggestion,
    build_default_checkers,
    parse_checker_kinds,
)
from docspell.errors import CheckerError
from docspell.extraction.cluster import build_chunks
from docspell.extraction.literal import RustLiteralExtractor
from docspell.extraction.span import CharRange


def _chunk(text: str):
    content = "".join(f"/// {line}\n" for line in text.split("\n")) + "fn main() {}\n"
    return build_chunks(RustLiteralExtractor().extract(Path("src/lib.rs"), content))[0]


class _CountingChecker:
    name = "counting"

    def __init__(self) -> None:
        self.calls = 0

    def check(self, chunk) -> list[Suggestion]:
        self.calls += 1
        return [Suggestion(range=CharRange(0, 1), message="first char", checker=self.name)]


def test_dummy_checker_flags_every_word() -> None:
    chunk = _chunk("Fun facets, shalld.")

    suggestions = DummyChecker().check(chunk)

    assert [chunk.text[s.range.start : s.range.end] for s in suggestions] == ["Fun", "facets", "shalld"]
    assert [s.best for s in suggestions] == ["replacement_0", "replacement_1", "replacement_2"]


def test_substitution_checker_matches_case_insensitively() -> None:
    chunk = _chunk("Teh docs shalld be fine.\nTEH end.")
    checker = SubstitutionChecker({"teh": "the", "shalld": "shall"})

    suggestions = checker.check(chunk)

    assert [(chunk.text[s.range.start : s.range.end], s.best) for s in suggestions] == [
        ("Teh", "The"),
        ("shalld", "shall"),
        ("TEH", "THE"),
    ]
    assert suggestions[0].message == "Possible misspelling 'Teh'"
    assert all(s.checker == "substitution" for s in suggestions)


def test_substitution_checker_rejects_multi_word_keys() -> None:
    with pytest.raises(CheckerError, match="single words"):
        SubstitutionChecker({"two words": "x"})


def test_checker_kinds_parse_in_order_without_duplicates() -> None:
    assert parse_checker_kinds("substitution, dummy,substitution") == [CheckerKind.SUBSTITUTION, CheckerKind.DUMMY]

    with pytest.raises(ValueError, match="Unknown checker"):
        parse_checker_kinds("hunspell")
    with pytest.raises(ValueError, match="At least one checker"):
        parse_checker_kinds(" , ")


def test_context_loads_substitutions_from_json(tmp_path: Path) -> None:
    table = tmp_path / "subs.json"
    table.write_text(json.dumps({"teh": "the"}), encoding="utf-8")
    broken = tmp_path / "broken.json"
    broken.write_text(json.dumps(["teh"]), encoding="utf-8")

    assert CheckerContext.from_substitution_file(table).substitutions == {"teh": "the"}
    assert CheckerContext.from_substitution_file(None).substitutions == {}
    with pytest.raises(ValueError, match="must map strings to strings"):
        CheckerContext.from_substitution_file(broken)
    with pytest.raises(ValueError, match="Cannot load substitutions"):
        CheckerContext.from_substitution_file(tmp_path / "missing.json")

    multi_word = tmp_path / "multi_word.json"
    multi_word.write_text(json.dumps({"two words": "x"}), encoding="utf-8")
    with pytest.raises(ValueError, match="not a single word"):
        CheckerContext.from_substitution_file(multi_word)


def test_cached_checker_reuses_results_by_fingerprint() -> None:
    inner = _CountingChecker()
    with CheckerContext() as context:
        checker = CachedChecker(inner, context)
        first = checker.check(_chunk("same text"))
        second = checker.check(_chunk("same text"))
        checker.check(_chunk("other text"))

    assert first == second
    assert inner.calls == 2
    assert not context.is_open
    assert context.cached("counting", _chunk("same text").fingerprint) is None


def test_store_requires_open_context() -> None:
    with pytest.raises(RuntimeError, match="not open"):
        CheckerContext().store("dummy", "abc", [])


def test_default_checkers_are_cached_and_satisfy_protocol() -> None:
    with CheckerContext(substitutions={"teh": "the"}) as context:
        checkers = build_default_checkers(context, [CheckerKind.SUBSTITUTION, CheckerKind.DUMMY])

    assert list(checkers) == ["substitution", "dummy"]
    assert all(isinstance(checker, CachedChecker) for checker in checkers.values())
    assert all(isinstance(checker, Checker) for checker in checkers.values())
