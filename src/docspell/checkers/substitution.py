"""Checker driven by a table of known misspellings and their fixes."""

from __future__ import annotations

from typing import Mapping

from razdel import tokenize

from docspell.checkers.base import Suggestion, is_single_word
from docspell.errors import CheckerError
from docspell.extraction.chunk import Chunk
from docspell.extraction.span import CharRange


def _match_case(word: str, replacement: str) -> str:
    if word.isupper() and len(word) > 1:
        return replacement.upper()
    if word[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


class SubstitutionChecker:
    """Report words found in the substitution table, case-insensitively."""

    name = "substitution"

    def __init__(self, substitutions: Mapping[str, str]) -> None:
        table: dict[str, str] = {}
        for wrong, right in substitutions.items():
            if not is_single_word(wrong):
                raise CheckerError(self.name, f"Substitution keys must be single words, got {wrong!r}")
            table[wrong.strip().casefold()] = right
        self._table = table

    def check(self, chunk: Chunk) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for token in tokenize(chunk.text):
            replacement = self._table.get(token.text.casefold())
            if replacement is None:
                continue
            suggestions.append(
                Suggestion(
                    range=CharRange(token.start, token.stop),
                    message=f"Possible misspelling {token.text!r}",
                    replacements=(_match_case(token.text, replacement),),
                    checker=self.name,
                )
            )
        return suggestions
