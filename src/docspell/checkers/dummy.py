"""Checker that flags every word, used to exercise the correction path."""

from __future__ import annotations

import logging

from razdel import tokenize

from docspell.checkers.base import Suggestion
from docspell.extraction.chunk import Chunk
from docspell.extraction.span import CharRange

LOGGER = logging.getLogger(__name__)


class DummyChecker:
    """Flag each word token and suggest ``replacement_<index>`` for it."""

    name = "dummy"

    def check(self, chunk: Chunk) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        words = [token for token in tokenize(chunk.text) if any(char.isalpha() for char in token.text)]
        for index, token in enumerate(words):
            LOGGER.debug("Token[%d]: %r", index, token.text)
            suggestions.append(
                Suggestion(
                    range=CharRange(token.start, token.stop),
                    message=f"Flagged token {token.text!r}",
                    replacements=(f"replacement_{index}",),
                    checker=self.name,
                )
            )
        return suggestions
