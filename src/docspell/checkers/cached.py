"""Checker wrapper that reuses results for unchanged chunk text."""

from __future__ import annotations

import logging

from docspell.checkers.base import Checker, CheckerContext, Suggestion
from docspell.extraction.chunk import Chunk

LOGGER = logging.getLogger(__name__)


class CachedChecker:
    """Delegate to a checker, caching per chunk fingerprint in the run context."""

    def __init__(self, inner: Checker, context: CheckerContext) -> None:
        self._inner = inner
        self._context = context
        self.name = inner.name

    def check(self, chunk: Chunk) -> list[Suggestion]:
        fingerprint = chunk.fingerprint
        hit = self._context.cached(self.name, fingerprint)
        if hit is not None:
            LOGGER.debug("Cache hit for %s chunk %s", self.name, fingerprint[:12])
            return hit

        suggestions = self._inner.check(chunk)
        self._context.store(self.name, fingerprint, suggestions)
        return suggestions
