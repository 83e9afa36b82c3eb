"""Checker contract, suggestion type and run-owned checker context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from pathlib import Path
import threading
from typing import Protocol, runtime_checkable

from docspell.extraction.chunk import Chunk
from docspell.extraction.span import CharRange

LOGGER = logging.getLogger(__name__)


def is_single_word(raw: str) -> bool:
    key = raw.strip()
    return bool(key) and not any(char.isspace() for char in key)


@dataclass(frozen=True, slots=True)
class Suggestion:
    """Checker output against chunk-local text."""

    range: CharRange
    message: str
    replacements: tuple[str, ...] = ()
    checker: str = ""

    @property
    def best(self) -> str | None:
        return self.replacements[0] if self.replacements else None


@runtime_checkable
class Checker(Protocol):
    """Protocol that every checker implementation must satisfy."""

    name: str

    def check(self, chunk: Chunk) -> list[Suggestion]:
        """Return suggestions for the chunk text or raise CheckerError."""


class CheckerKind(str, Enum):
    """Closed set of checkers that can be enabled for a run."""

    DUMMY = "dummy"
    SUBSTITUTION = "substitution"

    @classmethod
    def parse(cls, raw: str) -> "CheckerKind":
        try:
            return cls(raw.strip().lower())
        except ValueError as exc:
            allowed = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown checker {raw!r}; expected one of: {allowed}") from exc


@dataclass(slots=True)
class CheckerContext:
    """Explicitly constructed state shared by the checkers of one run.

    Holds the substitution table and the suggestion cache keyed by chunk
    fingerprint. Use it as a context manager so the cache is released when
    the run ends.
    """

    substitutions: dict[str, str] = field(default_factory=dict)
    _cache: dict[tuple[str, str], list[Suggestion]] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _open: bool = field(default=False, init=False, repr=False)

    @classmethod
    def from_substitution_file(cls, path: Path | None) -> "CheckerContext":
        if path is None:
            return cls()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"Cannot load substitutions from {path}: {exc}") from exc
        if not isinstance(payload, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in payload.items()
        ):
            raise ValueError(f"Substitutions file {path} must map strings to strings")
        for key in payload:
            if not is_single_word(key):
                raise ValueError(f"Substitutions file {path} has a key that is not a single word: {key!r}")
        return cls(substitutions=dict(payload))

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "CheckerContext":
        self._open = True
        return self

    def close(self) -> None:
        with self._lock:
            LOGGER.debug("Closing checker context with %d cached chunk result(s)", len(self._cache))
            self._cache.clear()
        self._open = False

    def __enter__(self) -> "CheckerContext":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def cached(self, checker: str, fingerprint: str) -> list[Suggestion] | None:
        with self._lock:
            hit = self._cache.get((checker, fingerprint))
        return list(hit) if hit is not None else None

    def store(self, checker: str, fingerprint: str, suggestions: list[Suggestion]) -> None:
        if not self._open:
            raise RuntimeError("Checker context is not open")
        with self._lock:
            self._cache[(checker, fingerprint)] = list(suggestions)


def parse_checker_kinds(raw: str) -> list[CheckerKind]:
    """Parse a comma separated checker list, keeping order and dropping duplicates."""

    kinds: list[CheckerKind] = []
    for item in raw.split(","):
        if not item.strip():
            continue
        kind = CheckerKind.parse(item)
        if kind not in kinds:
            kinds.append(kind)
    if not kinds:
        raise ValueError("At least one checker must be enabled")
    return kinds
