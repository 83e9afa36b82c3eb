"""Domain errors raised while extracting, translating and correcting text."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class DocspellError(Exception):
    """Base class for file-scoped failures that never abort a whole run."""


class InvariantViolation(AssertionError):
    """Raised when range arithmetic is broken; never caught by the runner."""


@dataclass(slots=True)
class MalformedLiteral(DocspellError):
    """A comment token could not be parsed; the file is skipped."""

    path: Path
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path}, line={self.line})"


@dataclass(slots=True)
class SpanResolutionError(DocspellError):
    """A chunk range does not map cleanly onto file content."""

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} (path={self.path})"


@dataclass(slots=True)
class StalePatch(DocspellError):
    """File content no longer matches what a patch was computed against."""

    path: Path
    line: int
    expected: str
    found: str

    def __str__(self) -> str:
        return f"Stale patch at line {self.line}: expected {self.expected!r}, found {self.found!r} (path={self.path})"


@dataclass(slots=True)
class SourceIOError(DocspellError):
    """Reading or writing a source file failed."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


@dataclass(slots=True)
class CheckerError(DocspellError):
    """A checker failed on a chunk."""

    checker: str
    message: str

    def __str__(self) -> str:
        return f"{self.checker}: {self.message}"
