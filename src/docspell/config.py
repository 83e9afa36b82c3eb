"""Runtime configuration for documentation checking runs."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
from typing import Mapping

from docspell.checkers.base import CheckerKind, parse_checker_kinds
from docspell.reflow.engine import DEFAULT_MAX_WIDTH


DEFAULT_WORKERS = 4
DEFAULT_CHECKERS = "substitution"
UNBREAKABLE_SEPARATOR = ";;"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_bool(*, name: str, raw_value: str) -> bool:
    lowered = raw_value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))}")


def _parse_patterns(*, name: str, raw_value: str) -> tuple[str, ...]:
    patterns = tuple(item for item in (part.strip() for part in raw_value.split(UNBREAKABLE_SEPARATOR)) if item)
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"{name} contains an invalid pattern {pattern!r}: {exc}") from exc
    return patterns


@dataclass(frozen=True, slots=True)
class DocspellSettings:
    """Validated runtime settings for check, fix and reflow runs."""

    max_line_width: int = DEFAULT_MAX_WIDTH
    doc_comments: bool = True
    dev_comments: bool = False
    workers: int = DEFAULT_WORKERS
    checkers: tuple[CheckerKind, ...] = (CheckerKind.SUBSTITUTION,)
    substitutions_path: Path | None = None
    unbreakable: tuple[str, ...] = ()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DocspellSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        width_raw = source.get("DOCSPELL_MAX_LINE_WIDTH", str(DEFAULT_MAX_WIDTH)).strip()
        doc_raw = source.get("DOCSPELL_DOC_COMMENTS", "true").strip()
        dev_raw = source.get("DOCSPELL_DEV_COMMENTS", "false").strip()
        workers_raw = source.get("DOCSPELL_WORKERS", str(DEFAULT_WORKERS)).strip()
        checkers_raw = source.get("DOCSPELL_CHECKERS", DEFAULT_CHECKERS).strip()
        substitutions_raw = source.get("DOCSPELL_SUBSTITUTIONS", "").strip()
        unbreakable_raw = source.get("DOCSPELL_UNBREAKABLE", "").strip()

        if not width_raw:
            raise ValueError("DOCSPELL_MAX_LINE_WIDTH cannot be empty")
        if not workers_raw:
            raise ValueError("DOCSPELL_WORKERS cannot be empty")
        if not checkers_raw:
            raise ValueError("DOCSPELL_CHECKERS cannot be empty")

        max_line_width = _parse_positive_int(name="DOCSPELL_MAX_LINE_WIDTH", raw_value=width_raw, minimum=1)
        workers = _parse_positive_int(name="DOCSPELL_WORKERS", raw_value=workers_raw, minimum=1)
        doc_comments = _parse_bool(name="DOCSPELL_DOC_COMMENTS", raw_value=doc_raw)
        dev_comments = _parse_bool(name="DOCSPELL_DEV_COMMENTS", raw_value=dev_raw)
        if not doc_comments and not dev_comments:
            raise ValueError("At least one of DOCSPELL_DOC_COMMENTS and DOCSPELL_DEV_COMMENTS must be enabled")

        return cls(
            max_line_width=max_line_width,
            doc_comments=doc_comments,
            dev_comments=dev_comments,
            workers=workers,
            checkers=tuple(parse_checker_kinds(checkers_raw)),
            substitutions_path=Path(substitutions_raw) if substitutions_raw else None,
            unbreakable=_parse_patterns(name="DOCSPELL_UNBREAKABLE", raw_value=unbreakable_raw),
        )
