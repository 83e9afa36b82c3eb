"""Checker implementations and contracts."""

from .base import Checker, CheckerContext, CheckerKind, Suggestion, parse_checker_kinds
from .cached import CachedChecker
from .dummy import DummyChecker
from .substitution import SubstitutionChecker


def build_default_checkers(context: CheckerContext, kinds: list[CheckerKind]) -> dict[str, Checker]:
    """Return the selected checkers keyed by name, each wrapped with the context cache."""
    checkers: dict[str, Checker] = {}
    for kind in kinds:
        if kind is CheckerKind.DUMMY:
            checker: Checker = DummyChecker()
        else:
            checker = SubstitutionChecker(context.substitutions)
        checkers[kind.value] = CachedChecker(checker, context)
    return checkers


__all__ = [
    "CachedChecker",
    "Checker",
    "CheckerContext",
    "CheckerKind",
    "DummyChecker",
    "SubstitutionChecker",
    "Suggestion",
    "build_default_checkers",
    "parse_checker_kinds",
]
