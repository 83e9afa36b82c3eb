"""Argument parsing and run wiring shared by the docspell commands."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
import threading

from docspell.checkers import CheckerContext, build_default_checkers, parse_checker_kinds
from docspell.config import DocspellSettings
from docspell.correction.signals import SignalGuard
from docspell.errors import CheckerError
from docspell.runner import DocumentationRunner, RunMode

LOGGER = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".rs", ".md", ".markdown"}


def _is_supported(path: Path) -> bool:
    return path.suffix.lower() in _SUPPORTED_SUFFIXES


def collect_inputs(targets: list[Path]) -> list[Path]:
    files: list[Path] = []
    for target in targets:
        if target.is_file():
            files.append(target)
        elif target.is_dir():
            files.extend(sorted(path for path in target.rglob("*") if path.is_file() and _is_supported(path)))
        else:
            LOGGER.warning("Skipping missing input: %s", target)
    return list(dict.fromkeys(files))


def build_parser(description: str, *, with_dry_run: bool, with_checkers: bool) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("paths", nargs="+", help="Source files or directories with .rs/.md files")
    parser.add_argument("--max-width", type=int, help="Maximum physical line width")
    parser.add_argument("--workers", type=int, help="Number of files processed in parallel")
    parser.add_argument("--dev-comments", action="store_true", help="Also process developer comments")
    if with_checkers:
        parser.add_argument("--checkers", help="Comma separated checkers (dummy, substitution)")
        parser.add_argument("--substitutions", help="JSON file mapping misspellings to corrections")
    if with_dry_run:
        parser.add_argument("--dry-run", action="store_true", help="Print patches without writing files")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _settings_from_args(args: argparse.Namespace) -> DocspellSettings:
    settings = DocspellSettings.from_env()
    if args.max_width is not None:
        if args.max_width < 1:
            raise ValueError("--max-width must be >= 1")
        settings = replace(settings, max_line_width=args.max_width)
    if args.workers is not None:
        if args.workers < 1:
            raise ValueError("--workers must be >= 1")
        settings = replace(settings, workers=args.workers)
    if args.dev_comments:
        settings = replace(settings, dev_comments=True)
    if getattr(args, "checkers", None):
        settings = replace(settings, checkers=tuple(parse_checker_kinds(args.checkers)))
    if getattr(args, "substitutions", None):
        settings = replace(settings, substitutions_path=Path(args.substitutions))
    return settings


def run_command(mode: RunMode, args: argparse.Namespace) -> int:
    """Run one mode over the inputs named by ``args`` and print the JSON report."""

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        settings = _settings_from_args(args)
        context = CheckerContext.from_substitution_file(settings.substitutions_path)
        checkers = build_default_checkers(context, list(settings.checkers)) if mode is not RunMode.REFLOW else {}
    except (ValueError, CheckerError) as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    files = collect_inputs([Path(raw) for raw in args.paths])
    dry_run = bool(getattr(args, "dry_run", False))
    cancel_event = threading.Event()

    try:
        with context, SignalGuard(cancel_event):
            runner = DocumentationRunner(settings, checkers, cancel_event=cancel_event)
            report = runner.run(files, mode, dry_run=dry_run)
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
        return 130

    payload = {"paths": [str(raw) for raw in args.paths], **report.to_payload()}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return report.exit_code()
