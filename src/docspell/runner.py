"""Per-file worker pool running extraction, checking, fixing and reflow."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path
import threading
from typing import Mapping, Sequence

from docspell.checkers.base import Checker
from docspell.config import DocspellSettings
from docspell.correction.files import FileSource, LocalFileSource, apply_kit
from docspell.correction.patches import FirstAidKit, Patch, build_patches
from docspell.correction.signals import take_exit_request
from docspell.errors import CheckerError, DocspellError, MalformedLiteral, SourceIOError, SpanResolutionError, StalePatch
from docspell.extraction.chunk import Chunk
from docspell.extraction.extractor import ChunkExtractor, build_default_adapters
from docspell.extraction.span import FileSpan
from docspell.extraction.translate import resolve_target
from docspell.reflow.engine import ReflowEngine

LOGGER = logging.getLogger(__name__)


def _build_extractor(settings: DocspellSettings) -> ChunkExtractor:
    extractor = ChunkExtractor()
    adapters = build_default_adapters(doc_comments=settings.doc_comments, dev_comments=settings.dev_comments)
    for name, adapter in adapters.items():
        extractor.register_adapter(name, adapter)
    return extractor


class RunMode(str, Enum):
    CHECK = "check"
    FIX = "fix"
    REFLOW = "reflow"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One suggestion translated to file positions for display."""

    path: Path
    spans: tuple[FileSpan, ...]
    message: str
    replacements: tuple[str, ...] = ()
    checker: str = ""

    @property
    def line(self) -> int:
        return self.spans[0].start_pos.line

    def to_payload(self) -> dict[str, object]:
        return {
            "line": self.line,
            "column": self.spans[0].start_pos.column,
            "message": self.message,
            "replacements": list(self.replacements),
            "checker": self.checker,
            "spans": [span.to_payload() for span in self.spans],
        }


@dataclass(slots=True)
class FileReport:
    """Outcome of processing one file."""

    path: Path
    diagnostics: list[Diagnostic] = field(default_factory=list)
    patches: list[Patch] = field(default_factory=list)
    applied: int = 0
    uncorrected: int = 0
    skipped_chunks: int = 0
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def fail(self, exc: DocspellError) -> "FileReport":
        self.error = str(exc)
        self.error_kind = type(exc).__name__
        LOGGER.error("Failed to process %s: %s", self.path, exc)
        return self

    def to_payload(self, *, include_patches: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "path": str(self.path),
            "diagnostics": [diagnostic.to_payload() for diagnostic in self.diagnostics],
            "applied": self.applied,
            "uncorrected": self.uncorrected,
            "skipped_chunks": self.skipped_chunks,
        }
        if include_patches:
            payload["patches"] = [patch.to_payload() for patch in self.patches]
        if self.error is not None:
            payload["error"] = self.error
            payload["error_kind"] = self.error_kind
        return payload


class ResultCollector:
    """Append-only, thread-safe map of file reports keyed by path."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: dict[Path, FileReport] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._reports

    def insert(self, report: FileReport) -> None:
        with self._lock:
            if report.path in self._reports:
                raise ValueError(f"Report for {report.path} was already collected")
            self._reports[report.path] = report

    def get(self, path: Path) -> FileReport | None:
        with self._lock:
            return self._reports.get(path)


@dataclass(slots=True)
class RunReport:
    """Run summary with file reports in input order."""

    mode: RunMode
    files: list[FileReport]
    skipped: list[Path] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False

    @property
    def uncorrected(self) -> int:
        return sum(report.uncorrected for report in self.files)

    @property
    def has_uncorrected(self) -> bool:
        return self.uncorrected > 0

    @property
    def failed(self) -> list[FileReport]:
        return [report for report in self.files if not report.ok]

    def exit_code(self) -> int:
        if self.cancelled:
            return 130
        if self.has_uncorrected or self.failed:
            return 1
        return 0

    def to_payload(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "dry_run": self.dry_run,
            "processed": len(self.files),
            "uncorrected": self.uncorrected,
            "cancelled": self.cancelled,
            "files": [report.to_payload(include_patches=self.dry_run) for report in self.files],
            "skipped": [str(path) for path in self.skipped],
            "errors": [
                {"path": str(report.path), "error": report.error, "kind": report.error_kind}
                for report in self.failed
            ],
        }


class DocumentationRunner:
    """Run checks, fixes or reflow over many files with one task per file."""

    def __init__(
        self,
        settings: DocspellSettings,
        checkers: Mapping[str, Checker] | None = None,
        file_source: FileSource | None = None,
        *,
        extractor: ChunkExtractor | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._settings = settings
        self._checkers = dict(checkers or {})
        self._file_source = file_source or LocalFileSource()
        self._extractor = extractor or _build_extractor(settings)
        self._reflow = ReflowEngine(max_width=settings.max_line_width, unbreakable=settings.unbreakable)
        self.cancel_event = cancel_event or threading.Event()

    def run(self, paths: Sequence[Path], mode: RunMode, dry_run: bool = False) -> RunReport:
        ordered = list(dict.fromkeys(paths))
        collector = ResultCollector()
        LOGGER.info("Running %s over %d file(s) with %d worker(s)", mode.value, len(ordered), self._settings.workers)

        with ThreadPoolExecutor(max_workers=self._settings.workers, thread_name_prefix="docspell") as executor:
            futures: dict[Future[FileReport | None], Path] = {
                executor.submit(self._run_file, path, mode, dry_run): path for path in ordered
            }
            try:
                for future in as_completed(futures):
                    if future.cancelled():
                        continue
                    report = future.result()
                    if report is not None:
                        collector.insert(report)
                    if take_exit_request():
                        LOGGER.warning("Exiting after pending writes completed")
                        raise KeyboardInterrupt
                    if self.cancel_event.is_set():
                        for pending in futures:
                            pending.cancel()
            except KeyboardInterrupt:
                self.cancel_event.set()
                for pending in futures:
                    pending.cancel()
                raise

        files: list[FileReport] = []
        skipped: list[Path] = []
        for path in ordered:
            report = collector.get(path)
            if report is None:
                skipped.append(path)
            else:
                files.append(report)

        return RunReport(
            mode=mode,
            files=files,
            skipped=skipped,
            cancelled=self.cancel_event.is_set(),
            dry_run=dry_run,
        )

    def _run_file(self, path: Path, mode: RunMode, dry_run: bool) -> FileReport | None:
        if self.cancel_event.is_set():
            LOGGER.debug("Cancelled before starting %s", path)
            return None

        report = FileReport(path=path)
        if not self._extractor.supports(path):
            return report.fail(SourceIOError(path, "No extractor for this file type"))
        try:
            content = self._file_source.read(path)
            chunks = self._extractor.extract(path, content)
        except (MalformedLiteral, SourceIOError) as exc:
            return report.fail(exc)

        LOGGER.debug("Extracted %d chunk(s) from %s", len(chunks), path)
        kit = FirstAidKit(path)
        if mode is RunMode.REFLOW:
            pending = self._reflow_chunks(report, kit, chunks, content)
        else:
            pending = self._check_chunks(report, kit, chunks, content, fix=mode is RunMode.FIX)
        report.diagnostics.sort(key=lambda diagnostic: (diagnostic.spans[0].start, diagnostic.checker))

        if not pending:
            return report
        report.patches = kit.ordered()
        if dry_run:
            report.uncorrected += pending
            return report

        try:
            apply_kit(self._file_source, kit)
        except StalePatch as exc:
            LOGGER.warning("Discarding %d patch(es) for %s: %s", len(kit), path, exc)
            report.uncorrected += pending
            return report.fail(exc)
        except SourceIOError as exc:
            report.uncorrected += pending
            return report.fail(exc)

        report.applied = len(kit)
        return report

    def _check_chunks(self, report: FileReport, kit: FirstAidKit, chunks: list[Chunk], content: str, *, fix: bool) -> int:
        pending = 0
        for chunk in chunks:
            view = chunk.checked
            for checker in self._checkers.values():
                try:
                    suggestions = checker.check(view)
                except CheckerError as exc:
                    LOGGER.warning("Skipping chunk at %s:%d: %s", chunk.path, chunk.first_line, exc)
                    report.skipped_chunks += 1
                    continue

                for suggestion in suggestions:
                    try:
                        spans = resolve_target(view, suggestion.range)
                    except SpanResolutionError as exc:
                        LOGGER.warning("Dropping suggestion from %s: %s", suggestion.checker or checker.name, exc)
                        continue

                    report.diagnostics.append(
                        Diagnostic(
                            path=chunk.path,
                            spans=tuple(spans),
                            message=suggestion.message,
                            replacements=suggestion.replacements,
                            checker=suggestion.checker or checker.name,
                        )
                    )
                    if not fix or suggestion.best is None:
                        report.uncorrected += 1
                        continue
                    try:
                        kit.extend(build_patches(view, content, suggestion.range, suggestion.best))
                    except (SpanResolutionError, ValueError) as exc:
                        LOGGER.warning("Leaving suggestion at %s:%d uncorrected: %s", chunk.path, spans[0].line, exc)
                        report.uncorrected += 1
                        continue
                    pending += 1
        return pending

    def _reflow_chunks(self, report: FileReport, kit: FirstAidKit, chunks: list[Chunk], content: str) -> int:
        pending = 0
        for chunk in chunks:
            patches = self._reflow.reflow(chunk, content)
            if patches is None:
                continue
            try:
                kit.extend(patches)
            except ValueError as exc:
                LOGGER.warning("Skipping reflow of %s:%d: %s", chunk.path, chunk.first_line, exc)
                report.skipped_chunks += 1
                continue
            pending += 1
        return pending
