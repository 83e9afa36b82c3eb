"""File access capability with encoding detection and atomic write-back."""

from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path
import shutil
import tempfile
import threading
from typing import Protocol, runtime_checkable

from charset_normalizer import from_bytes

from docspell.correction.patches import FirstAidKit
from docspell.correction.signals import deferred_signals
from docspell.errors import SourceIOError

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class FileSource(Protocol):
    """Protocol for reading source files and writing them back atomically."""

    def read(self, path: Path) -> str:
        """Return the decoded file content."""

    def write_atomic(self, path: Path, content: str) -> None:
        """Replace the file content in one step or not at all."""


class LocalFileSource:
    """Read and write files on the local file system, keeping their encoding."""

    def __init__(self) -> None:
        self._encodings: dict[Path, str] = {}
        self._lock = threading.Lock()

    def read(self, path: Path) -> str:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise SourceIOError(path, f"Failed to read source file: {exc}") from exc

        encoding = self._detect_encoding(path, raw)
        try:
            text = raw.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise SourceIOError(path, f"Failed to decode source file as {encoding}") from exc

        with self._lock:
            self._encodings[path] = encoding
        return text

    def encoding_of(self, path: Path) -> str:
        with self._lock:
            return self._encodings.get(path, "utf-8")

    def _detect_encoding(self, path: Path, raw: bytes) -> str:
        if raw.startswith(codecs.BOM_UTF8):
            return "utf-8-sig"
        try:
            raw.decode("utf-8")
            return "utf-8"
        except UnicodeDecodeError:
            pass

        best = from_bytes(raw).best()
        if best and best.encoding:
            LOGGER.debug("Detected %s encoding for %s", best.encoding, path)
            return best.encoding
        raise SourceIOError(path, "Could not detect source encoding")

    def write_atomic(self, path: Path, content: str) -> None:
        encoding = self.encoding_of(path)
        try:
            data = content.encode(encoding)
        except UnicodeEncodeError as exc:
            raise SourceIOError(path, f"Corrected content cannot be encoded as {encoding}") from exc

        with deferred_signals():
            temp_name: str | None = None
            try:
                with tempfile.NamedTemporaryFile(
                    "wb",
                    dir=path.parent,
                    prefix=f".{path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    temp_name = handle.name
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                if path.exists():
                    shutil.copymode(path, temp_name)
                os.replace(temp_name, path)
            except OSError as exc:
                if temp_name is not None and os.path.exists(temp_name):
                    os.unlink(temp_name)
                raise SourceIOError(path, f"Failed to write source file: {exc}") from exc


def apply_kit(source: FileSource, kit: FirstAidKit) -> str:
    """Re-read the file, apply the kit and write the result back atomically."""

    content = source.read(kit.path)
    patched = kit.apply(content)
    if patched != content:
        source.write_atomic(kit.path, patched)
        LOGGER.info("Applied %d patch(es) to %s", len(kit), kit.path)
    return patched
