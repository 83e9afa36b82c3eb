"""Routing from file types to chunk extraction adapters."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from docspell.extraction.chunk import Chunk
from docspell.extraction.cluster import build_chunks
from docspell.extraction.literal import RustLiteralExtractor
from docspell.extraction.markdown import MarkdownExtractor


@runtime_checkable
class ChunkAdapter(Protocol):
    """Protocol that every source-format adapter must implement."""

    def supports(self, path: Path) -> bool:
        """Return True when this adapter can extract the given file."""

    def extract(self, path: Path, content: str) -> list[Chunk]:
        """Extract chunks from decoded file content."""


class RustAdapter:
    """Chunks from Rust comment literals."""

    def __init__(self, *, doc_comments: bool = True, dev_comments: bool = False) -> None:
        self._doc_comments = doc_comments
        self._dev_comments = dev_comments

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() == ".rs"

    def extract(self, path: Path, content: str) -> list[Chunk]:
        extractor = RustLiteralExtractor(doc_comments=self._doc_comments, dev_comments=self._dev_comments)
        chunks = build_chunks(extractor.extract(path, content))
        markdown = MarkdownExtractor()
        for chunk in chunks:
            # rustdoc renders doc comments as markdown
            if chunk.variant.is_documentation:
                chunk.plain = markdown.erase(chunk)
        return chunks


class MarkdownAdapter:
    """Chunks from markdown flow-content blocks."""

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in {".md", ".markdown"}

    def extract(self, path: Path, content: str) -> list[Chunk]:
        return MarkdownExtractor().extract(path, content)


def build_default_adapters(*, doc_comments: bool = True, dev_comments: bool = False) -> dict[str, ChunkAdapter]:
    """Return the default adapter map keyed by adapter name."""

    return {
        "rust": RustAdapter(doc_comments=doc_comments, dev_comments=dev_comments),
        "markdown": MarkdownAdapter(),
    }


class ChunkExtractor:
    """Resolve the right adapter for a path and return its chunks."""

    def __init__(self) -> None:
        self._adapter_map: dict[str, ChunkAdapter] = {}

    def register_adapter(self, name: str, adapter: ChunkAdapter) -> None:
        """Register an adapter implementation by key."""

        if not name:
            raise ValueError("Adapter name cannot be empty")
        self._adapter_map[name] = adapter

    def supports(self, path: Path) -> bool:
        return any(adapter.supports(path) for adapter in self._adapter_map.values())

    def extract(self, path: Path, content: str) -> list[Chunk]:
        for adapter in self._adapter_map.values():
            if adapter.supports(path):
                return adapter.extract(path, content)
        raise ValueError(f"No adapter registered for {path}")
