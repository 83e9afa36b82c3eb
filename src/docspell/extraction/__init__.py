"""Text extraction, chunking and span translation."""

from .chunk import Chunk, Fragment
from .cluster import build_chunks
from .extractor import ChunkExtractor, build_default_adapters
from .literal import LineUnit, Literal, RustLiteralExtractor
from .markdown import MarkdownExtractor
from .span import CharRange, FileSpan, Position
from .translate import find_covering, resolve, resolve_target
from .variant import CommentVariant

__all__ = [
    "CharRange",
    "Chunk",
    "ChunkExtractor",
    "CommentVariant",
    "FileSpan",
    "Fragment",
    "LineUnit",
    "Literal",
    "MarkdownExtractor",
    "Position",
    "RustLiteralExtractor",
    "build_chunks",
    "build_default_adapters",
    "find_covering",
    "resolve",
    "resolve_target",
]
