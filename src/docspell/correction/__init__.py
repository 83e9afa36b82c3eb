"""Patch building, application and atomic write-back."""

from .files import FileSource, LocalFileSource, apply_kit
from .patches import FirstAidKit, Patch, PatchKind, build_patches, rewrite_units

__all__ = [
    "FileSource",
    "FirstAidKit",
    "LocalFileSource",
    "Patch",
    "PatchKind",
    "apply_kit",
    "build_patches",
    "rewrite_units",
]
