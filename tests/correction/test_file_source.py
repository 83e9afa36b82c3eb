from __future__ import annotations

from pathlib import Path

import pytest

from docspell.correction.files import FileSource, LocalFileSource, apply_kit
from docspell.correction.patches import FirstAidKit, Patch, PatchKind
from docspell.errors import SourceIOError, StalePatch


def test_local_file_source_satisfies_protocol() -> None:
    assert isinstance(LocalFileSource(), FileSource)


def test_write_atomic_replaces_content_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "lib.rs"
    target.write_text("/// old\n", encoding="utf-8")
    source = LocalFileSource()

    source.read(target)
    source.write_atomic(target, "/// new\n")

    assert target.read_text(encoding="utf-8") == "/// new\n"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["lib.rs"]


def test_bom_encoding_is_kept_on_write_back(tmp_path: Path) -> None:
    target = tmp_path / "bom.md"
    target.write_bytes("\ufeffHello wörld\n".encode("utf-8"))
    source = LocalFileSource()

    assert source.read(target) == "Hello wörld\n"
    assert source.encoding_of(target) == "utf-8-sig"

    source.write_atomic(target, "Hello world\n")

    assert target.read_bytes() == "\ufeffHello world\n".encode("utf-8")


def test_legacy_encoding_round_trips_unchanged(tmp_path: Path) -> None:
    target = tmp_path / "legacy.md"
    original = (
        "Привет, мир. Это документация на русском языке, сохранённая в старой кодировке.\n"
        "Вторая строка документации проверяет определение кодировки.\n"
    ).encode("cp1251")
    target.write_bytes(original)
    source = LocalFileSource()

    text = source.read(target)
    assert source.encoding_of(target) != "utf-8"

    source.write_atomic(target, text)

    assert target.read_bytes() == original


def test_missing_file_raises_source_io_error(tmp_path: Path) -> None:
    with pytest.raises(SourceIOError, match="Failed to read"):
        LocalFileSource().read(tmp_path / "missing.rs")


def test_apply_kit_writes_patched_content(tmp_path: Path) -> None:
    target = tmp_path / "lib.rs"
    target.write_text("/// teh docs\n", encoding="utf-8")
    kit = FirstAidKit(target)
    kit.add(Patch(path=target, kind=PatchKind.REPLACE, line=1, start=4, end=7, text="the", expected="teh"))

    patched = apply_kit(LocalFileSource(), kit)

    assert patched == "/// the docs\n"
    assert target.read_text(encoding="utf-8") == "/// the docs\n"


def test_apply_kit_leaves_file_untouched_when_stale(tmp_path: Path) -> None:
    target = tmp_path / "lib.rs"
    target.write_text("/// tea docs\n", encoding="utf-8")
    kit = FirstAidKit(target)
    kit.add(Patch(path=target, kind=PatchKind.REPLACE, line=1, start=4, end=7, text="the", expected="teh"))

    with pytest.raises(StalePatch):
        apply_kit(LocalFileSource(), kit)

    assert target.read_text(encoding="utf-8") == "/// tea docs\n"
