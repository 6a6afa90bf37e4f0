from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import ClassVar

import pytest

from slide_toolbox.errors import UnsupportedFeatureError
from slide_toolbox.formats import registry
from slide_toolbox.formats.base import BaseCodec
from slide_toolbox.formats.registry import CodecRegistry, CodecSelectionError
from slide_toolbox.model import Document


class _TextCodec(BaseCodec):
    name: ClassVar[str] = "text"
    suffixes: ClassVar[tuple[str, ...]] = (".txt",)

    def write(self, document: Document, path: str | Path) -> Path:
        target = Path(path)
        target.write_text(document.title)
        return target


def _fresh(monkeypatch: pytest.MonkeyPatch, entry_points=()) -> CodecRegistry:
    monkeypatch.setattr(registry, "_iter_entry_points", lambda: iter(entry_points))
    reg = CodecRegistry()
    monkeypatch.setattr(registry, "_REGISTRY_INSTANCE", reg)
    # the built-in module registered itself with the global registry on first import
    import slide_toolbox.formats.builtin as builtin

    for codec_cls in (builtin.OdpCodec, builtin.PptxCodec, builtin.PdfCodec):
        reg.register(codec_cls)
    return reg


def test_builtin_codecs_available():
    assert {"odp", "pptx", "pdf"} <= set(registry.available())


def test_capabilities():
    assert registry.reader_for("deck.ODP").name == "odp"
    assert registry.writer_for("deck.odp").name == "odp"
    assert registry.reader_for("deck.pptx").name == "pptx"
    assert registry.writer_for("deck.pdf").name == "pdf"


@pytest.mark.parametrize(
    ("func", "path"),
    [
        (registry.writer_for, "deck.pptx"),
        (registry.reader_for, "deck.pdf"),
        (registry.reader_for, "notes.txt"),
        (registry.reader_for, "README"),
    ],
)
def test_unsupported_paths(func, path):
    with pytest.raises(CodecSelectionError, match="No codec can"):
        func(path)


def test_base_codec_refuses_unimplemented_direction(tmp_path):
    codec = _TextCodec()
    assert _TextCodec.can_write()
    assert not _TextCodec.can_read()
    with pytest.raises(UnsupportedFeatureError, match="reading text"):
        codec.read(tmp_path / "x.txt")


def test_register_rejects_invalid_codecs(monkeypatch):
    reg = _fresh(monkeypatch)

    class Nameless(BaseCodec):
        suffixes: ClassVar[tuple[str, ...]] = (".x",)

    class NoSuffix(BaseCodec):
        name: ClassVar[str] = "nosuffix"

    class Clash(BaseCodec):
        name: ClassVar[str] = "ODP"
        suffixes: ClassVar[tuple[str, ...]] = (".odp",)

    with pytest.raises(ValueError, match="non-empty 'name'"):
        reg.register(Nameless)
    with pytest.raises(ValueError, match="at least one suffix"):
        reg.register(NoSuffix)
    with pytest.raises(ValueError, match="already registered"):
        reg.register(Clash)


def test_registered_codec_saves_documents(monkeypatch, tmp_path):
    _fresh(monkeypatch)
    registry.register(_TextCodec)
    doc = Document(title="plain")
    written = registry.save_document(doc, tmp_path / "out.txt")
    assert written.read_text() == "plain"
    assert ".txt" in registry._REGISTRY_INSTANCE.suffixes(writable=True)


class _FakeEntryPoint:
    def __init__(self, name: str, payload: object) -> None:
        self.name = name
        self._payload = payload

    def load(self) -> object:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_entry_point_plugins_are_loaded(monkeypatch):
    points = [
        _FakeEntryPoint("text", _TextCodec),
        _FakeEntryPoint("broken", ImportError("nope")),
        _FakeEntryPoint("junk", object()),
    ]
    monkeypatch.setattr(registry, "_iter_entry_points", lambda: iter(points))
    reg = CodecRegistry()
    assert "text" in reg.available()
    assert reg.writer_for("a.txt").name == "text"
    assert reg.available() == ("text",)


def test_entry_point_discovery_failure(monkeypatch):
    def boom():
        raise RuntimeError("metadata broken")

    monkeypatch.setattr(metadata, "entry_points", boom)
    assert list(registry._iter_entry_points()) == []


def test_codec_instances_are_cached():
    assert registry.reader_for("a.odp") is registry.writer_for("b.odp")
