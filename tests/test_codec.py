"""
Tests for preset import/export.
"""
import json

import pytest

from src.config import EXPORT_ALL_BASENAME, PRESET_FILE_EXTENSION
from src.presets import (
    Folder,
    LocalFileIO,
    Preset,
    PresetCodec,
    PresetExportError,
    PresetImportError,
    PresetStore,
    default_export_filename,
)


@pytest.fixture
def codec():
    return PresetCodec()


@pytest.fixture
def store(qapp):
    s = PresetStore()
    film = s.add_folder("Film")
    s.add_preset("Portra", {"exposure": 0.3, "crop": {"x": 1}}, folder_id=film.id)
    s.add_preset("Warm", {"temperature": 15})
    return s


def write_doc(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestExport:
    """Tests for export_entries()."""

    def test_writes_versioned_document(self, codec, store, tmp_path):
        dest = tmp_path / "out.lpreset"
        codec.export_entries(store.root_entries(), dest)

        data = json.loads(dest.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert "exported" in data
        assert [list(e.keys())[0] for e in data["presets"]] == ["folder", "preset"]
        folder = data["presets"][0]["folder"]
        assert folder["children"][0]["name"] == "Portra"
        assert folder["children"][0]["adjustments"] == {"exposure": 0.3}

    def test_no_preview_data(self, codec, store, tmp_path):
        dest = tmp_path / "out.lpreset"
        codec.export_entries(store.root_entries(), dest)
        assert "preview" not in dest.read_text(encoding="utf-8").lower()

    def test_io_failure_raises_export_error(self, codec, store, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(PresetExportError):
            codec.export_entries(store.root_entries(), blocker / "out.lpreset")

    def test_unencodable_value_raises_export_error(self, codec, tmp_path):
        preset = Preset(id="p", name="Odd", adjustments={"exposure": {1.0}})
        with pytest.raises(PresetExportError):
            codec.export_entries([preset], tmp_path / "out.lpreset")
        assert list(tmp_path.iterdir()) == []

    def test_no_temp_files_left(self, codec, store, tmp_path):
        codec.export_entries(store.root_entries(), tmp_path / "out.lpreset")
        assert [p.name for p in tmp_path.iterdir()] == ["out.lpreset"]


class TestImport:
    """Tests for read_document() and import_into()."""

    def test_roundtrip_preserves_shape_with_new_ids(self, codec, store, tmp_path, qapp):
        dest = tmp_path / "all.lpreset"
        codec.export_entries(store.root_entries(), dest)

        target = PresetStore()
        imported = codec.import_into(target, dest)

        assert [e.name for e in imported] == ["Film", "Warm"]
        assert imported[0].children[0].adjustments == {"exposure": 0.3}
        assert set(target.all_ids()).isdisjoint(store.all_ids())

    def test_importing_twice_keeps_ids_unique(self, codec, store, tmp_path):
        dest = tmp_path / "all.lpreset"
        codec.export_entries(store.root_entries(), dest)

        codec.import_into(store, dest)
        codec.import_into(store, dest)

        ids = store.all_ids()
        assert len(ids) == len(set(ids))

    def test_root_names_deduplicated(self, codec, store, tmp_path):
        dest = tmp_path / "all.lpreset"
        codec.export_entries(store.root_entries(), dest)

        codec.import_into(store, dest)
        codec.import_into(store, dest)

        assert [e.name for e in store.root_entries()] == [
            "Film", "Warm", "Film (1)", "Warm (1)", "Film (2)", "Warm (2)",
        ]

    def test_appended_in_document_order(self, codec, tmp_path, qapp):
        src = write_doc(tmp_path / "doc.json", {"version": 1, "presets": [
            {"preset": {"id": "x", "name": "B"}},
            {"preset": {"id": "y", "name": "A"}},
        ]})
        target = PresetStore()
        target.add_preset("Existing")
        codec.import_into(target, src)
        assert [e.name for e in target.root_entries()] == ["Existing", "B", "A"]

    def test_adjustments_filtered_on_import(self, codec, tmp_path, qapp):
        src = write_doc(tmp_path / "doc.json", [
            {"preset": {"name": "P", "adjustments": {"exposure": 1, "masks": []}}},
        ])
        entries = codec.read_document(src)
        assert entries[0].adjustments == {"exposure": 1}

    def test_nested_folders_flattened(self, codec, tmp_path, qapp):
        src = write_doc(tmp_path / "doc.json", [
            {"folder": {"name": "Outer", "children": [
                {"id": "a", "name": "A"},
                {"folder": {"name": "Inner", "children": [{"id": "b", "name": "B"}]}},
            ]}},
        ])
        entries = codec.read_document(src)
        assert isinstance(entries[0], Folder)
        assert [c.name for c in entries[0].children] == ["A", "B"]

    def test_malformed_aborts_without_changes(self, codec, store, tmp_path):
        before = store.all_ids()
        changed = []
        store.presets_changed.connect(lambda: changed.append(1))
        src = write_doc(tmp_path / "bad.json", {"version": 1, "presets": [
            {"preset": {"name": "Fine"}},
            {"preset": {"name": ""}},
        ]})

        with pytest.raises(PresetImportError):
            codec.import_into(store, src)

        assert store.all_ids() == before
        assert changed == []

    def test_invalid_json(self, codec, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(PresetImportError):
            codec.read_document(bad)

    def test_missing_file(self, codec, tmp_path):
        with pytest.raises(PresetImportError):
            codec.read_document(tmp_path / "missing.lpreset")


class TestFileIO:

    def test_injected_file_io_used(self, store):
        class MemoryIO:
            def __init__(self):
                self.files = {}

            def write_bytes(self, path, data):
                self.files[str(path)] = data

            def read_bytes(self, path):
                return self.files[str(path)]

        io = MemoryIO()
        codec = PresetCodec(file_io=io)
        codec.export_entries(store.root_entries(), "mem://presets")
        entries = codec.read_document("mem://presets")
        assert [e.name for e in entries] == ["Film", "Warm"]

    def test_local_file_io_roundtrip(self, tmp_path):
        io = LocalFileIO()
        io.write_bytes(tmp_path / "sub" / "f.bin", b"abc")
        assert io.read_bytes(tmp_path / "sub" / "f.bin") == b"abc"


class TestDefaultExportFilename:

    def test_single_entry_uses_its_name(self):
        name = default_export_filename([Preset(id="p", name="Warm/Cool")])
        assert name == f"Warm_Cool.{PRESET_FILE_EXTENSION}"

    def test_multiple_entries(self):
        entries = [Preset(id="a", name="A"), Folder(id="f", name="F")]
        assert default_export_filename(entries) == f"{EXPORT_ALL_BASENAME}.{PRESET_FILE_EXTENSION}"
