"""
Tests for PresetManager - the on-disk snapshot.
"""
import json

import pytest

from src.config import PRESETS_FILENAME
from src.presets import Folder, Preset, PresetManager, PresetPersistenceError
from src.presets.preset_manager import write_json_atomic


@pytest.fixture
def manager(presets_dir):
    return PresetManager(presets_dir=presets_dir)


class TestSnapshot:
    """Tests for save_snapshot()/load_snapshot()."""

    def test_missing_snapshot_loads_empty(self, manager):
        assert manager.load_snapshot() == []

    def test_save_then_load(self, manager):
        entries = [
            Folder(id="f", name="Film", children=[Preset(id="c", name="Portra", adjustments={"exposure": 1})]),
            Preset(id="p", name="Warm", adjustments={"temperature": 10}),
        ]
        manager.save_snapshot(entries)
        assert manager.load_snapshot() == entries

    def test_snapshot_location(self, manager, presets_dir):
        manager.save_snapshot([])
        assert manager.snapshot_path == presets_dir / PRESETS_FILENAME
        assert manager.snapshot_path.exists()

    def test_document_shape(self, manager):
        manager.save_snapshot([Preset(id="p", name="P")])
        data = json.loads(manager.snapshot_path.read_text(encoding="utf-8"))
        assert data == {
            "version": 1,
            "presets": [{"preset": {"id": "p", "name": "P", "adjustments": {}}}],
        }

    def test_ids_preserved_across_restart(self, manager, presets_dir):
        manager.save_snapshot([Preset(id="keep-me", name="P")])
        reopened = PresetManager(presets_dir=presets_dir)
        assert reopened.load_snapshot()[0].id == "keep-me"

    def test_invalid_json_raises(self, manager):
        manager.snapshot_path.write_text("not valid json {{{", encoding="utf-8")
        with pytest.raises(PresetPersistenceError) as exc:
            manager.load_snapshot()
        assert "Invalid JSON" in str(exc.value)

    def test_invalid_document_raises(self, manager):
        manager.snapshot_path.write_text(json.dumps({"presets": [{"bogus": {}}]}), encoding="utf-8")
        with pytest.raises(PresetPersistenceError):
            manager.load_snapshot()

    def test_legacy_bare_list_loads(self, manager):
        manager.snapshot_path.write_text(
            json.dumps([{"preset": {"id": "p", "name": "Old"}}]), encoding="utf-8"
        )
        assert [e.name for e in manager.load_snapshot()] == ["Old"]

    def test_unencodable_value_raises_persistence_error(self, manager):
        manager.save_snapshot([Preset(id="p", name="Warm", adjustments={"temperature": 10})])
        with pytest.raises(PresetPersistenceError):
            manager.save_snapshot([Preset(id="p", name="Warm", adjustments={"exposure": {1.0, 2.0}})])
        assert manager.load_snapshot()[0].adjustments == {"temperature": 10}

    def test_default_dir_from_environment(self, isolated_data_dir):
        manager = PresetManager()
        assert manager.presets_dir == (isolated_data_dir / "presets").resolve()
        assert manager.presets_dir.is_dir()


class TestAtomicWrite:
    """Tests for write_json_atomic()."""

    def test_replaces_existing_file(self, tmp_path):
        dest = tmp_path / "data.json"
        write_json_atomic(dest, {"a": 1})
        write_json_atomic(dest, {"a": 2})
        assert json.loads(dest.read_text()) == {"a": 2}
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]

    def test_failure_leaves_original(self, tmp_path):
        dest = tmp_path / "data.json"
        write_json_atomic(dest, {"a": 1})
        with pytest.raises(TypeError):
            write_json_atomic(dest, {"a": object()})
        assert json.loads(dest.read_text()) == {"a": 1}
