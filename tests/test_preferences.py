import json
import logging

import pytest

from nko_lonko.errors import PreferenceWriteError
from nko_lonko.preferences import PREFERENCE_KEY, MemoryPreferenceStore, PreferenceStore


def test_missing_file_reads_none(tmp_path):
    assert PreferenceStore(tmp_path / "prefs.json").read() is None


def test_write_then_read(tmp_path):
    path = tmp_path / "state" / "prefs.json"
    store = PreferenceStore(path)

    store.write("nko")

    assert store.read() == "nko"
    assert json.loads(path.read_text(encoding="utf-8")) == {PREFERENCE_KEY: "nko"}


def test_write_keeps_unrelated_entries(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

    PreferenceStore(path).write("fr")

    assert json.loads(path.read_text(encoding="utf-8")) == {"theme": "dark", PREFERENCE_KEY: "fr"}


def test_corrupt_file_is_ignored_and_overwritten(tmp_path, caplog):
    path = tmp_path / "prefs.json"
    path.write_text("{oops", encoding="utf-8")
    store = PreferenceStore(path)

    assert store.read() is None
    assert "corrupt preference file" in caplog.text

    store.write("nko")
    assert store.read() == "nko"


def test_undecodable_file_is_ignored_and_overwritten(tmp_path, caplog):
    path = tmp_path / "prefs.json"
    path.write_bytes(b"\xff\xfe{")
    store = PreferenceStore(path)

    with caplog.at_level(logging.WARNING):
        assert store.read() is None
    assert "corrupt preference file" in caplog.text

    store.write("nko")
    assert store.read() == "nko"


def test_unwritable_location_raises_write_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = PreferenceStore(blocker / "prefs.json")

    assert store.read() is None
    with pytest.raises(PreferenceWriteError):
        store.write("nko")
    assert blocker.read_text(encoding="utf-8") == "not a directory"


def test_non_string_value_reads_none(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({PREFERENCE_KEY: 3}), encoding="utf-8")
    assert PreferenceStore(path).read() is None


def test_from_settings_uses_state_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("LONKO_STATE_DIR", str(tmp_path))

    store = PreferenceStore.from_settings()
    store.write("nko")

    assert (tmp_path / "preferences.json").exists()


def test_memory_store():
    store = MemoryPreferenceStore()
    assert store.read() is None
    store.write("fr")
    assert store.read() == "fr"
