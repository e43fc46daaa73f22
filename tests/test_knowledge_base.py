"""Tests for knowledge-base loading and null-safe lookups."""

import json

import pytest

from hydroguard.knowledge.base import DEFAULT_DOCUMENTS, KnowledgeBase, lookup


# ---------------------------------------------------------------------------
# lookup()
# ---------------------------------------------------------------------------

class TestLookup:
    def test_nested_dict(self):
        assert lookup({"a": {"b": {"c": 3}}}, "a", "b", "c") == 3

    def test_list_index(self):
        assert lookup({"a": [{"name": "x"}, {"name": "y"}]}, "a", 1, "name") == "y"

    def test_missing_key_returns_default(self):
        assert lookup({"a": {}}, "a", "b", default="fallback") == "fallback"

    def test_index_out_of_range(self):
        assert lookup({"a": [1]}, "a", 5) is None

    def test_wrong_step_type(self):
        assert lookup({"a": [1, 2]}, "a", "0") is None
        assert lookup({"a": {"0": 1}}, "a", 0) is None

    def test_non_container_intermediate(self):
        assert lookup({"a": "text"}, "a", "b", default=0) == 0

    def test_none_value_returns_default(self):
        assert lookup({"a": None}, "a", default="d") == "d"

    def test_none_root(self):
        assert lookup(None, "anything", default=[]) == []

    def test_empty_path_returns_value(self):
        assert lookup({"a": 1}) == {"a": 1}

    def test_bool_is_not_an_index(self):
        assert lookup([10, 20], True) is None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _write(directory, name, payload):
    (directory / f"{name}.json").write_text(json.dumps(payload), encoding="utf-8")


class TestLoad:
    def test_packaged_resources_load(self):
        kb = KnowledgeBase()
        loaded = kb.load()
        assert set(loaded) == set(DEFAULT_DOCUMENTS)
        assert kb.lookup("fallback-data", "flood_risk", "levels", "moderate", "level") == "Moderate Risk"

    def test_missing_files_skipped(self, tmp_path):
        _write(tmp_path, "alerts", {"alert_levels": {}})
        kb = KnowledgeBase()
        kb.load(tmp_path)
        assert kb.names == ["alerts"]

    def test_bad_json_skipped(self, tmp_path):
        _write(tmp_path, "greetings", {"time_based": {}})
        (tmp_path / "reports.json").write_text("{not json", encoding="utf-8")
        kb = KnowledgeBase()
        kb.load(tmp_path)
        assert "greetings" in kb
        assert "reports" not in kb

    def test_invalid_utf8_skipped(self, tmp_path):
        _write(tmp_path, "greetings", {"time_based": {"morning": ["Hi"]}})
        (tmp_path / "alerts.json").write_bytes(b'{"a": "\xff\xfe"}')
        kb = KnowledgeBase()
        loaded = kb.load(tmp_path)
        assert list(loaded) == ["greetings"]
        assert "alerts" not in kb

    def test_get_survives_undecodable_document(self, tmp_path, monkeypatch):
        _write(tmp_path, "reports", {"templates": {}})
        (tmp_path / "sensor-status.json").write_bytes(b"\xff\xfe\x00")
        monkeypatch.setenv("HYDROGUARD_RESOURCE_DIR", str(tmp_path))
        from hydroguard.config.loader import reset_config
        reset_config()
        assert KnowledgeBase.get().names == ["reports"]

    def test_falls_back_to_alternate_dir(self, tmp_path, monkeypatch):
        primary = tmp_path / "empty"
        primary.mkdir()
        alternate = tmp_path / "alt"
        alternate.mkdir()
        _write(alternate, "sensor-status", {"network": {}})
        monkeypatch.setenv("HYDROGUARD_FALLBACK_DIR", str(alternate))
        from hydroguard.config.loader import reset_config
        reset_config()

        kb = KnowledgeBase()
        kb.load(primary)
        assert kb.names == ["sensor-status"]

    def test_missing_primary_dir_uses_alternate(self, tmp_path, monkeypatch):
        _write(tmp_path, "alerts", {})
        monkeypatch.chdir(tmp_path)
        kb = KnowledgeBase()
        kb.load(tmp_path / "does-not-exist")
        assert kb.names == ["alerts"]

    def test_nothing_anywhere_is_empty_not_error(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        kb = KnowledgeBase()
        assert kb.load(tmp_path / "nope") == {}
        assert len(kb) == 0
        assert kb.lookup("alerts", "alert_levels", default="x") == "x"

    def test_resource_dir_from_env(self, tmp_path, monkeypatch):
        _write(tmp_path, "reports", {"templates": {}})
        monkeypatch.setenv("HYDROGUARD_RESOURCE_DIR", str(tmp_path))
        from hydroguard.config.loader import reset_config
        reset_config()
        kb = KnowledgeBase()
        kb.load()
        assert kb.names == ["reports"]


class TestSingleton:
    def test_get_loads_once(self):
        first = KnowledgeBase.get()
        assert first is KnowledgeBase.get()
        assert len(first) == len(DEFAULT_DOCUMENTS)

    def test_install_replaces_instance(self):
        kb = KnowledgeBase({"alerts": {}})
        KnowledgeBase.install(kb)
        assert KnowledgeBase.get() is kb

    def test_document_returns_raw(self, sample_kb):
        assert sample_kb.document("reports")["templates"]["daily_report"]["title"] == "Daily Report"
        assert sample_kb.document("missing") is None
