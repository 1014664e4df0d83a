"""
Tests for configuration loading.
"""

import pytest


class TestConfig:

    def test_default_sections(self):
        from qbot.config import get_default_config

        cfg = get_default_config()

        for section in ("app", "backend", "llm", "upload", "dashboard", "thresholds", "logging"):
            assert section in cfg
        assert cfg["upload"]["max_size_mb"] == 20
        assert cfg["thresholds"]["quality_good"] == 90

    def test_env_overrides(self, monkeypatch):
        from qbot.config import get_default_config

        monkeypatch.setenv("QBOT_BACKEND", "http")
        monkeypatch.setenv("QBOT_LLM_MODEL", "gpt-4o-mini")

        cfg = get_default_config()

        assert cfg["backend"]["provider"] == "http"
        assert cfg["llm"]["model"] == "gpt-4o-mini"

    def test_merge_is_recursive(self):
        from qbot.config import merge_config

        base = {"llm": {"model": "gpt-4o", "max_tokens": 1500}, "app": {"title": "QBot AI"}}
        merged = merge_config(base, {"llm": {"model": "gpt-4o-mini"}})

        assert merged["llm"] == {"model": "gpt-4o-mini", "max_tokens": 1500}
        assert merged["app"] == {"title": "QBot AI"}
        assert base["llm"]["model"] == "gpt-4o"

    def test_load_config_reads_yaml(self, monkeypatch, tmp_path):
        from qbot import config as config_module

        path = tmp_path / "config.yaml"
        path.write_text("dashboard:\n  recent_limit: 50\n")
        monkeypatch.setattr(config_module, "CONFIG_PATH", path)

        cfg = config_module.load_config()

        assert cfg["dashboard"]["recent_limit"] == 50
        assert cfg["dashboard"]["history_limit"] == 500


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
