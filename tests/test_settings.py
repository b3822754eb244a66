import json

import pytest

from diffchecker.core.models import ComparisonOptions, FormatType
from diffchecker.services.settings import EngineSettings, SettingsManager


class TestEngineSettings:

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.large_input_threshold == 300_000
        assert settings.chunk_size == 500
        assert settings.use_worker_threads
        assert settings.default_format == FormatType.TEXT
        assert settings.default_options == ComparisonOptions()

    def test_log_level_is_normalized(self):
        assert EngineSettings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("kwargs", [
        {"chunk_size": 0},
        {"large_input_threshold": -1},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            EngineSettings(**kwargs)


class TestSettingsManager:

    def test_missing_file_gives_defaults(self, tmp_path):
        manager = SettingsManager(tmp_path / "missing.json")
        assert manager.settings == EngineSettings()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        manager = SettingsManager(path)
        settings = EngineSettings(
            chunk_size=50,
            log_level="WARNING",
            default_format=FormatType.JSON,
            default_options=ComparisonOptions(ignore_key_order=True, case_sensitive=False),
        )
        assert manager.save(settings)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["default_format"] == "JSON"
        assert data["default_options"]["ignoreKeyOrder"] is True

        assert SettingsManager(path).load() == settings

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"chunk_size": 10, "default_format": "xml"}), encoding="utf-8")
        settings = SettingsManager(path).load()
        assert settings.chunk_size == 10
        assert settings.default_format == FormatType.XML
        assert settings.large_input_threshold == 300_000

    def test_unknown_enum_value_uses_default(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"default_format": "yaml"}), encoding="utf-8")
        assert SettingsManager(path).load().default_format == FormatType.TEXT

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"chunk_size": 0}'])
    def test_unreadable_file_gives_defaults(self, tmp_path, content):
        path = tmp_path / "settings.json"
        path.write_text(content, encoding="utf-8")
        assert SettingsManager(path).load() == EngineSettings()

    def test_default_path_respects_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setattr("os.name", "posix")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert SettingsManager().settings_path == tmp_path / "diffchecker" / "settings.json"
