import json

import pytest

from jmap_convert.config import config_section
from jmap_convert.config import get_settings
from jmap_convert.config import read_config
from jmap_convert.config import Settings


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    for var in ("DEFAULT_TIMEZONE", "MAX_OCCURRENCES", "MAX_COMPONENTS"):
        monkeypatch.delenv(f"JMAP_CONVERT_{var}", raising=False)


def _write(path, content) -> str:
    path.write_text(content)
    return str(path)


class TestConfigSection:
    def test_plain(self):
        assert config_section({"default": {"a": 1}}) == {"a": 1}

    def test_missing_section(self):
        assert config_section({"default": {"a": 1}}, "other") == {}

    def test_inherits(self):
        config = {
            "default": {"a": 1, "b": 2},
            "huge": {"inherits": "default", "b": 3},
        }
        assert config_section(config, "huge") == {"a": 1, "b": 3}


class TestReadConfig:
    def test_json(self, tmp_path):
        fn = _write(tmp_path / "convert.json", json.dumps({"default": {"max_occurrences": 5}}))
        assert read_config(fn) == {"default": {"max_occurrences": 5}}

    def test_yaml(self, tmp_path):
        pytest.importorskip("yaml")
        fn = _write(tmp_path / "convert.yaml", "default:\n  max_occurrences: 5\n")
        assert read_config(fn) == {"default": {"max_occurrences": 5}}

    def test_missing_file(self, tmp_path):
        assert read_config(str(tmp_path / "nonexistent.conf")) == {}

    def test_broken_file(self, tmp_path, caplog):
        pytest.importorskip("yaml")
        fn = _write(tmp_path / "convert.conf", "{ this: is: [ broken")
        assert read_config(fn) == {}
        assert "neither valid json nor yaml" in caplog.text

    def test_undecodable_file(self, tmp_path, caplog):
        fn = tmp_path / "convert.conf"
        fn.write_bytes(b'{"default": "\xff\xfe"}')
        assert read_config(str(fn)) == {}
        assert "error in config file" in caplog.text

    def test_search_path(self, tmp_path):
        (tmp_path / ".config" / "jmap_convert").mkdir(parents=True)
        _write(
            tmp_path / ".config" / "jmap_convert" / "convert.conf",
            json.dumps({"default": {"max_components": 7}}),
        )
        assert read_config(None) == {"default": {"max_components": 7}}

    def test_nothing_found(self):
        assert read_config(None) == {}


class TestGetSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings == Settings()
        assert settings.default_timezone is None
        assert settings.max_occurrences == 25
        assert settings.max_components == 10000

    def test_config_file(self, tmp_path):
        fn = _write(
            tmp_path / "convert.json",
            json.dumps(
                {
                    "default": {"default_timezone": "Europe/Oslo", "max_occurrences": 50},
                    "huge": {"inherits": "default", "max_components": 100000},
                }
            ),
        )
        assert get_settings(fn) == Settings("Europe/Oslo", 50, 10000)
        assert get_settings(fn, section="huge") == Settings("Europe/Oslo", 50, 100000)

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        fn = _write(tmp_path / "convert.json", json.dumps({"default": {"max_occurrences": 50}}))
        monkeypatch.setenv("JMAP_CONVERT_MAX_OCCURRENCES", "10")
        monkeypatch.setenv("JMAP_CONVERT_DEFAULT_TIMEZONE", "Asia/Tokyo")
        settings = get_settings(fn)
        assert settings.max_occurrences == 10
        assert settings.default_timezone == "Asia/Tokyo"

    def test_keywords_beat_environment(self, monkeypatch):
        monkeypatch.setenv("JMAP_CONVERT_MAX_OCCURRENCES", "10")
        assert get_settings(max_occurrences=3).max_occurrences == 3

    def test_none_keywords_are_ignored(self, monkeypatch):
        monkeypatch.setenv("JMAP_CONVERT_MAX_OCCURRENCES", "10")
        assert get_settings(max_occurrences=None).max_occurrences == 10

    def test_unknown_settings_are_ignored(self, tmp_path, caplog):
        fn = _write(tmp_path / "convert.json", json.dumps({"default": {"colour": "blue"}}))
        assert get_settings(fn) == Settings()
        assert "colour" in caplog.text

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_non_positive(self, monkeypatch, value):
        monkeypatch.setenv("JMAP_CONVERT_MAX_COMPONENTS", value)
        with pytest.raises(ValueError):
            get_settings()

    def test_not_a_number(self, monkeypatch):
        monkeypatch.setenv("JMAP_CONVERT_MAX_OCCURRENCES", "many")
        with pytest.raises(ValueError):
            get_settings()

    def test_unknown_timezone(self, monkeypatch):
        monkeypatch.setenv("JMAP_CONVERT_DEFAULT_TIMEZONE", "Not/AZone")
        with pytest.raises(ValueError):
            get_settings()

    @pytest.mark.parametrize("value", ["Not/AZone", "../etc/passwd", ""])
    def test_settings_reject_unknown_timezone(self, value):
        with pytest.raises(ValueError):
            Settings(default_timezone=value)
