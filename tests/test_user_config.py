"""Unit tests for binstrings/user_config.py: persistent config management."""
import json
import pytest

from binstrings.user_config import (
    load_user_config,
    save_user_config,
    get_config_value,
    get_int_config_value,
    set_config_value,
    delete_config_value,
    get_masked_config,
)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Redirect config to a temporary directory and clear env overrides."""
    cfg_dir = tmp_path / ".binstrings"
    cfg_dir.mkdir()
    cfg_file = cfg_dir / "config.json"
    monkeypatch.setattr("binstrings.user_config.CONFIG_DIR", cfg_dir)
    monkeypatch.setattr("binstrings.user_config.CONFIG_FILE", cfg_file)
    for env_var in ("BINSTRINGS_MIN_LENGTH", "BINSTRINGS_WORKERS", "BINSTRINGS_ALLOWED_PATHS"):
        monkeypatch.delenv(env_var, raising=False)
    return cfg_dir, cfg_file


# ---------------------------------------------------------------------------
# load_user_config / save_user_config
# ---------------------------------------------------------------------------

class TestLoadUserConfig:
    def test_missing_file_returns_empty(self, config_dir):
        assert load_user_config() == {}

    def test_valid_json(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"min_length": 6}))
        assert load_user_config() == {"min_length": 6}

    def test_invalid_json_returns_empty(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text("not valid json {{{")
        assert load_user_config() == {}

    def test_non_dict_json_returns_empty(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps(["a", "list"]))
        assert load_user_config() == {}


class TestSaveUserConfig:
    def test_save_and_reload(self, config_dir):
        cfg_dir, cfg_file = config_dir
        save_user_config({"workers": 3})
        assert json.loads(cfg_file.read_text()) == {"workers": 3}

    def test_file_permissions(self, config_dir):
        cfg_dir, cfg_file = config_dir
        save_user_config({"allowed_paths": "/srv/samples"})
        assert oct(cfg_file.stat().st_mode & 0o777) == "0o600"


# ---------------------------------------------------------------------------
# get_config_value / get_int_config_value
# ---------------------------------------------------------------------------

class TestGetConfigValue:
    def test_from_file(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"min_length": 8}))
        assert get_config_value("min_length") == "8"

    def test_env_overrides_file(self, config_dir, monkeypatch):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"min_length": 8}))
        monkeypatch.setenv("BINSTRINGS_MIN_LENGTH", "10")
        assert get_config_value("min_length") == "10"

    def test_missing_key_returns_none(self, config_dir):
        assert get_config_value("min_length") is None

    def test_unknown_key_from_file(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"custom": "val"}))
        assert get_config_value("custom") == "val"


class TestGetIntConfigValue:
    def test_default_when_unset(self, config_dir):
        assert get_int_config_value("workers", 1) == 1

    def test_parses_int(self, config_dir, monkeypatch):
        monkeypatch.setenv("BINSTRINGS_WORKERS", "4")
        assert get_int_config_value("workers", 1) == 4

    def test_parses_hex(self, config_dir, monkeypatch):
        monkeypatch.setenv("BINSTRINGS_MIN_LENGTH", "0x10")
        assert get_int_config_value("min_length", 4) == 16

    def test_non_integer_falls_back(self, config_dir, monkeypatch):
        monkeypatch.setenv("BINSTRINGS_MIN_LENGTH", "many")
        assert get_int_config_value("min_length", 4) == 4

    def test_non_positive_falls_back(self, config_dir, monkeypatch):
        monkeypatch.setenv("BINSTRINGS_MIN_LENGTH", "0")
        assert get_int_config_value("min_length", 4) == 4


# ---------------------------------------------------------------------------
# set_config_value / delete_config_value
# ---------------------------------------------------------------------------

class TestSetConfigValue:
    def test_set_new_key(self, config_dir):
        cfg_dir, cfg_file = config_dir
        set_config_value("min_length", "5")
        assert json.loads(cfg_file.read_text())["min_length"] == "5"

    def test_overwrite_existing(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"workers": "1"}))
        set_config_value("workers", "2")
        assert json.loads(cfg_file.read_text())["workers"] == "2"


class TestDeleteConfigValue:
    def test_delete_existing(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"to_delete": "val", "keep": "val2"}))
        assert delete_config_value("to_delete") is True
        data = json.loads(cfg_file.read_text())
        assert "to_delete" not in data
        assert "keep" in data

    def test_delete_nonexistent(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"other": "val"}))
        assert delete_config_value("nonexistent") is False


# ---------------------------------------------------------------------------
# get_masked_config
# ---------------------------------------------------------------------------

class TestGetMaskedConfig:
    def test_sensitive_key_masked(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"allowed_paths": "/home/analyst/samples"}))
        masked = get_masked_config()
        assert masked["allowed_paths"].startswith("/ho")
        assert masked["allowed_paths"].endswith("les")
        assert "*" in masked["allowed_paths"]

    def test_short_sensitive_key_not_masked(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"allowed_paths": "/srv"}))
        assert get_masked_config()["allowed_paths"] == "/srv"

    def test_non_sensitive_key_not_masked(self, config_dir):
        cfg_dir, cfg_file = config_dir
        cfg_file.write_text(json.dumps({"min_length": 7}))
        assert get_masked_config()["min_length"] == 7

    def test_env_overrides_noted(self, config_dir, monkeypatch):
        monkeypatch.setenv("BINSTRINGS_WORKERS", "2")
        masked = get_masked_config()
        assert "workers" in masked["_env_overrides"]
