"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from siyuan_anki_sync.config import Config, get_config, load_config, set_config
from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import ConfigurationError


def _write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDefaults:
    def test_default_endpoints(self) -> None:
        config = Config()

        assert config.siyuan_url == "http://127.0.0.1:6806"
        assert config.anki_url == "http://127.0.0.1:8765"
        assert config.anki_model == "siyuan"
        assert config.sync_mode == "manual"
        assert config.preserve_decks == ["Default"]

    def test_state_and_log_paths_follow_data_dir(self, tmp_path) -> None:
        config = Config(data_dir=tmp_path)

        assert config.state_path == tmp_path / ".sync_state.json"
        assert config.get_log_dir() == tmp_path / "logs"

    def test_empty_log_dir_disables_file_logging(self) -> None:
        assert Config(log_dir="").get_log_dir() is None

    def test_absolute_log_dir_kept(self, tmp_path) -> None:
        assert Config(data_dir="data", log_dir=tmp_path).get_log_dir() == tmp_path


class TestFieldValidation:
    def test_preserve_decks_from_comma_string(self) -> None:
        config = Config(preserve_decks="Default, Spanish ,,")
        assert config.preserve_decks == ["Default", "Spanish"]

    def test_log_level_normalized(self) -> None:
        assert Config(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"log_level": "LOUD"},
            {"sync_mode": "hourly"},
            {"sync_interval_minutes": 0},
            {"anki_port": 70000},
            {"deep_link_scheme": "1bad"},
            {"root_deck_name": ""},
        ],
    )
    def test_invalid_values_rejected(self, overrides) -> None:
        with pytest.raises(ValueError):
            Config(**overrides)

    def test_env_overrides_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("ANKI_PORT", "9999")
        monkeypatch.setenv("ROOT_DECK_NAME", "Cards")

        config = Config()

        assert config.anki_url == "http://127.0.0.1:9999"
        assert config.root_deck_name == "Cards"


class TestCrossFieldValidation:
    def test_same_address_rejected(self) -> None:
        config = Config(siyuan_port=8765, anki_port=8765)

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate_config()

        assert exc_info.value.error_code == ErrorCode.CFG_INVALID.value
        assert exc_info.value.suggestion

    @pytest.mark.parametrize("name", ["::Cards", "Cards::"])
    def test_root_deck_with_empty_segment_rejected(self, name) -> None:
        with pytest.raises(ConfigurationError):
            Config(root_deck_name=name).validate_config()

    def test_nested_root_deck_allowed(self) -> None:
        Config(root_deck_name="Study::SiYuan").validate_config()


class TestLoadConfig:
    """Tests for reading config.yaml."""

    def test_loads_values_from_yaml(self, tmp_path) -> None:
        path = _write_yaml(
            tmp_path / "config.yaml",
            {"root_deck_name": "Notes", "anki_model": "siyuan-card", "sync_mode": "interval"},
        )

        config = load_config(path)

        assert config.root_deck_name == "Notes"
        assert config.anki_model == "siyuan-card"
        assert config.sync_mode == "interval"

    def test_yaml_wins_over_environment(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("ROOT_DECK_NAME", "FromEnv")
        path = _write_yaml(tmp_path / "config.yaml", {"root_deck_name": "FromYaml"})

        assert load_config(path).root_deck_name == "FromYaml"

    def test_unknown_keys_ignored(self, tmp_path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", {"legacy_option": "/x", "anki_port": 8766})

        config = load_config(path)

        assert config.anki_port == 8766
        assert not hasattr(config, "legacy_option")

    def test_empty_file_uses_defaults(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path).root_deck_name == "SiYuan"

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("root_deck_name: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.error_code == ErrorCode.CFG_PARSE_FAILED.value

    def test_non_mapping_yaml(self, tmp_path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", ["a", "b"])

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.error_code == ErrorCode.CFG_PARSE_FAILED.value

    def test_invalid_value_wrapped(self, tmp_path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", {"sync_interval_minutes": -5})

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(path)

    def test_missing_explicit_path(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_env_var_points_at_config(self, tmp_path, monkeypatch) -> None:
        path = _write_yaml(tmp_path / "custom.yaml", {"root_deck_name": "Custom"})
        monkeypatch.setenv("SIYUAN_ANKI_CONFIG", str(path))

        assert load_config().root_deck_name == "Custom"

    def test_cross_field_checks_run_on_load(self, tmp_path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", {"siyuan_port": 8765})

        with pytest.raises(ConfigurationError, match="same address"):
            load_config(path)


class TestSingleton:
    def test_set_and_get(self) -> None:
        config = Config(root_deck_name="Pinned")
        set_config(config)

        assert get_config() is config
