"""Unit tests for the layered TOML configuration loader."""

from pathlib import Path

import pytest

from larder.config.loader import (
    ConfigError,
    check_config,
    current_environment,
    find_config_dir,
    load_config,
    merge_layers,
)
from larder.config.settings import Settings, set_toml_config
from larder.repository.enums import Collection


class TestMergeLayers:
    def test_tables_merge_key_by_key(self) -> None:
        base = {"sync": {"max_retries": 3, "interval_seconds": 30.0}, "debug": False}
        overlay = {"sync": {"max_retries": 5}}

        merged = merge_layers(base, overlay)

        assert merged == {"sync": {"max_retries": 5, "interval_seconds": 30.0}, "debug": False}

    def test_lists_are_replaced_not_appended(self) -> None:
        base = {"sync": {"tracked_collections": ["rewards", "campaigns"]}}
        overlay = {"sync": {"tracked_collections": ["customers"]}}

        merged = merge_layers(base, overlay)

        assert merged["sync"]["tracked_collections"] == ["customers"]

    def test_inputs_unmodified(self) -> None:
        base = {"storage": {"backend": "inmemory"}}
        merge_layers(base, {"storage": {"backend": "redis"}})
        assert base == {"storage": {"backend": "inmemory"}}


class TestCheckConfig:
    def test_shipped_defaults_pass(self) -> None:
        repo_config = Path(__file__).resolve().parents[3] / "config"

        config = load_config(repo_config, "development")

        assert config["storage"]["key_prefix"] == "local_repo"
        assert config["observability"]["logging"]["format"] == "console"

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ConfigError, match="synk"):
            check_config({"synk": {"max_retries": 5}})

    @pytest.mark.parametrize(
        ("primary", "archive"),
        [
            ("local_repo", "local_repo"),
            ("device", "device:archive"),
            ("device:primary", "device"),
        ],
    )
    def test_overlapping_storage_prefixes_rejected(self, primary: str, archive: str) -> None:
        with pytest.raises(ConfigError, match="overlap"):
            check_config({"storage": {"key_prefix": primary, "archive_prefix": archive}})

    def test_distinct_prefixes_accepted(self) -> None:
        config = {"storage": {"key_prefix": "device", "archive_prefix": "device_archive"}}
        assert check_config(config) is config

    def test_unknown_tracked_collection_rejected(self) -> None:
        with pytest.raises(ConfigError, match="vouchers"):
            check_config({"sync": {"tracked_collections": ["rewards", "vouchers"]}})

    def test_section_must_be_table(self) -> None:
        with pytest.raises(ConfigError, match=r"\[storage\]"):
            check_config({"storage": "redis"})


class TestFindConfigDir:
    def test_env_var_wins(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LARDER_CONFIG_DIR", str(test_config_dir))
        assert find_config_dir() == test_config_dir

    def test_missing_env_dir_raises(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LARDER_CONFIG_DIR", str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError):
            find_config_dir()

    def test_searches_parents_for_default_toml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("LARDER_CONFIG_DIR", raising=False)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "default.toml").write_text("debug = false")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_dir(nested) == tmp_path / "config"

    def test_environment_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LARDER_ENV", raising=False)
        assert current_environment() == "development"


class TestLoadConfig:
    def test_environment_layer_overrides_default(
        self, test_config_dir: Path, mock_toml_files
    ) -> None:
        mock_toml_files(
            {
                "default.toml": "[sync]\nmax_retries = 3\ninterval_seconds = 30.0",
                "production.toml": "[sync]\ninterval_seconds = 5.0",
            }
        )

        config = load_config(test_config_dir, "production")

        assert config["sync"] == {"max_retries": 3, "interval_seconds": 5.0}

    def test_missing_environment_layer_is_optional(
        self, test_config_dir: Path, mock_toml_files
    ) -> None:
        mock_toml_files({"default.toml": "[event_log]\ncapacity = 50"})

        assert load_config(test_config_dir, "staging") == {"event_log": {"capacity": 50}}

    def test_missing_default_raises(self, test_config_dir: Path) -> None:
        with pytest.raises(FileNotFoundError, match="default.toml"):
            load_config(test_config_dir, "development")

    def test_invalid_toml_names_file(self, test_config_dir: Path, mock_toml_files) -> None:
        mock_toml_files({"default.toml": "debug = false", "development.toml": "debug = [unclosed"})

        with pytest.raises(ConfigError, match="development.toml"):
            load_config(test_config_dir, "development")

    def test_overlay_breaking_a_check_is_rejected(
        self, test_config_dir: Path, mock_toml_files
    ) -> None:
        mock_toml_files(
            {
                "default.toml": "[storage]\nkey_prefix = 'local_repo'",
                "development.toml": "[storage]\narchive_prefix = 'local_repo'",
            }
        )

        with pytest.raises(ConfigError, match="overlap"):
            load_config(test_config_dir, "development")

    def test_loaded_sections_build_settings(
        self, test_config_dir: Path, mock_toml_files, env_override
    ) -> None:
        mock_toml_files(
            {
                "default.toml": (
                    "[storage]\nbackend = 'redis'\nkey_prefix = 'till'\narchive_prefix = 'till_parked'\n"
                    "[sync]\ntracked_collections = ['rewards', 'customers']"
                ),
            }
        )
        set_toml_config(load_config(test_config_dir, "development"))

        with env_override({"LARDER_SYNC__MAX_RETRIES": "9"}):
            settings = Settings()

        assert settings.storage.backend == "redis"
        assert settings.storage.archive_prefix == "till_parked"
        assert settings.sync.tracked_collections == [Collection.REWARDS, Collection.CUSTOMERS]
        assert settings.sync.max_retries == 9
