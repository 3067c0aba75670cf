"""Unit tests for TOML configuration loader."""

import tomllib
from pathlib import Path

import pytest

from rapport.config.loader import (
    check_sections,
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_dicts_merge(self) -> None:
        base = {"friendship": {"field_name": "friends", "auto_index": True}, "debug": False}
        override = {"friendship": {"auto_index": False}}

        result = deep_merge(base, override)

        assert result == {
            "friendship": {"field_name": "friends", "auto_index": False},
            "debug": False,
        }

    def test_override_replaces_non_dict(self) -> None:
        assert deep_merge({"storage": {"backend": "inmemory"}}, {"storage": "x"}) == {
            "storage": "x"
        }

    def test_base_unmodified(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}


class TestLoadToml:
    """Tests for load_toml function."""

    def test_load_valid_toml(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "test.toml"
        toml_file.write_text('[friendship]\nfield_name = "pals"')

        assert load_toml(toml_file) == {"friendship": {"field_name": "pals"}}

    def test_load_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "nonexistent.toml")

    def test_load_invalid_toml_raises(self, tmp_path: Path) -> None:
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("invalid = [unclosed")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(invalid_file)


class TestEnvironment:
    """Tests for environment and directory discovery."""

    def test_environment_from_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RAPPORT_ENV", "production")
        assert get_environment() == "production"

    def test_environment_defaults_to_development(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("RAPPORT_ENV", raising=False)
        assert get_environment() == "development"

    def test_config_dir_from_env_var(
        self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))
        assert get_config_dir() == test_config_dir

    def test_config_dir_defaults_to_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "config").mkdir()
        monkeypatch.delenv("RAPPORT_CONFIG_DIR", raising=False)
        monkeypatch.chdir(tmp_path)

        assert get_config_dir() == tmp_path / "config"

    def test_missing_config_dir_raises(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError):
            get_config_dir()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_merges_environment_file(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({
            "default.toml": "[storage]\nbackend = 'inmemory'\ncollection = 'users'",
            "production.toml": "[storage]\nbackend = 'mongodb'",
        })
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RAPPORT_ENV", "production")

        assert load_config() == {"storage": {"backend": "mongodb", "collection": "users"}}

    def test_missing_environment_file_is_optional(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({"default.toml": "debug = false"})
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RAPPORT_ENV", "nonexistent")

        assert load_config() == {"debug": False}

    def test_missing_default_raises(
        self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))

        with pytest.raises(FileNotFoundError, match="default.toml"):
            load_config()

    def test_explicit_environment(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({
            "default.toml": "[friendship]\nauto_index = true",
            "test.toml": "[friendship]\nauto_index = false",
        })
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RAPPORT_ENV", "production")

        assert load_config("test") == {"friendship": {"auto_index": False}}

    def test_invalid_override_names_its_file(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_toml_files({
            "default.toml": "[friendship]\nfield_name = 'friends'",
            "production.toml": "[friendship]\nfield_name = 'friends.list'",
        })
        monkeypatch.setenv("RAPPORT_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("RAPPORT_ENV", "production")

        with pytest.raises(ValueError, match="production.toml"):
            load_config()


class TestCheckSections:
    """Tests for per-layer validation of friendship and storage tables."""

    def test_valid_partial_tables(self, tmp_path: Path) -> None:
        check_sections(
            {"friendship": {"conflict_retries": 0}, "storage": {"backend": "mongodb"}},
            tmp_path / "default.toml",
        )

    def test_unchecked_sections_ignored(self, tmp_path: Path) -> None:
        check_sections({"observability": "anything"}, tmp_path / "default.toml")

    @pytest.mark.parametrize(
        ("layer", "message"),
        [
            ({"storage": {"backend": "sqlite"}}, "invalid \\[storage\\]"),
            ({"friendship": {"conflict_retries": -1}}, "invalid \\[friendship\\]"),
            ({"friendship": "friends"}, "\\[friendship\\] must be a table"),
        ],
    )
    def test_invalid_tables(self, tmp_path: Path, layer: dict, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            check_sections(layer, tmp_path / "staging.toml")
