"""Tests for config file discovery and loading."""

from pathlib import Path

import pytest

from formlogic.config.discovery import CONFIG_ENV_VAR, ConfigError, find_config, load_config


class TestFindConfig:
    def test_walks_up(self, tmp_path: Path) -> None:
        config = tmp_path / "formlogic.toml"
        config.write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == config.resolve()

    def test_hidden_name(self, tmp_path: Path) -> None:
        hidden = tmp_path / ".formlogic.toml"
        hidden.write_text("")
        assert find_config(tmp_path) == hidden.resolve()

    def test_visible_name_preferred(self, tmp_path: Path) -> None:
        (tmp_path / ".formlogic.toml").write_text("")
        (tmp_path / "formlogic.toml").write_text("")
        assert find_config(tmp_path) == (tmp_path / "formlogic.toml").resolve()

    def test_nearest_wins(self, tmp_path: Path) -> None:
        (tmp_path / "formlogic.toml").write_text("")
        inner = tmp_path / "forms"
        inner.mkdir()
        (inner / ".formlogic.toml").write_text("")
        assert find_config(inner) == (inner / ".formlogic.toml").resolve()

    def test_none_when_absent(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "formlogic.toml").write_text("")
        other = tmp_path / "elsewhere.toml"
        other.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(other))
        assert find_config(tmp_path) == other

    def test_env_var_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "formlogic.toml").write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None


class TestLoadConfig:
    def test_sparse_file(self, tmp_path: Path) -> None:
        path = tmp_path / "formlogic.toml"
        path.write_text('[files]\nfields = "form.yaml"\n')
        assert load_config(path) == {"files": {"fields": "form.yaml"}}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "formlogic.toml"
        path.write_text("")
        assert load_config(path) == {}

    def test_malformed_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "formlogic.toml"
        path.write_text("[engine\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_out_of_range_value(self, tmp_path: Path) -> None:
        path = tmp_path / "formlogic.toml"
        path.write_text("[engine]\nmax_passes = 0\n")
        with pytest.raises(ConfigError, match="engine.max_passes"):
            load_config(path)
