"""Tests for configuration loading and project checks."""

from pathlib import Path

import pytest

from uwu.config import (
    find_dotfile,
    load_config,
    load_project_config,
    parse_address,
    resolve_assets_dir,
)
from uwu.errors import ConfigError
from uwu.models.config import Config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.toml")

        assert config == Config()
        assert config.peer.host == "127.0.0.1"
        assert config.peer.port == 38910
        assert config.peer.connect_backoff == 3.0
        assert config.peer.response_timeout == 5.0
        assert config.watch.delay == 1.0

    def test_values_from_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[peer]\nport = 40000\nprotocol = "datagram"\n\n[watch]\ndelay = 4\n'
        )

        config = load_config(path)

        assert config.peer.port == 40000
        assert config.peer.protocol == "datagram"
        assert config.watch.delay == 4.0
        assert config.peer.host == "127.0.0.1"

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[peer]\nport = 70000\n")

        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path)

    def test_broken_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[peer\nport = ")

        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(path)


class TestProjectConfig:
    def test_find_dotfile_walks_up(self, tmp_path):
        dotfile = tmp_path / ".uwu.toml"
        dotfile.write_text("")
        nested = tmp_path / "Assets" / "Scripts"
        nested.mkdir(parents=True)

        assert find_dotfile(nested) == dotfile

    def test_dotfile_overrides_global_config(self, tmp_path):
        (tmp_path / ".uwu.toml").write_text("[peer]\nport = 41000\n")
        base = Config.model_validate({"peer": {"host": "10.0.0.2"}})

        config = load_project_config(base, tmp_path)

        assert config.peer.port == 41000
        assert config.peer.host == "10.0.0.2"

    def test_no_dotfile_keeps_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr("uwu.config.find_dotfile", lambda start: None)
        base = Config()

        assert load_project_config(base, tmp_path) is base


class TestParseAddress:
    @pytest.mark.parametrize(
        "address,expected",
        [
            ("127.0.0.1:38910", ("127.0.0.1", 38910)),
            ("localhost:1", ("localhost", 1)),
            ("[::1]:4000", ("::1", 4000)),
        ],
    )
    def test_valid(self, address, expected):
        assert parse_address(address) == expected

    @pytest.mark.parametrize(
        "address", ["localhost", ":38910", "host:", "host:port", "host:0", "host:65536"]
    )
    def test_invalid(self, address):
        with pytest.raises(ConfigError):
            parse_address(address)


class TestResolveAssetsDir:
    def test_existing(self, tmp_path):
        (tmp_path / "Assets").mkdir()

        assert resolve_assets_dir(tmp_path) == tmp_path / "Assets"

    def test_custom_name(self, tmp_path):
        (tmp_path / "Content").mkdir()

        assert resolve_assets_dir(tmp_path, "Content") == Path(tmp_path) / "Content"

    def test_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="valid Unity project"):
            resolve_assets_dir(tmp_path)

    def test_file_is_not_a_directory(self, tmp_path):
        (tmp_path / "Assets").write_text("")

        with pytest.raises(ConfigError):
            resolve_assets_dir(tmp_path)
