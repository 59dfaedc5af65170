"""
Unit tests for configuration and the command line.
"""

import pytest

from minihttp.__main__ import build_parser, config_from_args
from minihttp.config import ServerConfig


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 4221
        assert config.directory == "."
        assert config.buffer_size == 1024
        assert config.framing == "single"
        assert config.confine_files is True
        config.validate()

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MINIHTTP_PORT", "8080")
        monkeypatch.setenv("MINIHTTP_DIRECTORY", str(tmp_path))
        monkeypatch.setenv("MINIHTTP_FRAMING", "content-length")
        monkeypatch.setenv("MINIHTTP_WORKERS", "8")

        config = ServerConfig.from_env()

        assert config.port == 8080
        assert config.directory == str(tmp_path)
        assert config.framing == "content-length"
        assert config.max_workers == 8

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("MINIHTTP_PORT", "not-a-port")
        with pytest.raises(ValueError):
            ServerConfig.from_env()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 10},
        {"timeout": 0},
        {"framing": "chunked"},
        {"directory": "/definitely/not/here"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestCommandLine:

    def test_defaults_come_from_config(self):
        defaults = ServerConfig(port=9000, directory="/tmp")
        args = build_parser(defaults).parse_args([])
        config = config_from_args(args, defaults)

        assert config.port == 9000
        assert config.directory == "/tmp"
        assert config.confine_files is True
        assert config.strict_methods is False

    def test_strict_methods_flag(self):
        defaults = ServerConfig()
        args = build_parser(defaults).parse_args(["--strict-methods"])

        assert config_from_args(args, defaults).strict_methods is True

    def test_strict_methods_carried_from_defaults(self):
        defaults = ServerConfig(strict_methods=True)
        args = build_parser(defaults).parse_args([])

        assert config_from_args(args, defaults).strict_methods is True

    def test_flags_override(self, tmp_path):
        defaults = ServerConfig()
        args = build_parser(defaults).parse_args([
            "--directory", str(tmp_path),
            "-p", "5000",
            "--framing", "content-length",
            "--workers", "2",
            "--log-level", "debug",
            "--log-format", "json",
            "--allow-traversal",
        ])
        config = config_from_args(args, defaults)

        assert config.directory == str(tmp_path)
        assert config.port == 5000
        assert config.framing == "content-length"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.confine_files is False
        config.validate()

    def test_unknown_framing_rejected(self):
        with pytest.raises(SystemExit):
            build_parser(ServerConfig()).parse_args(["--framing", "chunked"])

    def test_main_rejects_missing_directory(self, capsys):
        from minihttp.__main__ import main

        assert main(["--directory", "/definitely/not/here", "--port", "0"]) == 1
        assert "Directory does not exist" in capsys.readouterr().err
