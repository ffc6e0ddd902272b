"""
Unit tests for configuration and the command-line entry point.
"""

from pathlib import Path

import pytest

from fileserve import __version__
from fileserve.__main__ import build_config, build_parser, main
from fileserve.config import ServerConfig
from fileserve.server import create_app


ENV_VARS = ["HTTP_HOST", "HTTP_PORT", "HTTP_DOC_ROOT", "HTTP_TIMEOUT", "HTTP_LOG_LEVEL"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.doc_root == "htdocs"
        assert config.timeout == 5.0
        assert config.listen_address == "127.0.0.1:8080"

    def test_valid(self, doc_root: Path):
        ServerConfig(doc_root=str(doc_root)).validate()

    def test_port_zero_allowed(self, doc_root: Path):
        ServerConfig(port=0, doc_root=str(doc_root)).validate()

    @pytest.mark.parametrize("overrides,message", [
        ({"port": -1}, "Invalid port"),
        ({"port": 65536}, "Invalid port"),
        ({"timeout": 0}, "timeout"),
        ({"timeout": -1.5}, "timeout"),
        ({"buffer_size": 16}, "buffer_size"),
        ({"max_request_size": 10}, "max_request_size"),
    ])
    def test_invalid_values(self, doc_root: Path, overrides, message):
        config = ServerConfig(doc_root=str(doc_root), **overrides)

        with pytest.raises(ValueError) as exc_info:
            config.validate()

        assert message in str(exc_info.value)

    def test_missing_doc_root(self, tmp_path: Path):
        with pytest.raises(ValueError, match="does not exist"):
            ServerConfig(doc_root=str(tmp_path / "nope")).validate()

    def test_doc_root_is_file(self, doc_root: Path):
        with pytest.raises(ValueError, match="not a directory"):
            ServerConfig(doc_root=str(doc_root / "index.html")).validate()

    def test_doc_root_path_is_absolute(self, doc_root: Path, monkeypatch):
        monkeypatch.chdir(doc_root.parent)

        assert ServerConfig(doc_root="htdocs").doc_root_path == str(Path.cwd() / "htdocs")

    def test_from_env(self, clean_env):
        clean_env.setenv("HTTP_HOST", "0.0.0.0")
        clean_env.setenv("HTTP_PORT", "9000")
        clean_env.setenv("HTTP_DOC_ROOT", "/srv/www")
        clean_env.setenv("HTTP_TIMEOUT", "2.5")
        clean_env.setenv("HTTP_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.doc_root == "/srv/www"
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, clean_env):
        assert ServerConfig.from_env() == ServerConfig()

    def test_with_overrides_skips_none(self):
        base = ServerConfig(port=9000)

        config = base.with_overrides(port=None, host="0.0.0.0")

        assert config.port == 9000
        assert config.host == "0.0.0.0"
        assert base.host == "127.0.0.1"


class TestCommandLine:
    """Tests for argument parsing and main()."""

    def test_no_flags(self, clean_env):
        args = build_parser().parse_args([])

        assert args.use_default is False
        assert build_config(args) == ServerConfig()

    def test_flags_override_env(self, clean_env):
        clean_env.setenv("HTTP_PORT", "9000")
        clean_env.setenv("HTTP_DOC_ROOT", "/from/env")

        args = build_parser().parse_args(["-p", "3000", "--timeout", "1.5"])
        config = build_config(args)

        assert config.port == 3000
        assert config.timeout == 1.5
        assert config.doc_root == "/from/env"

    def test_short_flags(self, clean_env):
        args = build_parser().parse_args(
            ["-H", "0.0.0.0", "-d", "site", "-t", "3", "-l", "DEBUG", "--use-default"]
        )
        config = build_config(args)

        assert config.host == "0.0.0.0"
        assert config.doc_root == "site"
        assert config.timeout == 3.0
        assert config.log_level == "DEBUG"
        assert args.use_default is True

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_main_invalid_doc_root(self, clean_env, tmp_path: Path, capsys):
        code = main(["--doc-root", str(tmp_path / "missing"), "--log-level", "ERROR"])

        assert code == 1
        assert "doc_root does not exist" in capsys.readouterr().err

    def test_main_invalid_doc_root_default_server(self, clean_env, tmp_path: Path, capsys):
        code = main(["--doc-root", str(tmp_path / "missing"), "--use-default", "-l", "ERROR"])

        assert code == 1

    @pytest.mark.parametrize("name,value", [("HTTP_PORT", "not-a-port"), ("HTTP_TIMEOUT", "soon")])
    def test_main_invalid_env_value(self, clean_env, name: str, value: str, capsys):
        """Test that an unparseable environment value is reported, not raised."""
        clean_env.setenv(name, value)

        code = main([])

        assert code == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_create_app_from_env(self, clean_env, doc_root: Path):
        clean_env.setenv("HTTP_DOC_ROOT", str(doc_root))
        clean_env.setenv("HTTP_PORT", "0")

        app = create_app()

        assert app.doc_root == str(doc_root)
        assert app.config.port == 0
