import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from main import build_config, build_parser, configure_logging, main


class TestMain:
    def test_parser_defaults(self, monkeypatch):
        monkeypatch.delenv("BLOB_STORE_PORT", raising=False)
        monkeypatch.delenv("BLOB_STORE_TMP", raising=False)
        monkeypatch.delenv("VERBOSE", raising=False)
        monkeypatch.delenv("DEBUG", raising=False)

        args = build_parser().parse_args([])

        assert args.dir == "."
        assert args.port == 8080
        assert args.tmp is None
        assert args.depth == 3
        assert args.algorithm == "sha256"
        assert args.verbose is False
        assert args.debug is False

    def test_parser_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BLOB_STORE_PORT", "9000")
        monkeypatch.setenv("BLOB_STORE_TMP", "/var/tmp/blobs")
        monkeypatch.setenv("VERBOSE", "1")

        args = build_parser().parse_args([])

        assert args.port == 9000
        assert args.tmp == "/var/tmp/blobs"
        assert args.verbose is True

    def test_build_config_resolves_paths(self, tmp_path):
        args = build_parser().parse_args([
            str(tmp_path / "blobs"), "--tmp", str(tmp_path / "staging"), "--depth", "2", "--algorithm", "md5"
        ])

        config = build_config(args)

        assert config.dir == (tmp_path / "blobs").resolve()
        assert config.tmp == (tmp_path / "staging").resolve()
        assert config.depth == 2
        assert config.algorithm == "md5"

    def test_build_config_relative_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("BLOB_STORE_TMP", raising=False)

        config = build_config(build_parser().parse_args([]))

        assert config.dir == Path(tmp_path).resolve()

    @pytest.mark.parametrize("verbose, debug, level", [
        (False, False, logging.WARNING),
        (True, False, logging.INFO),
        (False, True, logging.DEBUG),
    ])
    def test_configure_logging(self, verbose, debug, level):
        with patch("main.logging.basicConfig") as mock_basic_config:
            configure_logging(verbose, debug)

        assert mock_basic_config.call_args.kwargs["level"] == level

    @patch("main.uvicorn.run")
    def test_main_starts_server(self, mock_run, tmp_path):
        main([str(tmp_path / "blobs"), "--tmp", str(tmp_path / "tmp"), "--port", "8123", "--host", "127.0.0.1"])

        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"
        assert mock_run.call_args.kwargs["port"] == 8123
        assert (tmp_path / "blobs").is_dir()
        assert (tmp_path / "tmp").is_dir()

    @patch("main.uvicorn.run")
    def test_main_rejects_invalid_config(self, mock_run, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path), "--algorithm", "md5", "--depth", "17"])

        assert exc_info.value.code == 1
        mock_run.assert_not_called()
