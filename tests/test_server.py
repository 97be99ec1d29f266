"""
Tests for the console entry point
"""

from unittest.mock import patch

import pytest

import server


class TestCliEntry:

    def test_runs_http_server_with_arguments(self, monkeypatch):
        monkeypatch.setattr('sys.argv', ['series-graphql-server', '--host', '0.0.0.0', '--port', '8123'])
        with patch('transport.http.run_http_server') as run:
            server.cli_entry()
        run.assert_called_once_with(host='0.0.0.0', port=8123)

    def test_defaults_come_from_environment(self, monkeypatch):
        monkeypatch.setenv('HTTP_PORT', '4010')
        monkeypatch.delenv('HTTP_HOST', raising=False)
        monkeypatch.setattr('sys.argv', ['series-graphql-server'])
        with patch('transport.http.run_http_server') as run:
            server.cli_entry()
        run.assert_called_once_with(host='127.0.0.1', port=4010)

    def test_version_flag(self, monkeypatch, capsys):
        monkeypatch.setattr('sys.argv', ['series-graphql-server', '--version'])
        with pytest.raises(SystemExit) as exc_info:
            server.cli_entry()
        assert exc_info.value.code == 0
        assert server.__version__ in capsys.readouterr().out

    def test_startup_failure_is_logged_and_raised(self, monkeypatch):
        monkeypatch.setattr('sys.argv', ['series-graphql-server'])
        with patch('transport.http.run_http_server', side_effect=OSError("address in use")):
            with pytest.raises(OSError):
                server.cli_entry()
