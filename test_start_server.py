"""Tests for the web server launcher."""

import importlib
import os

import start_server


class TestStartServer:

    def test_import_leaves_working_directory_alone(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        importlib.reload(start_server)
        assert os.getcwd() == str(tmp_path)

    def test_main_passes_options_to_uvicorn(self, monkeypatch, capsys):
        calls = []
        monkeypatch.setattr('uvicorn.run', lambda app, **kwargs: calls.append((app, kwargs)))

        start_server.main(['--port', '8080', '--host', '0.0.0.0'])

        assert calls == [('api:app', {'host': '0.0.0.0', 'port': 8080, 'reload': False})]
        assert 'http://0.0.0.0:8080' in capsys.readouterr().out
