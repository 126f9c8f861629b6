"""Tests for the console-script entry point."""

import sys

import pytest

from treesync._cli_entry import MISSING_CLI_HINT, main


class TestEntryPoint:
    def test_runs_cli(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0
        assert "sync" in capsys.readouterr().out

    def test_missing_click(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "click", None)
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == MISSING_CLI_HINT
        assert "pip install 'treesync[cli]'" in MISSING_CLI_HINT
