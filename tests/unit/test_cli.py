"""Tests for the memorybank command-line interface."""

import io
import json
import os
from pathlib import Path

import pytest
import yaml
from structlog.testing import capture_logs

from memorybank.__main__ import main
from memorybank.defaults import DEFAULT_ACTIVE_CONTEXT
from memorybank.storage.file_backend import FileBackend


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    """Isolate from MEMORYBANK_* variables and keep log lines out of stdout."""
    for key in list(os.environ):
        if key.startswith("MEMORYBANK_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("memorybank.__main__.configure_logging", lambda **kwargs: None)
    with capture_logs() as logs:
        yield logs


def _run(base_path: Path, *args: str) -> int:
    return main(["--base-path", str(base_path), *args])


# ===========================================================================
# init / status / show
# ===========================================================================


class TestInitAndShow:
    def test_init(self, base_path: Path, capsys):
        assert _run(base_path, "init") == 0
        assert "Memory bank initialized" in capsys.readouterr().out
        assert (base_path / "activeContext.md").exists()

    def test_status_before_and_after_init(self, base_path: Path, capsys):
        _run(base_path, "status")
        assert "Initialized: no" in capsys.readouterr().out

        _run(base_path, "init")
        capsys.readouterr()
        _run(base_path, "status")
        out = capsys.readouterr().out
        assert "Initialized: yes" in out
        assert "History versions kept: 10" in out
        assert "activeContext" in out

    def test_show_prints_content_verbatim(self, base_path: Path, capsys):
        _run(base_path, "show", "activeContext")
        assert capsys.readouterr().out == DEFAULT_ACTIVE_CONTEXT

    def test_unknown_component_rejected_by_parser(self, base_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            _run(base_path, "show", "notAComponent")
        assert exc_info.value.code == 2


# ===========================================================================
# set / append
# ===========================================================================


class TestWrite:
    def test_set_text(self, base_path: Path, capsys):
        assert _run(base_path, "set", "progress", "--text", "shipped") == 0
        _run(base_path, "show", "progress")
        assert capsys.readouterr().out == "shipped"

    def test_set_from_file(self, base_path: Path, tmp_path: Path, capsys):
        source = tmp_path / "progress.md"
        source.write_text("# Progress\nfrom file\n", encoding="utf-8")
        _run(base_path, "set", "progress", "--file", str(source))
        _run(base_path, "show", "progress")
        assert capsys.readouterr().out == "# Progress\nfrom file\n"

    def test_append_from_stdin(self, base_path: Path, monkeypatch, capsys):
        _run(base_path, "set", "decisionLog", "--text", "X")
        monkeypatch.setattr("sys.stdin", io.StringIO("Y"))
        _run(base_path, "append", "decisionLog")
        _run(base_path, "show", "decisionLog")
        assert capsys.readouterr().out == "XY"

    def test_write_is_logged(self, base_path: Path, cli_env):
        _run(base_path, "set", "progress", "--text", "logged")
        events = [entry for entry in cli_env if entry["event"] == "Component written"]
        assert events[0]["component_id"] == "progress"


# ===========================================================================
# history / version
# ===========================================================================


class TestHistory:
    def test_empty_history(self, base_path: Path, capsys):
        _run(base_path, "history", "progress")
        assert "No history for progress" in capsys.readouterr().out

    def test_history_lists_versions(self, base_path: Path, capsys):
        for text in ("a", "b", "c"):
            _run(base_path, "set", "progress", "--text", text)
        capsys.readouterr()

        _run(base_path, "history", "progress", "--content-only", "--limit", "1")
        assert capsys.readouterr().out == "b\n---\n"

    def test_version_lookup(self, base_path: Path, capsys):
        _run(base_path, "set", "progress", "--text", "old")
        _run(base_path, "set", "progress", "--text", "new")
        (version,) = FileBackend(base_path).get_history_versions("progress")
        capsys.readouterr()

        assert _run(base_path, "version", "progress", version.version_id) == 0
        assert capsys.readouterr().out == "old"

    def test_missing_version_is_an_error(self, base_path: Path, capsys):
        assert _run(base_path, "version", "progress", "2001-01-01T00-00-00-000000Z") == 1
        assert "Error:" in capsys.readouterr().err

    def test_max_history_option(self, base_path: Path, capsys):
        for text in ("a", "b", "c", "d"):
            _run(base_path, "--max-history", "2", "set", "progress", "--text", text)
        capsys.readouterr()
        _run(base_path, "history", "progress", "--content-only")
        assert capsys.readouterr().out == "c\n---\nb\n---\n"


# ===========================================================================
# export / import
# ===========================================================================


class TestExportImport:
    def test_export_to_stdout(self, base_path: Path, capsys):
        _run(base_path, "init")
        capsys.readouterr()
        _run(base_path, "export")
        data = json.loads(capsys.readouterr().out)
        assert len(data["components"]) == 4

    def test_export_import_via_yaml_file(self, base_path: Path, tmp_path: Path, capsys):
        _run(base_path, "set", "progress", "--text", "exported")
        output = tmp_path / "bank.yaml"
        _run(base_path, "export", "--format", "yaml", "--output", str(output))
        assert yaml.safe_load(output.read_text(encoding="utf-8"))["components"][0]["content"] == "exported"

        other = tmp_path / "other-bank"
        assert _run(other, "import", str(output)) == 0
        assert "Imported 1 components" in capsys.readouterr().out
        assert (other / "progress.md").read_text(encoding="utf-8") == "exported"

    def test_import_bad_payload(self, base_path: Path, tmp_path: Path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{oops", encoding="utf-8")
        assert _run(base_path, "import", str(bad)) == 1
        assert "Error:" in capsys.readouterr().err


# ===========================================================================
# migrate / settings
# ===========================================================================


class TestMigrateAndSettings:
    def test_migrate_requires_database_flag(self, base_path: Path, capsys):
        assert _run(base_path, "migrate") == 1
        assert "not enabled" in capsys.readouterr().err

    def test_migrate(self, base_path: Path, capsys):
        _run(base_path, "init")
        capsys.readouterr()
        assert _run(base_path, "--database", "migrate") == 0
        assert "Migrated 4 components" in capsys.readouterr().out

        _run(base_path, "--database", "status")
        assert "Initialized: yes" in capsys.readouterr().out

    def test_invalid_settings(self, base_path: Path, capsys):
        assert _run(base_path, "--max-history", "-1", "status") == 1
        assert "Invalid settings" in capsys.readouterr().err

    def test_config_file(self, base_path: Path, tmp_path: Path, capsys):
        config = tmp_path / "memorybank.yaml"
        config.write_text(f"base_path: {base_path}\nmax_history_versions: 4\n", encoding="utf-8")
        assert main(["--config", str(config), "status"]) == 0
        assert "History versions kept: 4" in capsys.readouterr().out
