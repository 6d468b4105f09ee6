"""Unit tests for the command-line front end (flutter_pwa_builder.cli).

Tests cover:
- load_project_file for YAML, JSON and malformed input
- Exit codes of every sub-command
- Files written by ``build`` and left alone by ``--dry-run``
- ``adapt`` to stdout and in place
- Error reporting for builder and unexpected errors
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from flutter_pwa_builder import cli
from flutter_pwa_builder.cli import ProjectFileError, load_project_file, run


pytestmark = pytest.mark.unit

PROJECT_YAML = """\
name: field_notes
display_name: Field Notes
pwa:
  short_name: Notes
  theme_color: "#3F51B5"
modules:
  - id: pwa
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Run every command from a temp dir with no builder environment variables."""
    monkeypatch.chdir(tmp_path)
    # Wide enough that table cells are never wrapped.
    monkeypatch.setattr(cli.console, "width", 200)
    for name in (
        "PWA_BUILDER_OUTPUT_DIR",
        "PWA_BUILDER_FLUTTER_VERSION",
        "PWA_BUILDER_VALIDATE",
        "PWA_BUILDER_FORCE",
        "PWA_BUILDER_VERBOSE",
        "PWA_BUILDER_MODULES",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    path = tmp_path / "project.yaml"
    path.write_text(PROJECT_YAML, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_project_file
# ---------------------------------------------------------------------------


class TestLoadProjectFile:
    def test_yaml(self, project_file):
        data = load_project_file(project_file)
        assert data["name"] == "field_notes"
        assert data["modules"] == [{"id": "pwa"}]

    def test_json(self, tmp_path):
        path = tmp_path / "project.json"
        path.write_text(json.dumps({"name": "from_json"}), encoding="utf-8")
        assert load_project_file(path) == {"name": "from_json"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_project_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectFileError, match="file not found"):
            load_project_file(tmp_path / "nope.yaml")

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ProjectFileError, match="mapping"):
            load_project_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("name: [unclosed\n", encoding="utf-8")
        with pytest.raises(ProjectFileError):
            load_project_file(path)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestCatalogCommands:
    def test_modules(self, capsys):
        assert run(["modules"]) == 0
        out = capsys.readouterr().out
        assert "pwa" in out
        assert "drift" in out

    def test_modules_respects_environment(self, capsys, monkeypatch):
        monkeypatch.setenv("PWA_BUILDER_MODULES", "pwa")
        assert run(["modules"]) == 0
        assert "drift" not in capsys.readouterr().out

    def test_templates(self, capsys):
        assert run(["templates"]) == 0
        out = capsys.readouterr().out
        assert "core-pubspec" in out
        assert "pwa-manifest" in out


class TestGenerate:
    def test_lists_files_without_writing(self, project_file, tmp_path, capsys):
        assert run(["generate", str(project_file)]) == 0
        out = capsys.readouterr().out
        assert "pubspec.yaml" in out
        assert "nothing written" in out
        assert not (tmp_path / "output").exists()


class TestBuild:
    def test_writes_project(self, project_file, tmp_path):
        target = tmp_path / "site"
        assert run(["build", str(project_file), "--target", str(target)]) == 0
        assert (target / "pubspec.yaml").exists()
        manifest = json.loads((target / "web" / "manifest.json").read_text(encoding="utf-8"))
        assert manifest["short_name"] == "Notes"

    def test_default_output_root(self, project_file, tmp_path):
        assert run(["build", str(project_file), "-o", str(tmp_path / "builds")]) == 0
        assert (tmp_path / "builds" / "field_notes" / "lib" / "main.dart").exists()

    def test_dry_run(self, project_file, tmp_path, capsys):
        target = tmp_path / "site"
        assert run(["build", str(project_file), "--target", str(target), "--dry-run"]) == 0
        assert not target.exists()
        assert "Dry run" in capsys.readouterr().out

    def test_flutter_version_applied(self, tmp_path):
        project = tmp_path / "p.yaml"
        project.write_text("name: versioned\n", encoding="utf-8")
        target = tmp_path / "site"
        assert run([
            "build", str(project), "--target", str(target), "--flutter-version", "3.29.0",
        ]) == 0
        assert (target / "lib" / "app.dart").exists()

    def test_missing_project_file(self, tmp_path, capsys):
        assert run(["build", str(tmp_path / "missing.yaml")]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_invalid_field_reported(self, tmp_path, capsys):
        project = tmp_path / "p.yaml"
        project.write_text("name: ok_name\narchitecture: spaghetti\n", encoding="utf-8")
        assert run(["build", str(project)]) == 1
        assert "Error:" in capsys.readouterr().out


class TestValidate:
    def test_valid_project(self, project_file):
        assert run(["validate", str(project_file)]) == 0

    def test_invalid_name(self, tmp_path, capsys):
        project = tmp_path / "p.yaml"
        project.write_text("name: Field Notes\n", encoding="utf-8")
        assert run(["validate", str(project)]) == 1
        assert "field_notes" in capsys.readouterr().out


class TestAdapt:
    def test_prints_adapted_code(self, tmp_path, capsys):
        source = tmp_path / "colors.dart"
        source.write_text("final c = Colors.red.withOpacity(0.3);\n", encoding="utf-8")
        assert run(["adapt", str(source), "--flutter-version", "3.29.0"]) == 0
        assert capsys.readouterr().out == "final c = Colors.red.withValues(alpha: 0.3);\n"
        assert "withOpacity" in source.read_text(encoding="utf-8")

    def test_in_place(self, tmp_path):
        source = tmp_path / "colors.dart"
        source.write_text("final c = Colors.red.withOpacity(0.3);\n", encoding="utf-8")
        assert run(["adapt", str(source), "--flutter-version", "3.29.0", "--in-place"]) == 0
        assert source.read_text(encoding="utf-8") == "final c = Colors.red.withValues(alpha: 0.3);\n"

    def test_bad_version(self, tmp_path, capsys):
        source = tmp_path / "a.dart"
        source.write_text("", encoding="utf-8")
        assert run(["adapt", str(source), "--flutter-version", "latest"]) == 1
        assert "Error:" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestEntryPoint:
    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            run([])
        assert exc_info.value.code == 2

    def test_unexpected_error(self, capsys):
        def explode(args):
            raise KeyError("surprise")

        with patch.dict(cli._COMMANDS, {"modules": explode}):
            assert run(["modules"]) == 1
        assert "unexpected failure" in capsys.readouterr().out

    def test_main_exits_with_status(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["modules"])
        assert exc_info.value.code == 0
