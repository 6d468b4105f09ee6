"""Unit tests for the built-in project and Dart code validators."""

from __future__ import annotations

import pytest

from flutter_pwa_builder.models import ProjectDefinition, TargetPlatform
from flutter_pwa_builder.validation import Severity, ValidationInput, ValidationTarget
from flutter_pwa_builder.validation.builtin import (
    check_dart_imports,
    check_dart_syntax,
    check_offline_config,
    check_project_name,
    check_pwa_config,
    check_targets,
    suggest_package_name,
)


pytestmark = pytest.mark.unit


def _project_input(project) -> ValidationInput:
    return ValidationInput(target=ValidationTarget.PROJECT, content=project)


def _code_input(content: str, path: str = "lib/a.dart") -> ValidationInput:
    return ValidationInput(target=ValidationTarget.CODE, content=content, path=path)


# ---------------------------------------------------------------------------
# Project validators
# ---------------------------------------------------------------------------


class TestProjectName:
    def test_valid_name(self):
        assert check_project_name(_project_input(ProjectDefinition(name="field_notes"))) == []

    def test_invalid_name_with_suggestion(self):
        issues = check_project_name(_project_input(ProjectDefinition(name="My-App")))
        assert len(issues) == 1
        assert issues[0].severity == Severity.ERROR
        assert issues[0].suggestion == "my_app"

    def test_accepts_plain_mapping(self):
        issues = check_project_name(_project_input({"name": "1st_app"}))
        assert issues[0].suggestion == "app_1st_app"

    @pytest.mark.parametrize(
        "name,expected",
        [("Field Notes", "field_notes"), ("9lives", "app_9lives"), ("ok_name", "ok_name")],
    )
    def test_suggest_package_name(self, name, expected):
        assert suggest_package_name(name) == expected


class TestPWAConfig:
    def test_complete_config_is_clean(self, sample_project):
        assert check_pwa_config(_project_input(sample_project)) == []

    def test_bad_colors_are_errors(self):
        project = ProjectDefinition(name="app", pwa={"theme_color": "blue", "background_color": "#FFF"})
        errors = [i for i in check_pwa_config(_project_input(project)) if i.severity == Severity.ERROR]
        assert len(errors) == 2

    def test_long_short_name_warns_with_truncation(self):
        project = ProjectDefinition(name="a_very_long_package_name")
        issues = check_pwa_config(_project_input(project))
        long_name = [i for i in issues if "characters or less" in i.message]
        assert long_name[0].severity == Severity.WARNING
        assert long_name[0].suggestion == "a_very_long_"

    def test_missing_icons_warns(self):
        issues = check_pwa_config(_project_input(ProjectDefinition(name="app")))
        assert any("No PWA icons" in i.message for i in issues)


class TestOfflineConfig:
    def test_defaults_are_clean(self):
        assert check_offline_config(_project_input(ProjectDefinition(name="app"))) == []

    def test_encryption_without_sync_is_info(self):
        project = ProjectDefinition(name="app", offline={"storage": {"encryption": True}})
        issues = check_offline_config(_project_input(project))
        assert [i.severity for i in issues] == [Severity.INFO]

    def test_negative_ttl(self):
        project = ProjectDefinition(name="app", offline={"caching": {"ttl": -1}})
        issues = check_offline_config(_project_input(project))
        assert issues[0].severity == Severity.ERROR

    def test_short_periodic_interval(self):
        project = ProjectDefinition(
            name="app",
            offline={"sync": {"enabled": True, "strategy": "periodic", "interval": 10}},
        )
        issues = check_offline_config(_project_input(project))
        assert issues[0].severity == Severity.WARNING
        assert issues[0].suggestion == "60"


class TestTargets:
    def test_web_target_is_clean(self):
        assert check_targets(_project_input(ProjectDefinition(name="app"))) == []

    def test_no_web_target_warns(self):
        project = ProjectDefinition(name="app", targets=[TargetPlatform.ANDROID])
        issues = check_targets(_project_input(project))
        assert issues[0].severity == Severity.WARNING

    def test_empty_targets_is_error(self):
        project = ProjectDefinition.model_construct(name="app", targets=[])
        issues = check_targets(_project_input(project))
        assert issues[0].severity == Severity.ERROR


# ---------------------------------------------------------------------------
# Dart code validators
# ---------------------------------------------------------------------------


class TestDartSyntax:
    def test_balanced_code(self):
        code = "void main() {\n  print('{ not counted');\n  final list = [1, 2];\n}\n"
        assert check_dart_syntax(_code_input(code)) == []

    def test_missing_closing_brace(self):
        issues = check_dart_syntax(_code_input("class A {\n  void f() {}\n"))
        assert [i.message for i in issues] == ["Unbalanced braces: missing closing braces"]

    def test_extra_closing_paren(self):
        issues = check_dart_syntax(_code_input("f());"))
        assert issues[0].message == "Unbalanced parentheses: extra closing parentheses"

    def test_double_semicolon_reports_line(self):
        issues = check_dart_syntax(_code_input("int a = 1;\nint b = 2;;\n"))
        assert issues[0].line == 2
        assert issues[0].file == "lib/a.dart"

    def test_comments_ignored(self):
        code = "// unbalanced {\nint a = 1; // also (\n"
        assert check_dart_syntax(_code_input(code)) == []


class TestDartImports:
    def test_imports_at_top(self):
        code = "// header\nlibrary app;\nimport 'a.dart';\n\npart 'b.dart';\nclass A {}\n"
        assert check_dart_imports(_code_input(code)) == []

    def test_late_import_warns(self):
        code = "import 'a.dart';\nclass A {}\nimport 'b.dart';\n"
        issues = check_dart_imports(_code_input(code))
        assert len(issues) == 1
        assert issues[0].line == 3
        assert issues[0].severity == Severity.WARNING


async def test_framework_skips_dart_checks_for_other_files(validation):
    result = await validation.validate_code("web/manifest.json", "{ ((")
    assert result.issues == []
