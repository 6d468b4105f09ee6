"""Unit tests for Flutter version adaptation (flutter_pwa_builder.templating.flutter_adapter)."""

from __future__ import annotations

import pytest

from flutter_pwa_builder.templating.flutter_adapter import (
    API_MAPPINGS,
    adapt_for_flutter_version,
    compare_versions,
    get_api_changes_for_version,
)


pytestmark = pytest.mark.unit


class TestCompareVersions:
    @pytest.mark.parametrize(
        "left,right,sign",
        [
            ("3.29.0", "3.29.0", 0),
            ("3.29", "3.29.0", 0),
            ("3.10.0", "3.9.9", 1),
            ("3.28.9", "3.29.0", -1),
            ("4", "3.99.99", 1),
        ],
    )
    def test_ordering(self, left, right, sign):
        result = compare_versions(left, right)
        assert (result > 0) - (result < 0) == sign

    @pytest.mark.parametrize("bad", ["", "3.x", "latest", "3..1"])
    def test_invalid_version(self, bad):
        with pytest.raises(ValueError):
            compare_versions(bad, "3.0.0")


class TestAdapt:
    def test_with_opacity_rewritten_from_3_29(self):
        assert adapt_for_flutter_version(".withOpacity(0.5)", "3.29.0") == ".withValues(alpha: 0.5)"

    def test_with_opacity_kept_before_3_29(self):
        assert adapt_for_flutter_version(".withOpacity(0.5)", "3.28.0") == ".withOpacity(0.5)"

    def test_card_theme_renamed(self):
        code = "cardTheme: CardTheme(elevation: 2),"
        assert adapt_for_flutter_version(code, "3.10.0") == "cardTheme: CardThemeData(elevation: 2),"

    def test_card_theme_data_untouched(self):
        code = "cardTheme: CardThemeData(elevation: 2),"
        assert adapt_for_flutter_version(code, "3.29.0") == code

    def test_color_components_normalised(self):
        code = "final r = color.red / 255; final g = color.green / 255.0;"
        assert adapt_for_flutter_version(code, "3.10.0") == "final r = color.r; final g = color.g;"

    def test_old_version_leaves_code_unchanged(self):
        code = "Colors.blue.withOpacity(0.2); CardTheme();"
        assert adapt_for_flutter_version(code, "3.0.0") == code

    @pytest.mark.parametrize("version", ["3.10.0", "3.29.0", "4.0.0"])
    def test_adaptation_is_idempotent(self, version):
        code = "Colors.blue.withOpacity(0.2);\nCardTheme(); c.blue / 255"
        once = adapt_for_flutter_version(code, version)
        assert adapt_for_flutter_version(once, version) == once


class TestApiChanges:
    def test_changes_grow_with_version(self):
        older = get_api_changes_for_version("3.10.0")
        newer = get_api_changes_for_version("3.29.0")
        assert len(newer) > len(older)
        assert newer[: len(older)] == older

    def test_no_changes_before_first_rule(self):
        assert get_api_changes_for_version("3.0.0") == []

    def test_all_rules_for_latest(self):
        assert len(get_api_changes_for_version("99.0.0")) == len(API_MAPPINGS)
        assert "withOpacity deprecated in favor of withValues" in get_api_changes_for_version("3.29.0")
