"""Unit tests for the built-in template helpers (flutter_pwa_builder.templating.helpers)."""

from __future__ import annotations

import pytest

from flutter_pwa_builder.templating.helpers import (
    TRANSFORMS,
    builtin_helpers,
    camel_case,
    dart_comment,
    dart_default_value,
    dart_type,
    if_cond,
    kebab_case,
    pascal_case,
    pluralize,
    singularize,
    snake_case,
)


pytestmark = pytest.mark.unit


class TestCaseConversion:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("user_profile", "userProfile"),
            ("user-profile", "userProfile"),
            ("UserProfile", "userProfile"),
            ("user profile", "userProfile"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_camel_case(self, value, expected):
        assert camel_case(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [("user_profile", "UserProfile"), ("todo-item", "TodoItem"), ("notes", "Notes")],
    )
    def test_pascal_case(self, value, expected):
        assert pascal_case(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("HelloWorld", "hello_world"),
            ("userID", "user_id"),
            ("todo-item", "todo_item"),
            ("already_snake", "already_snake"),
            ("HTTPServer", "http_server"),
        ],
    )
    def test_snake_case(self, value, expected):
        assert snake_case(value) == expected

    def test_kebab_case(self):
        assert kebab_case("UserProfile") == "user-profile"


class TestInflection:
    @pytest.mark.parametrize(
        "value,expected",
        [("note", "notes"), ("box", "boxes"), ("category", "categories"), ("day", "days")],
    )
    def test_pluralize(self, value, expected):
        assert pluralize(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [("tasks", "task"), ("categories", "category"), ("boxes", "box"), ("sheep", "sheep")],
    )
    def test_singularize(self, value, expected):
        assert singularize(value) == expected


class TestDartHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("string", "String"),
            ("integer", "int"),
            ("boolean", "bool"),
            ("json", "Map<String, dynamic>"),
            ("Uint8List", "Uint8List"),
            (None, "dynamic"),
        ],
    )
    def test_dart_type(self, value, expected):
        assert dart_type(value) == expected

    def test_dart_default_value(self):
        assert dart_default_value("String") == "''"
        assert dart_default_value("Widget") == "null"

    def test_dart_comment_prefixes_every_line(self):
        assert dart_comment("one\ntwo") == "/// one\n/// two"
        assert dart_comment("") == ""


class TestLogicHelpers:
    @pytest.mark.parametrize(
        "left,operator,right,expected",
        [
            (1, "==", 1, True),
            (1, "!=", 2, True),
            (1, "<", 2, True),
            (2, ">=", 3, False),
            ("a", "<", 1, False),
            (True, "&&", False, False),
            (True, "||", False, True),
            (1, "~", 1, False),
        ],
    )
    def test_if_cond(self, left, operator, right, expected):
        assert if_cond(left, operator, right) is expected

    def test_collection_helpers(self):
        helpers = builtin_helpers()
        assert helpers["join"](["a", "b"], "-") == "a-b"
        assert helpers["includes"](["web"], "web") is True
        assert helpers["first"]([]) is None
        assert helpers["last"]([1, 2]) == 2
        assert helpers["length"](None) == 0
        assert helpers["keys"]({"a": 1}) == ["a"]

    def test_builtin_helpers_are_fresh(self):
        first = builtin_helpers()
        first["snakeCase"] = None
        assert builtin_helpers()["snakeCase"] is snake_case


def test_transforms_cover_every_transform_type():
    from flutter_pwa_builder.models import TransformType

    assert set(TRANSFORMS) == {t.value for t in TransformType}
