"""
Unit tests for name and tag validation.
"""
import pytest

from stremio_manager.core.exceptions import ValidationError
from stremio_manager.utils.validators import (
    normalize_tag_name,
    normalize_tags,
    require_name,
    require_tags,
    validate_name,
    validate_tag_name,
)


class TestNames:
    def test_valid_name(self):
        assert validate_name("Living room") is None

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_name(self, value):
        assert validate_name(value, "Account name") == "Account name is required"

    def test_name_length_limit(self):
        assert validate_name("x" * 100) is None
        assert "too long" in validate_name("x" * 101)

    def test_require_name_trims(self):
        assert require_name("  Main  ") == "Main"

    def test_require_name_raises(self):
        with pytest.raises(ValidationError, match="Name is required"):
            require_name("")


class TestTags:
    @pytest.mark.parametrize("tag", ["movies", "4k", "anime-only"])
    def test_valid_tags(self, tag):
        assert validate_tag_name(tag) is None

    @pytest.mark.parametrize("tag,message", [
        ("", "cannot be empty"),
        ("Movies", "lowercase"),
        ("with space", "lowercase"),
        ("x" * 51, "too long"),
    ])
    def test_invalid_tags(self, tag, message):
        assert message in validate_tag_name(tag)

    def test_normalize_tag_name(self):
        assert normalize_tag_name("  Sci Fi  Movies! ") == "sci-fi-movies"

    def test_normalize_tags_dedupes_and_drops_empty(self):
        assert normalize_tags(["Anime", "anime", "!!!", "Kids TV"]) == ["anime", "kids-tv"]

    def test_require_tags_rejects_overlong(self):
        with pytest.raises(ValidationError, match="too long"):
            require_tags(["x" * 51])
