"""
Tests for color_oracle/forecasting/categories.py - outcome classification rules.
"""

import pytest

from color_oracle.forecasting.categories import (
    Category,
    canonical_color,
    canonical_size,
    category_of,
    color_of,
    size_of,
)


class TestSizeOf:
    @pytest.mark.parametrize("n", [0, 1, 2, 3, 4])
    def test_small(self, n):
        assert size_of(n) == "Small"

    @pytest.mark.parametrize("n", [5, 6, 7, 8, 9])
    def test_big(self, n):
        assert size_of(n) == "Big"

    @pytest.mark.parametrize("n", [-1, 10, 2.5, "3", True])
    def test_out_of_range_rejected(self, n):
        with pytest.raises(ValueError):
            size_of(n)


class TestColorOf:
    def test_violet_only_for_nine(self):
        assert color_of(9) == "Violet"

    @pytest.mark.parametrize("n", [0, 2, 4, 6, 8])
    def test_even_is_red(self, n):
        assert color_of(n) == "Red"

    @pytest.mark.parametrize("n", [1, 3, 5, 7])
    def test_odd_is_green(self, n):
        assert color_of(n) == "Green"

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            color_of(11)


class TestCategoryOf:
    def test_seven_is_green_big(self):
        assert category_of(7) == Category("Green", "Big")

    def test_zero_is_red_small(self):
        assert category_of(0) == Category("Red", "Small")


class TestCanonicalVocabulary:
    def test_color_case_insensitive(self):
        assert canonical_color("rEd") == "Red"
        assert canonical_color("  green ") == "Green"
        assert canonical_color("VIOLET") == "Violet"

    def test_unknown_color(self):
        assert canonical_color("blue") is None
        assert canonical_color("red,violet") is None
        assert canonical_color(None) is None

    def test_size(self):
        assert canonical_size("big") == "Big"
        assert canonical_size("SMALL") == "Small"
        assert canonical_size("medium") is None


class TestCategoryMatches:
    def test_identical_matches(self):
        assert Category("Red", "Big").matches(Category("red", "BIG"))

    def test_color_only_does_not_match(self):
        assert not Category("Red", "Big").matches(Category("Red", "Small"))

    def test_size_only_does_not_match(self):
        assert not Category("Red", "Big").matches(Category("Green", "Big"))
