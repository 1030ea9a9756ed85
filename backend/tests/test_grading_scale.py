"""
Unit tests for letter grade derivation.
"""

import pytest

from exam_grading.services.grading_scale import (
    DEFAULT_GRADING_SCALE,
    GradeBand,
    derive_grade,
    validate_scale,
)


class TestDeriveGrade:
    """Tests for mapping percentages to letters."""

    @pytest.mark.parametrize("percentage,letter", [
        (100, "A+"),
        (90, "A+"),
        (89.5, "A"),
        (80, "A"),
        (79.99, "B"),
        (60, "C"),
        (69.9, "C"),
        (50, "D"),
        (49.99, "F"),
        (0, "F"),
    ])
    def test_default_scale(self, percentage: float, letter: str) -> None:
        assert derive_grade(percentage) == letter

    def test_out_of_range_falls_back_to_lowest(self) -> None:
        assert derive_grade(-5) == "F"
        assert derive_grade(120) == "F"

    def test_scale_with_gap_falls_back_to_lowest(self) -> None:
        """Test that a percentage in a gap of a malformed scale gets the lowest grade."""
        scale = (GradeBand("Pass", 60, 100), GradeBand("Fail", 0, 40))

        assert derive_grade(50, scale) == "Fail"


class TestValidateScale:
    """Tests for grading scale validation."""

    def test_default_scale_is_valid(self) -> None:
        validate_scale(DEFAULT_GRADING_SCALE)

    def test_empty_scale(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            validate_scale(())

    def test_gap_between_bands(self) -> None:
        with pytest.raises(ValueError, match="Gap or overlap"):
            validate_scale((GradeBand("Pass", 60, 100), GradeBand("Fail", 0, 50)))

    def test_must_reach_100(self) -> None:
        with pytest.raises(ValueError, match="Top band"):
            validate_scale((GradeBand("Pass", 50, 99), GradeBand("Fail", 0, 50)))
