"""
Grading scale - maps a percentage to a letter grade.

Bands are ordered from highest to lowest. A band covers
``min_percentage <= p < max_percentage``; the top band also includes its
upper bound so that 100% is graded. Adjacent bands share a boundary, which
leaves no gaps for fractional percentages such as 89.5.
"""

from typing import NamedTuple, Sequence


class GradeBand(NamedTuple):
    letter: str
    min_percentage: float
    max_percentage: float


DEFAULT_GRADING_SCALE = (
    GradeBand("A+", 90, 100),
    GradeBand("A", 80, 90),
    GradeBand("B", 70, 80),
    GradeBand("C", 60, 70),
    GradeBand("D", 50, 60),
    GradeBand("F", 0, 50),
)


def validate_scale(scale: Sequence[GradeBand]) -> None:
    """
    Check that ``scale`` is ordered high to low and covers [0, 100] without gaps.

    Raises:
        ValueError: describing the first problem found
    """
    if not scale:
        raise ValueError("Grading scale is empty")
    if scale[0].max_percentage != 100:
        raise ValueError("Top band must end at 100, got {}".format(scale[0].max_percentage))
    if scale[-1].min_percentage != 0:
        raise ValueError("Bottom band must start at 0, got {}".format(scale[-1].min_percentage))
    for higher, lower in zip(scale, scale[1:]):
        if lower.max_percentage != higher.min_percentage:
            raise ValueError("Gap or overlap between bands {} and {}".format(higher.letter, lower.letter))
    for band in scale:
        if band.min_percentage >= band.max_percentage:
            raise ValueError("Band {} has an empty range".format(band.letter))


def derive_grade(percentage: float, scale: Sequence[GradeBand] = DEFAULT_GRADING_SCALE) -> str:
    """
    Return the letter of the band containing ``percentage``.

    Falls back to the lowest grade when nothing matches, which only happens
    with a malformed scale or an out-of-range percentage.
    """
    for index, band in enumerate(scale):
        top = index == 0
        if band.min_percentage <= percentage < band.max_percentage:
            return band.letter
        if top and percentage == band.max_percentage:
            return band.letter
    return scale[-1].letter


validate_scale(DEFAULT_GRADING_SCALE)
