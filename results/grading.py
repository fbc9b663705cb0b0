"""
Grade classification.

A school may author its own grading scale (ordered ``from``/``to`` ranges).
When none is configured the built-in thresholds below apply. A percentage
that an authored scale does not cover has no grade: the caller gets ``None``
and a warning is logged so the gap in the scale can be fixed.
"""
import logging

from .exceptions import GradingScaleError
from .records import GradingScaleEntry

logger = logging.getLogger(__name__)


# Lower bound (inclusive), grade, remark. Checked top-down.
DEFAULT_GRADE_THRESHOLDS = (
    (90, 'A+', 'Excellent'),
    (80, 'A', 'Very good'),
    (70, 'B+', 'Good'),
    (60, 'B', 'Credit'),
    (50, 'C', 'Pass'),
    (40, 'D', 'Weak pass'),
)
FAIL_GRADE = ('F', 'Fail')

# Percentages are stored and looked up to two decimal places
PRECISION = 2
STEP = 0.01


def default_scale():
    """Built-in thresholds as scale entries, highest first."""
    entries = []
    upper = 100
    for lower, grade, comment in DEFAULT_GRADE_THRESHOLDS:
        entries.append(GradingScaleEntry(lower=lower, upper=upper, grade=grade, comment=comment))
        upper = lower
    entries.append(GradingScaleEntry(lower=0, upper=upper, grade=FAIL_GRADE[0], comment=FAIL_GRADE[1]))
    return entries


def _default_entry(percentage):
    for lower, grade, comment in DEFAULT_GRADE_THRESHOLDS:
        if percentage >= lower:
            return GradingScaleEntry(lower=lower, upper=100, grade=grade, comment=comment)
    return GradingScaleEntry(lower=0, upper=DEFAULT_GRADE_THRESHOLDS[-1][0], grade=FAIL_GRADE[0], comment=FAIL_GRADE[1])


def describe(percentage, scale=None):
    """
    Return the scale entry that grades ``percentage``.

    Args:
        percentage: score in percent
        scale: ordered sequence of GradingScaleEntry, or None for the default

    Returns:
        GradingScaleEntry or None when an authored scale has no matching range
    """
    if not scale:
        return _default_entry(percentage)

    value = round(percentage, PRECISION)
    for entry in scale:
        if entry.covers(value):
            return entry

    logger.warning(f"Grading scale does not cover {percentage:.2f}%")
    return None


def classify(percentage, scale=None):
    entry = describe(percentage, scale)
    return entry.grade if entry else None


def validate_scale(entries):
    """Raise GradingScaleError when ranges are inverted, out of bounds or overlap."""
    ordered = sorted(entries, key=lambda e: e.lower)
    for entry in ordered:
        if entry.lower >= entry.upper:
            raise GradingScaleError(f"Grade {entry.grade}: from value must be less than to value")
        if entry.lower < 0 or entry.upper > 100:
            raise GradingScaleError(f"Grade {entry.grade}: range must lie within 0-100")

    for previous, current in zip(ordered, ordered[1:]):
        if current.lower <= previous.upper:
            raise GradingScaleError(
                f"Grade {current.grade} ({current.lower}-{current.upper}) overlaps "
                f"grade {previous.grade} ({previous.lower}-{previous.upper})"
            )
    return ordered


def find_gaps(entries):
    """
    List (start, end) spans of [0, 100] that no entry covers.

    Bounds one stored step apart (39.99 then 40) are contiguous. Anything
    wider leaves percentages that classify() cannot grade, so 0-39 followed
    by 40-49 reports the gap (39, 40).
    """
    ordered = sorted(entries, key=lambda e: e.lower)
    if not ordered:
        return [(0, 100)]

    gaps = []
    if ordered[0].lower > 0:
        gaps.append((0, ordered[0].lower))
    cursor = ordered[0].upper
    for entry in ordered[1:]:
        if round(entry.lower - cursor, PRECISION) > STEP:
            gaps.append((cursor, entry.lower))
        cursor = max(cursor, entry.upper)
    if cursor < 100:
        gaps.append((cursor, 100))
    return gaps


def pick_remark(bands, average, default='No comment available'):
    """Choose the class/head teacher comment whose band holds ``average``."""
    for band in bands or ():
        if band.covers(average):
            return band.comment
    return default
