"""Articulation extraction from agreement document text.

The agreement PDFs list each receiving course next to its sending-side
equivalent, separated by an arrow glyph. PDF-to-text conversion mangles that
glyph into the two characters of ``ARROW_MARKER`` and leaves stray control
bytes behind, so the scan works on cleaned text and on the mangled marker.
"""
from __future__ import annotations

import logging
import re

from articulate.models import ArticulationVerdict

logger = logging.getLogger(__name__)

# "→" encoded as UTF-8 and decoded as cp1252 starts with these two characters.
ARROW_MARKER = "\u00e2\u2020"  # "â†"

FROM_MARKER = "From:"
# Institution name starts this many characters after the "From:" marker.
FROM_NAME_OFFSET = 6
# Academic year ranges ("2021-2022") follow the institution name.
YEAR_START_CHAR = "2"

WINDOW_LENGTH = 30

NOT_ARTICULATED_PHRASES: tuple[str, ...] = (
    "No Course Articulated",
    "No Comparable Course",
    "Course(s) Denied",
)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def strip_control_chars(text: str) -> str:
    """Remove C0 and C1 control characters left behind by PDF extraction."""
    return _CONTROL_CHARS.sub("", text)


def extract_institution_name(text: str) -> str:
    """Read the sending institution name from the "From:" header line.

    Returns an empty string when the marker or the academic year is missing.
    """
    from_index = text.find(FROM_MARKER)
    if from_index == -1:
        return ""

    after_from = text[from_index + FROM_NAME_OFFSET:]
    year_index = after_from.find(YEAR_START_CHAR)
    if year_index == -1:
        return ""

    # Drop the separator just before the year.
    return after_from[:max(year_index - 1, 0)].strip()


def find_articulation_window(text: str, course_code: str) -> str | None:
    """Return the text window after the arrow that follows ``course_code``.

    Only the first occurrence of the course and the first arrow after it are
    considered.
    """
    course_index = text.find(course_code)
    if course_index == -1:
        return None

    after_course = text[course_index + len(course_code):]
    arrow_index = after_course.find(ARROW_MARKER)
    if arrow_index == -1:
        return None

    return after_course[arrow_index:arrow_index + WINDOW_LENGTH]


def is_denied(window: str) -> bool:
    return any(phrase in window for phrase in NOT_ARTICULATED_PHRASES)


def extract_articulation(document_text: str, course_code: str) -> ArticulationVerdict:
    """Decide whether ``course_code`` is articulated in an agreement document.

    Args:
        document_text: Text extracted from the agreement PDF
        course_code: Receiving-side course code, e.g. "CS 101"

    Returns:
        ArticulationVerdict with the sending institution name and, when
        articulated, the trimmed window describing the equivalent course
    """
    text = strip_control_chars(document_text)
    course = strip_control_chars(course_code)

    institution_name = extract_institution_name(text)

    window = find_articulation_window(text, course)
    if window is None or is_denied(window):
        return ArticulationVerdict(
            institution_name=institution_name,
            is_articulated=False,
            articulated_text=None,
        )

    logger.debug(f"{course} articulated at {institution_name or 'unknown institution'}")
    return ArticulationVerdict(
        institution_name=institution_name,
        is_articulated=True,
        articulated_text=window.strip(),
    )
