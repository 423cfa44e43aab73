"""Overall progress: one 0-100 number per (student, course).

    lecture_component    = completed / total_lectures * 50   (0 if no lectures)
    assessment_component = latest_graded.score / its total_points * 50
                           (0 until something is graded)
    overall              = round(lecture_component + assessment_component)

Only the most recently graded assessment feeds the second half.  In a
course with several assessments, grading a later one replaces the earlier
one's contribution rather than adding to it.  That is the behaviour the
platform has always had; it is kept as-is and noted in DESIGN.md.

A course with lectures but no assessment therefore tops out at 50.
"""

from __future__ import annotations

import math

from app.models.course import Course
from app.models.progress import Progress

LECTURE_WEIGHT = 50
ASSESSMENT_WEIGHT = 50


def _round_half_up(value: float) -> int:
    # round() in Python is banker's rounding: round(12.5) == 12.
    return math.floor(value + 0.5)


def lecture_component(progress: Progress, course: Course) -> float:
    total = course.total_lectures
    if total <= 0:
        return 0.0
    return progress.completed_lectures / total * LECTURE_WEIGHT


def assessment_component(progress: Progress) -> float:
    latest = progress.latest_graded
    if latest is None or not latest.total_points:
        return 0.0
    return (latest.score or 0.0) / latest.total_points * ASSESSMENT_WEIGHT


def compute_overall_progress(progress: Progress, course: Course) -> int:
    raw = lecture_component(progress, course) + assessment_component(progress)
    return max(0, min(100, _round_half_up(raw)))
