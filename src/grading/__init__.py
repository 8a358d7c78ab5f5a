"""SiteGrade grading package."""

from grading.grades import (
    GRADES,
    OVERALL_GRADES,
    calculate_overall_grade,
    grade_description,
    score_to_grade,
)

__all__ = [
    "GRADES",
    "OVERALL_GRADES",
    "calculate_overall_grade",
    "grade_description",
    "score_to_grade",
]
