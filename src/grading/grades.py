"""Letter grades for pillar scores and the overall report."""

from collections.abc import Iterable

# Pillar scale, best first
GRADES = ("A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "F")

# Overall scale adds A+, reserved for an all-A report
OVERALL_GRADES = ("A+",) + GRADES

# Lower bound of each grade; thresholds are not evenly spaced
SCORE_THRESHOLDS = (
    (97, "A"),
    (93, "A-"),
    (90, "B+"),
    (87, "B"),
    (83, "B-"),
    (80, "C+"),
    (77, "C"),
    (73, "C-"),
    (70, "D+"),
    (67, "D"),
    (60, "D-"),
)

GRADE_VALUES = {grade: len(GRADES) - index for index, grade in enumerate(GRADES)}

AVERAGE_THRESHOLDS = (
    (11.5, "A"),
    (10.5, "A-"),
    (9.5, "B+"),
    (8.5, "B"),
    (7.5, "B-"),
    (6.5, "C+"),
    (5.5, "C"),
    (4.5, "C-"),
    (3.5, "D+"),
    (2.5, "D"),
    (1.5, "D-"),
)

GRADE_DESCRIPTIONS = {
    "A+": "Perfect",
    "A": "Excellent",
    "A-": "Very Good",
    "B+": "Good",
    "B": "Solid",
    "B-": "Decent",
    "C+": "Fair",
    "C": "Average",
    "C-": "Below Average",
    "D+": "Below Standards",
    "D": "Significant Issues",
    "D-": "Major Problems",
    "F": "Critical Issues",
}


def score_to_grade(score: float) -> str:
    """Convert a 0-100 score to a pillar letter grade (out-of-range scores are clamped)."""
    normalized = max(0, min(100, score))
    for lower_bound, grade in SCORE_THRESHOLDS:
        if normalized >= lower_bound:
            return grade
    return "F"


def calculate_overall_grade(scores: Iterable[float]) -> str:
    """
    Combine pillar scores into one overall grade.

    Each score is converted to its letter grade, grades are averaged on a
    1 (F) to 12 (A) scale and the average is mapped back to a letter.
    A report where every pillar earns an A is promoted to A+.
    """
    grades = [score_to_grade(score) for score in scores]
    if not grades:
        return "F"

    if all(grade == "A" for grade in grades):
        return "A+"

    average = sum(GRADE_VALUES[grade] for grade in grades) / len(grades)
    for lower_bound, grade in AVERAGE_THRESHOLDS:
        if average >= lower_bound:
            return grade
    return "F"


def grade_description(grade: str) -> str:
    return GRADE_DESCRIPTIONS.get(grade, "")
