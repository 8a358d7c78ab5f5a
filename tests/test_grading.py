import itertools

import pytest

from grading import (
    GRADES,
    OVERALL_GRADES,
    calculate_overall_grade,
    grade_description,
    score_to_grade,
)


@pytest.mark.parametrize(
    "score,grade",
    [
        (100, "A"),
        (97, "A"),
        (96, "A-"),
        (93, "A-"),
        (92, "B+"),
        (90, "B+"),
        (87, "B"),
        (83, "B-"),
        (80, "C+"),
        (77, "C"),
        (73, "C-"),
        (70, "D+"),
        (67, "D"),
        (60, "D-"),
        (59, "F"),
        (0, "F"),
    ],
)
def test_score_to_grade_boundaries(score, grade):
    assert score_to_grade(score) == grade


def test_score_to_grade_is_monotonic():
    ranks = {grade: index for index, grade in enumerate(reversed(GRADES))}
    previous = ranks[score_to_grade(0)]
    for score in range(1, 101):
        current = ranks[score_to_grade(score)]
        assert current >= previous
        previous = current


def test_score_to_grade_clamps_out_of_range():
    assert score_to_grade(150) == "A"
    assert score_to_grade(-5) == "F"


def test_all_a_pillars_earn_a_plus():
    assert calculate_overall_grade([100] * 7) == "A+"
    assert calculate_overall_grade([97, 98, 99]) == "A+"


def test_empty_scores_grade_f():
    assert calculate_overall_grade([]) == "F"


def test_overall_grade_averages_grade_values():
    # A (12) and F (1) average to 6.5 -> C+
    assert calculate_overall_grade([100, 10]) == "C+"
    # A- (11) and A (12) average to 11.5 -> A, not promoted
    assert calculate_overall_grade([95, 99]) == "A"


def test_overall_grade_is_order_independent():
    scores = [95, 72, 88, 40, 100]
    expected = calculate_overall_grade(scores)
    for permutation in itertools.permutations(scores):
        assert calculate_overall_grade(list(permutation)) == expected


def test_overall_grade_is_repeatable():
    scores = [81, 64, 93]
    assert calculate_overall_grade(scores) == calculate_overall_grade(scores)


def test_every_overall_grade_has_a_description():
    for grade in OVERALL_GRADES:
        assert grade_description(grade)
    assert grade_description("A+") == "Perfect"
    assert grade_description("F") == "Critical Issues"
