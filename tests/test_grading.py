import pytest

from academic_portal.services.grading import (
    compute_grade,
    course_gpas,
    course_grade_statistics,
    letter_for,
    weighted_gpa,
)


@pytest.mark.parametrize(
    "percentage,letter",
    [
        (100, "A+"),
        (97.0, "A+"),
        (96.999, "A"),
        (93, "A"),
        (90, "A-"),
        (89.99, "B+"),
        (80, "B-"),
        (70, "C-"),
        (67, "D+"),
        (60, "D"),
        (59.99, "F"),
        (0, "F"),
    ],
)
def test_letter_thresholds(percentage, letter):
    assert letter_for(percentage) == letter


def test_compute_grade_derives_all_fields():
    result = compute_grade(93, 100)
    assert result.percentage == 93.0
    assert result.letter_grade == "A"
    assert result.gpa == 4.0
    assert result.as_fields() == {"percentage": 93.0, "letterGrade": "A", "gpa": 4.0}


def test_compute_grade_uses_unrounded_percentage():
    # 29/30 = 96.67% is an A, not an A+
    assert compute_grade(29, 30).letter_grade == "A"


def test_compute_grade_rejects_non_positive_max():
    with pytest.raises(ValueError):
        compute_grade(5, 0)


def test_weighted_gpa_single_grade_is_its_gpa():
    assert weighted_gpa([{"gpa": 3.3, "assignment": {"weightage": 40}}]) == pytest.approx(3.3)


def test_weighted_gpa_weights_by_assignment():
    grades = [
        {"gpa": 4.0, "assignment": {"weightage": 30}},
        {"gpa": 2.0, "assignment": {"weightage": 10}},
    ]
    assert weighted_gpa(grades) == pytest.approx(3.5)


def test_weighted_gpa_without_weight_is_zero():
    assert weighted_gpa([]) == 0
    assert weighted_gpa([{"gpa": 4.0, "assignment": {"weightage": 0}}]) == 0


def test_course_gpas_groups_by_course():
    grades = [
        {"course": "c1", "gpa": 4.0, "assignment": {"weightage": 10}},
        {"course": "c1", "gpa": 2.0, "assignment": {"weightage": 10}},
        {"course": "c2", "gpa": 3.0, "assignment": {"weightage": 50}},
    ]
    assert course_gpas(grades) == {"c1": pytest.approx(3.0), "c2": pytest.approx(3.0)}


def test_course_grade_statistics():
    grades = [
        {"student": "s1", "percentage": 90.0},
        {"student": "s1", "percentage": 80.0},
        {"student": "s2", "percentage": 71.111},
    ]
    stats = course_grade_statistics(grades, roster_size=5)
    assert stats == {"totalStudents": 5, "gradedStudents": 2, "averageGrade": 80.37}


def test_course_grade_statistics_empty():
    assert course_grade_statistics([], 0)["averageGrade"] == 0
