"""
Grade computation.

Derived fields (percentage, letter grade, grade points) are recomputed by
calling compute_grade() at every write; they are never trusted from input.
"""

from dataclasses import dataclass
from typing import Iterable

# Descending; first threshold the percentage reaches wins
LETTER_THRESHOLDS = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (60, "D"),
)

GRADE_POINTS = {
    "A+": 4.0, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "F": 0.0,
}


@dataclass(frozen=True)
class GradeResult:
    percentage: float
    letter_grade: str
    gpa: float

    def as_fields(self) -> dict:
        return {
            "percentage": self.percentage,
            "letterGrade": self.letter_grade,
            "gpa": self.gpa,
        }


def letter_for(percentage: float) -> str:
    for threshold, letter in LETTER_THRESHOLDS:
        if percentage >= threshold:
            return letter
    return "F"


def compute_grade(marks_obtained: float, max_marks: float) -> GradeResult:
    if max_marks <= 0:
        raise ValueError("max_marks must be positive")
    percentage = marks_obtained / max_marks * 100
    letter = letter_for(percentage)
    return GradeResult(percentage=percentage, letter_grade=letter, gpa=GRADE_POINTS[letter])


def _weightage(grade: dict) -> float:
    return float((grade.get("assignment") or {}).get("weightage") or 0)


def weighted_gpa(grades: Iterable[dict]) -> float:
    """Σ(gpa × weightage) / Σ weightage, or 0 when nothing carries weight."""
    total_weighted = 0.0
    total_weightage = 0.0
    for grade in grades:
        w = _weightage(grade)
        total_weighted += float(grade.get("gpa") or 0) * w
        total_weightage += w
    return total_weighted / total_weightage if total_weightage > 0 else 0.0


def _ref_key(ref) -> str:
    if isinstance(ref, dict):
        ref = ref.get("_id")
    return str(ref)


def course_gpas(grades: Iterable[dict]) -> dict[str, float]:
    by_course: dict[str, list[dict]] = {}
    for grade in grades:
        by_course.setdefault(_ref_key(grade.get("course")), []).append(grade)
    return {course_id: weighted_gpa(items) for course_id, items in by_course.items()}


def course_grade_statistics(grades: list[dict], roster_size: int) -> dict:
    graded = {_ref_key(g.get("student")) for g in grades}
    average = (
        sum(float(g.get("percentage") or 0) for g in grades) / len(grades) if grades else 0
    )
    return {
        "totalStudents": roster_size,
        "gradedStudents": len(graded),
        "averageGrade": round(average, 2),
    }
