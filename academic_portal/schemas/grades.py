"""
Pydantic schemas for grading.
"""

from pydantic import Field
from typing import Literal, Optional

from academic_portal.schemas.base import CamelModel

AssignmentType = Literal["Assignment", "Quiz", "Midterm", "Final", "Project", "Lab"]


class Assignment(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    type: AssignmentType
    max_marks: int = Field(ge=1, le=1000)
    weightage: int = Field(ge=0, le=100)


class GradeCreate(CamelModel):
    student_id: str
    course_id: str
    assignment: Assignment
    marks_obtained: int = Field(ge=0, le=1000)
    feedback: Optional[str] = Field(default=None, max_length=500)
    semester: str = Field(min_length=1)
    academic_year: str = Field(min_length=1)


class GradeUpdate(CamelModel):
    marks_obtained: Optional[int] = Field(default=None, ge=0, le=1000)
    feedback: Optional[str] = Field(default=None, max_length=500)
    is_published: Optional[bool] = None
