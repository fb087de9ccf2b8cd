"""
Pydantic schemas for courses and rosters.
"""

from pydantic import Field, field_validator
from typing import List, Literal, Optional

from academic_portal.schemas.base import CamelModel, Semester, Year

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class TimeRange(CamelModel):
    start: Optional[str] = None
    end: Optional[str] = None


class Schedule(CamelModel):
    days: List[Weekday] = []
    time: Optional[TimeRange] = None
    room: Optional[str] = None


class CourseCreate(CamelModel):
    course_code: str = Field(min_length=3, max_length=10)
    course_name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    credits: int = Field(ge=1, le=6)
    department: str = Field(min_length=2, max_length=100)
    semester: Semester
    year: Year
    instructor: Optional[str] = None
    max_students: int = Field(default=50, ge=1, le=200)
    schedule: Optional[Schedule] = None
    syllabus: str = ""

    @field_validator("course_code", "course_name", "department", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class CourseUpdate(CamelModel):
    course_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    credits: Optional[int] = Field(default=None, ge=1, le=6)
    department: Optional[str] = Field(default=None, min_length=2, max_length=100)
    semester: Optional[Semester] = None
    year: Optional[Year] = None
    max_students: Optional[int] = Field(default=None, ge=1, le=200)
    schedule: Optional[Schedule] = None
    syllabus: Optional[str] = None


class EnrollRequest(CamelModel):
    student_id: str
