"""
Pydantic schemas for attendance marking.
"""

from pydantic import Field
from typing import List, Literal, Optional
import datetime as dt

from academic_portal.schemas.base import CamelModel

AttendanceStatus = Literal["Present", "Absent", "Late", "Excused"]


class AttendanceEntry(CamelModel):
    student_id: str
    status: AttendanceStatus
    remarks: Optional[str] = Field(default="", max_length=200)


class AttendanceMark(CamelModel):
    course_id: str
    date: dt.date
    attendance_data: List[AttendanceEntry] = Field(min_length=1)
    semester: str = Field(min_length=1)
    academic_year: str = Field(min_length=1)


class AttendanceUpdate(CamelModel):
    status: AttendanceStatus
    remarks: Optional[str] = Field(default=None, max_length=200)
