"""
Pydantic schemas for authentication and user management.
"""

from pydantic import EmailStr, Field
from typing import Optional

from academic_portal.schemas.base import CamelModel, Role, Semester, Year


class UserRegister(CamelModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role = "student"
    department: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = None
    year: Optional[Year] = None
    semester: Optional[Semester] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str
    role: Optional[Role] = None


class UserCreate(UserRegister):
    # Generated and e-mailed when omitted
    password: Optional[str] = Field(default=None, min_length=6)
    # Links the account to a Firebase user for AUTH_MODE=firebase
    firebase_uid: Optional[str] = Field(default=None, min_length=1, max_length=128)


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    department: Optional[str] = Field(default=None, max_length=100)
    year: Optional[Year] = None
    semester: Optional[Semester] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None
    firebase_uid: Optional[str] = Field(default=None, min_length=1, max_length=128)
