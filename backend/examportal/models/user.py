"""User, role and session models"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from .base import DocumentModel, ensure_utc


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class RoleRecord(DocumentModel):
    """Stored at users/{uid}"""
    role: str
    name: str = ""
    email: Optional[str] = None


class StudentRecord(DocumentModel):
    """Stored at students/{uid}; branch and semester scope exam visibility"""
    registration_number: str
    name: str = ""
    branch: Optional[str] = None
    semester: Optional[str] = None


class SessionRecord(DocumentModel):
    """Stored at sessions/{token}"""
    uid: str
    email: str
    name: Optional[str] = None
    admin: bool = False  # server-issued administrative marker
    expires_at: datetime
    created_at: datetime

    @field_validator("expires_at", "created_at", mode="after")
    @classmethod
    def ensure_aware(cls, value):
        return ensure_utc(value)


class LoginRequest(DocumentModel):
    identifier: str  # email address or student registration number
    password: str


class AdminRegister(DocumentModel):
    name: str
    email: str
    password: str = Field(..., min_length=6)
    confirm_password: str


class TeacherCreate(DocumentModel):
    name: str
    email: str
    password: str = Field(..., min_length=6)


class StudentCreate(DocumentModel):
    name: str
    registration_number: str
    password: str = Field(..., min_length=6)
    branch: Optional[str] = None
    semester: Optional[str] = None
