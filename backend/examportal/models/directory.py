"""Branch, subject and people listings"""

from typing import Optional

from .base import DocumentModel


class Branch(DocumentModel):
    id: str
    name: str


class BranchCreate(DocumentModel):
    name: str


class Subject(DocumentModel):
    id: str
    name: str
    code: str = ""
    semester: Optional[str] = None


class SubjectCreate(DocumentModel):
    name: str
    code: str = ""
    semester: Optional[str] = None


class TeacherSummary(DocumentModel):
    id: str
    name: str
    email: str = "No email provided"


class StudentSummary(DocumentModel):
    id: str
    name: str
    registration_number: str
    branch: Optional[str] = None
    semester: Optional[str] = None
