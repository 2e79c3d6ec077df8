"""Dashboard read models"""

from datetime import datetime
from typing import List, Optional

from .base import DocumentModel
from .directory import Branch, StudentSummary, Subject, TeacherSummary
from .exam import ExamSummary


class StudentExamCard(DocumentModel):
    id: str
    title: str
    subject: str
    duration: int
    status: str  # upcoming, available, completed
    score: Optional[int] = None
    total_questions: int
    start_time: datetime
    end_time: datetime


class AdminDashboard(DocumentModel):
    role: str = "admin"
    name: str
    teachers: List[TeacherSummary] = []
    branches: List[Branch] = []


class TeacherDashboard(DocumentModel):
    role: str = "teacher"
    name: str
    students: List[StudentSummary] = []
    subjects: List[Subject] = []
    exams: List[ExamSummary] = []


class StudentDashboard(DocumentModel):
    role: str = "student"
    name: str
    registration_number: Optional[str] = None
    upcoming: int = 0
    available: int = 0
    completed: int = 0
    exams: List[StudentExamCard] = []
