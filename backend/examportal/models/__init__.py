"""Pydantic models for the exam portal"""

from .base import DocumentModel
from .user import (
    Role,
    RoleRecord,
    StudentRecord,
    SessionRecord,
    LoginRequest,
    AdminRegister,
    TeacherCreate,
    StudentCreate,
)
from .directory import (
    Branch,
    BranchCreate,
    Subject,
    SubjectCreate,
    TeacherSummary,
    StudentSummary,
)
from .exam import (
    OPTION_LABELS,
    Question,
    ExamResult,
    Exam,
    QuestionDraft,
    ExamDraft,
    ExamSummary,
)
from .session import (
    QuestionView,
    QuestionReview,
    SessionView,
    AnswerSelect,
    NavigateRequest,
)
from .dashboard import (
    StudentExamCard,
    AdminDashboard,
    TeacherDashboard,
    StudentDashboard,
)

__all__ = [
    "DocumentModel",

    # User models
    "Role",
    "RoleRecord",
    "StudentRecord",
    "SessionRecord",
    "LoginRequest",
    "AdminRegister",
    "TeacherCreate",
    "StudentCreate",

    # Directory models
    "Branch",
    "BranchCreate",
    "Subject",
    "SubjectCreate",
    "TeacherSummary",
    "StudentSummary",

    # Exam models
    "OPTION_LABELS",
    "Question",
    "ExamResult",
    "Exam",
    "QuestionDraft",
    "ExamDraft",
    "ExamSummary",

    # Attempt models
    "QuestionView",
    "QuestionReview",
    "SessionView",
    "AnswerSelect",
    "NavigateRequest",

    # Dashboard models
    "StudentExamCard",
    "AdminDashboard",
    "TeacherDashboard",
    "StudentDashboard",
]
