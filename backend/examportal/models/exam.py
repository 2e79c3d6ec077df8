"""Exam-related Pydantic models"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from .base import DocumentModel, ensure_utc

OPTION_LABELS = ("A", "B", "C", "D")


class Question(DocumentModel):
    """Multiple-choice question with options A-D and one correct label"""
    id: str
    text: str
    options: Dict[str, str]
    correct_answer: str


class ExamResult(DocumentModel):
    """Stored at exams/{examId}/results/{studentId}; written once, never updated"""
    score: int = Field(..., ge=0, le=100)
    answers: Dict[str, str] = {}
    completed_at: datetime

    @field_validator("completed_at", mode="after")
    @classmethod
    def ensure_aware(cls, value):
        return ensure_utc(value)


class Exam(DocumentModel):
    id: str = ""
    title: str
    description: str = ""
    subject: str = ""
    subject_id: str = ""
    branch: Optional[str] = None
    semester: Optional[str] = None
    duration: int  # minutes
    start_time: datetime
    end_time: datetime
    questions: Dict[str, Question] = {}
    terms_and_conditions: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    results: Dict[str, ExamResult] = {}

    @field_validator("start_time", "end_time", "created_at", mode="after")
    @classmethod
    def ensure_aware(cls, value):
        return ensure_utc(value)

    @classmethod
    def from_document(cls, exam_id: str, doc: dict) -> "Exam":
        return cls.model_validate({**doc, "id": exam_id})


class QuestionDraft(DocumentModel):
    """Question as submitted by the authoring form; checked by the authoring service"""
    id: Optional[str] = None
    text: str = ""
    options: Dict[str, str] = {}
    correct_answer: Optional[str] = OPTION_LABELS[0]


class ExamDraft(DocumentModel):
    """Exam as submitted by the authoring form"""
    title: str = ""
    description: str = ""
    subject_id: Optional[str] = None
    branch: Optional[str] = None
    semester: Optional[str] = None
    duration: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    questions: List[QuestionDraft] = []
    terms_and_conditions: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        # An untouched date picker posts ""
        return None if value == "" else value

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def ensure_aware(cls, value):
        return ensure_utc(value)


class ExamSummary(DocumentModel):
    """Staff-facing exam listing row"""
    id: str
    title: str
    subject: str
    branch: Optional[str] = None
    semester: Optional[str] = None
    duration: int
    start_time: datetime
    end_time: datetime
    total_questions: int
    result_count: int
    created_at: Optional[datetime] = None
