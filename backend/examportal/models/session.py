"""Exam attempt views returned to students"""

from datetime import datetime
from typing import Dict, List, Optional

from .base import DocumentModel


class QuestionView(DocumentModel):
    id: str
    text: str
    options: Dict[str, str]
    correct_answer: Optional[str] = None  # only present once the attempt is completed


class QuestionReview(DocumentModel):
    question_id: str
    text: str
    options: Dict[str, str]
    selected: Optional[str] = None
    correct_answer: str
    status: str  # correct, incorrect, unanswered


class SessionView(DocumentModel):
    exam_id: str
    state: str
    reason: Optional[str] = None
    message: Optional[str] = None
    notice: Optional[str] = None
    title: Optional[str] = None
    subject: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    duration: Optional[int] = None
    time_left: int = 0
    time_left_display: str = "0m 0s"
    current_index: int = 0
    total_questions: int = 0
    answered_count: int = 0
    answers: Dict[str, str] = {}
    questions: List[QuestionView] = []
    score: Optional[int] = None
    completed_at: Optional[datetime] = None
    review: Optional[List[QuestionReview]] = None


class AnswerSelect(DocumentModel):
    question_id: str
    option: str


class NavigateRequest(DocumentModel):
    index: Optional[int] = None
    direction: Optional[str] = None  # next or previous
