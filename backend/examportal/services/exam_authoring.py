"""
Exam authoring - validation and persistence of exams.

Validation runs in a fixed order and stops at the first problem; nothing is
written unless every rule holds.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..gateways import DocumentStore
from ..models import (
    OPTION_LABELS,
    Exam,
    ExamDraft,
    ExamResult,
    ExamSummary,
    Question,
)
from ..utils import utc_now

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ExamValidationError(ValueError):
    """First validation failure of an exam draft."""


def validate_exam(draft: ExamDraft) -> None:
    """Raise ExamValidationError for the first rule the draft breaks."""
    if not draft.title.strip():
        raise ExamValidationError("Please enter a title for the exam")
    if not draft.subject_id:
        raise ExamValidationError("Please select a subject")
    if draft.start_time is None or draft.end_time is None:
        raise ExamValidationError("Please set start and end times")
    if draft.start_time >= draft.end_time:
        raise ExamValidationError("End time must be after start time")
    if draft.duration is None or draft.duration <= 0:
        raise ExamValidationError("Duration must be greater than 0")
    if not draft.questions:
        raise ExamValidationError("Exam must have at least one question")

    for index, question in enumerate(draft.questions, start=1):
        if not question.text.strip():
            raise ExamValidationError(f"Question {index} is empty")
        for label in OPTION_LABELS:
            if not (question.options.get(label) or "").strip():
                raise ExamValidationError(f"Option {label} for question {index} is empty")
        if question.correct_answer not in OPTION_LABELS:
            raise ExamValidationError(f"Select the correct answer for question {index}")


def build_questions(draft: ExamDraft) -> Dict[str, Question]:
    """Key questions by id; drafts without ids are numbered from 1."""
    questions: Dict[str, Question] = {}
    for index, question in enumerate(draft.questions, start=1):
        question_id = (question.id or "").strip() or str(index)
        if question_id in questions:
            raise ExamValidationError(f"Duplicate question id '{question_id}'")
        questions[question_id] = Question(
            id=question_id,
            text=question.text.strip(),
            options={label: question.options[label].strip() for label in OPTION_LABELS},
            correct_answer=question.correct_answer,
        )
    return questions


class ExamAuthoringService:
    """Create, list, read and delete exams under exams/."""

    def __init__(self, store: DocumentStore, default_terms: str = "",
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.default_terms = default_terms
        self._clock = clock

    async def create_exam(self, draft: ExamDraft, created_by: str) -> Exam:
        validate_exam(draft)

        subject = await self.store.read(f"subjects/{draft.subject_id}")
        if not subject:
            raise ExamValidationError("Selected subject not found")

        terms = draft.terms_and_conditions
        exam = Exam(
            title=draft.title.strip(),
            description=draft.description,
            subject=subject.get("name", ""),
            subject_id=draft.subject_id,
            branch=draft.branch or None,
            semester=draft.semester or None,
            duration=draft.duration,
            start_time=draft.start_time,
            end_time=draft.end_time,
            questions=build_questions(draft),
            terms_and_conditions=terms if terms is not None else self.default_terms,
            created_by=created_by,
            created_at=self._clock(),
        )
        exam.id = await self.store.push(
            "exams",
            exam.to_document(exclude={"id", "results"}),
            prefix="exam"
        )
        logger.info(f"Exam created: {exam.title} ({exam.id}) by {created_by}")
        return exam

    async def get_exam(self, exam_id: str) -> Optional[Exam]:
        doc = await self.store.read(f"exams/{exam_id}")
        return Exam.from_document(exam_id, doc) if doc else None

    async def list_exams(self) -> List[Exam]:
        """All exams, newest first."""
        data = await self.store.read("exams") or {}
        exams = [Exam.from_document(key, doc) for key, doc in data.items()]
        exams.sort(key=lambda exam: exam.created_at or _EPOCH, reverse=True)
        return exams

    async def list_summaries(self) -> List[ExamSummary]:
        return [summarize(exam) for exam in await self.list_exams()]

    async def get_results(self, exam_id: str) -> Optional[Dict[str, ExamResult]]:
        exam = await self.get_exam(exam_id)
        return exam.results if exam else None

    async def delete_exam(self, exam_id: str) -> bool:
        if not await self.store.read(f"exams/{exam_id}"):
            return False
        await self.store.remove(f"exams/{exam_id}")
        logger.info(f"Exam deleted: {exam_id}")
        return True


def summarize(exam: Exam) -> ExamSummary:
    return ExamSummary(
        id=exam.id,
        title=exam.title,
        subject=exam.subject,
        branch=exam.branch,
        semester=exam.semester,
        duration=exam.duration,
        start_time=exam.start_time,
        end_time=exam.end_time,
        total_questions=len(exam.questions),
        result_count=len(exam.results),
        created_at=exam.created_at,
    )
