"""Role-specific dashboard views."""

from datetime import datetime
from typing import Callable, List, Optional

from ..models import (
    AdminDashboard,
    Exam,
    StudentDashboard,
    StudentExamCard,
    StudentRecord,
    TeacherDashboard,
)
from ..utils import utc_now
from .directory import DirectoryService
from .exam_authoring import ExamAuthoringService, summarize


def visible_to(exam: Exam, student: Optional[StudentRecord]) -> bool:
    """Unscoped exams are visible to everyone; scoped ones must match the student."""
    if exam.branch and (student is None or student.branch != exam.branch):
        return False
    if exam.semester and (student is None or student.semester != exam.semester):
        return False
    return True


def exam_status(exam: Exam, student_id: str, now: datetime) -> str:
    if student_id in exam.results:
        return "completed"
    if now < exam.start_time:
        return "upcoming"
    if now > exam.end_time:
        return "closed"
    return "available"


class DashboardService:
    """Composes directory and exam data into per-role views."""

    def __init__(self, directory: DirectoryService, exams: ExamAuthoringService,
                 clock: Callable[[], datetime] = utc_now):
        self.directory = directory
        self.exams = exams
        self._clock = clock

    async def admin(self, name: str) -> AdminDashboard:
        return AdminDashboard(
            name=name,
            teachers=await self.directory.list_teachers(),
            branches=await self.directory.list_branches(),
        )

    async def teacher(self, name: str) -> TeacherDashboard:
        return TeacherDashboard(
            name=name,
            students=await self.directory.list_students(),
            subjects=await self.directory.list_subjects(),
            exams=await self.exams.list_summaries(),
        )

    async def student_exams(self, student_id: str,
                            student: Optional[StudentRecord]) -> List[StudentExamCard]:
        now = self._clock()
        cards = []
        for exam in await self.exams.list_exams():
            if not visible_to(exam, student):
                continue
            status = exam_status(exam, student_id, now)
            if status == "closed":
                continue
            result = exam.results.get(student_id)
            cards.append(StudentExamCard(
                id=exam.id,
                title=exam.title,
                subject=exam.subject,
                duration=exam.duration,
                status=status,
                score=result.score if result else None,
                total_questions=len(exam.questions),
                start_time=exam.start_time,
                end_time=exam.end_time,
            ))
        cards.sort(key=lambda card: card.start_time)
        return cards

    async def student(self, student_id: str, name: str,
                      student: Optional[StudentRecord]) -> StudentDashboard:
        cards = await self.student_exams(student_id, student)
        return StudentDashboard(
            name=name,
            registration_number=student.registration_number if student else None,
            upcoming=sum(1 for card in cards if card.status == "upcoming"),
            available=sum(1 for card in cards if card.status == "available"),
            completed=sum(1 for card in cards if card.status == "completed"),
            exams=cards,
        )
