"""
Exam attempt engine.

FLOW:
1. load()    LOADING -> TERMS_GATE, or BLOCKED (not found / not open / closed),
             or COMPLETED when a stored result exists (never re-scored or re-timed)
2. start()   TERMS_GATE -> IN_PROGRESS; the countdown starts here and only here
3. select()  upsert one answer; navigate() only moves the display position
4. submit()  IN_PROGRESS -> SUBMITTING, by the student or by the timer reaching zero
5. persist   SUBMITTING -> COMPLETED, or BLOCKED(PERSISTENCE_FAILURE) with score kept;
             retry() repeats the write without scoring again
6. abandon   TERMS_GATE / IN_PROGRESS -> ABANDONED, nothing persisted; also happens
             when the client stops calling touch() for idle_timeout ticks

One live attempt per (exam, student) is tracked by AttemptRegistry.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from ..gateways import DocumentStore
from ..models import (
    OPTION_LABELS,
    Exam,
    ExamResult,
    QuestionView,
    SessionView,
)
from ..utils import format_time_left, utc_now
from .scoring import build_review, score_answers

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    TERMS_GATE = "terms_gate"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    ABANDONED = "abandoned"


class BlockReason(str, Enum):
    EXAM_NOT_FOUND = "ExamNotFound"
    EXAM_NOT_YET_OPEN = "ExamNotYetOpen"
    EXAM_CLOSED = "ExamClosed"
    EXAM_UNAVAILABLE = "ExamUnavailable"
    ALREADY_COMPLETED = "AlreadyCompleted"
    PERSISTENCE_FAILURE = "PersistenceFailure"


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


class ExamSessionError(Exception):
    """Base class for attempt errors; ``reason`` lets callers pick a message."""
    reason: Optional[BlockReason] = None
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ExamNotFound(ExamSessionError):
    reason = BlockReason.EXAM_NOT_FOUND


class ExamNotYetOpen(ExamSessionError):
    reason = BlockReason.EXAM_NOT_YET_OPEN


class ExamClosed(ExamSessionError):
    reason = BlockReason.EXAM_CLOSED


class ExamUnavailable(ExamSessionError):
    reason = BlockReason.EXAM_UNAVAILABLE


class PersistenceFailure(ExamSessionError):
    reason = BlockReason.PERSISTENCE_FAILURE
    retryable = True


class InvalidTransition(ExamSessionError):
    """Operation not allowed in the attempt's current state."""


class InvalidAnswer(ExamSessionError):
    """Unknown question id or option label."""


BLOCK_ERRORS = {
    BlockReason.EXAM_NOT_FOUND: ExamNotFound,
    BlockReason.EXAM_NOT_YET_OPEN: ExamNotYetOpen,
    BlockReason.EXAM_CLOSED: ExamClosed,
    BlockReason.EXAM_UNAVAILABLE: ExamUnavailable,
    BlockReason.PERSISTENCE_FAILURE: PersistenceFailure,
}


def result_path(exam_id: str, student_id: str) -> str:
    return f"exams/{exam_id}/results/{student_id}"


class ExamSession:
    """A single student's attempt at one exam."""

    def __init__(
        self,
        store: DocumentStore,
        exam_id: str,
        student_id: str,
        clock: Callable[[], datetime] = utc_now,
        tick_seconds: Optional[float] = 1.0,
        idle_timeout: Optional[int] = None,
        on_release: Optional[Callable[["ExamSession"], None]] = None,
    ):
        self.store = store
        self.exam_id = exam_id
        self.student_id = student_id
        self._clock = clock
        self._tick_seconds = tick_seconds  # None: the caller drives tick() itself
        self._idle_timeout = idle_timeout  # ticks without touch() before abandoning
        self._on_release = on_release
        self._idle_ticks = 0

        self.state = SessionState.LOADING
        self.block_reason: Optional[BlockReason] = None
        self.message: Optional[str] = None
        self.notice: Optional[BlockReason] = None

        self.exam: Optional[Exam] = None
        self.answers: Dict[str, str] = {}
        self.time_left = 0
        self.current_index = 0
        self.trigger: Optional[SubmitTrigger] = None
        self.result: Optional[ExamResult] = None

        self._timer: Optional[asyncio.Task] = None

    # ============ LOADING ============

    def _block(self, reason: BlockReason, message: str) -> SessionState:
        self.state = SessionState.BLOCKED
        self.block_reason = reason
        self.message = message
        return self.state

    async def load(self) -> SessionState:
        """Fetch the exam and decide where the attempt starts."""
        if self.state is not SessionState.LOADING:
            raise InvalidTransition(f"Attempt already loaded ({self.state.value})")

        try:
            doc = await self.store.read(f"exams/{self.exam_id}")
        except Exception as e:
            logger.error(f"Error fetching exam {self.exam_id}: {e}")
            return self._block(BlockReason.EXAM_UNAVAILABLE, "Failed to load exam. Please try again.")

        if not doc:
            return self._block(BlockReason.EXAM_NOT_FOUND, "The exam you're looking for doesn't exist.")

        try:
            self.exam = Exam.from_document(self.exam_id, doc)
        except ValueError as e:
            logger.error(f"Malformed exam document {self.exam_id}: {e}")
            return self._block(BlockReason.EXAM_UNAVAILABLE, "Failed to load exam. Please try again.")

        stored = self.exam.results.get(self.student_id)
        if stored is not None:
            self.result = stored
            self.answers = dict(stored.answers)
            self.state = SessionState.COMPLETED
            self.notice = BlockReason.ALREADY_COMPLETED
            self.message = "You have already taken this exam."
            return self.state

        now = self._clock()
        if now < self.exam.start_time:
            return self._block(
                BlockReason.EXAM_NOT_YET_OPEN,
                f"This exam will be available from {self.exam.start_time.isoformat()}."
            )
        if now > self.exam.end_time:
            return self._block(
                BlockReason.EXAM_CLOSED,
                f"This exam ended on {self.exam.end_time.isoformat()}."
            )
        if not self.exam.questions:
            return self._block(BlockReason.EXAM_UNAVAILABLE, "This exam has no questions.")

        self.time_left = self.exam.duration * 60
        self.state = SessionState.TERMS_GATE
        return self.state

    # ============ IN PROGRESS ============

    def start(self) -> None:
        """Accept the terms and start the countdown. Cannot be repeated."""
        if self.state is not SessionState.TERMS_GATE:
            raise InvalidTransition(f"Cannot start an attempt in state '{self.state.value}'")
        self.state = SessionState.IN_PROGRESS
        self._idle_ticks = 0
        if self._tick_seconds is not None:
            self._timer = asyncio.get_running_loop().create_task(self._countdown())
        logger.info(f"Attempt started: exam={self.exam_id} student={self.student_id}")

    def select(self, question_id: str, option: str) -> None:
        """Record the latest selection for a question."""
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidTransition("Answers can only be recorded while the exam is in progress")
        if question_id not in self.exam.questions:
            raise InvalidAnswer(f"Unknown question '{question_id}'")
        option = (option or "").upper()
        if option not in OPTION_LABELS:
            raise InvalidAnswer(f"Option must be one of {', '.join(OPTION_LABELS)}")
        self.answers[question_id] = option

    def navigate(self, index: Optional[int] = None, direction: Optional[str] = None) -> int:
        """Move the display position; answers and timer are untouched."""
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidTransition("Navigation is only available while the exam is in progress")
        last = len(self.exam.questions) - 1
        if index is not None:
            if not 0 <= index <= last:
                raise InvalidAnswer(f"Question index out of range (0-{last})")
            self.current_index = index
        elif direction == "next":
            self.current_index = min(self.current_index + 1, last)
        elif direction == "previous":
            self.current_index = max(self.current_index - 1, 0)
        else:
            raise InvalidAnswer("Provide an index or a direction of 'next' or 'previous'")
        return self.current_index

    def touch(self) -> None:
        """The student's client is still there."""
        self._idle_ticks = 0

    async def tick(self) -> None:
        """One elapsed second. Reaching zero submits automatically."""
        if self.state is not SessionState.IN_PROGRESS:
            return
        self._idle_ticks += 1
        if self._idle_timeout is not None and self._idle_ticks > self._idle_timeout:
            logger.info(f"No contact from student={self.student_id} on exam={self.exam_id} "
                        f"for {self._idle_timeout}s")
            self.abandon()
            return
        self.time_left = max(self.time_left - 1, 0)
        if self.time_left == 0:
            await self.submit(SubmitTrigger.TIMEOUT)

    async def _countdown(self) -> None:
        try:
            while self.state is SessionState.IN_PROGRESS:
                await asyncio.sleep(self._tick_seconds)
                await self.tick()
        except PersistenceFailure as e:
            logger.error(f"Automatic submission not saved for exam={self.exam_id} "
                         f"student={self.student_id}: {e}")

    # ============ SUBMISSION ============

    async def submit(self, trigger: SubmitTrigger = SubmitTrigger.MANUAL) -> bool:
        """
        Score and persist the attempt.

        Returns False when the attempt was not armed (already submitting or
        finished), which is how a timer expiry racing a manual click is absorbed.
        """
        # Check and transition with no await in between
        if self.state is not SessionState.IN_PROGRESS:
            return False
        self.state = SessionState.SUBMITTING
        self.trigger = trigger
        self._stop_timer()

        breakdown = score_answers(self.exam.questions, self.answers)
        self.result = ExamResult(
            score=breakdown.score,
            answers=dict(self.answers),
            completed_at=self._clock()
        )
        logger.info(
            f"Attempt submitted ({trigger.value}): exam={self.exam_id} student={self.student_id} "
            f"{breakdown.matches}/{breakdown.total} -> {breakdown.score}%"
        )
        await self._persist()
        return True

    async def retry(self) -> None:
        """Repeat a failed result write using the score already computed."""
        if not (self.state is SessionState.BLOCKED
                and self.block_reason is BlockReason.PERSISTENCE_FAILURE):
            raise InvalidTransition("Nothing to retry")
        self.state = SessionState.SUBMITTING
        self.block_reason = None
        self.message = None
        await self._persist()

    async def _persist(self) -> None:
        try:
            await self.store.write(
                result_path(self.exam_id, self.student_id),
                self.result.to_document()
            )
        except Exception as e:
            logger.error(f"Error saving exam results for exam={self.exam_id} "
                         f"student={self.student_id}: {e}")
            self._block(BlockReason.PERSISTENCE_FAILURE,
                        "Failed to save your results. Please try again.")
            raise PersistenceFailure(self.message) from e
        self.state = SessionState.COMPLETED
        self._release()

    # ============ TEARDOWN ============

    def _stop_timer(self) -> None:
        if self._timer is not None and self._timer is not asyncio.current_task():
            self._timer.cancel()
        self._timer = None

    def _release(self) -> None:
        if self._on_release is not None:
            self._on_release(self)

    def abandon(self) -> None:
        """Drop the attempt without persisting anything."""
        if self.state is SessionState.IN_PROGRESS:
            logger.info(f"Attempt abandoned: exam={self.exam_id} student={self.student_id} "
                        f"({self.time_left}s left, {len(self.answers)} answered)")
        if self.state in (SessionState.TERMS_GATE, SessionState.IN_PROGRESS):
            self.state = SessionState.ABANDONED
        self._stop_timer()
        self._release()

    # ============ VIEWS ============

    @property
    def score(self) -> Optional[int]:
        return self.result.score if self.result else None

    def view(self) -> SessionView:
        view = SessionView(
            exam_id=self.exam_id,
            state=self.state.value,
            reason=self.block_reason.value if self.block_reason else None,
            message=self.message,
            notice=self.notice.value if self.notice else None,
            time_left=self.time_left,
            time_left_display=format_time_left(self.time_left),
            current_index=self.current_index,
            answers=dict(self.answers),
            answered_count=len(self.answers),
        )
        if self.exam is None:
            return view

        completed = self.state is SessionState.COMPLETED
        view.title = self.exam.title
        view.subject = self.exam.subject
        view.duration = self.exam.duration
        view.terms_and_conditions = self.exam.terms_and_conditions
        view.total_questions = len(self.exam.questions)

        started = self.state in (SessionState.IN_PROGRESS, SessionState.SUBMITTING,
                                 SessionState.COMPLETED)
        if started or self.block_reason is BlockReason.PERSISTENCE_FAILURE:
            view.questions = [
                QuestionView(
                    id=question_id,
                    text=question.text,
                    options=question.options,
                    correct_answer=question.correct_answer if completed else None,
                )
                for question_id, question in self.exam.questions.items()
            ]
        if self.result is not None:
            view.score = self.result.score
            view.completed_at = self.result.completed_at
        if completed:
            view.review = build_review(self.exam.questions, self.answers)
        return view


class AttemptRegistry:
    """
    Live attempts of this process, keyed by (exam id, student id).

    Completed and abandoned attempts release themselves; an attempt whose
    result write failed stays until its retry succeeds.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utc_now,
        tick_seconds: Optional[float] = 1.0,
        idle_timeout: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.idle_timeout = idle_timeout
        self._attempts: Dict[Tuple[str, str], ExamSession] = {}

    def _new(self, exam_id: str, student_id: str) -> ExamSession:
        return ExamSession(
            self.store, exam_id, student_id,
            clock=self.clock,
            tick_seconds=self.tick_seconds,
            idle_timeout=self.idle_timeout,
            on_release=self._release,
        )

    def _release(self, session: ExamSession) -> None:
        key = (session.exam_id, session.student_id)
        if self._attempts.get(key) is session:
            del self._attempts[key]

    async def open(self, exam_id: str, student_id: str) -> ExamSession:
        """
        Re-evaluate eligibility; any previous live attempt is abandoned.

        An attempt still holding an unsaved result is never replaced: its write
        is retried and the same attempt is returned.
        """
        previous = self.get(exam_id, student_id)
        if previous is not None and previous.block_reason is BlockReason.PERSISTENCE_FAILURE:
            try:
                await previous.retry()
            except PersistenceFailure:
                logger.warning(f"Result for exam={exam_id} student={student_id} still unsaved")
            return previous

        self.discard(exam_id, student_id)
        session = self._new(exam_id, student_id)
        await session.load()
        if session.state is SessionState.TERMS_GATE:
            self._attempts[(exam_id, student_id)] = session
        return session

    def get(self, exam_id: str, student_id: str) -> Optional[ExamSession]:
        return self._attempts.get((exam_id, student_id))

    async def lookup(self, exam_id: str, student_id: str) -> Optional[ExamSession]:
        """The live attempt, or the stored result when the exam was already taken."""
        session = self.get(exam_id, student_id)
        if session is not None:
            return session
        session = self._new(exam_id, student_id)
        await session.load()
        return session if session.state is SessionState.COMPLETED else None

    def discard(self, exam_id: str, student_id: str) -> bool:
        session = self._attempts.pop((exam_id, student_id), None)
        if session is None:
            return False
        session.abandon()
        return True

    def close(self) -> None:
        for session in list(self._attempts.values()):
            session.abandon()
        self._attempts.clear()

    def __len__(self) -> int:
        return len(self._attempts)
