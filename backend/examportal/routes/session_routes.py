"""
Exam attempt routes for students.

Endpoints:
- POST /api/exams/{exam_id}/session            open (or re-open) the attempt
- GET /api/exams/{exam_id}/session             current view (also the client heartbeat)
- POST /api/exams/{exam_id}/session/start      accept terms, start the timer
- PUT /api/exams/{exam_id}/session/answers     select an option
- POST /api/exams/{exam_id}/session/navigate   move between questions
- POST /api/exams/{exam_id}/session/submit     submit for scoring
- POST /api/exams/{exam_id}/session/retry      repeat a failed result write
- DELETE /api/exams/{exam_id}/session          leave without submitting
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..context import PortalContext
from ..models import AnswerSelect, NavigateRequest
from ..services import Actor, ExamSession, ExamSessionError, SessionState
from ..services.exam_session import BLOCK_ERRORS
from .deps import require_student, session_http_error

logger = logging.getLogger(__name__)


def create_session_routes(portal: PortalContext) -> APIRouter:
    """Create attempt routes; one live attempt per (exam, student)."""

    router = APIRouter(prefix="/api/exams/{exam_id}/session", tags=["attempts"])
    attempts = portal.attempts

    def current(exam_id: str, actor: Actor) -> ExamSession:
        session = attempts.get(exam_id, actor.uid)
        if session is None:
            raise HTTPException(status_code=404, detail="No open attempt for this exam")
        session.touch()
        return session

    async def current_or_result(exam_id: str, actor: Actor) -> ExamSession:
        session = await attempts.lookup(exam_id, actor.uid)
        if session is None:
            raise HTTPException(status_code=404, detail="No open attempt for this exam")
        session.touch()
        return session

    @router.post("")
    async def open_session(exam_id: str, actor: Actor = Depends(require_student)):
        try:
            session = await attempts.open(exam_id, actor.uid)
        except ValueError:
            raise HTTPException(status_code=404, detail="Exam not found")
        if session.state is SessionState.BLOCKED:
            raise session_http_error(BLOCK_ERRORS[session.block_reason](session.message))
        return session.view()

    @router.get("")
    async def get_session(exam_id: str, actor: Actor = Depends(require_student)):
        """Current view; clients poll this while the exam is open to stay connected."""
        return (await current_or_result(exam_id, actor)).view()

    @router.post("/start")
    async def start(exam_id: str, actor: Actor = Depends(require_student)):
        session = current(exam_id, actor)
        try:
            session.start()
        except ExamSessionError as e:
            raise session_http_error(e)
        return session.view()

    @router.put("/answers")
    async def select_answer(exam_id: str, payload: AnswerSelect,
                            actor: Actor = Depends(require_student)):
        session = current(exam_id, actor)
        try:
            session.select(payload.question_id, payload.option)
        except ExamSessionError as e:
            raise session_http_error(e)
        return session.view()

    @router.post("/navigate")
    async def navigate(exam_id: str, payload: NavigateRequest,
                       actor: Actor = Depends(require_student)):
        session = current(exam_id, actor)
        try:
            session.navigate(index=payload.index, direction=payload.direction)
        except ExamSessionError as e:
            raise session_http_error(e)
        return session.view()

    @router.post("/submit")
    async def submit(exam_id: str, actor: Actor = Depends(require_student)):
        session = await current_or_result(exam_id, actor)
        try:
            await session.submit()
        except ExamSessionError as e:
            raise session_http_error(e)
        # A submission already in flight or finished is not an error
        return session.view()

    @router.post("/retry")
    async def retry(exam_id: str, actor: Actor = Depends(require_student)):
        session = current(exam_id, actor)
        try:
            await session.retry()
        except ExamSessionError as e:
            raise session_http_error(e)
        return session.view()

    @router.delete("")
    async def abandon(exam_id: str, actor: Actor = Depends(require_student)):
        if not attempts.discard(exam_id, actor.uid):
            raise HTTPException(status_code=404, detail="No open attempt for this exam")
        return {"message": "Attempt abandoned"}

    return router
