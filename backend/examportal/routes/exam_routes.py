"""
Exam management routes.

Endpoints:
- POST /api/exams
- GET /api/exams
- GET /api/exams/{exam_id}
- DELETE /api/exams/{exam_id}
- GET /api/exams/{exam_id}/results
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..context import PortalContext
from ..models import ExamDraft
from ..services import Actor, ExamValidationError
from .deps import require_staff

logger = logging.getLogger(__name__)


def create_exam_routes(portal: PortalContext) -> APIRouter:
    """Create exam authoring routes for administrators and teachers."""

    router = APIRouter(prefix="/api/exams", tags=["exams"])
    exams = portal.exams
    resolver = portal.resolver

    @router.post("")
    async def create_exam(draft: ExamDraft, actor: Actor = Depends(require_staff)):
        """Validate and publish an exam."""
        try:
            exam = await exams.create_exam(draft, created_by=actor.uid)
            return {"exam_id": exam.id, "message": "Exam created successfully"}
        except ExamValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating exam: {e}")
            raise HTTPException(status_code=500, detail="An error occurred while creating the exam.")

    @router.get("")
    async def list_exams(actor: Actor = Depends(require_staff)):
        return await exams.list_summaries()

    @router.get("/{exam_id}")
    async def get_exam(exam_id: str, actor: Actor = Depends(require_staff)):
        try:
            exam = await exams.get_exam(exam_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="Exam not found")
        if not exam:
            raise HTTPException(status_code=404, detail="Exam not found")
        return exam

    @router.delete("/{exam_id}")
    async def delete_exam(exam_id: str, actor: Actor = Depends(require_staff)):
        try:
            deleted = await exams.delete_exam(exam_id)
        except ValueError:
            deleted = False
        if not deleted:
            raise HTTPException(status_code=404, detail="Exam not found")
        return {"message": "Exam deleted"}

    @router.get("/{exam_id}/results")
    async def get_results(exam_id: str, actor: Actor = Depends(require_staff)):
        """Stored results with the student's name and registration number."""
        try:
            results = await exams.get_results(exam_id)
        except ValueError:
            results = None
        if results is None:
            raise HTTPException(status_code=404, detail="Exam not found")

        rows = []
        for student_id, result in results.items():
            student = await resolver.student_record(student_id)
            rows.append({
                "student_id": student_id,
                "name": student.name if student else None,
                "registration_number": student.registration_number if student else None,
                "score": result.score,
                "answers": result.answers,
                "completed_at": result.completed_at,
            })
        rows.sort(key=lambda row: row["score"], reverse=True)
        return rows

    return router
