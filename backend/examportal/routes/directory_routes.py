"""
Directory routes.

Endpoints:
- GET/POST /api/branches, DELETE /api/branches/{branch_id}
- GET/POST /api/subjects, DELETE /api/subjects/{subject_id}
- GET/POST /api/teachers, DELETE /api/teachers/{uid}
- GET/POST /api/students, DELETE /api/students/{uid}
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..context import PortalContext
from ..gateways import IdentityError
from ..models import BranchCreate, StudentCreate, SubjectCreate, TeacherCreate
from ..services import Actor, DirectoryError
from .deps import require_admin, require_staff

logger = logging.getLogger(__name__)


def create_directory_routes(portal: PortalContext) -> APIRouter:
    """Create branch, subject, teacher and student routes."""

    router = APIRouter(prefix="/api", tags=["directory"])
    directory = portal.directory

    # ============== BRANCHES ==============

    @router.get("/branches")
    async def get_branches(actor: Actor = Depends(require_staff)):
        return await directory.list_branches()

    @router.post("/branches")
    async def add_branch(branch: BranchCreate, actor: Actor = Depends(require_admin)):
        try:
            return await directory.add_branch(branch)
        except DirectoryError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.delete("/branches/{branch_id}")
    async def delete_branch(branch_id: str, actor: Actor = Depends(require_admin)):
        if not await directory.delete_branch(branch_id):
            raise HTTPException(status_code=404, detail="Branch not found")
        return {"message": "Branch deleted"}

    # ============== SUBJECTS ==============

    @router.get("/subjects")
    async def get_subjects(actor: Actor = Depends(require_staff)):
        return await directory.list_subjects()

    @router.post("/subjects")
    async def add_subject(subject: SubjectCreate, actor: Actor = Depends(require_staff)):
        try:
            return await directory.add_subject(subject)
        except DirectoryError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.delete("/subjects/{subject_id}")
    async def delete_subject(subject_id: str, actor: Actor = Depends(require_staff)):
        if not await directory.delete_subject(subject_id):
            raise HTTPException(status_code=404, detail="Subject not found")
        return {"message": "Subject deleted"}

    # ============== TEACHERS ==============

    @router.get("/teachers")
    async def get_teachers(actor: Actor = Depends(require_admin)):
        return await directory.list_teachers()

    @router.post("/teachers")
    async def add_teacher(teacher: TeacherCreate, actor: Actor = Depends(require_admin)):
        try:
            return await directory.add_teacher(teacher)
        except IdentityError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding teacher: {e}")
            raise HTTPException(status_code=500, detail="An error occurred while adding the teacher.")

    @router.delete("/teachers/{uid}")
    async def delete_teacher(uid: str, actor: Actor = Depends(require_admin)):
        if not await directory.delete_teacher(uid):
            raise HTTPException(status_code=404, detail="Teacher not found")
        return {"message": "Teacher deleted"}

    # ============== STUDENTS ==============

    @router.get("/students")
    async def get_students(actor: Actor = Depends(require_staff)):
        return await directory.list_students()

    @router.post("/students")
    async def add_student(student: StudentCreate, actor: Actor = Depends(require_staff)):
        try:
            return await directory.add_student(student)
        except (DirectoryError, IdentityError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding student: {e}")
            raise HTTPException(status_code=500, detail="An error occurred while adding the student.")

    @router.delete("/students/{uid}")
    async def delete_student(uid: str, actor: Actor = Depends(require_staff)):
        if not await directory.delete_student(uid):
            raise HTTPException(status_code=404, detail="Student not found")
        return {"message": "Student deleted"}

    return router
