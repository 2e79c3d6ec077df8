"""
Directory service - branches, subjects, teachers and students.

Accounts are created server-side through the identity gateway, so
provisioning a teacher or student never touches the caller's own session.
"""

import logging
from typing import List

from ..gateways import DocumentStore, IdentityGateway
from ..models import (
    Branch,
    BranchCreate,
    Role,
    RoleRecord,
    StudentCreate,
    StudentRecord,
    StudentSummary,
    Subject,
    SubjectCreate,
    TeacherCreate,
    TeacherSummary,
)
from .session_resolver import registration_to_email

logger = logging.getLogger(__name__)


class DirectoryError(ValueError):
    """Rejected directory change; the message is safe to show."""


class DirectoryService:
    """CRUD over branches/, subjects/, users/ and students/."""

    def __init__(self, store: DocumentStore, identity: IdentityGateway,
                 student_email_domain: str = "examportal.com"):
        self.store = store
        self.identity = identity
        self.student_email_domain = student_email_domain

    # ============ BRANCHES ============

    async def list_branches(self) -> List[Branch]:
        data = await self.store.read("branches") or {}
        return [Branch(id=key, name=value.get("name", "")) for key, value in data.items()]

    async def add_branch(self, branch: BranchCreate) -> Branch:
        name = branch.name.strip()
        if not name:
            raise DirectoryError("Branch name cannot be empty")
        branch_id = await self.store.push("branches", {"name": name}, prefix="branch")
        logger.info(f"Branch added: {name} ({branch_id})")
        return Branch(id=branch_id, name=name)

    async def delete_branch(self, branch_id: str) -> bool:
        if not await self.store.read(f"branches/{branch_id}"):
            return False
        await self.store.remove(f"branches/{branch_id}")
        return True

    # ============ SUBJECTS ============

    async def list_subjects(self) -> List[Subject]:
        data = await self.store.read("subjects") or {}
        return [Subject.model_validate({**value, "id": key}) for key, value in data.items()]

    async def add_subject(self, subject: SubjectCreate) -> Subject:
        name = subject.name.strip()
        if not name:
            raise DirectoryError("Subject name cannot be empty")
        doc = {"name": name, "code": subject.code.strip(), "semester": subject.semester}
        subject_id = await self.store.push("subjects", doc, prefix="subject")
        return Subject(id=subject_id, **doc)

    async def delete_subject(self, subject_id: str) -> bool:
        if not await self.store.read(f"subjects/{subject_id}"):
            return False
        await self.store.remove(f"subjects/{subject_id}")
        return True

    # ============ TEACHERS ============

    async def list_teachers(self) -> List[TeacherSummary]:
        users = await self.store.read("users") or {}
        return [
            TeacherSummary(
                id=uid,
                name=record.get("name", ""),
                email=record.get("email") or "No email provided"
            )
            for uid, record in users.items()
            if record.get("role") == Role.TEACHER.value
        ]

    async def add_teacher(self, teacher: TeacherCreate) -> TeacherSummary:
        account = await self.identity.create_account(
            teacher.email, teacher.password, display_name=teacher.name
        )
        await self.store.write(
            f"users/{account.uid}",
            RoleRecord(role=Role.TEACHER.value, name=teacher.name, email=teacher.email).to_document()
        )
        logger.info(f"Teacher added: {teacher.email} ({account.uid})")
        return TeacherSummary(id=account.uid, name=teacher.name, email=teacher.email)

    async def delete_teacher(self, uid: str) -> bool:
        # The identity account stays; without a role record it resolves to
        # an unrecognized role and is refused by every role-gated route.
        record = await self.store.read(f"users/{uid}")
        if not record or record.get("role") != Role.TEACHER.value:
            return False
        await self.store.remove(f"users/{uid}")
        return True

    # ============ STUDENTS ============

    async def list_students(self) -> List[StudentSummary]:
        data = await self.store.read("students") or {}
        return [
            StudentSummary.model_validate({**value, "id": key})
            for key, value in data.items()
        ]

    async def add_student(self, student: StudentCreate) -> StudentSummary:
        reg_number = student.registration_number.strip()
        if not reg_number:
            raise DirectoryError("Registration number cannot be empty")

        existing = await self.store.read("students") or {}
        if any(record.get("registrationNumber") == reg_number for record in existing.values()):
            raise DirectoryError("A student with this registration number already exists.")

        account = await self.identity.create_account(
            registration_to_email(reg_number, self.student_email_domain),
            student.password,
            display_name=student.name
        )
        await self.store.write(
            f"users/{account.uid}",
            RoleRecord(role=Role.STUDENT.value, name=student.name).to_document()
        )
        record = StudentRecord(
            registration_number=reg_number,
            name=student.name,
            branch=student.branch,
            semester=student.semester,
        )
        await self.store.write(f"students/{account.uid}", record.to_document())
        logger.info(f"Student added: {reg_number} ({account.uid})")
        return StudentSummary(id=account.uid, **record.model_dump())

    async def delete_student(self, uid: str) -> bool:
        if not await self.store.read(f"students/{uid}"):
            return False
        await self.store.remove(f"students/{uid}")
        await self.store.remove(f"users/{uid}")
        return True
