"""
Session and role resolution.

Resolution order for a session token:
(a) the session record carries the administrative marker -> ADMIN, no role lookup
(b) no session record, or an expired one -> UNAUTHENTICATED
(c) role record at users/{uid} -> ADMIN / TEACHER / STUDENT,
    UNRECOGNIZED_ROLE when the record is missing,
    ROLE_UNKNOWN when the lookup itself fails

The administrative marker is only ever written by ``login`` after the identity
provider has accepted the credential and the account's role record says admin.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from ..gateways import DocumentStore, IdentityError, IdentityGateway
from ..models import Role, RoleRecord, SessionRecord, StudentRecord
from ..utils import utc_now

logger = logging.getLogger(__name__)

GENERIC_LOGIN_FAILURE = "Invalid credentials. Please try again."


class ActorStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    UNRECOGNIZED_ROLE = "unrecognized_role"
    ROLE_UNKNOWN = "role_unknown"


ROLE_STATUS = {
    Role.ADMIN.value: ActorStatus.ADMIN,
    Role.TEACHER.value: ActorStatus.TEACHER,
    Role.STUDENT.value: ActorStatus.STUDENT,
}


@dataclass
class Actor:
    status: ActorStatus
    uid: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    token: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.status is not ActorStatus.UNAUTHENTICATED

    @property
    def role(self) -> Optional[str]:
        if self.status in (ActorStatus.ADMIN, ActorStatus.TEACHER, ActorStatus.STUDENT):
            return self.status.value
        return None


UNAUTHENTICATED = Actor(status=ActorStatus.UNAUTHENTICATED)


class AuthenticationFailed(Exception):
    """Sign-in rejected. The message never reveals which part was wrong."""

    def __init__(self):
        super().__init__(GENERIC_LOGIN_FAILURE)


def registration_to_email(registration_number: str, domain: str) -> str:
    """Students sign in with ``{registrationNumber}@{domain}``."""
    return f"{registration_number.strip()}@{domain}"


def login_address(identifier: str, domain: str) -> str:
    """Email addresses pass through; anything else is a registration number."""
    identifier = identifier.strip()
    if "@" in identifier:
        return identifier
    return registration_to_email(identifier, domain)


class SessionResolver:
    """Issues, resolves and revokes server-side sessions."""

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityGateway,
        student_email_domain: str = "examportal.com",
        session_ttl_days: int = 7,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.identity = identity
        self.student_email_domain = student_email_domain
        self.session_ttl = timedelta(days=session_ttl_days)
        self._clock = clock

    # ============ RESOLUTION ============

    async def _session(self, token: Optional[str]) -> Optional[SessionRecord]:
        if not token:
            return None
        doc = await self.store.read(f"sessions/{token}")
        if not doc:
            return None
        session = SessionRecord.model_validate(doc)
        if session.expires_at < self._clock():
            await self.store.remove(f"sessions/{token}")
            return None
        return session

    async def resolve(self, token: Optional[str]) -> Actor:
        try:
            session = await self._session(token)
        except ValueError:
            # Malformed token (illegal path characters) or malformed record
            return UNAUTHENTICATED
        if session is None:
            return UNAUTHENTICATED

        if session.admin:
            return Actor(ActorStatus.ADMIN, uid=session.uid,
                         display_name=session.name or "Administrator",
                         email=session.email, token=token)

        try:
            doc = await self.store.read(f"users/{session.uid}")
        except Exception as e:
            logger.error(f"Role lookup failed for {session.uid}: {e}")
            return Actor(ActorStatus.ROLE_UNKNOWN, uid=session.uid,
                         display_name=session.name, email=session.email, token=token)

        if not doc:
            return Actor(ActorStatus.UNRECOGNIZED_ROLE, uid=session.uid,
                         display_name=session.name, email=session.email, token=token)

        record = RoleRecord.model_validate(doc)
        status = ROLE_STATUS.get(record.role, ActorStatus.UNRECOGNIZED_ROLE)
        return Actor(status, uid=session.uid,
                     display_name=record.name or session.name,
                     email=session.email, token=token)

    async def student_record(self, uid: str) -> Optional[StudentRecord]:
        doc = await self.store.read(f"students/{uid}")
        return StudentRecord.model_validate(doc) if doc else None

    # ============ SIGN-IN / SIGN-OUT ============

    async def login(self, identifier: str, password: str) -> tuple:
        """
        Authenticate with the identity provider and open a session.

        Returns (token, actor). Raises AuthenticationFailed for any credential
        problem so unknown accounts and wrong passwords look the same.
        """
        email = login_address(identifier, self.student_email_domain)
        try:
            account = await self.identity.sign_in(email, password)
        except IdentityError as e:
            logger.info(f"Login rejected for {email}: {e.code}")
            raise AuthenticationFailed() from e

        try:
            role_doc = await self.store.read(f"users/{account.uid}")
        except Exception as e:
            # The session still opens; resolve() reports the role as unknown
            logger.error(f"Role lookup failed at sign-in for {account.uid}: {e}")
            role_doc = None
        is_admin = bool(role_doc) and role_doc.get("role") == Role.ADMIN.value
        name = (role_doc or {}).get("name") or account.display_name

        token = secrets.token_urlsafe(32)
        now = self._clock()
        session = SessionRecord(
            uid=account.uid,
            email=account.email,
            name=name,
            admin=is_admin,
            expires_at=now + self.session_ttl,
            created_at=now,
        )
        await self.store.write(f"sessions/{token}", session.to_document())
        return token, await self.resolve(token)

    async def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        try:
            doc = await self.store.read(f"sessions/{token}")
        except ValueError:
            return
        if doc:
            await self.identity.sign_out(doc.get("uid"))
            await self.store.remove(f"sessions/{token}")

    # ============ ADMIN BOOTSTRAP ============

    async def admin_exists(self) -> bool:
        users = await self.store.read("users") or {}
        return any(record.get("role") == Role.ADMIN.value for record in users.values())

    async def register_admin(self, name: str, email: str, password: str,
                             actor: Actor = UNAUTHENTICATED) -> str:
        """
        Create an administrator account.

        Open while no administrator exists; afterwards only administrators may
        add another one. Returns the new uid.
        """
        if actor.status is not ActorStatus.ADMIN and await self.admin_exists():
            raise PermissionError("Only administrators can register another administrator")
        account = await self.identity.create_account(email, password, display_name=name)
        await self.store.write(
            f"users/{account.uid}",
            RoleRecord(role=Role.ADMIN.value, name=name, email=email).to_document()
        )
        logger.info(f"Administrator registered: {email}")
        return account.uid
