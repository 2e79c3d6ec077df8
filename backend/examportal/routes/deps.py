"""Request-scoped dependencies: portal context, current actor, role gates."""

from typing import Optional

from fastapi import Depends, HTTPException, Request

from ..context import PortalContext
from ..services import Actor, ActorStatus, ExamSessionError
from ..services.exam_session import BlockReason, InvalidAnswer, InvalidTransition

SESSION_COOKIE = "session_token"


def get_portal(request: Request) -> PortalContext:
    return request.app.state.portal


def session_token(request: Request) -> Optional[str]:
    """Session token from the cookie, falling back to a Bearer header."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1].strip()
    return token or None


async def get_actor(request: Request) -> Actor:
    portal = get_portal(request)
    return await portal.resolver.resolve(session_token(request))


def require_roles(*statuses: ActorStatus):
    """401 without a session, 403 for any other role (including unknown ones)."""

    async def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.authenticated:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if actor.status not in statuses:
            raise HTTPException(status_code=403, detail="Not authorized")
        return actor

    return dependency


require_admin = require_roles(ActorStatus.ADMIN)
require_staff = require_roles(ActorStatus.ADMIN, ActorStatus.TEACHER)
require_student = require_roles(ActorStatus.STUDENT)


_REASON_STATUS = {
    BlockReason.EXAM_NOT_FOUND: 404,
    BlockReason.EXAM_NOT_YET_OPEN: 403,
    BlockReason.EXAM_CLOSED: 403,
    BlockReason.EXAM_UNAVAILABLE: 403,
    BlockReason.PERSISTENCE_FAILURE: 503,
}


def session_http_error(error: ExamSessionError) -> HTTPException:
    """Map an attempt error to an HTTP error carrying its reason code."""
    if isinstance(error, InvalidTransition):
        status_code = 409
    elif isinstance(error, InvalidAnswer):
        status_code = 400
    else:
        status_code = _REASON_STATUS.get(error.reason, 400)
    reason = error.reason.value if error.reason else type(error).__name__
    return HTTPException(
        status_code=status_code,
        detail={"reason": reason, "message": error.message, "retryable": error.retryable}
    )
