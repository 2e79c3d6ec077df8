"""Role dashboard: GET /api/dashboard"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..context import PortalContext
from ..services import Actor, ActorStatus
from .deps import get_actor

logger = logging.getLogger(__name__)


def create_dashboard_routes(portal: PortalContext) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["dashboard"])
    dashboards = portal.dashboards
    resolver = portal.resolver

    @router.get("/dashboard")
    async def get_dashboard(actor: Actor = Depends(get_actor)):
        """Dashboard for whichever role the session resolves to."""
        if actor.status is ActorStatus.UNAUTHENTICATED:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if actor.status is ActorStatus.ADMIN:
            return await dashboards.admin(actor.display_name or "Administrator")
        if actor.status is ActorStatus.TEACHER:
            return await dashboards.teacher(actor.display_name or "")
        if actor.status is ActorStatus.STUDENT:
            student = await resolver.student_record(actor.uid)
            return await dashboards.student(actor.uid, actor.display_name or "", student)

        logger.warning(f"No dashboard for {actor.uid}: {actor.status.value}")
        if actor.status is ActorStatus.ROLE_UNKNOWN:
            raise HTTPException(status_code=403, detail="Unable to verify your role. Please try again.")
        raise HTTPException(status_code=403, detail="Your account has no recognized role.")

    return router
