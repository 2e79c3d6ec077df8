"""
Authentication routes.

Endpoints:
- POST /api/auth/login
- POST /api/auth/logout
- GET /api/auth/me
- POST /api/auth/admin/register
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ..context import PortalContext
from ..gateways import IdentityError
from ..models import AdminRegister, LoginRequest
from ..services import Actor, AuthenticationFailed
from .deps import SESSION_COOKIE, get_actor, session_token

logger = logging.getLogger(__name__)


def create_auth_routes(portal: PortalContext) -> APIRouter:
    """Create auth routes bound to the portal context."""

    router = APIRouter(prefix="/api/auth", tags=["auth"])
    resolver = portal.resolver
    settings = portal.settings

    @router.post("/login")
    async def login(payload: LoginRequest, response: Response):
        """Sign in with an email address or a student registration number"""
        try:
            token, actor = await resolver.login(payload.identifier, payload.password)
        except AuthenticationFailed as e:
            raise HTTPException(status_code=401, detail=str(e))

        response.set_cookie(
            key=SESSION_COOKIE,
            value=token,
            httponly=True,
            secure=settings.SESSION_COOKIE_SECURE,
            samesite="lax",
            path="/",
            max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60
        )
        return {
            "session_token": token,
            "user_id": actor.uid,
            "name": actor.display_name,
            "role": actor.role,
            "status": actor.status.value
        }

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout and clear session"""
        await resolver.logout(session_token(request))
        response.delete_cookie(key=SESSION_COOKIE, path="/")
        return {"message": "Logged out"}

    @router.get("/me")
    async def get_me(actor: Actor = Depends(get_actor)):
        """Get current user info"""
        if not actor.authenticated:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return {
            "user_id": actor.uid,
            "email": actor.email,
            "name": actor.display_name,
            "role": actor.role,
            "status": actor.status.value
        }

    @router.post("/admin/register")
    async def register_admin(payload: AdminRegister, actor: Actor = Depends(get_actor)):
        """Register an administrator (open until the first one exists)"""
        if payload.password != payload.confirm_password:
            raise HTTPException(status_code=400, detail="Passwords do not match")
        try:
            uid = await resolver.register_admin(
                payload.name, payload.email, payload.password, actor=actor
            )
        except PermissionError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except IdentityError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"user_id": uid, "message": "You've been registered as an Admin"}

    return router
