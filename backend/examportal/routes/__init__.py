"""API route factories"""

from .auth_routes import create_auth_routes
from .directory_routes import create_directory_routes
from .exam_routes import create_exam_routes
from .session_routes import create_session_routes
from .dashboard_routes import create_dashboard_routes
from .live_routes import create_live_routes

__all__ = [
    "create_auth_routes",
    "create_directory_routes",
    "create_exam_routes",
    "create_session_routes",
    "create_dashboard_routes",
    "create_live_routes",
]
