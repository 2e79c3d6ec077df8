"""Services for sessions, authoring, exam attempts and dashboards."""

from .scoring import ScoreBreakdown, percent_round_half_up, score_answers, build_review
from .session_resolver import (
    Actor,
    ActorStatus,
    AuthenticationFailed,
    SessionResolver,
    login_address,
    registration_to_email,
)
from .exam_authoring import ExamAuthoringService, ExamValidationError, validate_exam
from .exam_session import (
    AttemptRegistry,
    BlockReason,
    ExamSession,
    ExamSessionError,
    InvalidAnswer,
    InvalidTransition,
    PersistenceFailure,
    SessionState,
    SubmitTrigger,
)
from .directory import DirectoryError, DirectoryService
from .dashboards import DashboardService

__all__ = [
    "ScoreBreakdown",
    "percent_round_half_up",
    "score_answers",
    "build_review",
    "Actor",
    "ActorStatus",
    "AuthenticationFailed",
    "SessionResolver",
    "login_address",
    "registration_to_email",
    "ExamAuthoringService",
    "ExamValidationError",
    "validate_exam",
    "AttemptRegistry",
    "BlockReason",
    "ExamSession",
    "ExamSessionError",
    "InvalidAnswer",
    "InvalidTransition",
    "PersistenceFailure",
    "SessionState",
    "SubmitTrigger",
    "DirectoryError",
    "DirectoryService",
    "DashboardService",
]
