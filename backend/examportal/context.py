"""Wiring of gateways and services shared by the routes."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config.settings import Settings
from .gateways import (
    DocumentStore,
    FirebaseIdentityGateway,
    IdentityGateway,
    LocalIdentityGateway,
    MemoryDocumentStore,
    MongoDocumentStore,
)
from .services import (
    AttemptRegistry,
    DashboardService,
    DirectoryService,
    ExamAuthoringService,
    SessionResolver,
)
from .utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class PortalContext:
    settings: Settings
    store: DocumentStore
    identity: IdentityGateway
    resolver: SessionResolver
    directory: DirectoryService
    exams: ExamAuthoringService
    attempts: AttemptRegistry
    dashboards: DashboardService

    async def aclose(self) -> None:
        self.attempts.close()
        await self.identity.aclose()
        self.store.close()


def build_store(settings: Settings) -> DocumentStore:
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using the in-memory store; data is lost on restart")
        return MemoryDocumentStore()
    return MongoDocumentStore.from_url(settings.MONGODB_URL, settings.DATABASE_NAME)


def build_identity(settings: Settings, store: DocumentStore) -> IdentityGateway:
    if settings.IDENTITY_BACKEND == "local":
        return LocalIdentityGateway(store)
    return FirebaseIdentityGateway(settings.FIREBASE_API_KEY, timeout=settings.IDENTITY_TIMEOUT)


def build_context(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityGateway] = None,
    clock: Callable[[], datetime] = utc_now,
) -> PortalContext:
    store = store or build_store(settings)
    identity = identity or build_identity(settings, store)

    directory = DirectoryService(store, identity, settings.STUDENT_EMAIL_DOMAIN)
    exams = ExamAuthoringService(store, default_terms=settings.DEFAULT_TERMS, clock=clock)
    return PortalContext(
        settings=settings,
        store=store,
        identity=identity,
        resolver=SessionResolver(
            store,
            identity,
            student_email_domain=settings.STUDENT_EMAIL_DOMAIN,
            session_ttl_days=settings.SESSION_TTL_DAYS,
            clock=clock,
        ),
        directory=directory,
        exams=exams,
        attempts=AttemptRegistry(
            store,
            clock=clock,
            tick_seconds=settings.TICK_SECONDS,
            idle_timeout=settings.ATTEMPT_IDLE_SECONDS or None,
        ),
        dashboards=DashboardService(directory, exams, clock=clock),
    )
