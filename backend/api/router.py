"""Primary API router module wiring storage, services and endpoint routers."""

from datetime import datetime
import logging
from typing import Callable, Optional

from fastapi import APIRouter

from api.admin_router import build_admin_router
from api.auth_router import build_auth_router
from api.dependencies import build_principal_dependency
from api.loans_router import build_loans_router
from core import FirebaseClientManager
from core.config import AppSettings
from models.base import utc_now
from models.repositories import LoanRepository, ProfileRepository
from repositories.document_store import DocumentStore
from repositories.firestore_loan_repository import FirestoreLoanRepository
from repositories.firestore_profile_repository import FirestoreProfileRepository
from services import (
    AuthorizationGate,
    DailyRatePenaltyStrategy,
    EmiLedgerService,
    EmiSettingsService,
    FirebasePrincipalResolver,
    LoanServicingService,
    PenaltyEngine,
    PrincipalResolver,
    UserAdminService,
)


logger = logging.getLogger(__name__)


def _build_firebase_manager(settings: AppSettings) -> Optional[FirebaseClientManager]:
    """Create the Firestore client when enabled; storage falls back to memory otherwise."""
    if not settings.firebase_enabled:
        logger.info("Firebase integration disabled by firebase.enabled=false")
        return None
    try:
        return FirebaseClientManager(
            project_id=settings.firebase_project_id,
            credentials_path=settings.firebase_credentials_path,
        )
    except Exception:
        logger.exception("Failed to initialize Firebase dependencies for router.")
        raise


def build_router(
    settings: AppSettings,
    loan_repository: Optional[LoanRepository] = None,
    profile_repository: Optional[ProfileRepository] = None,
    principal_resolver: Optional[PrincipalResolver] = None,
    clock: Callable[[], datetime] = utc_now,
) -> APIRouter:
    """Build and return the top-level API router.

    Args:
        settings: Application settings payload.
        loan_repository: Optional loan storage override.
        profile_repository: Optional profile storage override.
        principal_resolver: Optional credential resolver override.
        clock: Source of the current time for every time-dependent rule.

    Returns:
        APIRouter: Fully configured router with all endpoints.
    """
    router = APIRouter()
    project_id = settings.firebase_project_id

    if loan_repository is None or profile_repository is None:
        firebase_manager = _build_firebase_manager(settings)
        if firebase_manager is not None:
            project_id = firebase_manager.project_id
        if loan_repository is None:
            loan_repository = FirestoreLoanRepository(
                DocumentStore(settings.firebase_loans_collection, firebase_manager=firebase_manager),
                clock=clock,
            )
        if profile_repository is None:
            profile_repository = FirestoreProfileRepository(
                DocumentStore(settings.firebase_profiles_collection, firebase_manager=firebase_manager),
                clock=clock,
            )
    if principal_resolver is None:
        principal_resolver = FirebasePrincipalResolver(profile_repository, project_id)

    gate = AuthorizationGate()
    penalty_engine = PenaltyEngine(
        DailyRatePenaltyStrategy(
            daily_rate_bps=settings.penalty_daily_rate_bps,
            grace_days=settings.penalty_grace_days,
        ),
        clock=clock,
    )
    loan_service = LoanServicingService(
        loan_repository=loan_repository,
        gate=gate,
        settings_service=EmiSettingsService(clock=clock),
        ledger_service=EmiLedgerService(clock=clock),
        penalty_engine=penalty_engine,
        clock=clock,
    )
    admin_service = UserAdminService(profile_repository, loan_repository, gate, clock=clock)
    current_principal = build_principal_dependency(principal_resolver)

    router.include_router(build_loans_router(loan_service, current_principal))
    router.include_router(build_admin_router(admin_service, loan_service, current_principal))
    router.include_router(build_auth_router(admin_service, current_principal))

    @router.get("/", summary="Root endpoint")
    def read_root() -> dict:
        """Return a basic message confirming service availability."""
        return {"message": "{0} is running".format(settings.app_name)}

    @router.get("/health", summary="Health check")
    def health_check() -> dict:
        """Return service health status for load balancers and monitors."""
        return {"status": "ok"}

    return router
