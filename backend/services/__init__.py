"""Service layer exports."""

from .authorization import AuthorizationGate, project_loan
from .emi_ledger_service import EmiLedgerService
from .emi_settings_service import EmiSettings, EmiSettingsService, validate_emi_settings
from .loan_service import LoanServicingService, sanitize_text
from .penalty_service import DailyRatePenaltyStrategy, PenaltyEngine, PenaltyStrategy
from .principal_resolver import FirebasePrincipalResolver, PrincipalResolver, extract_bearer_token
from .user_admin_service import UserAdminService

__all__ = [
    "AuthorizationGate",
    "project_loan",
    "EmiLedgerService",
    "EmiSettings",
    "EmiSettingsService",
    "validate_emi_settings",
    "LoanServicingService",
    "sanitize_text",
    "DailyRatePenaltyStrategy",
    "PenaltyEngine",
    "PenaltyStrategy",
    "FirebasePrincipalResolver",
    "PrincipalResolver",
    "extract_bearer_token",
    "UserAdminService",
]
