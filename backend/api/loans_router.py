"""Loan record router: applications, review workflow, EMI schedule, payments and penalties."""

from datetime import datetime
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from api.dependencies import internal_error, to_http_exception
from models.enums import LoanStatus
from models.exceptions import ServicingError
from models.users import Principal
from services.loan_service import LoanServicingService


logger = logging.getLogger(__name__)


class LoanApplicationRequest(BaseModel):
    """Request payload for a new financing request."""

    service_id: Optional[str] = Field(default=None)
    other_service: Optional[str] = Field(default=None, max_length=200)
    store_id: Optional[str] = Field(default=None)
    other_store: Optional[Dict[str, str]] = Field(default=None)
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    tenure_months: Optional[int] = Field(default=None, ge=1, le=60)
    timeline: Optional[str] = Field(default=None, max_length=100)
    purpose: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    terms_accepted: bool = Field(default=False)
    terms_accepted_at: Optional[datetime] = Field(default=None)


class LoanUpdateRequest(BaseModel):
    """Request payload for status changes and review notes."""

    status: Optional[LoanStatus] = Field(default=None)
    note: Optional[str] = Field(default=None, max_length=1000)
    internal: bool = Field(default=False)


class ServiceFeeRequest(BaseModel):
    """Request payload for service fee bookkeeping."""

    paid: bool = Field(...)


class EmiSettingsRequest(BaseModel):
    """Raw schedule parameters; bounds are checked by the settings manager."""

    emi_date: Any = Field(default=None)
    emi_percent: Any = Field(default=None)
    tenure_months: Any = Field(default=None)


class EmiPaymentRequest(BaseModel):
    """Raw payment input; format is checked by the payment ledger."""

    month: Any = Field(default=None)
    amount: Any = Field(default=None)


def build_loans_router(
    service: LoanServicingService,
    current_principal: Callable[..., Optional[Principal]],
) -> APIRouter:
    """Build router for loan record endpoints."""
    router = APIRouter(prefix="/queries", tags=["queries"])

    @router.get("", summary="List loan records")
    def list_loans(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=1000, ge=1, le=1000),
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        """List records visible to the caller, newest first."""
        try:
            return service.list_loans(principal, page=page, limit=limit)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("List loans endpoint failed page=%s limit=%s", page, limit)
            raise internal_error()

    @router.post("", status_code=status.HTTP_201_CREATED, summary="Create loan record")
    def create_loan(
        payload: LoanApplicationRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        """Submit a new financing request owned by the caller."""
        try:
            return service.create_loan(principal, payload.model_dump())
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Create loan endpoint failed.")
            raise internal_error()

    @router.get("/{loan_id}", summary="Get loan record")
    def get_loan(loan_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        """Return one record projected for the caller's role."""
        try:
            return service.get_loan(principal, loan_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Get loan endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.patch("/{loan_id}", summary="Update loan status or add a note")
    def update_loan(
        loan_id: str,
        payload: LoanUpdateRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        """Move a record through review and attach an optional note."""
        try:
            return service.update_status(
                principal,
                loan_id,
                status=payload.status,
                note=payload.note,
                internal=payload.internal,
            )
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Update loan endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.delete("/{loan_id}", summary="Delete loan record")
    def delete_loan(loan_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        try:
            return service.delete_loan(principal, loan_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Delete loan endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.patch("/{loan_id}/service-fee", summary="Mark service fee paid or unpaid")
    def service_fee(
        loan_id: str,
        payload: ServiceFeeRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        try:
            return service.mark_service_fee(principal, loan_id, payload.paid)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Service fee endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.post("/{loan_id}/start-emi", summary="Start EMI schedule")
    def start_emi(
        loan_id: str,
        payload: EmiSettingsRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        """Start repayment; the first installment falls due next month."""
        try:
            return service.start_emi(principal, loan_id, payload.model_dump())
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Start EMI endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.patch("/{loan_id}/emi-settings", summary="Correct EMI settings")
    def configure_emi(
        loan_id: str,
        payload: EmiSettingsRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        try:
            return service.configure_emi(principal, loan_id, payload.model_dump())
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("EMI settings endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.post("/{loan_id}/emi-payment", summary="Record monthly EMI payment")
    def record_payment(
        loan_id: str,
        payload: EmiPaymentRequest,
        principal: Optional[Principal] = Depends(current_principal),
    ) -> Dict[str, Any]:
        """Mark one month as paid and clear any outstanding penalty."""
        try:
            return service.record_payment(principal, loan_id, payload.month, payload.amount)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("EMI payment endpoint failed loan_id=%s month=%s", loan_id, payload.month)
            raise internal_error()

    @router.post("/{loan_id}/update-penalty", summary="Recompute late-payment penalty")
    def update_penalty(loan_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        try:
            return service.recompute_penalty(principal, loan_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Update penalty endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.post("/{loan_id}/waive-penalty", summary="Waive late-payment penalty")
    def waive_penalty(loan_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        try:
            return service.waive_penalty(principal, loan_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("Waive penalty endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    @router.get("/{loan_id}/emi-status", summary="EMI completion status")
    def emi_status(loan_id: str, principal: Optional[Principal] = Depends(current_principal)) -> Dict[str, Any]:
        """Summarize paid and remaining amounts for a record."""
        try:
            return service.emi_status(principal, loan_id)
        except ServicingError as exc:
            raise to_http_exception(exc)
        except Exception:
            logger.exception("EMI status endpoint failed loan_id=%s", loan_id)
            raise internal_error()

    return router
