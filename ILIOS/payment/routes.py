# file: ILIOS/payment/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ILIOS.core.rate_limit import PUBLIC_LIMIT, limiter
from ILIOS.core.security import ADMIN_ROLES, get_current_admin, get_current_user
from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.payment.models import (
    CheckStatusRequest,
    InitiatePaymentRequest,
    PaymentResponse,
    PaymentStatusResponse,
    PhoneValidationResponse,
    RefundRequest,
    RefundResponse,
    ValidatePhoneRequest,
)
from ILIOS.payment.payment_orchestrator import PaymentOrchestrator
from ILIOS.payment.phone import format_phone_number, validate_mtn_phone_number

logger = logging.getLogger("payment.routes")

router = APIRouter(prefix="/api/payments", tags=["payments"])


def get_orchestrator(request: Request) -> PaymentOrchestrator:
    return request.app.state.orchestrator


@router.post("/initiate", response_model=PaymentResponse)
async def initiate_payment(
    req: InitiatePaymentRequest,
    current_user: dict = Depends(get_current_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    """
    Start an MTN Mobile Money payment for a campaign awaiting payment.
    The payer confirms on their phone; the result arrives by callback or poll.
    """
    return await orchestrator.initiate_payment(req, current_user["uid"])


async def _check_status(orchestrator: PaymentOrchestrator, reference_id: Optional[str],
                        campaign_id: Optional[str], current_user: dict) -> PaymentStatusResponse:
    if not reference_id:
        raise PaymentError(ErrorKind.INVALID_ARGUMENT, "referenceId is required")
    return await orchestrator.check_payment_status(
        reference_id,
        campaign_id=campaign_id,
        user_id=current_user["uid"],
        is_admin=current_user.get("role") in ADMIN_ROLES,
    )


@router.post("/status", response_model=PaymentStatusResponse, response_model_exclude_none=True)
async def check_status(
    req: CheckStatusRequest,
    current_user: dict = Depends(get_current_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    return await _check_status(orchestrator, req.referenceId, req.campaignId, current_user)


@router.get("/status/{reference_id}", response_model=PaymentStatusResponse, response_model_exclude_none=True)
async def check_status_by_reference(
    reference_id: str,
    campaignId: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    return await _check_status(orchestrator, reference_id, campaignId, current_user)


@router.post("/refund", response_model=RefundResponse)
async def request_refund(
    req: RefundRequest,
    current_user: dict = Depends(get_current_admin),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    """Record a refund for manual processing (admin only)."""
    return orchestrator.create_refund_request(
        req.referenceId,
        req.amount,
        req.phoneNumber,
        req.reason,
        current_user["uid"],
    )


@router.post("/validate-phone", response_model=PhoneValidationResponse, response_model_exclude_none=True)
@limiter.limit(PUBLIC_LIMIT)
async def validate_phone(request: Request, req: ValidatePhoneRequest):
    if not req.phoneNumber:
        raise PaymentError(ErrorKind.INVALID_ARGUMENT, "phoneNumber is required")

    validation = validate_mtn_phone_number(req.phoneNumber)
    if validation.is_valid:
        return PhoneValidationResponse(isValid=True, formattedNumber=format_phone_number(req.phoneNumber))
    return PhoneValidationResponse(isValid=False, error=validation.error)
