"""
Orchestration layer for MTN Mobile Money campaign payments.
- Initiation: validate, call Y-Note, persist the transaction, stamp the campaign.
- Status poll and vendor callback converge on one state-transition routine.
- pending_payment -> scheduled is a conditional single-document write.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from ILIOS.core import config
from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.core.logger import log_to_cloud
from ILIOS.payment.firestore_adapter import (
    CAMPAIGNS,
    NOTIFICATIONS,
    REFUNDS,
    TRANSACTIONS,
    USERS,
    DocumentStore,
)
from ILIOS.payment.models import (
    InitiatePaymentRequest,
    PaymentResponse,
    PaymentStatusResponse,
    RefundResponse,
)
from ILIOS.payment.phone import format_phone_number, validate_mtn_phone_number
from ILIOS.payment.status import NormalizedStatus, PaymentStatus, normalize_ynote_status
from ILIOS.payment.ynote_gateway import YnoteGateway, extract_message_id

logger = logging.getLogger("payment.orchestrator")

# ------------------------------
# Business rules
# ------------------------------
MIN_AMOUNT = 100
PAYMENT_METHOD = "mtn"
CAMPAIGN_AWAITING_PAYMENT = "pending_payment"
CAMPAIGN_SCHEDULED = "scheduled"
REFUND_PENDING_MANUAL = "PENDING_MANUAL"
ADMIN_ROLES = {"admin", "both"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentOrchestrator:
    def __init__(
        self,
        store: DocumentStore,
        gateway: YnoteGateway,
        currency: str = config.YNOTE_CURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.gateway = gateway
        self.currency = currency
        self._now = clock

    # ------------------------------
    # Initiation
    # ------------------------------
    async def initiate_payment(self, request: InitiatePaymentRequest, user_id: str) -> PaymentResponse:
        logger.info(
            "[ORCH] Initiating payment: campaign=%s amount=%s user=%s",
            request.campaignId, request.amount, user_id,
        )
        self.gateway.validate_credentials()

        if not request.campaignId:
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, "campaignId is required")
        if request.amount is None or request.amount < MIN_AMOUNT:
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, f"The minimum amount is {MIN_AMOUNT} FCFA")
        if not request.phoneNumber:
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, "phoneNumber is required")

        phone_check = validate_mtn_phone_number(request.phoneNumber)
        if not phone_check.is_valid:
            raise PaymentError(ErrorKind.INVALID_PHONE, phone_check.error or "Invalid MTN phone number")

        campaign = self.store.get(CAMPAIGNS, request.campaignId)
        if campaign is None:
            raise PaymentError(ErrorKind.NOT_FOUND, "Campaign not found")
        if campaign.get("userId") != user_id:
            raise PaymentError(ErrorKind.PERMISSION_DENIED, "This campaign does not belong to you")
        if campaign.get("status") != CAMPAIGN_AWAITING_PAYMENT:
            raise PaymentError(ErrorKind.INVALID_STATE, "This campaign is not awaiting payment")

        reference_id = str(uuid.uuid4())
        msisdn = format_phone_number(request.phoneNumber)
        description = request.payerMessage or f"Ilios campaign payment: {campaign.get('name') or request.campaignId}"

        vendor_response = await self.gateway.request_payment(
            order_id=reference_id,
            msisdn=msisdn,
            amount=request.amount,
            description=description,
        )
        message_id = extract_message_id(vendor_response) or reference_id

        now = self._now()
        self.store.set(TRANSACTIONS, reference_id, {
            "referenceId": reference_id,
            "ynoteMessageId": message_id,
            "campaignId": request.campaignId,
            "userId": user_id,
            "amount": request.amount,
            "currency": self.currency,
            "phoneNumber": msisdn,
            "status": PaymentStatus.PENDING.value,
            "rawStatus": vendor_response.get("status"),
            "paymentMethod": PAYMENT_METHOD,
            "ynoteResponse": vendor_response,
            "createdAt": now,
            "updatedAt": now,
        })
        self.store.update(CAMPAIGNS, request.campaignId, {
            "mtnReferenceId": reference_id,
            "ynoteMessageId": message_id,
            "mtnPaymentStatus": PaymentStatus.PENDING.value,
            "updatedAt": now,
        })

        logger.info("[ORCH] Transaction %s recorded for campaign %s (message_id=%s)", reference_id, request.campaignId, message_id)
        return PaymentResponse(
            success=True,
            referenceId=reference_id,
            status=PaymentStatus.PENDING,
            message="Payment initiated. Please confirm on your phone.",
        )

    # ------------------------------
    # Status poll
    # ------------------------------
    def _find_transaction(self, reference_id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Look up by document id first, then by Y-Note MessageId."""
        transaction = self.store.get(TRANSACTIONS, reference_id)
        if transaction is not None:
            return reference_id, transaction
        return self.store.find_one(TRANSACTIONS, "ynoteMessageId", reference_id)

    async def check_payment_status(
        self,
        reference_id: str,
        campaign_id: Optional[str] = None,
        user_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> PaymentStatusResponse:
        logger.info("[ORCH] Checking payment status: reference=%s campaign=%s", reference_id, campaign_id)
        if not reference_id:
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, "referenceId is required")

        self.gateway.validate_credentials()

        found = self._find_transaction(reference_id)
        doc_id, transaction = found if found else (reference_id, None)
        check_owner = bool(user_id) and not is_admin

        if transaction is not None:
            if check_owner and transaction.get("userId") != user_id:
                raise PaymentError(ErrorKind.PERMISSION_DENIED, "This payment does not belong to you")
            paid_campaign = transaction.get("campaignId")
            if paid_campaign:
                if campaign_id and campaign_id != paid_campaign:
                    logger.warning("[ORCH] Poll of %s named campaign %s, payment is for %s", doc_id, campaign_id, paid_campaign)
                    raise PaymentError(ErrorKind.PERMISSION_DENIED, "This payment does not belong to that campaign")
                campaign_id = paid_campaign

        # Without a payment record to vouch for it, the campaign must be the caller's own
        if campaign_id and (transaction is None or not transaction.get("campaignId")):
            campaign = self.store.get(CAMPAIGNS, campaign_id)
            if campaign is None:
                raise PaymentError(ErrorKind.NOT_FOUND, "Campaign not found")
            if check_owner and campaign.get("userId") != user_id:
                raise PaymentError(ErrorKind.PERMISSION_DENIED, "This campaign does not belong to you")

        message_id = (transaction or {}).get("ynoteMessageId") or reference_id
        vendor_status = await self.gateway.get_payment_status(message_id)
        normalized = normalize_ynote_status(vendor_status)

        self._apply_status(
            doc_id,
            transaction,
            normalized,
            raw_field="ynoteStatusResponse",
            raw_payload=vendor_status,
            campaign_id=campaign_id,
            actor=user_id,
        )

        return PaymentStatusResponse(
            success=True,
            status=normalized.status,
            amount=str(normalized.amount) if normalized.amount is not None else None,
            currency=self.currency,
            financialTransactionId=normalized.transaction_id,
            reason=normalized.reason,
        )

    # ------------------------------
    # Vendor callback
    # ------------------------------
    async def handle_callback(self, payload: Dict[str, Any]) -> NormalizedStatus:
        logger.info("[ORCH] Y-Note callback received: %s", payload)
        if not isinstance(payload, dict):
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, "Callback body must be a JSON object")

        reference_id = payload.get("referenceId") or payload.get("order_id")
        if not reference_id:
            raise PaymentError(ErrorKind.INVALID_ARGUMENT, "referenceId missing from callback")

        found = self._find_transaction(str(reference_id))
        if found is None:
            logger.error("[ORCH] Transaction %s not found", reference_id)
            raise PaymentError(ErrorKind.NOT_FOUND, "Transaction not found")
        doc_id, transaction = found

        normalized = normalize_ynote_status(payload)
        self._apply_status(
            doc_id,
            transaction,
            normalized,
            raw_field="mtnCallbackData",
            raw_payload=payload,
            campaign_id=None,
            actor=transaction.get("userId"),
        )
        return normalized

    # ------------------------------
    # State transition (shared by poll and callback)
    # ------------------------------
    def _apply_status(
        self,
        reference_id: str,
        transaction: Optional[Dict[str, Any]],
        normalized: NormalizedStatus,
        raw_field: str,
        raw_payload: Dict[str, Any],
        campaign_id: Optional[str],
        actor: Optional[str],
    ) -> None:
        now = self._now()
        previous_status = (transaction or {}).get("status")

        if transaction is not None:
            updates = {
                "status": normalized.status.value,
                "rawStatus": normalized.raw_status,
                raw_field: raw_payload,
                "updatedAt": now,
            }
            if normalized.transaction_id:
                updates["financialTransactionId"] = normalized.transaction_id
            self.store.update(TRANSACTIONS, reference_id, updates)
            logger.info("[ORCH] Transaction %s updated: %s (%s)", reference_id, normalized.status.value, normalized.raw_status)

        campaign_id = campaign_id or (transaction or {}).get("campaignId")
        if not campaign_id:
            return

        if normalized.status is PaymentStatus.SUCCESSFUL:
            self._mark_campaign_paid(campaign_id, reference_id, transaction, normalized, actor, now)
        elif normalized.status is PaymentStatus.FAILED:
            if previous_status == PaymentStatus.FAILED.value:
                logger.info("[ORCH] Transaction %s already FAILED, no new notification", reference_id)
                return
            self._mark_campaign_failed(campaign_id, transaction, now)

    def _mark_campaign_paid(
        self,
        campaign_id: str,
        reference_id: str,
        transaction: Optional[Dict[str, Any]],
        normalized: NormalizedStatus,
        actor: Optional[str],
        now: datetime,
    ) -> bool:
        campaign = self.store.get(CAMPAIGNS, campaign_id)
        if campaign is None:
            logger.warning("[ORCH] Campaign %s not found for successful payment %s", campaign_id, reference_id)
            return False

        amount = normalized.amount
        if amount is None:
            amount = (transaction or {}).get("amount") or 0
        owner = campaign.get("userId") or (transaction or {}).get("userId")

        transitioned = self.store.update_if(
            CAMPAIGNS,
            campaign_id,
            "status",
            CAMPAIGN_AWAITING_PAYMENT,
            {
                "status": CAMPAIGN_SCHEDULED,
                "paymentMethod": PAYMENT_METHOD,
                "paymentAmount": amount,
                "paidAt": now,
                "mtnPaymentStatus": PaymentStatus.SUCCESSFUL.value,
                "mtnTransactionId": normalized.transaction_id or reference_id,
                "updatedAt": now,
                "updatedBy": actor or owner,
            },
        )
        if not transitioned:
            logger.info("[ORCH] Campaign %s no longer awaiting payment, left unchanged", campaign_id)
            return False

        logger.info("[ORCH] Campaign %s moved to scheduled", campaign_id)
        log_to_cloud("payment", "INFO", f"Campaign {campaign_id} paid", {"referenceId": reference_id, "amount": amount})
        self._notify(owner, campaign_id, "payment_success",
                     f"MTN Mobile Money payment of {amount} FCFA confirmed for your campaign.")
        return True

    def _mark_campaign_failed(self, campaign_id: str, transaction: Optional[Dict[str, Any]], now: datetime) -> None:
        campaign = self.store.get(CAMPAIGNS, campaign_id)
        if campaign is None:
            logger.warning("[ORCH] Campaign %s not found for failed payment", campaign_id)
            return

        amount = (transaction or {}).get("amount") or 0
        owner = (transaction or {}).get("userId") or campaign.get("userId")

        self._notify(owner, campaign_id, "payment_failed",
                     f"The MTN Mobile Money payment of {amount} FCFA failed. Please try again.")
        self.store.update(CAMPAIGNS, campaign_id, {
            "mtnPaymentStatus": PaymentStatus.FAILED.value,
            "updatedAt": now,
        })
        log_to_cloud("payment", "WARNING", f"Payment failed for campaign {campaign_id}", {"amount": amount})

    def _notify(self, recipient_id: Optional[str], campaign_id: str, kind: str, message: str) -> None:
        self.store.add(NOTIFICATIONS, {
            "recipientId": recipient_id,
            "recipientType": "user",
            "campaignId": campaign_id,
            "type": kind,
            "message": message,
            "createdAt": self._now(),
            "isRead": False,
        })

    # ------------------------------
    # Refunds (manual processing)
    # ------------------------------
    def create_refund_request(
        self,
        reference_id: str,
        amount: int,
        phone_number: str,
        reason: str,
        requested_by: str,
    ) -> RefundResponse:
        logger.info("[ORCH] Refund request: reference=%s amount=%s by=%s", reference_id, amount, requested_by)

        if not reference_id or not amount or not phone_number or not reason:
            raise PaymentError(
                ErrorKind.INVALID_ARGUMENT,
                "All fields are required: referenceId, amount, phoneNumber, reason",
            )

        requester = self.store.get(USERS, requested_by) or {}
        if requester.get("role") not in ADMIN_ROLES:
            raise PaymentError(ErrorKind.PERMISSION_DENIED, "Only administrators can request refunds")

        # No disbursement API here: the request is recorded for manual processing
        refund_id = str(uuid.uuid4())
        self.store.add(REFUNDS, {
            "refundId": refund_id,
            "originalReferenceId": reference_id,
            "amount": amount,
            "phoneNumber": format_phone_number(phone_number),
            "reason": reason,
            "status": REFUND_PENDING_MANUAL,
            "requestedBy": requested_by,
            "createdAt": self._now(),
        })

        logger.info("[ORCH] Refund request created: %s", refund_id)
        return RefundResponse(
            success=True,
            refundId=refund_id,
            message="Refund request recorded. Manual processing required.",
        )
