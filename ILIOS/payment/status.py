from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"


SUCCESS_STATUSES = {"SUCCESSFUL", "SUCCESS", "COMPLETED"}
FAILURE_STATUSES = {"FAILED", "REJECTED", "CANCELLED", "EXPIRED"}


@dataclass(frozen=True)
class NormalizedStatus:
    status: PaymentStatus
    raw_status: str
    amount: Optional[int] = None
    transaction_id: Optional[str] = None
    reason: Optional[str] = None


def _parse_amount(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _first(payload: Dict[str, Any], *keys: str):
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def normalize_status_value(raw_status: Any) -> PaymentStatus:
    if not isinstance(raw_status, str):
        return PaymentStatus.PENDING
    if raw_status in SUCCESS_STATUSES:
        return PaymentStatus.SUCCESSFUL
    if raw_status in FAILURE_STATUSES:
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


def normalize_ynote_status(payload: Dict[str, Any]) -> NormalizedStatus:
    """
    Map a Y-Note status response (or callback body) to the three-state model.
    The status may sit in `status` or `transactionStatus` depending on the API version.
    """
    payload = payload or {}
    raw_status = _first(payload, "status", "transactionStatus") or "PENDING"

    transaction_id = _first(payload, "transactionId", "financialTransactionId", "externalId")
    reason = _first(payload, "reason", "message", "errorMessage")

    return NormalizedStatus(
        status=normalize_status_value(raw_status),
        raw_status=str(raw_status),
        amount=_parse_amount(payload.get("amount")),
        transaction_id=str(transaction_id) if transaction_id is not None else None,
        reason=str(reason) if reason is not None else None,
    )
