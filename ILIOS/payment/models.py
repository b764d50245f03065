from typing import Optional

from pydantic import BaseModel

from ILIOS.payment.status import PaymentStatus


# ==============================
# Requests
# ==============================
class InitiatePaymentRequest(BaseModel):
    campaignId: Optional[str] = None
    amount: Optional[int] = None
    phoneNumber: Optional[str] = None
    payerMessage: Optional[str] = None
    payeeNote: Optional[str] = None


class CheckStatusRequest(BaseModel):
    referenceId: Optional[str] = None
    campaignId: Optional[str] = None


class RefundRequest(BaseModel):
    referenceId: Optional[str] = None
    amount: Optional[int] = None
    phoneNumber: Optional[str] = None
    reason: Optional[str] = None


class ValidatePhoneRequest(BaseModel):
    phoneNumber: Optional[str] = None


# ==============================
# Responses
# ==============================
class PaymentResponse(BaseModel):
    success: bool
    referenceId: str
    status: PaymentStatus
    message: str


class PaymentStatusResponse(BaseModel):
    success: bool
    status: PaymentStatus
    amount: Optional[str] = None
    currency: str
    financialTransactionId: Optional[str] = None
    reason: Optional[str] = None


class RefundResponse(BaseModel):
    success: bool
    refundId: str
    message: str


class PhoneValidationResponse(BaseModel):
    success: bool = True
    isValid: bool
    formattedNumber: Optional[str] = None
    error: Optional[str] = None
