# file: ILIOS/core/errors.py
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_PHONE = "INVALID_PHONE"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_STATE = "INVALID_STATUS"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    UPSTREAM = "UPSTREAM_ERROR"
    CONFIGURATION = "CONFIGURATION_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class PaymentError(Exception):
    """Business error carrying the kind the HTTP layer maps to a status code."""

    def __init__(self, kind: ErrorKind, message: str, vendor_code=None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.vendor_code = vendor_code

    def __repr__(self):
        return f"PaymentError({self.kind.name}, {self.message!r})"
