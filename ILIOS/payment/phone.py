"""
MSISDN helpers for MTN Cameroon numbers.
- format_phone_number: national / international input -> 237XXXXXXXXX
- validate_mtn_phone_number: length + carrier prefix check
"""
import re
from typing import NamedTuple, Optional

COUNTRY_CODE = "237"
TRUNK_PREFIX = "0"
MIN_DIGITS = 9

# MTN Cameroon carrier prefixes (first two digits of the subscriber number)
MTN_PREFIXES = {"65", "67", "68"}

_NON_DIGITS = re.compile(r"\D")


class PhoneValidation(NamedTuple):
    is_valid: bool
    error: Optional[str] = None


def _digits(phone: str) -> str:
    return _NON_DIGITS.sub("", phone or "")


def format_phone_number(phone: str) -> str:
    """Ex: 677123456 -> 237677123456"""
    cleaned = _digits(phone)

    if cleaned.startswith(TRUNK_PREFIX):
        cleaned = cleaned[1:]

    if not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned

    return cleaned


def validate_mtn_phone_number(phone: str) -> PhoneValidation:
    cleaned = _digits(phone)

    if len(cleaned) < MIN_DIGITS:
        return PhoneValidation(False, "Number too short")

    number = cleaned
    if number.startswith(COUNTRY_CODE):
        number = number[len(COUNTRY_CODE):]
    if number.startswith(TRUNK_PREFIX):
        number = number[1:]

    if number[:2] not in MTN_PREFIXES:
        return PhoneValidation(False, "Not an MTN Cameroon number")

    return PhoneValidation(True)
