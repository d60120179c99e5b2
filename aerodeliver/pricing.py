import math
import re
from typing import Dict, Optional

BASE_FEE = 50
DISTANCE_FEE = 25  # flat until real routing exists
PER_KG_FEE = 10

PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15


def weight_fee(weight: Optional[float]) -> int:
    """Fee for every started kilogram above the first one."""
    return max(0, math.ceil((weight or 0) - 1)) * PER_KG_FEE


def compute_price(weight: Optional[float]) -> int:
    return BASE_FEE + DISTANCE_FEE + weight_fee(weight)


def phone_is_valid(phone: Optional[str]) -> bool:
    if not phone:
        return False
    digits = re.sub(r"[^0-9]", "", phone)
    return PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def validate_booking(booking) -> Dict[str, str]:
    errors = {}
    if _blank(booking.pickup):
        errors["pickup"] = "Pickup address is required."
    if _blank(booking.delivery):
        errors["delivery"] = "Delivery address is required."
    if _blank(booking.sender_name):
        errors["sender_name"] = "Sender name is required."
    if not phone_is_valid(booking.sender_phone):
        errors["sender_phone"] = "Enter a valid phone number."
    if _blank(booking.recipient_name):
        errors["recipient_name"] = "Recipient name is required."
    if not phone_is_valid(booking.recipient_phone):
        errors["recipient_phone"] = "Enter a valid phone number."
    if booking.weight is None or booking.weight <= 0:
        errors["weight"] = "Enter a valid weight."
    return errors
