"""Shared validation utilities"""

import re
from typing import Optional

from ..config import DEFAULT_COUNTRY_CODE


def normalize_whatsapp_phone(phone: Optional[str], country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """
    Normalize a phone number to the digits-only form WhatsApp expects.

    Args:
        phone: Phone number string in any format, e.g. "(11) 91234-5678"
        country_code: Prefixed when the number has no country code

    Returns:
        Digits with country code, e.g. "5511912345678", or None when empty
    """
    if not phone:
        return None

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None

    # Up to 11 digits is a national number (DDD + 8/9-digit subscriber)
    if len(digits) <= 11:
        digits = f"{country_code}{digits}"

    return digits
