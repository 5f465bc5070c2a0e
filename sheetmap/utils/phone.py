"""
Phone number normalization utilities.

Spreadsheet phone columns arrive in every shape imaginable: "+7 999 123-45-67",
"8 (999) 123 45 67", 89991234567 as a number cell. This module reduces them
to a canonical digit string so the same subscriber always imports the same way.
"""

import re
from typing import Any, Iterable, Optional
import logging

logger = logging.getLogger(__name__)

NATIONAL_NUMBER_LENGTH = 11
TRUNK_PREFIX = "8"
COUNTRY_CODE = "7"


def normalize_phone(
    value: Any,
    *,
    trunk_prefix: str = TRUNK_PREFIX,
    country_code: str = COUNTRY_CODE,
    national_length: int = NATIONAL_NUMBER_LENGTH,
) -> Optional[str]:
    """
    Reduce a phone value to digits and canonicalize the trunk prefix.

    Handles various input formats:
    - +7 999 123-45-67  -> 79991234567
    - 8 (999) 123-45-67 -> 79991234567
    - 89991234567.0     -> 79991234567 (numeric spreadsheet cell)

    Args:
        value: Phone number in any format
        trunk_prefix: Leading digit dialled domestically, replaced by the country code
        country_code: Digit that replaces the trunk prefix
        national_length: Digit count at which the trunk prefix rule applies

    Returns:
        Digit string, or None when the value is empty or contains no digits
    """
    if value is None or isinstance(value, bool):
        return None

    # Numeric cells come back from spreadsheets as floats
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        if value.is_integer():
            value = int(value)

    text = str(value).strip()
    if not text:
        return None

    digits = re.sub(r'\D', '', text)
    if not digits:
        logger.debug("Phone value '%s' contains no digits", value)
        return None

    if len(digits) == national_length and digits.startswith(trunk_prefix):
        return country_code + digits[len(trunk_prefix):]

    return digits


def is_phone_key(*keys: Optional[str], markers: Iterable[str] = ("phone",)) -> bool:
    """
    Return True when any of the given keys (field paths, normalized headers)
    names a phone field.

    Markers match whole ``_``/``.`` separated segments, so ``mobile_phone``
    and ``phone_2`` are phone keys but ``smartphone_model`` is not.
    """
    patterns = [
        re.compile(rf"(?:^|[._\s-]){re.escape(marker.lower())}(?:$|[._\s-])")
        for marker in markers
        if marker
    ]
    for key in keys:
        if not key:
            continue
        lowered = key.lower()
        if any(pattern.search(lowered) for pattern in patterns):
            return True
    return False
