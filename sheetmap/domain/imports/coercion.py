"""
Per-type value coercion for spreadsheet cells.

``coerce_value`` never raises: a value that cannot be read as the target type
becomes ``None`` so the rest of the row still imports. Dispatch goes through
``_COERCERS``, keyed on the closed ``FieldType`` enumeration; every member
must have an entry (checked at import time).
"""
import json
import logging
import math
import numbers
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import pandas as pd

from sheetmap.domain.imports.models import FieldType, NUMERIC_TYPES, TEXT_TYPES
from sheetmap.domain.imports.policy import DEFAULT_POLICY, HeaderPolicy
from sheetmap.utils.date import parse_date_value, to_iso_string
from sheetmap.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

_INT_PREFIX_RE = re.compile(r'^[+-]?\d+')
_FLOAT_PREFIX_RE = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
_GROUP_SPACE_RE = re.compile(r"(?<=\d)[ \u00a0\u202f](?=\d)")


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float):
        return math.isnan(value)
    if value is pd.NaT or value is pd.NA:
        return True
    return False


def stringify(value: Any) -> str:
    """String form of a cell: integral floats lose their ``.0``, dates become ISO 8601."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return to_iso_string(value) or str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _normalize_number_text(text: str) -> str:
    """
    Drop digit grouping and turn a decimal comma into a dot:
    "1 234,5", "1,234.5" and "1.234,5" all become "1234.5".
    """
    text = _GROUP_SPACE_RE.sub("", text.strip())
    if "," in text and "." in text:
        if text.rfind(".") > text.rfind(","):
            return text.replace(",", "")
        return text.replace(".", "").replace(",", ".")
    if text.count(",") == 1:
        return text.replace(",", ".")
    return text.replace(",", "")


def _coerce_text(value: Any, policy: HeaderPolicy) -> Optional[str]:
    return stringify(value)


def _coerce_integer(value: Any, policy: HeaderPolicy) -> Optional[int]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (numbers.Real, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return math.floor(value)
    match = _INT_PREFIX_RE.match(_normalize_number_text(stringify(value)))
    if not match:
        return None
    return int(match.group(0))


def _coerce_float(value: Any, policy: HeaderPolicy) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, numbers.Real):
        return value
    if isinstance(value, Decimal):
        return float(value)
    match = _FLOAT_PREFIX_RE.match(_normalize_number_text(stringify(value)))
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def _coerce_boolean(value: Any, policy: HeaderPolicy) -> bool:
    if isinstance(value, bool):
        return value
    truthy = {token.lower() for token in policy.truthy_tokens}
    return stringify(value).strip().lower() in truthy


def _coerce_date(value: Any, policy: HeaderPolicy) -> Optional[str]:
    return parse_date_value(value)


def _coerce_json(value: Any, policy: HeaderPolicy) -> Any:
    if isinstance(value, (dict, list, numbers.Real)):
        return value
    text = stringify(value)
    try:
        return json.loads(text)
    except ValueError:
        return text


_COERCERS: Dict[FieldType, Callable[[Any, HeaderPolicy], Any]] = {
    FieldType.STRING: _coerce_text,
    FieldType.TEXT: _coerce_text,
    FieldType.INTEGER: _coerce_integer,
    FieldType.FLOAT: _coerce_float,
    FieldType.DECIMAL: _coerce_float,
    FieldType.BOOLEAN: _coerce_boolean,
    FieldType.DATE: _coerce_date,
    FieldType.DATETIME: _coerce_date,
    FieldType.TIMESTAMP: _coerce_date,
    FieldType.JSON: _coerce_json,
    FieldType.OTHER: _coerce_text,
}

_missing = set(FieldType) - set(_COERCERS)
if _missing:
    raise RuntimeError(f"No coercer registered for field types: {sorted(m.value for m in _missing)}")


def coerce_value(value: Any, field_type: Any, policy: Optional[HeaderPolicy] = None) -> Any:
    """
    Convert a raw cell into the semantic type of its target field.

    Empty cells (None, blank strings, NaN) are None for every type; strings
    are trimmed before the type-specific rules run. Unknown type names are
    treated as ``other`` (string passthrough).
    """
    if is_empty_cell(value):
        return None
    if isinstance(value, str):
        value = value.strip()

    resolved_type = FieldType.parse(field_type)
    coercer = _COERCERS[resolved_type]
    try:
        return coercer(value, policy or DEFAULT_POLICY)
    except (ValueError, TypeError, ArithmeticError) as exc:
        logger.debug("Could not coerce %r to %s: %s", value, resolved_type.value, exc)
        return None


def coerce_phone_value(value: Any, field_type: Any, policy: Optional[HeaderPolicy] = None) -> Any:
    """
    Phone columns: digits only, leading trunk ``8`` of an 11-digit number
    becomes ``7``. Numeric fields get the digit string coerced to their type;
    boolean, date and JSON fields ignore the phone rule.
    """
    resolved_type = FieldType.parse(field_type)
    if resolved_type in TEXT_TYPES:
        return normalize_phone(value)
    if resolved_type in NUMERIC_TYPES:
        digits = normalize_phone(value)
        return coerce_value(digits, resolved_type, policy)
    return coerce_value(value, resolved_type, policy)
