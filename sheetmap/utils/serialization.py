"""
JSON payload helpers for mapped records.

Records leave the pipeline as plain dicts, but passthrough columns can still
carry whatever the sheet decoder produced (Decimals, datetimes, NaN floats,
numpy scalars). ``make_json_safe`` folds those into JSON values.
"""
import json
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List

import numpy as np

from sheetmap.utils.date import to_iso_string


def _decimal_to_json(value: Decimal) -> Any:
    # Fractional Decimals stay strings so no precision is lost
    return int(value) if value == value.to_integral() else str(value)


def make_json_safe(value: Any) -> Any:
    """Recursively convert ``value`` into something ``json.dumps`` accepts."""
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None  # NaN / Infinity are not JSON
    if isinstance(value, dict):
        return {str(key): make_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [make_json_safe(item) for item in value]
    if isinstance(value, np.generic):
        return make_json_safe(value.item())
    if isinstance(value, Decimal):
        return _decimal_to_json(value)
    if isinstance(value, (datetime, date)):
        return to_iso_string(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def dumps_records(records: List[Dict[str, Any]]) -> str:
    """Serialize mapped records into the JSON payload handed to an import sink."""
    return json.dumps(make_json_safe(records), ensure_ascii=False)
