"""
Adapters that turn already-decoded sheets into pipeline rows.
"""
from typing import Any, Dict, List

import numpy as np
import pandas as pd


def _to_python(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def rows_from_dataframe(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a DataFrame into header → value rows.

    Blank cells (NaN/NaT/None) are omitted from the row, as a sheet-to-JSON
    export does, and numpy/pandas scalars become plain Python values.
    """
    headers = [str(column) for column in df.columns]
    rows: List[Dict[str, Any]] = []
    for values in df.itertuples(index=False, name=None):
        row: Dict[str, Any] = {}
        for header, value in zip(headers, values):
            if value is None or (not isinstance(value, (list, dict)) and pd.isna(value)):
                continue
            row[header] = _to_python(value)
        rows.append(row)
    return rows
