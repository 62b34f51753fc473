"""Convert status cell values to floats for Prometheus consumption."""

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Tuple


def to_float(value: Any) -> Tuple[float, bool]:
    """
    Convert a cell value returned by psycopg2 to a float.

    NULL maps to NaN with ok=True. Text and bytes that do not parse as a
    number map to NaN with ok=False, as does any unsupported type.

    Args:
        value: Cell value (int, float, Decimal, datetime, str, bytes or None)

    Returns:
        Tuple[float, bool]: Converted value and whether conversion succeeded
    """
    if value is None:
        return math.nan, True

    if isinstance(value, (int, float, Decimal)):
        return float(value), True

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return float(math.floor(value.timestamp())), True

    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return math.nan, False

    if isinstance(value, str):
        return _parse_float(value)

    return math.nan, False


def _parse_float(text: str) -> Tuple[float, bool]:
    # float() also accepts surrounding whitespace and digit underscores
    if not text or text != text.strip() or "_" in text:
        return math.nan, False
    try:
        return float(text), True
    except ValueError:
        return math.nan, False
