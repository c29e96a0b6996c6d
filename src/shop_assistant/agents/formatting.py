"""Vietnamese display helpers shared by the agents."""

from __future__ import annotations

from datetime import datetime
from typing import Any

MISSING = "Không có thông tin"


def format_vnd(amount: Any) -> str:
    """Format an amount with dot thousands separators, e.g. ``15.990.000 VND``."""
    value = to_number(amount)
    if value is None:
        return f"{amount} VND"
    rounded = round(value)
    return f"{rounded:,}".replace(",", ".") + " VND"


def format_datetime(value: Any) -> str:
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(str(value))
        except ValueError:
            return str(value)
    return moment.strftime("%H:%M:%S %d/%m/%Y")


def to_number(value: Any) -> float | int | None:
    """Coerce ints, floats, numeric strings and driver number types."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    converter = getattr(value, "to_number", None)
    if callable(converter):
        return converter()
    if isinstance(value, str):
        try:
            number = float(value.replace(",", "").strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else number
    return None


def or_missing(value: Any, missing: str = MISSING) -> str:
    if value is None or value == "":
        return missing
    return str(value)
