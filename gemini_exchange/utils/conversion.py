"""Locale-independent conversions between JSON values and domain types"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a JSON scalar to Decimal.

    Strings are parsed with Decimal's own grammar, which only accepts '.' as the
    decimal separator, so the result never depends on the host locale.
    Missing values (None or empty string) become zero. NaN and infinities are
    rejected.
    """
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # repr of a float is its shortest round-tripping text, not the binary value
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid decimal value: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid decimal value: {value!r}")
    return result


def to_invariant_string(value: Any) -> str:
    """Render a scalar as text. Decimals keep their exact digits, None becomes ''"""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value, 'f')
    return str(value)


def from_unix_ms(milliseconds: Any) -> datetime:
    """Convert a unix timestamp in milliseconds to an aware UTC datetime"""
    return EPOCH + timedelta(milliseconds=int(to_decimal(milliseconds)))


def to_unix_ms(moment: datetime) -> int:
    """Convert a datetime to unix milliseconds. Naive datetimes are taken as UTC"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)
