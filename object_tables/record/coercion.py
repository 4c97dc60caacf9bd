"""Conversion of decoded JSON values into column values."""

import base64
import binascii
import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from ..types import TemporalFormat

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
EPOCH_DATE = date(1970, 1, 1)
MILLIS_PER_SECOND = 1000
MILLIS_PER_DAY = 86400 * MILLIS_PER_SECOND

_EPOCH_FORMATS = (
    TemporalFormat.EPOCH_MILLISECONDS,
    TemporalFormat.EPOCH_SECONDS,
    TemporalFormat.EPOCH_DAYS,
)


class CoercionError(ValueError):
    """A value cannot be converted to the requested column type."""


def is_number(value: Any) -> bool:
    return isinstance(value, (int, Decimal, float)) and not isinstance(value, bool)


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise CoercionError(f"not a boolean: {value!r}")


def to_integer(value: Any) -> int:
    if is_number(value):
        if isinstance(value, int):
            return value
        try:
            integral = int(value)
        except (ValueError, OverflowError):
            raise CoercionError(f"not a finite number: {value}") from None
        if integral != value:
            raise CoercionError(f"not an integral number: {value}")
        return integral
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise CoercionError(f"not an integer: {value!r}") from None
    raise CoercionError(f"not a number: {value!r}")


def to_double(value: Any) -> float:
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise CoercionError(f"not a number: {value!r}") from None
    raise CoercionError(f"not a number: {value!r}")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if is_number(value):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise CoercionError(f"not a decimal: {value!r}") from None
    raise CoercionError(f"not a number: {value!r}")


def to_text(value: Any) -> str:
    """Render a value as text: strings verbatim, anything else as compact JSON."""
    if isinstance(value, str):
        return value
    return to_json_text(value)


def to_json_text(value: Any) -> str:
    """Serialize a decoded JSON value compactly, keeping decimal digits exact."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        return json.dumps(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        items = (f"{to_json_text(str(k))}:{to_json_text(v)}" for k, v in value.items())
        return "{" + ",".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(to_json_text(v) for v in value) + "]"
    raise CoercionError(f"not a JSON value: {value!r}")


def to_binary(value: Any) -> bytes:
    if not isinstance(value, str):
        raise CoercionError(f"expected base64 text, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise CoercionError(f"invalid base64: {e}") from e


def to_string_map(value: Any) -> Dict[str, Optional[str]]:
    if not isinstance(value, dict):
        raise CoercionError(f"expected a JSON object, got {type(value).__name__}")
    return {k: (None if v is None else to_text(v)) for k, v in value.items()}


def to_double_map(value: Any) -> Dict[str, Optional[float]]:
    if not isinstance(value, dict):
        raise CoercionError(f"expected a JSON object, got {type(value).__name__}")
    return {k: (None if v is None else to_double(v)) for k, v in value.items()}


def to_epoch_millis(value: Any, fmt: Optional[str] = None) -> int:
    """Convert a timestamp value to milliseconds since the epoch (UTC).

    Numbers are read as epoch milliseconds unless ``fmt`` names another epoch
    unit. Text is read as ISO-8601 unless ``fmt`` is a ``strptime`` pattern or
    an epoch unit. Times without a zone are taken as UTC.
    """
    if is_number(value) and (fmt is None or fmt in _EPOCH_FORMATS):
        return _epoch_number_to_millis(
            to_decimal(value), fmt or TemporalFormat.EPOCH_MILLISECONDS
        )

    if is_number(value):
        value = str(value)
    elif not isinstance(value, str):
        raise CoercionError(f"not a timestamp: {value!r}")

    if fmt in _EPOCH_FORMATS:
        return _epoch_number_to_millis(to_decimal(value), fmt)

    moment = _parse_datetime(value, fmt)
    delta = moment - EPOCH
    return (
        delta.days * MILLIS_PER_DAY
        + delta.seconds * MILLIS_PER_SECOND
        + delta.microseconds // 1000
    )


def to_epoch_days(value: Any, fmt: Optional[str] = None) -> int:
    """Convert a date value to days since the epoch.

    Numbers are read as epoch days unless ``fmt`` names another epoch unit.
    Text is read as ISO-8601 unless ``fmt`` is a ``strptime`` pattern.
    """
    if (is_number(value) and (fmt is None or fmt in _EPOCH_FORMATS)) or (
        isinstance(value, str)
        and fmt in (TemporalFormat.EPOCH_SECONDS, TemporalFormat.EPOCH_MILLISECONDS)
    ):
        number = to_decimal(value)
        millis = _epoch_number_to_millis(number, fmt or TemporalFormat.EPOCH_DAYS)
        return millis // MILLIS_PER_DAY

    if is_number(value):
        value = str(value)
    elif not isinstance(value, str):
        raise CoercionError(f"not a date: {value!r}")

    if fmt == TemporalFormat.EPOCH_DAYS:
        return to_integer(value)

    return (_parse_datetime(value, fmt).date() - EPOCH_DATE).days


def epoch_days_to_date(days: int) -> date:
    return date.fromordinal(EPOCH_DATE.toordinal() + days)


def _epoch_number_to_millis(number: Decimal, fmt: str) -> int:
    if not number.is_finite():
        raise CoercionError(f"not a finite number: {number}")
    if fmt == TemporalFormat.EPOCH_MILLISECONDS:
        return int(number)
    if fmt == TemporalFormat.EPOCH_SECONDS:
        return int(number * MILLIS_PER_SECOND)
    if fmt == TemporalFormat.EPOCH_DAYS:
        return int(number * MILLIS_PER_DAY)
    raise CoercionError(f"numeric value cannot be read with format [{fmt}]")


def _parse_datetime(text: str, fmt: Optional[str]) -> datetime:
    try:
        if fmt is None or fmt == TemporalFormat.ISO_8601:
            moment = date_parser.isoparse(text.strip())
        else:
            moment = datetime.strptime(text.strip(), fmt)
    except (ValueError, OverflowError) as e:
        raise CoercionError(str(e)) from e
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment
