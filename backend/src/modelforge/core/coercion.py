"""Value coercion for the closed field type set.

Each coercer takes a raw value (as it arrives from a form or JSON payload)
and returns its canonical representation, or raises CoercionError.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Callable


# Email: permissive local@domain.tld check
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: Basic URL pattern
URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

# Number: optional sign, ASCII digits, optional fraction and exponent
NUMBER_PATTERN = re.compile(
    r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$",
    re.ASCII
)

TRUE_TOKENS = {"true", "t", "yes", "y", "on", "1"}
FALSE_TOKENS = {"false", "f", "no", "n", "off", "0"}


class CoercionError(ValueError):
    """Raised when a value cannot be represented as the requested type."""

    pass


def is_empty(value: Any) -> bool:
    """Check if a value is considered absent."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _coerce_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise CoercionError("expected a string")
    return str(value).strip()


def _coerce_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise CoercionError("expected text")
    return str(value)


def _coerce_number(value: Any) -> int | float:
    # bool is an int subclass; True is not a number here
    if isinstance(value, bool):
        raise CoercionError("expected a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not NUMBER_PATTERN.match(text):
            raise CoercionError("expected a number")
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise CoercionError("expected a number")
    else:
        raise CoercionError("expected a number")

    if math.isnan(number) or math.isinf(number):
        raise CoercionError("expected a finite number")
    return number


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    raise CoercionError("expected true or false")


def _coerce_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            raise CoercionError("expected an ISO date (YYYY-MM-DD)")
    raise CoercionError("expected an ISO date (YYYY-MM-DD)")


def _coerce_email(value: Any) -> str:
    if not isinstance(value, str):
        raise CoercionError("expected an email address")
    text = value.strip()
    if not EMAIL_PATTERN.match(text):
        raise CoercionError("expected an email address")
    local, _, domain = text.rpartition("@")
    return f"{local}@{domain.lower()}"


def _coerce_url(value: Any) -> str:
    if not isinstance(value, str):
        raise CoercionError("expected a URL")
    text = value.strip()
    if not URL_PATTERN.match(text):
        raise CoercionError("expected an http(s) URL")
    return text


COERCERS: dict[str, Callable[[Any], Any]] = {
    "string": _coerce_string,
    "text": _coerce_text,
    "number": _coerce_number,
    "boolean": _coerce_boolean,
    "date": _coerce_date,
    "email": _coerce_email,
    "url": _coerce_url,
}


def coerce(type_name: str, value: Any) -> Any:
    """Coerce a raw value to the canonical representation of type_name.

    Args:
        type_name: One of the closed field type names
        value: The raw, non-empty value

    Returns:
        The canonical value

    Raises:
        CoercionError: If the value does not satisfy the type
        KeyError: If type_name is not a known field type
    """
    return COERCERS[type_name](value)
