"""Input guards shared by the engines."""
import math
from datetime import datetime

from tradex_risk.exceptions import InvalidInputError


def require_positive(name: str, value: float) -> float:
    """Return value if it is a finite number greater than zero."""
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value!r}")
    return value


def require_non_negative(name: str, value: float) -> float:
    """Return value if it is a finite number of zero or more."""
    if value is None or not math.isfinite(value) or value < 0:
        raise InvalidInputError(f"{name} cannot be negative, got {value!r}")
    return value


def require_finite(name: str, value: float) -> float:
    if value is None or not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a finite number, got {value!r}")
    return value


def require_aware(name: str, value: datetime | None) -> datetime | None:
    """Return value if it is None or carries a UTC offset."""
    if value is not None and value.utcoffset() is None:
        raise InvalidInputError(f"{name} must be timezone-aware, got {value!r}")
    return value
