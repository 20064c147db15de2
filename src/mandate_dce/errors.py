"""
Error taxonomy for the mandate calculator.

Lookups that cannot be satisfied raise :class:`ConfigurationNotFound`, inputs
outside their domain raise :class:`ValidationError`. A benefit-cost ratio with
zero cost is not an error: it is reported with the :data:`UNDEFINED` value.
"""

from utils.logging import log_call


class MandateCalculatorError(Exception):
    """Base class for calculator errors."""


class ConfigurationNotFound(MandateCalculatorError, KeyError):
    """Requested coefficient, WTS entry or latent-class model does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its message; keep it readable
        return str(self.args[0]) if self.args else ""


class ValidationError(MandateCalculatorError, ValueError):
    """An input lies outside its allowed domain."""


class UndefinedRatio:
    """
    Marker for a ratio whose denominator is zero.

    Distinct from ``0``, ``nan`` and ``inf``; falsy, and renders as an em
    dash so tables show "—" rather than a number.
    """

    _instance = None

    def __new__(cls) -> "UndefinedRatio":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __str__(self) -> str:
        return "—"

    def __reduce__(self):
        return (UndefinedRatio, ())


UNDEFINED = UndefinedRatio()


@log_call
def is_undefined(value: object) -> bool:
    """Return True if ``value`` is the undefined-ratio marker."""
    return value is UNDEFINED
