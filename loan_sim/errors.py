"""Error kinds raised by the loan simulation engine.

Every failure is deterministic and non-retryable: either the inputs are
invalid or the requested repayment plan cannot be carried out. Each kind has
its own exception class so callers can catch precisely what they handle, and
all of them derive from :class:`FinanceError`.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class FinanceErrorKind(Enum):
    INVALID_PRINCIPAL = "invalid_principal"
    INVALID_MONTHS = "invalid_months"
    INVALID_ARGUMENT = "invalid_argument"
    NULL_RATES = "null_rates"
    INVALID_RATE = "invalid_rate"
    ALLOCATION_FAILED = "allocation_failed"
    NEGATIVE_AMORTIZATION = "negative_amortization"
    PAYMENT_TOO_LARGE = "payment_too_large"
    NUMERIC_OVERFLOW = "numeric_overflow"


_MESSAGES: Dict[FinanceErrorKind, str] = {
    FinanceErrorKind.INVALID_PRINCIPAL: "Invalid principal amount",
    FinanceErrorKind.INVALID_MONTHS: "Invalid number of months",
    FinanceErrorKind.INVALID_ARGUMENT: "Invalid argument",
    FinanceErrorKind.NULL_RATES: "Rates sequence is missing",
    FinanceErrorKind.INVALID_RATE: "Invalid interest rate value",
    FinanceErrorKind.ALLOCATION_FAILED: "Memory allocation failed",
    FinanceErrorKind.NEGATIVE_AMORTIZATION: "Payment is smaller than accrued interest",
    FinanceErrorKind.PAYMENT_TOO_LARGE: "Custom payment exceeds loan balance plus interest",
    FinanceErrorKind.NUMERIC_OVERFLOW: "Numeric overflow during calculation",
}


def error_message(kind: FinanceErrorKind) -> str:
    """Return the fixed description for ``kind``."""
    return _MESSAGES.get(kind, "Unknown error")


class FinanceError(Exception):
    """Base class for all simulation failures."""

    kind: FinanceErrorKind = FinanceErrorKind.INVALID_ARGUMENT

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        message = error_message(self.kind)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidPrincipalError(FinanceError):
    kind = FinanceErrorKind.INVALID_PRINCIPAL


class InvalidMonthsError(FinanceError):
    kind = FinanceErrorKind.INVALID_MONTHS


class InvalidArgumentError(FinanceError):
    kind = FinanceErrorKind.INVALID_ARGUMENT


class NullRatesError(FinanceError):
    kind = FinanceErrorKind.NULL_RATES


class InvalidRateError(FinanceError):
    kind = FinanceErrorKind.INVALID_RATE


class AllocationFailedError(FinanceError):
    kind = FinanceErrorKind.ALLOCATION_FAILED


class NegativeAmortizationError(FinanceError):
    kind = FinanceErrorKind.NEGATIVE_AMORTIZATION


class PaymentTooLargeError(FinanceError):
    kind = FinanceErrorKind.PAYMENT_TOO_LARGE


class NumericOverflowError(FinanceError):
    kind = FinanceErrorKind.NUMERIC_OVERFLOW

