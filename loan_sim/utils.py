"""Utility functions for the loan simulator.

This module provides helpers for parsing user input into Python data types:
amounts with ``k``/``m`` suffixes, percentages, ``MONTH:VALUE`` pairs and the
two CSV inputs accepted by the command line (a custom payment plan and a
single-row file of loan parameters). The simulation engine itself never reads
files; everything here produces plain values for it.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .data_models import LoanType, OverpaymentStrategy
from .money import ZERO, Money, Rate, create_rate

logger = logging.getLogger(__name__)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails or the value is not finite.
    """
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional suffixes.

    Accepts plain numbers ("500000", "1,250.50") and shorthand with ``k``/``m``
    suffixes (e.g. "500k" meaning 500 000).
    """
    text = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    return decimal_from_str(text) * factor


def percent_to_rate(value) -> Rate:
    """Turn a percentage ("5", "5%", 5.25) into an annual :class:`Rate` fraction."""
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    return create_rate(decimal_from_str(text) / 100)


def parse_month_value(item: str) -> Tuple[int, str]:
    """Split a ``MONTH:VALUE`` string. Months are 1-based."""
    parts = item.split(":")
    if len(parts) != 2:
        raise ValueError(f"Expected MONTH:VALUE format; got {item}")
    month_str, value = parts
    try:
        month = int(month_str.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid month in {item}") from exc
    if month < 1:
        raise ValueError(f"Month must be 1 or greater; got {month}")
    return month, value.strip()


def build_rate_timeline(base: Rate, months: int, changes: Iterable[Tuple[int, Rate]] = ()) -> List[Rate]:
    """Return one rate per month starting from ``base``.

    Each change ``(month, rate)`` applies from that 1-based month onwards until
    the next change. Changes beyond the term are ignored.
    """
    rates = [base] * months
    for month, rate in sorted(changes, key=lambda c: c[0]):
        for i in range(month - 1, months):
            rates[i] = rate
    return rates


def build_custom_payments(
    months: int,
    monthly: Money = ZERO,
    specific: Iterable[Tuple[int, Money]] = (),
) -> List[Money]:
    """Return the per-month custom payment list.

    ``monthly`` fills every month; ``specific`` entries override single
    (1-based) months. Entries beyond the term raise ``ValueError``.
    """
    payments = [monthly] * months
    for month, amount in specific:
        if month > months:
            raise ValueError(f"Payment month {month} is beyond the {months}-month term")
        payments[month - 1] = amount
    return payments


def apply_payment_schedule_csv(path: Path, payments: List[Money]) -> List[Money]:
    """Add the amounts of a ``Month,Amount`` CSV file to ``payments``.

    The file must have a header row. Months are 1-based; rows with an invalid
    month, a month outside the term or a non-positive amount are skipped with a
    warning. Returns a new list; ``payments`` is left untouched.
    """
    result = list(payments)
    with Path(path).open(newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None or len(header) < 2:
            raise ValueError("Payment schedule CSV must have at least two columns (Month, Amount)")
        applied = 0
        for line_no, row in enumerate(reader, start=2):
            if len(row) < 2 or not any(cell.strip() for cell in row):
                continue
            try:
                month = int(decimal_from_str(row[0]))
                amount = decimal_from_str(row[1])
            except ValueError:
                logger.warning("Skipping line %d of %s: not numeric", line_no, path)
                continue
            if not 1 <= month <= len(result) or amount <= 0:
                logger.warning("Skipping line %d of %s: month %s, amount %s", line_no, path, month, amount)
                continue
            result[month - 1] = result[month - 1] + Money.from_major(amount)
            applied += 1
    logger.info("Applied %d custom payments from %s", applied, path)
    return result


@dataclass
class LoanParameters:
    """Loan inputs read from a parameters CSV file."""

    principal: Money
    term_months: int
    loan_type: LoanType
    annual_rate: Rate
    strategy: OverpaymentStrategy
    monthly_extra: Money


LOAN_PARAMETER_COLUMNS: Sequence[str] = (
    "PrincipalAmount",
    "TermMonths",
    "LoanType",
    "AnnualRate",
    "OverpaymentPlan",
    "MonthlyExtra",
)


def load_loan_parameters(path: Path) -> LoanParameters:
    """Read loan parameters from a CSV file with a header and one data row.

    Columns, in order: ``PrincipalAmount``, ``TermMonths``, ``LoanType``
    (0 equal, 1 decreasing), ``AnnualRate`` (decimal fraction, 0.05 is 5 %),
    ``OverpaymentPlan`` (0 reduce term, 1 reduce installment) and
    ``MonthlyExtra`` (flat custom payment, 0 for none).
    """
    with Path(path).open(newline="", encoding="utf-8") as f:
        rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise ValueError("The CSV file does not contain enough data rows")
    row = rows[1]
    if len(row) < len(LOAN_PARAMETER_COLUMNS):
        raise ValueError(f"Expected columns: {', '.join(LOAN_PARAMETER_COLUMNS)}")

    principal, term, type_code, rate, plan, extra = (decimal_from_str(c) for c in row[:6])
    if principal <= 0 or term <= 0 or rate < 0 or extra < 0:
        raise ValueError("CSV contains out-of-bounds values (e.g. negative principal)")
    if type_code not in (0, 1):
        raise ValueError("Loan type must be 0 or 1")
    if plan not in (0, 1):
        raise ValueError("Overpayment plan must be 0 or 1")

    return LoanParameters(
        principal=Money.from_major(principal),
        term_months=int(term),
        loan_type=LoanType.EQUAL_INSTALLMENTS if type_code == 0 else LoanType.DECREASING_INSTALLMENTS,
        annual_rate=create_rate(rate),
        strategy=OverpaymentStrategy.REDUCE_TERM if plan == 0 else OverpaymentStrategy.REDUCE_INSTALLMENT,
        monthly_extra=Money.from_major(extra),
    )
