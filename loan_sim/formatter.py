"""Output helpers for the loan simulator.

This module renders schedules and summaries as plain text tables. Money values
are printed as ``major.minor`` through :func:`format_money`; no currency math
happens here beyond the subtraction used for the principal total.
"""

from __future__ import annotations

from typing import Dict, Iterable

from .data_models import Installment, LoanSchedule
from .money import Money

RULE = "-" * 67


def format_money(amount: Money) -> str:
    return str(amount)


def print_schedule(items: Iterable[Installment], start: int = 1) -> None:
    """Print installments as a table numbered from ``start``."""
    print("\nLoan Schedule:")
    print(RULE)
    print(f"| {'No.':>3} | {'Principal':>12} | {'Interest':>12} | {'Payment':>12} | {'Balance':>12} |")
    print(RULE)
    for number, item in enumerate(items, start=start):
        print(
            f"| {number:>3} | {format_money(item.capital):>12} | {format_money(item.interest):>12} "
            f"| {format_money(item.payment):>12} | {format_money(item.balance):>12} |"
        )


def print_totals(schedule: LoanSchedule) -> None:
    print(RULE)
    print(f"Total Principal Paid: {format_money(schedule.total_principal):>15}")
    print(f"Total Interest Cost:  {format_money(schedule.total_interest):>15}")
    print(f"Total Amount Paid:    {format_money(schedule.total_paid):>15}")
    print(RULE)


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print(RULE)
    print(f"Principal          : {summary['principal']}")
    print(f"Total interest     : {summary['total_interest']}")
    print(f"Total paid         : {summary['total_paid']}")
    print(f"Payments made      : {summary['payments_made']} of {summary['term_months']}")
    if summary.get("months_saved"):
        print(f"Term reduction     : {summary['months_saved']} months")
    print(f"First payment      : {summary['first_payment']}")
    print(f"Last payment       : {summary['last_payment']}")
    print(f"Highest payment    : {summary['max_payment']}")
    print(RULE)


def print_comparison(s1: Dict[str, object], s2: Dict[str, object], labels=("Scenario1", "Scenario2")) -> None:
    """Print two summaries side by side.

    The difference column is ``second - first``; a negative value means the
    second scenario is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {labels[0]:>18s} {labels[1]:>18s} {'Difference':>15s}")
    for key in ("total_interest", "total_paid"):
        v1, v2 = s1[key], s2[key]
        print(f"{key:20s} {format_money(v1):>18s} {format_money(v2):>18s} {format_money(v2 - v1):>15s}")
    c1, c2 = s1["payments_made"], s2["payments_made"]
    print(f"{'payments_made':20s} {c1:>18d} {c2:>18d} {c2 - c1:>15d}")
    print("=" * 72)
