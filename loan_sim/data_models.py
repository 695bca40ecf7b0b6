"""Data models for the loan simulator.

This module defines the dataclasses passed between the layers of the
simulation: the immutable loan terms, the market rate timeline, the overpayment
configuration, the mutable simulation cursor and the produced schedule. All
monetary fields are :class:`~loan_sim.money.Money` values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .money import ZERO, Money, Rate, create_rate


class LoanType(Enum):
    """Installment plan of a loan."""

    EQUAL_INSTALLMENTS = "annuity"
    DECREASING_INSTALLMENTS = "decreasing"


class OverpaymentStrategy(Enum):
    """How the engine treats money paid above the required installment.

    ``REDUCE_TERM`` keeps every later payment at least as large as the previous
    one, so extra principal shortens the loan. ``REDUCE_INSTALLMENT``
    recomputes the required payment every month, keeping the term and lowering
    later installments.
    """

    REDUCE_TERM = "term"
    REDUCE_INSTALLMENT = "installment"


@dataclass(frozen=True)
class LoanDefinition:
    """Terms of a loan.

    Attributes
    ----------
    principal: Money
        The borrowed amount. Must be positive.
    term_months: int
        Number of monthly installments, between 1 and 1200.
    type: LoanType
        Equal (annuity) or decreasing installments.
    """

    principal: Money
    term_months: int
    type: LoanType = LoanType.EQUAL_INSTALLMENTS


@dataclass(frozen=True)
class MarketScenario:
    """Annual interest rate for every month of the term."""

    annual_rates: Optional[Tuple[Rate, ...]]

    def __post_init__(self) -> None:
        if self.annual_rates is not None and not isinstance(self.annual_rates, tuple):
            object.__setattr__(self, "annual_rates", tuple(self.annual_rates))

    @classmethod
    def flat(cls, annual_rate, months: int) -> "MarketScenario":
        """Return a scenario where the same annual rate applies to every month."""
        rate = annual_rate if isinstance(annual_rate, Rate) else create_rate(annual_rate)
        return cls(tuple(rate for _ in range(months)))

    def rate_for(self, month: int) -> Rate:
        return self.annual_rates[month]


@dataclass(frozen=True)
class SimulationConfig:
    """Overpayment behaviour for one simulation run.

    ``custom_payments``, when given, holds one amount per month. A positive
    amount means the borrower pays exactly that in the month instead of the
    computed installment; zero leaves the month to the strategy.
    """

    strategy: OverpaymentStrategy = OverpaymentStrategy.REDUCE_TERM
    custom_payments: Optional[Tuple[Money, ...]] = None

    def __post_init__(self) -> None:
        if self.custom_payments is not None and not isinstance(self.custom_payments, tuple):
            object.__setattr__(self, "custom_payments", tuple(self.custom_payments))

    def custom_payment_for(self, month: int) -> Money:
        if self.custom_payments is None:
            return ZERO
        return self.custom_payments[month]


@dataclass
class SimulationState:
    """Mutable cursor advanced by each simulation step."""

    current_balance: Money
    last_total_payment: Money = ZERO
    current_month: int = 0


@dataclass(frozen=True)
class Installment:
    """One month of the schedule."""

    capital: Money
    interest: Money
    payment: Money
    balance: Money


@dataclass
class LoanSchedule:
    """The amortization schedule produced by a simulation run.

    ``items`` is in month order. ``count`` may be lower than the loan term when
    overpayments finish the loan early.
    """

    items: List[Installment] = field(default_factory=list)
    total_interest: Money = ZERO
    total_paid: Money = ZERO

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def total_principal(self) -> Money:
        return self.total_paid - self.total_interest
