"""Core simulation engine for the loan simulator.

This module builds amortization schedules month by month. Each step accrues
interest on the balance carried over from the previous month, works out the
required installment, decides the payment actually charged (custom payment or
overpayment strategy) and applies it. Results are returned as a
``LoanSchedule`` together with running totals; any invalid input or
impossible repayment plan raises a :class:`~loan_sim.errors.FinanceError`.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List

from .data_models import (
    Installment,
    LoanDefinition,
    LoanSchedule,
    LoanType,
    MarketScenario,
    OverpaymentStrategy,
    SimulationConfig,
    SimulationState,
)
from .errors import (
    AllocationFailedError,
    InvalidArgumentError,
    InvalidMonthsError,
    InvalidPrincipalError,
    InvalidRateError,
    NegativeAmortizationError,
    NullRatesError,
    NumericOverflowError,
    PaymentTooLargeError,
)
from .loan_math import baseline_payment, monthly_interest
from .money import MONEY_MAX, ONE_MINOR_UNIT, ZERO, Money, Rate

MAX_LOAN_MONTHS = 1200  # 100 years
MAX_ANNUAL_RATE = Decimal("10")  # 1000 % p.a.


def _validate_loan(loan: LoanDefinition) -> None:
    if not isinstance(loan, LoanDefinition):
        raise InvalidArgumentError("loan definition is required")
    if not isinstance(loan.principal, Money):
        raise InvalidArgumentError("principal must be a Money value")
    if not loan.principal.is_positive() or loan.principal.minor > MONEY_MAX:
        raise InvalidPrincipalError(str(loan.principal))
    if isinstance(loan.term_months, bool) or not isinstance(loan.term_months, int):
        raise InvalidMonthsError(repr(loan.term_months))
    if not 1 <= loan.term_months <= MAX_LOAN_MONTHS:
        raise InvalidMonthsError(f"{loan.term_months} not in 1..{MAX_LOAN_MONTHS}")
    if not isinstance(loan.type, LoanType):
        raise InvalidArgumentError(f"unknown loan type {loan.type!r}")


def _validate_market(loan: LoanDefinition, market: MarketScenario) -> None:
    if not isinstance(market, MarketScenario):
        raise InvalidArgumentError("market scenario is required")
    if not market.annual_rates:
        raise NullRatesError()
    if len(market.annual_rates) != loan.term_months:
        raise InvalidArgumentError(
            f"expected {loan.term_months} rates, got {len(market.annual_rates)}"
        )
    for month, rate in enumerate(market.annual_rates, start=1):
        if not isinstance(rate, Rate) or not rate.is_valid(MAX_ANNUAL_RATE):
            raise InvalidRateError(f"month {month}: {getattr(rate, 'value', rate)}")


def _validate_config(loan: LoanDefinition, config: SimulationConfig) -> None:
    if not isinstance(config, SimulationConfig):
        raise InvalidArgumentError("simulation config is required")
    if not isinstance(config.strategy, OverpaymentStrategy):
        raise InvalidArgumentError(f"unknown overpayment strategy {config.strategy!r}")
    if config.custom_payments is None:
        return
    if len(config.custom_payments) != loan.term_months:
        raise InvalidArgumentError(
            f"expected {loan.term_months} custom payments, got {len(config.custom_payments)}"
        )
    if not all(isinstance(p, Money) for p in config.custom_payments):
        raise InvalidArgumentError("custom payments must be Money values")


def validate_inputs(loan: LoanDefinition, market: MarketScenario, config: SimulationConfig) -> None:
    """Raise the matching ``FinanceError`` for the first invalid input found."""
    _validate_loan(loan)
    _validate_market(loan, market)
    _validate_config(loan, config)


def resolve_payment(
    config: SimulationConfig,
    state: SimulationState,
    baseline: Money,
    interest: Money,
) -> Money:
    """Decide the payment charged in the state's current month.

    A positive custom payment is used as is, provided it covers the interest
    and does not exceed what is owed (balance plus interest). Otherwise the
    strategy applies: ``REDUCE_INSTALLMENT`` charges the baseline while
    ``REDUCE_TERM`` never lets the payment drop below last month's.
    """
    custom = config.custom_payment_for(state.current_month)
    if custom.is_positive():
        if custom > state.current_balance + interest:
            raise PaymentTooLargeError(
                f"month {state.current_month + 1}: {custom} > {state.current_balance + interest}"
            )
        if custom < interest:
            raise NegativeAmortizationError(
                f"month {state.current_month + 1}: {custom} < interest {interest}"
            )
        return custom

    if config.strategy is OverpaymentStrategy.REDUCE_INSTALLMENT:
        payment = baseline
    else:
        floor = baseline if state.current_month == 0 else state.last_total_payment
        payment = max(baseline, floor)

    if payment <= interest:
        payment = interest + ONE_MINOR_UNIT
    return payment


def init_state(principal: Money) -> SimulationState:
    return SimulationState(current_balance=principal, last_total_payment=ZERO, current_month=0)


def is_complete(loan: LoanDefinition, state: SimulationState) -> bool:
    """Return True once the balance is repaid or every month of the term has run."""
    return state.current_balance <= ZERO or state.current_month >= loan.term_months


def simulation_step(
    loan: LoanDefinition,
    market: MarketScenario,
    config: SimulationConfig,
    state: SimulationState,
) -> Installment:
    """Simulate one month, advance ``state`` and return the month's installment."""
    if state.current_month >= loan.term_months:
        raise InvalidMonthsError(f"month {state.current_month + 1} is past the term")

    rate = market.rate_for(state.current_month)
    interest = monthly_interest(state.current_balance, rate)
    required = baseline_payment(loan, market, state, interest)
    payment = resolve_payment(config, state, required, interest)

    capital = min(payment - interest, state.current_balance)
    is_last_month = state.current_month == loan.term_months - 1
    if is_last_month or state.current_balance - capital <= ZERO:
        # Settle the loan exactly: the final payment is whatever is still owed.
        capital = state.current_balance
        payment = capital + interest

    state.last_total_payment = payment
    state.current_balance = max(state.current_balance - capital, ZERO)
    state.current_month += 1

    return Installment(
        capital=capital,
        interest=interest,
        payment=payment,
        balance=state.current_balance,
    )


def _checked_add(total: Money, amount: Money) -> Money:
    if total.minor > MONEY_MAX - amount.minor:
        raise NumericOverflowError("schedule totals exceed the Money range")
    return total + amount


def run_loan_simulation(
    loan: LoanDefinition,
    market: MarketScenario,
    config: SimulationConfig,
) -> LoanSchedule:
    """Compute the full amortization schedule for a loan.

    Parameters
    ----------
    loan: LoanDefinition
        Principal, term and installment type.
    market: MarketScenario
        One annual rate per month of the term. A flat rate is simply
        ``MarketScenario.flat(rate, term_months)``.
    config: SimulationConfig
        Overpayment strategy and optional per-month custom payments.

    Returns
    -------
    LoanSchedule
        The installments in month order with total interest and total paid.
        The schedule stops as soon as the balance reaches zero.

    Raises
    ------
    FinanceError
        A subclass matching the first problem found. Validation happens before
        any month is simulated; no partial schedule is ever returned.
    """
    validate_inputs(loan, market, config)

    items: List[Installment] = []
    total_interest = ZERO
    total_paid = ZERO
    state = init_state(loan.principal)

    try:
        while not is_complete(loan, state):
            installment = simulation_step(loan, market, config, state)
            items.append(installment)
            total_interest = _checked_add(total_interest, installment.interest)
            total_paid = _checked_add(total_paid, installment.payment)
    except MemoryError as exc:
        raise AllocationFailedError("schedule storage") from exc

    return LoanSchedule(items=items, total_interest=total_interest, total_paid=total_paid)


def summarize(loan: LoanDefinition, schedule: LoanSchedule) -> Dict[str, object]:
    """Return aggregate metrics for a finished schedule.

    Money figures are returned as ``Money`` so that callers decide on the
    presentation; counts are plain integers.
    """
    payments = [item.payment for item in schedule.items]
    return {
        "principal": loan.principal,
        "total_interest": schedule.total_interest,
        "total_paid": schedule.total_paid,
        "term_months": loan.term_months,
        "payments_made": schedule.count,
        "months_saved": loan.term_months - schedule.count,
        "first_payment": payments[0] if payments else ZERO,
        "last_payment": payments[-1] if payments else ZERO,
        "max_payment": max(payments) if payments else ZERO,
    }
