"""Interest and required payment calculations.

These functions are pure: they read the loan, the market rates and the current
simulation state and return Money values. They never modify the state.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, Overflow, getcontext

from .data_models import LoanDefinition, LoanType, MarketScenario, SimulationState
from .errors import InvalidRateError, NumericOverflowError
from .money import MONEY_MAX, ONE_MINOR_UNIT, ZERO, Money, Rate

getcontext().prec = 28  # increase precision for financial calculations


def monthly_interest(balance: Money, rate: Rate) -> Money:
    """Return one month of interest on ``balance`` at the annual ``rate``.

    The result is ``balance * rate / 12`` rounded to the nearest minor unit,
    or zero when the rate is zero.
    """
    if rate.is_zero():
        return ZERO
    return balance.mul(rate.monthly)


def annuity_payment(balance: Money, monthly_rate: Decimal, remaining_months: int) -> Money:
    """Return the equal installment that pays off ``balance`` in ``remaining_months``.

    The formula is:

        payment = B * i * (1 + i)^n / ((1 + i)^n - 1)

    where ``B`` is the balance, ``i`` the monthly rate and ``n`` the number of
    remaining months. With a zero rate the payment is simply ``B / n``.

    Raises
    ------
    InvalidRateError
        If the monthly rate is negative or not finite.
    NumericOverflowError
        If the annuity factor degenerates (``(1 + i)^n == 1``) or the payment
        does not fit in the Money range.
    """
    if balance <= ZERO:
        return ZERO
    if remaining_months <= 0:
        return balance
    if not monthly_rate.is_finite() or monthly_rate < 0:
        raise InvalidRateError(f"monthly rate {monthly_rate}")
    if monthly_rate == 0:
        return balance.div(remaining_months)

    try:
        factor = (1 + monthly_rate) ** remaining_months
    except Overflow as exc:
        raise NumericOverflowError("annuity factor out of range") from exc
    if not factor.is_finite() or factor - 1 == 0:
        raise NumericOverflowError("degenerate annuity factor")

    exact = Decimal(balance.minor) * monthly_rate * factor / (factor - 1)
    if not exact.is_finite() or exact > MONEY_MAX:
        raise NumericOverflowError("annuity payment out of range")
    return Money(int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP)))


def baseline_payment(
    loan: LoanDefinition,
    market: MarketScenario,
    state: SimulationState,
    interest: Money,
) -> Money:
    """Return the payment the loan requires in the state's current month.

    Equal installments re-solve the annuity for the remaining balance and
    months, so a rate change or an earlier overpayment is reflected at once.
    Decreasing installments repay ``balance / remaining_months`` of capital
    plus this month's interest.
    """
    remaining_months = loan.term_months - state.current_month

    if loan.type is LoanType.DECREASING_INSTALLMENTS:
        return state.current_balance.div(remaining_months) + interest

    rate = market.rate_for(state.current_month)
    payment = annuity_payment(state.current_balance, rate.monthly, remaining_months)
    # Never let the installment fall below the interest while months remain,
    # otherwise the balance would stop shrinking.
    if payment < interest and remaining_months > 1:
        payment = interest + ONE_MINOR_UNIT
    return payment
