from decimal import Decimal

import pytest

from loan_sim import engine
from loan_sim.data_models import (
    Installment,
    LoanDefinition,
    LoanType,
    MarketScenario,
    OverpaymentStrategy,
    SimulationConfig,
    SimulationState,
)
from loan_sim.engine import (
    init_state,
    is_complete,
    resolve_payment,
    run_loan_simulation,
    simulation_step,
    summarize,
)
from loan_sim.errors import (
    AllocationFailedError,
    FinanceError,
    FinanceErrorKind,
    InvalidArgumentError,
    InvalidMonthsError,
    InvalidPrincipalError,
    InvalidRateError,
    NegativeAmortizationError,
    NullRatesError,
    NumericOverflowError,
    PaymentTooLargeError,
    error_message,
)
from loan_sim.money import MONEY_MAX, ZERO, Money, create_rate


def make_loan(principal="10000", months=12, loan_type=LoanType.EQUAL_INSTALLMENTS):
    return LoanDefinition(principal=Money.from_major(principal), term_months=months, type=loan_type)


def custom_payments(months, entries):
    payments = [ZERO] * months
    for index, amount in entries.items():
        payments[index] = Money.from_major(amount)
    return payments


# --- state and completion -------------------------------------------------


def test_init_state():
    state = init_state(Money.from_major(100000))
    assert state.current_balance == Money.from_major(100000)
    assert state.last_total_payment.is_zero()
    assert state.current_month == 0


def test_is_complete_not_finished():
    state = SimulationState(current_balance=Money.from_major(1000), current_month=5)
    assert not is_complete(make_loan(months=12), state)


def test_is_complete_balance_zero():
    state = SimulationState(current_balance=ZERO, current_month=5)
    assert is_complete(make_loan(months=12), state)


def test_is_complete_term_over():
    state = SimulationState(current_balance=Money.from_major(100), current_month=12)
    assert is_complete(make_loan(months=12), state)


# --- payment resolution ---------------------------------------------------


def test_resolve_reduce_term_keeps_last_payment():
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_TERM)
    state = SimulationState(current_balance=Money(500000), last_total_payment=Money(90000), current_month=3)
    assert resolve_payment(config, state, Money(80000), Money(1000)) == Money(90000)


def test_resolve_reduce_term_first_month_uses_baseline():
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_TERM)
    state = SimulationState(current_balance=Money(500000))
    assert resolve_payment(config, state, Money(80000), Money(1000)) == Money(80000)


def test_resolve_reduce_installment_uses_baseline():
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_INSTALLMENT)
    state = SimulationState(current_balance=Money(500000), last_total_payment=Money(90000), current_month=3)
    assert resolve_payment(config, state, Money(80000), Money(1000)) == Money(80000)


def test_resolve_raises_payment_above_interest():
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_INSTALLMENT)
    state = SimulationState(current_balance=Money(500000), current_month=3)
    assert resolve_payment(config, state, Money(500), Money(1000)) == Money(1001)


def test_resolve_custom_payment_bounds():
    state = SimulationState(current_balance=Money(10000))
    interest = Money(100)

    exact_interest = SimulationConfig(custom_payments=[Money(100)])
    assert resolve_payment(exact_interest, state, Money(5000), interest) == Money(100)

    full_payoff = SimulationConfig(custom_payments=[Money(10100)])
    assert resolve_payment(full_payoff, state, Money(5000), interest) == Money(10100)

    with pytest.raises(PaymentTooLargeError):
        resolve_payment(SimulationConfig(custom_payments=[Money(10101)]), state, Money(5000), interest)
    with pytest.raises(NegativeAmortizationError):
        resolve_payment(SimulationConfig(custom_payments=[Money(99)]), state, Money(5000), interest)


def test_resolve_ignores_zero_custom_payment():
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_INSTALLMENT, custom_payments=[ZERO])
    state = SimulationState(current_balance=Money(10000))
    assert resolve_payment(config, state, Money(5000), Money(100)) == Money(5000)


# --- single steps ---------------------------------------------------------


def test_step_standard_payment():
    loan = make_loan("1000", months=2)
    market = MarketScenario.flat(0, 2)
    state = init_state(loan.principal)

    installment = simulation_step(loan, market, SimulationConfig(), state)

    assert installment == Installment(capital=Money(50000), interest=ZERO, payment=Money(50000), balance=Money(50000))
    assert state.current_month == 1
    assert state.last_total_payment == Money(50000)


def test_step_custom_overpayment():
    loan = make_loan("1000", months=10)
    market = MarketScenario.flat(0, 10)
    config = SimulationConfig(custom_payments=custom_payments(10, {0: "800"}))
    state = init_state(loan.principal)

    installment = simulation_step(loan, market, config, state)

    assert installment.payment == Money(80000)
    assert installment.balance == Money(20000)


def test_step_last_month_settles_balance():
    loan = make_loan("1000", months=3)
    market = MarketScenario.flat("0.05", 3)
    state = SimulationState(current_balance=Money(12345), last_total_payment=Money(100), current_month=2)

    installment = simulation_step(loan, market, SimulationConfig(), state)

    assert installment.capital == Money(12345)
    assert installment.payment == installment.capital + installment.interest
    assert installment.balance == ZERO
    assert state.current_balance == ZERO


def test_step_past_term_is_rejected():
    loan = make_loan("1000", months=2)
    state = SimulationState(current_balance=Money(100), current_month=2)
    with pytest.raises(InvalidMonthsError):
        simulation_step(loan, MarketScenario.flat(0, 2), SimulationConfig(), state)


# --- full runs ------------------------------------------------------------


def test_zero_rate_annuity():
    loan = make_loan("1200", months=12)
    schedule = run_loan_simulation(loan, MarketScenario.flat(0, 12), SimulationConfig())

    assert schedule.count == 12
    assert all(item.payment == Money.from_major(100) for item in schedule.items)
    assert schedule.total_interest == ZERO
    assert schedule.total_paid == Money.from_major(1200)


def test_happy_path_closes_to_zero():
    loan = make_loan("10000", months=6)
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.05", 6), SimulationConfig())

    assert schedule.count == 6
    assert schedule.items[-1].balance.is_zero()
    assert schedule.total_paid == loan.principal + schedule.total_interest


@pytest.mark.parametrize("loan_type", list(LoanType))
@pytest.mark.parametrize("strategy", list(OverpaymentStrategy))
@pytest.mark.parametrize("rate, months", [("0.05", 12), ("0.0725", 360), ("0.19", 60), ("0", 7)])
def test_schedule_invariants(loan_type, strategy, rate, months):
    loan = make_loan("250000", months=months, loan_type=loan_type)
    schedule = run_loan_simulation(loan, MarketScenario.flat(rate, months), SimulationConfig(strategy=strategy))

    assert schedule.total_paid == schedule.total_interest + loan.principal
    assert schedule.count <= months
    assert schedule.items[-1].balance == ZERO
    for item in schedule.items:
        assert item.balance >= ZERO
        assert item.capital >= ZERO
        assert item.interest >= ZERO
        assert item.payment == item.capital + item.interest


def test_decreasing_installments_shrink():
    loan = make_loan("12000", months=12, loan_type=LoanType.DECREASING_INSTALLMENTS)
    config = SimulationConfig(strategy=OverpaymentStrategy.REDUCE_INSTALLMENT)
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.06", 12), config)

    assert schedule.items[0].capital == Money.from_major(1000)
    assert schedule.items[0].payment == Money.from_major(1060)
    assert schedule.items[-1].payment < schedule.items[0].payment
    assert schedule.count == 12


def test_negative_amortization_guard():
    loan = make_loan("100000", months=12)
    config = SimulationConfig(custom_payments=[Money.from_major(10)] * 12)

    with pytest.raises(NegativeAmortizationError) as excinfo:
        run_loan_simulation(loan, MarketScenario.flat("0.05", 12), config)
    assert excinfo.value.kind is FinanceErrorKind.NEGATIVE_AMORTIZATION


def test_payment_too_large():
    loan = make_loan("1000", months=12)
    config = SimulationConfig(custom_payments=custom_payments(12, {0: "2000"}))

    with pytest.raises(PaymentTooLargeError):
        run_loan_simulation(loan, MarketScenario.flat(0, 12), config)


def test_overpayment_reduce_term_shortens_loan():
    loan = make_loan("10000", months=12)
    config = SimulationConfig(
        strategy=OverpaymentStrategy.REDUCE_TERM,
        custom_payments=custom_payments(12, {1: "5000"}),
    )
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.05", 12), config)

    assert schedule.count < 8
    assert schedule.items[-1].balance.is_zero()
    assert schedule.total_paid == schedule.total_interest + loan.principal


def test_overpayment_reduce_installment_keeps_term():
    loan = make_loan("10000", months=12)
    config = SimulationConfig(
        strategy=OverpaymentStrategy.REDUCE_INSTALLMENT,
        custom_payments=custom_payments(12, {1: "5000"}),
    )
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.05", 12), config)

    assert schedule.count == 12
    assert schedule.items[2].payment < schedule.items[0].payment
    assert schedule.items[-1].balance.is_zero()


def test_reduce_term_pays_less_interest_than_reduce_installment():
    loan = make_loan("10000", months=12)
    payments = custom_payments(12, {1: "5000"})
    market = MarketScenario.flat("0.05", 12)

    term = run_loan_simulation(loan, market, SimulationConfig(OverpaymentStrategy.REDUCE_TERM, payments))
    installment = run_loan_simulation(loan, market, SimulationConfig(OverpaymentStrategy.REDUCE_INSTALLMENT, payments))

    assert term.total_interest < installment.total_interest


def test_variable_rates():
    loan = make_loan("1000", months=5)
    rates = [create_rate(0)] * 3 + [create_rate("0.10")] * 2
    schedule = run_loan_simulation(loan, MarketScenario(rates), SimulationConfig())

    assert schedule.items[0].interest == ZERO
    assert schedule.items[3].interest > ZERO
    assert schedule.items[-1].balance == ZERO


def test_custom_payment_can_finish_early():
    loan = make_loan("1000", months=10)
    config = SimulationConfig(custom_payments=custom_payments(10, {0: "1000"}))
    schedule = run_loan_simulation(loan, MarketScenario.flat(0, 10), config)

    assert schedule.count == 1
    assert schedule.total_paid == Money.from_major(1000)


def test_totals_overflow_is_reported():
    loan = LoanDefinition(principal=Money(MONEY_MAX), term_months=2)
    with pytest.raises(NumericOverflowError):
        run_loan_simulation(loan, MarketScenario.flat("0.12", 2), SimulationConfig())


def test_degenerate_rate_is_reported_as_overflow():
    loan = make_loan("1000", months=12)
    with pytest.raises(NumericOverflowError):
        run_loan_simulation(loan, MarketScenario.flat(Decimal("1E-40"), 12), SimulationConfig())


def test_memory_error_becomes_allocation_failed(monkeypatch):
    def exhausted(*args):
        raise MemoryError

    monkeypatch.setattr(engine, "simulation_step", exhausted)
    with pytest.raises(AllocationFailedError):
        run_loan_simulation(make_loan(), MarketScenario.flat("0.05", 12), SimulationConfig())


# --- validation -----------------------------------------------------------


@pytest.mark.parametrize("principal", ["-100", "0"])
def test_invalid_principal(principal):
    with pytest.raises(InvalidPrincipalError):
        run_loan_simulation(make_loan(principal), MarketScenario.flat(0, 12), SimulationConfig())


@pytest.mark.parametrize("months", [0, -1, 1201])
def test_invalid_months(months):
    loan = make_loan(months=months)
    with pytest.raises(InvalidMonthsError):
        run_loan_simulation(loan, MarketScenario.flat(0, max(months, 1)), SimulationConfig())


@pytest.mark.parametrize("rates", [None, []])
def test_missing_rates(rates):
    with pytest.raises(NullRatesError):
        run_loan_simulation(make_loan(), MarketScenario(rates), SimulationConfig())


@pytest.mark.parametrize("bad", ["-0.01", float("nan"), float("inf"), "10.5"])
def test_invalid_rate(bad):
    rates = [create_rate("0.05")] * 11 + [create_rate(bad)]
    with pytest.raises(InvalidRateError):
        run_loan_simulation(make_loan(), MarketScenario(rates), SimulationConfig())


def test_rate_count_must_match_term():
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(make_loan(months=12), MarketScenario.flat(0, 11), SimulationConfig())


def test_unknown_strategy():
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(make_loan(), MarketScenario.flat(0, 12), SimulationConfig(strategy="term"))


def test_unknown_loan_type():
    loan = LoanDefinition(principal=Money.from_major(1000), term_months=12, type="annuity")
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(loan, MarketScenario.flat(0, 12), SimulationConfig())


def test_custom_payment_count_must_match_term():
    config = SimulationConfig(custom_payments=[ZERO] * 3)
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(make_loan(), MarketScenario.flat(0, 12), config)


def test_missing_arguments():
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(None, MarketScenario.flat(0, 12), SimulationConfig())
    with pytest.raises(InvalidArgumentError):
        run_loan_simulation(make_loan(), MarketScenario.flat(0, 12), None)


def test_error_messages():
    assert error_message(FinanceErrorKind.INVALID_PRINCIPAL) == "Invalid principal amount"
    assert str(InvalidPrincipalError()) == "Invalid principal amount"
    assert str(InvalidPrincipalError("-1.00")) == "Invalid principal amount: -1.00"
    assert isinstance(NullRatesError(), FinanceError)


# --- summary --------------------------------------------------------------


def test_summarize():
    loan = make_loan("10000", months=12)
    config = SimulationConfig(custom_payments=custom_payments(12, {1: "5000"}))
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.05", 12), config)
    summary = summarize(loan, schedule)

    assert summary["principal"] == loan.principal
    assert summary["total_paid"] == schedule.total_paid
    assert summary["payments_made"] == schedule.count
    assert summary["months_saved"] == 12 - schedule.count
    assert summary["max_payment"] == Money.from_major(5000)
    assert summary["first_payment"] == Money.from_major("856.07")


def test_decreasing_loan_under_reduce_term_keeps_first_payment():
    loan = make_loan("12000", months=12, loan_type=LoanType.DECREASING_INSTALLMENTS)
    schedule = run_loan_simulation(loan, MarketScenario.flat("0.06", 12), SimulationConfig())

    assert schedule.count == 12
    assert all(item.payment == Money.from_major(1060) for item in schedule.items[:-1])
    assert schedule.items[-1].payment < Money.from_major(1060)
    assert schedule.total_paid == schedule.total_interest + loan.principal
