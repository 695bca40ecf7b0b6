"""Command-line interface for the loan simulator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view summaries,
compare the two overpayment strategies or load the loan parameters from a CSV
file. Results can be printed to the terminal or exported to CSV/JSON files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import (
    LoanDefinition,
    LoanSchedule,
    LoanType,
    MarketScenario,
    OverpaymentStrategy,
    SimulationConfig,
)
from .engine import MAX_LOAN_MONTHS, run_loan_simulation, summarize
from .errors import FinanceError
from .formatter import format_money, print_comparison, print_schedule, print_summary, print_totals
from .money import ZERO, Money
from .utils import (
    apply_payment_schedule_csv,
    build_custom_payments,
    build_rate_timeline,
    load_loan_parameters,
    parse_amount,
    parse_month_value,
    percent_to_rate,
)

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120

LOAN_TYPES = {"annuity": LoanType.EQUAL_INSTALLMENTS, "decreasing": LoanType.DECREASING_INSTALLMENTS}
STRATEGIES = {"term": OverpaymentStrategy.REDUCE_TERM, "installment": OverpaymentStrategy.REDUCE_INSTALLMENT}


def _parse_money(value: str) -> Money:
    try:
        return Money.from_major(parse_amount(value))
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _timeline_length(term: int) -> int:
    """Number of monthly entries to build for ``term``.

    Out-of-range terms get empty lists; the engine rejects them with
    ``InvalidMonthsError`` before it looks at rates or payments.
    """
    return term if 1 <= term <= MAX_LOAN_MONTHS else 0


def build_simulation_inputs(
    principal: str,
    rate: str,
    term: int,
    loan_type: str = "annuity",
    strategy: str = "term",
    rate_change: Tuple[str, ...] = (),
    payment: Tuple[str, ...] = (),
    monthly_payment: Optional[str] = None,
    payment_schedule: Optional[str] = None,
) -> Tuple[LoanDefinition, MarketScenario, SimulationConfig]:
    """Turn raw option strings into the three engine inputs.

    Range checks (positive principal, term limits, rate bounds) are left to the
    engine so that its error kinds reach the user unchanged; only values that
    cannot be parsed at all are rejected here.
    """
    try:
        base_rate = percent_to_rate(rate)
        changes = []
        for item in rate_change:
            month, value = parse_month_value(item)
            changes.append((month, percent_to_rate(value)))
        specific = []
        for item in payment:
            month, value = parse_month_value(item)
            specific.append((month, Money.from_major(parse_amount(value))))
    except ValueError as exc:
        raise click.BadParameter(str(exc))

    try:
        loan_kind = LOAN_TYPES[loan_type.lower()]
        strategy_kind = STRATEGIES[strategy.lower()]
    except KeyError as exc:
        raise click.BadParameter(f"Unknown choice {exc.args[0]!r}")

    loan = LoanDefinition(principal=_parse_money(principal), term_months=term, type=loan_kind)
    months = _timeline_length(term)
    market = MarketScenario(tuple(build_rate_timeline(base_rate, months, changes)))

    custom_payments = None
    monthly = _parse_money(monthly_payment) if monthly_payment else ZERO
    if months and (monthly.is_positive() or specific or payment_schedule):
        try:
            payments = build_custom_payments(months, monthly, specific)
            if payment_schedule:
                payments = apply_payment_schedule_csv(Path(payment_schedule), payments)
        except (ValueError, OSError) as exc:
            raise click.BadParameter(str(exc))
        custom_payments = tuple(payments)

    logger.debug(
        "Loan %s over %d months (%s, %s), base rate %s, %d rate changes, custom payments: %s",
        loan.principal,
        term,
        loan_kind.value,
        strategy_kind.value,
        base_rate.value,
        len(changes),
        custom_payments is not None,
    )
    return loan, market, SimulationConfig(strategy=strategy_kind, custom_payments=custom_payments)


def simulate(loan: LoanDefinition, market: MarketScenario, config: SimulationConfig) -> LoanSchedule:
    """Run the engine, reporting simulation errors as click errors."""
    try:
        return run_loan_simulation(loan, market, config)
    except FinanceError as exc:
        logger.debug("Simulation rejected: %s", exc.kind.value)
        raise click.ClickException(str(exc))


def serialize_summary(summary: Dict[str, Any]) -> Dict[str, Any]:
    return {k: format_money(v) if isinstance(v, Money) else v for k, v in summary.items()}


def serialize_schedule(schedule: LoanSchedule) -> List[Dict[str, Any]]:
    return [
        {
            "month": month,
            "principal": format_money(item.capital),
            "interest": format_money(item.interest),
            "payment": format_money(item.payment),
            "balance": format_money(item.balance),
        }
        for month, item in enumerate(schedule.items, start=1)
    ]


def export_to_json(path: Path, schedule: LoanSchedule, summary: Dict[str, Any]) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": serialize_summary(summary), "schedule": serialize_schedule(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: LoanSchedule) -> None:
    """Export the schedule and its totals to a semicolon separated file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=";")
        writer.writerow(["Month", "Principal", "Interest", "Payment", "Balance"])
        for row in serialize_schedule(schedule):
            writer.writerow([row["month"], row["principal"], row["interest"], row["payment"], row["balance"]])
        writer.writerow([""] * 5)
        writer.writerow(["SUMMARY", "", "", "", ""])
        writer.writerow(["Total Interest", format_money(schedule.total_interest), "", "", ""])
        writer.writerow(["Total Paid", format_money(schedule.total_paid), "", "", ""])


def emit_schedule(loan: LoanDefinition, schedule: LoanSchedule, output: Optional[str]) -> None:
    summary_data = summarize(loan, schedule)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(summary_data)
    if schedule.count > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {schedule.count} rows; showing first {MAX_PRINTED_ROWS} rows.")
    print_schedule(schedule.items[:MAX_PRINTED_ROWS])
    print_totals(schedule)


def simulation_options(func):
    """Attach the loan options shared by ``schedule``, ``summary`` and ``compare``."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 250000 or 250k"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate in percent"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option("--type", "loan_type", type=click.Choice(list(LOAN_TYPES)), default="annuity", help="Installment type"),
        click.option("--rate-change", "rate_change", multiple=True, help="Rate change in MONTH:PERCENT format, applies from that month on"),
        click.option("--payment", "payment", multiple=True, help="Custom payment in MONTH:AMOUNT format"),
        click.option("--monthly-payment", "monthly_payment", help="Custom payment charged every month"),
        click.option("--payment-schedule", "payment_schedule", type=click.Path(exists=True, dir_okay=False), help="CSV file with Month,Amount rows added to the custom payments"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command-line loan simulator with exact currency arithmetic."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@simulation_options
@click.option("--strategy", "strategy", type=click.Choice(list(STRATEGIES)), default="term", help="Overpayment strategy")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    term: int,
    loan_type: str,
    rate_change: Tuple[str, ...],
    payment: Tuple[str, ...],
    monthly_payment: Optional[str],
    payment_schedule: Optional[str],
    strategy: str,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    loan, market, config = build_simulation_inputs(
        principal, rate, term, loan_type, strategy, rate_change, payment, monthly_payment, payment_schedule
    )
    emit_schedule(loan, simulate(loan, market, config), output)


@cli.command()
@simulation_options
@click.option("--strategy", "strategy", type=click.Choice(list(STRATEGIES)), default="term", help="Overpayment strategy")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    term: int,
    loan_type: str,
    rate_change: Tuple[str, ...],
    payment: Tuple[str, ...],
    monthly_payment: Optional[str],
    payment_schedule: Optional[str],
    strategy: str,
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    loan, market, config = build_simulation_inputs(
        principal, rate, term, loan_type, strategy, rate_change, payment, monthly_payment, payment_schedule
    )
    summary_data = summarize(loan, simulate(loan, market, config))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": serialize_summary(summary_data)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@simulation_options
def compare(
    principal: str,
    rate: str,
    term: int,
    loan_type: str,
    rate_change: Tuple[str, ...],
    payment: Tuple[str, ...],
    monthly_payment: Optional[str],
    payment_schedule: Optional[str],
) -> None:
    """Compare the reduce-term and reduce-installment strategies for one loan.

    Example:

        loan-sim compare -p 300k -r 6 -t 360 --payment 12:50000
    """
    summaries = []
    for strategy in ("term", "installment"):
        loan, market, config = build_simulation_inputs(
            principal, rate, term, loan_type, strategy, rate_change, payment, monthly_payment, payment_schedule
        )
        summaries.append(summarize(loan, simulate(loan, market, config)))
    print_comparison(summaries[0], summaries[1], labels=("ReduceTerm", "ReduceInstallment"))


@cli.command("from-csv")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--payment-schedule", "payment_schedule", type=click.Path(exists=True, dir_okay=False), help="CSV file with Month,Amount rows added to the custom payments")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def from_csv(path: str, payment_schedule: Optional[str], output: Optional[str]) -> None:
    """Simulate a loan whose parameters are read from a CSV file.

    The file holds a header row and one data row with the columns
    PrincipalAmount, TermMonths, LoanType (0 equal, 1 decreasing),
    AnnualRate (0.05 for 5%), OverpaymentPlan (0 reduce term, 1 reduce
    installment) and MonthlyExtra.
    """
    try:
        params = load_loan_parameters(Path(path))
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="PATH")

    loan = LoanDefinition(principal=params.principal, term_months=params.term_months, type=params.loan_type)
    months = _timeline_length(params.term_months)
    market = MarketScenario.flat(params.annual_rate, months)
    custom_payments = None
    if months and (params.monthly_extra.is_positive() or payment_schedule):
        payments = build_custom_payments(months, params.monthly_extra)
        if payment_schedule:
            try:
                payments = apply_payment_schedule_csv(Path(payment_schedule), payments)
            except ValueError as exc:
                raise click.BadParameter(str(exc), param_hint="--payment-schedule")
        custom_payments = tuple(payments)
    config = SimulationConfig(strategy=params.strategy, custom_payments=custom_payments)
    click.echo("CSV loaded successfully. Preparing simulation...")
    emit_schedule(loan, simulate(loan, market, config), output)


if __name__ == "__main__":
    cli()
