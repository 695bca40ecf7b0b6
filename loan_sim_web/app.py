import logging
import os

import click
from flask import Flask, jsonify, render_template, request

from loan_sim.engine import run_loan_simulation, summarize
from loan_sim.errors import FinanceError
from loan_sim.main import build_simulation_inputs, serialize_schedule, serialize_summary

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.config["PREVIEW_ROWS"] = int(os.environ.get("LOAN_SIM_PREVIEW_ROWS", "120"))


def parse_form_list(value: str) -> list[str]:
    """Parse a comma or newline separated list of entries from a form field.

    Returns a list of trimmed strings, skipping any empty entries.
    """
    if not value:
        return []
    parts = [p.strip() for p in value.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _form_to_inputs(form):
    """Build engine inputs from a form or a JSON object with the same keys."""
    def text(name: str, default: str = "") -> str:
        value = form.get(name, default)
        return str(value).strip() if value is not None else default

    def entries(name: str) -> tuple:
        value = form.get(name) or []
        if isinstance(value, str):
            value = parse_form_list(value)
        if not isinstance(value, (list, tuple)):
            raise click.BadParameter(f"{name} must be a list of MONTH:VALUE entries")
        return tuple(str(v) for v in value)

    try:
        term = int(text("term", "0") or 0)
    except ValueError:
        raise click.BadParameter("Term must be a whole number of months")

    return build_simulation_inputs(
        text("principal"),
        text("rate", "0") or "0",
        term,
        text("loan_type", "annuity") or "annuity",
        text("strategy", "term") or "term",
        entries("rate_changes"),
        entries("payments"),
        text("monthly_payment") or None,
    )


def _run_analysis(form):
    loan, market, config = _form_to_inputs(form)
    schedule = run_loan_simulation(loan, market, config)
    return summarize(loan, schedule), schedule


@app.route("/", methods=["GET", "POST"])
def index():
    summary = None
    schedule = None
    truncated = 0
    error = None

    if request.method == "POST":
        try:
            summary, full_schedule = _run_analysis(request.form)
            preview_rows = app.config["PREVIEW_ROWS"]
            schedule = serialize_schedule(full_schedule)[:preview_rows]
            truncated = max(full_schedule.count - preview_rows, 0)
            summary = serialize_summary(summary)
        except (FinanceError, click.BadParameter) as exc:
            logger.info("Rejected form submission: %s", exc)
            error = exc.format_message() if isinstance(exc, click.ClickException) else str(exc)

    return render_template(
        "index.html",
        form=request.form,
        summary=summary,
        schedule=schedule,
        truncated=truncated,
        error=error,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.post("/api/schedule")
def api_schedule():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "invalid_argument", "message": "Expected a JSON object"}), 400
    try:
        summary, schedule = _run_analysis(payload)
    except FinanceError as exc:
        logger.info("Rejected API request: %s", exc)
        return jsonify({"error": exc.kind.value, "message": str(exc)}), 400
    except click.BadParameter as exc:
        logger.info("Rejected API request: %s", exc.format_message())
        return jsonify({"error": "invalid_argument", "message": exc.format_message()}), 400
    return jsonify({"summary": serialize_summary(summary), "schedule": serialize_schedule(schedule)})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Loan Simulator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
