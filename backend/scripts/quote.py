"""Print a payment quote for a scenario stored as JSON.

Usage:
    python scripts/quote.py scenario.json
    python scripts/quote.py scenario.json --tax-profile profile.json
    python scripts/quote.py scenario.json --json

The scenario file holds one scenario in the deal API's camelCase shape.
"""
import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from dealdesk.calculation import derive
from dealdesk.models.calculation import CalculationResult
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.models.tax import TaxProfile
from dealdesk.money import format_money

_SHARED_LINES = [
    ("Selling price", "selling_price"),
    ("Trade allowance", "trade_allowance"),
    ("Trade payoff", "trade_payoff"),
    ("Trade equity", "trade_equity"),
    ("Down payment", "down_payment"),
    ("Rebates", "rebates"),
    ("Other incentives", "other_incentives"),
    ("Fees", "total_fees"),
    ("Tax", "total_tax"),
    ("Aftermarket", "aftermarket_total"),
]

_LEASE_LINES = [
    ("Gross cap cost", "gross_cap_cost"),
    ("Cap reductions", "total_cap_reductions"),
    ("Adjusted cap cost", "adjusted_cap_cost"),
    ("Residual value", "residual_value"),
    ("Depreciation", "depreciation"),
    ("Depreciation charge", "monthly_depreciation_charge"),
    ("Rent charge", "monthly_rent_charge"),
    ("Base payment", "base_monthly_payment"),
    ("Monthly tax", "monthly_tax"),
    ("Upfront tax", "upfront_tax"),
    ("Drive-off", "drive_off_total"),
]


def _load(path: str, model):
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise SystemExit(f"Cannot read {path}: {e}")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise SystemExit(f"Invalid {model.__name__} in {path}: {e.error_count()} error(s)")


def render_quote(scenario: Scenario, result: CalculationResult) -> str:
    outputs = result.outputs.rounded()
    lines = [f"{scenario.name} ({scenario.scenario_type.value})", "=" * 40]

    def row(label, value):
        lines.append(f"  {label:<22} {format_money(value):>14}")

    for label, name in _SHARED_LINES:
        row(label, getattr(outputs, name))
    lines.append("-" * 40)
    if scenario.scenario_type == ScenarioType.LEASE:
        for label, name in _LEASE_LINES:
            row(label, getattr(outputs, name))
        lines.append(f"  {'APR equivalent':<22} {outputs.apr_equivalent:>13}%")
    if scenario.scenario_type != ScenarioType.CASH:
        row("Amount financed", outputs.amount_financed)
        row("Monthly payment", outputs.monthly_payment)
    row("Total cost", outputs.total_cost)

    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        for warning in result.warnings:
            lines.append(f"  [{warning.code.value}] {warning.message}")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Quote a deal scenario")
    parser.add_argument("scenario", help="path to a scenario JSON file")
    parser.add_argument("--tax-profile", help="path to a tax profile JSON file")
    parser.add_argument("--json", action="store_true", help="print outputs and warnings as JSON")
    args = parser.parse_args(argv)

    scenario = _load(args.scenario, Scenario)
    tax_profile = _load(args.tax_profile, TaxProfile) if args.tax_profile else None
    result = derive(scenario, tax_profile)

    if args.json:
        payload = {
            "outputs": result.outputs.rounded().model_dump(mode="json", by_alias=True),
            "warnings": [w.model_dump(mode="json") for w in result.warnings],
        }
        print(json.dumps(payload, indent=2))
    else:
        print(render_quote(scenario, result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
