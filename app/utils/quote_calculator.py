# app/utils/quote_calculator.py
"""
Quote totals.

All money is integer minor units (cents). Rounding is half-up on the scaled
value, the same rule the quote editor and the customer page use, so the
figure stored on the row always matches what both screens display.

    line total   = round(qty * unit_price_cents)
    subtotal     = sum(line totals)
    taxable base = sum(line totals where taxable)
    tax          = round(taxable base * tax_rate / 100)
    total        = max(0, subtotal + tax + fees)
    deposit      = round(total * 0.4) in "auto" mode, the entered value in "custom"

Input parsing is permissive: anything that is not a number parses to 0 so
that a half-typed value never breaks a recalculation.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from app.core.config import DEFAULT_DEPOSIT_RATE

DEPOSIT_AUTO = "auto"
DEPOSIT_CUSTOM = "custom"

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_number(value: Any) -> float:
    """'1,250.5' -> 1250.5, '$12' -> 12.0, 'abc' / None / '' -> 0.0"""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = _NON_NUMERIC.sub("", str(value if value is not None else ""))
    # parseFloat semantics: take the longest valid numeric prefix
    match = re.match(r"-?\d*\.?\d+|-?\d+", cleaned)
    if not match:
        return 0.0
    try:
        number = float(match.group(0))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_money_to_cents(value: Any) -> int:
    """'$1,250.50' -> 125050"""
    return round_half_up(parse_number(value) * 100)


def normalize_deposit_mode(value: Any) -> str:
    return DEPOSIT_CUSTOM if str(value or "").strip().lower() == DEPOSIT_CUSTOM else DEPOSIT_AUTO


@dataclass
class QuoteTotals:
    line_totals: List[int] = field(default_factory=list)
    subtotal_cents: int = 0
    taxable_base_cents: int = 0
    tax_cents: int = 0
    fees_cents: int = 0
    total_cents: int = 0
    deposit_cents: int = 0

    def as_dict(self) -> dict:
        return {
            "line_totals": list(self.line_totals),
            "subtotal_cents": self.subtotal_cents,
            "taxable_base_cents": self.taxable_base_cents,
            "tax_cents": self.tax_cents,
            "fees_cents": self.fees_cents,
            "total_cents": self.total_cents,
            "deposit_cents": self.deposit_cents,
        }


def line_total_cents(qty: Any, unit_price_cents: Any) -> int:
    return round_half_up(max(0.0, parse_number(qty)) * max(0.0, parse_number(unit_price_cents)))


def auto_deposit_cents(total_cents: int, rate: float = DEFAULT_DEPOSIT_RATE) -> int:
    return round_half_up(total_cents * rate)


def calculate_totals(
    items: Iterable[Any],
    tax_rate: Any = 0,
    fees_cents: Any = 0,
    deposit_mode: str = DEPOSIT_AUTO,
    deposit_cents: Any = 0,
) -> QuoteTotals:
    """Recompute every figure from the line items and quote settings.

    ``items`` are objects exposing ``qty``, ``unit_price_cents`` and
    ``taxable`` (line item schemas, ORM-ish rows or plain dicts).
    """
    totals = QuoteTotals()

    for item in items:
        if isinstance(item, dict):
            qty, price, taxable = item.get("qty"), item.get("unit_price_cents"), item.get("taxable", True)
        else:
            qty, price, taxable = item.qty, item.unit_price_cents, item.taxable
        line = line_total_cents(qty, price)
        totals.line_totals.append(line)
        totals.subtotal_cents += line
        if taxable is not False:
            totals.taxable_base_cents += line

    rate = parse_number(tax_rate)
    totals.tax_cents = round_half_up(totals.taxable_base_cents * rate / 100)
    totals.fees_cents = round_half_up(parse_number(fees_cents))
    totals.total_cents = max(0, totals.subtotal_cents + totals.tax_cents + totals.fees_cents)

    if normalize_deposit_mode(deposit_mode) == DEPOSIT_AUTO:
        totals.deposit_cents = auto_deposit_cents(totals.total_cents)
    else:
        # Custom deposits are taken as entered, even above the total
        totals.deposit_cents = round_half_up(parse_number(deposit_cents))

    return totals
