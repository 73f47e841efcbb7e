"""
Pricing — customer price from a supplier unit price and a margin.

    per_unit = round2(supplier_price × (1 + margin / 100))
    total    = round2(per_unit × quantity)

round2 rounds half away from zero to 2 decimal places. The calculator
never raises: a missing or unparseable price yields CustomerPrice(None, None).
"""
import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional

from .config import settings

_NON_NUMERIC = re.compile(r"[^0-9.]")
_CENT = Decimal("0.01")
# enough digits for any finite float quantized to cents
_PRECISION = 400


@dataclass(frozen=True)
class CustomerPrice:
    per_unit: Optional[float] = None
    total: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.per_unit is None

    def to_dict(self) -> dict:
        return {"per_unit": self.per_unit, "total": self.total}


def round2(value: float) -> float:
    """Round half away from zero to cents, using the float's exact binary value."""
    if not math.isfinite(value):
        return value
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def parse_price(raw) -> Optional[float]:
    """'₹1,250.50' → 1250.5. Strings keep only digits and dots; numbers pass through."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        if isinstance(raw, (int, float)):
            value = float(raw)
        else:
            value = float(_NON_NUMERIC.sub("", str(raw)))
    except (ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


def _as_quantity(raw) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


def calculate_final_price(supplier_price, margin, quantity) -> CustomerPrice:
    """Customer per-unit and total price, or an empty CustomerPrice on bad input."""
    price = parse_price(supplier_price)
    qty = _as_quantity(quantity)
    if price is None or qty is None or qty <= 0:
        return CustomerPrice()
    try:
        margin = float(margin)
    except (TypeError, ValueError, OverflowError):
        return CustomerPrice()
    if not math.isfinite(margin):
        return CustomerPrice()

    raw_unit = price * (1 + margin / 100)
    if not math.isfinite(raw_unit):
        return CustomerPrice()
    per_unit = round2(raw_unit)
    raw_total = per_unit * qty
    if not math.isfinite(raw_total):
        return CustomerPrice()
    total = round2(raw_total)
    return CustomerPrice(per_unit=per_unit, total=total)


def format_currency(amount) -> str:
    """1234.5 → '₹1,234.50'. Non-numeric input renders as zero."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    sign = "-" if value < 0 else ""
    return f"{sign}{settings.currency_symbol}{abs(value):,.2f}"
