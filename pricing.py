# pricing.py
"""
Price, discount and change arithmetic for the billing counter.

All amounts are Decimal, rounded half-up to 2 places. Every function is
pure: same input, same output, no state.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_percent(percent) -> Decimal:
    """Clamp a percentage into [0, 100]."""
    p = to_decimal(percent)
    if p < ZERO:
        return ZERO
    if p > HUNDRED:
        return HUNDRED
    return p


def parse_amount(value) -> Decimal:
    """
    Read a live-typed amount field. Empty, None, garbage, NaN or
    infinity all read as 0; this never raises.
    """
    if value is None:
        return ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ZERO
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def unit_price(base, discount_percent) -> Decimal:
    """
    Discounted unit price. discount_percent must already be in [0, 100];
    it is not checked here.
    """
    factor = 1 - to_decimal(discount_percent) / HUNDRED
    return round2(to_decimal(base) * factor)


def line_total(base, discount_percent, quantity) -> Decimal:
    return round2(unit_price(base, discount_percent) * quantity)


def subtotal(lines) -> Decimal:
    """
    Sum of rounded line totals, folded left to right in cart order.
    lines: iterable of objects with base_price, discount_percent, quantity.
    """
    total = ZERO
    for line in lines:
        total += line_total(line.base_price, line.discount_percent, line.quantity)
    return round2(total)


def payable_total(subtotal_amount, flat_discount, percent_discount) -> Decimal:
    """
    Flat deduction first (floored at zero), then the percentage.
    percent_discount is clamped to [0, 100]; flat_discount is used as given.
    """
    base = to_decimal(subtotal_amount) - to_decimal(flat_discount)
    if base < ZERO:
        base = ZERO
    percent = clamp_percent(percent_discount)
    return round2(base * (1 - percent / HUNDRED))


def change_due(tendered, payable) -> Decimal:
    """Change to hand back; never negative, unreadable tender counts as 0."""
    change = parse_amount(tendered) - to_decimal(payable)
    if change < ZERO:
        return round2(ZERO)
    return round2(change)


def discount_breakdown(subtotal_amount, flat_discount, percent_discount):
    """
    Split the order-level deduction into its flat and percentage parts,
    as printed on the receipt.
    """
    sub = to_decimal(subtotal_amount)
    flat = min(to_decimal(flat_discount), sub) if sub > ZERO else ZERO
    total = payable_total(sub, flat_discount, percent_discount)
    return {
        'flat_discount': round2(flat),
        'percent_discount': round2(sub - flat - total),
        'total': total,
    }


def discounted_mrp(mrp, discount_percent):
    """MRP less a percentage, rounded to whole currency units."""
    if not mrp or not discount_percent:
        return mrp
    mrp = to_decimal(mrp)
    discounted = mrp - mrp * to_decimal(discount_percent) / HUNDRED
    return discounted.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def format_money(amount, symbol="₹") -> str:
    """Fixed 2-decimal display with a currency symbol."""
    return f"{symbol}{round2(amount):.2f}"
