"""
Order pricing: subtotal, delivery charge, tax, and grand total.
"""
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, Iterable, List

from shopcart.models import CartLine, OrderTotals, PricingConfig

TWO_PLACES = Decimal("0.01")


def compute_subtotal(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.unit_price_snapshot * line.quantity for line in lines), Decimal("0"))


def compute_order(lines: Iterable[CartLine], config: PricingConfig) -> OrderTotals:
    """
    Price the committed cart.

    Delivery is free for pickup or once the subtotal reaches the threshold.
    Tax is charged on subtotal plus delivery. Nothing is rounded here;
    use format_price when presenting the amounts.
    """
    subtotal = compute_subtotal(lines)

    if config.delivery_type == "pickup" or subtotal >= config.free_delivery_threshold:
        delivery_charge = Decimal("0")
    else:
        delivery_charge = config.delivery_charge_flat

    tax = (subtotal + delivery_charge) * config.tax_rate
    total = subtotal + delivery_charge + tax

    return OrderTotals(
        subtotal=subtotal,
        delivery_charge=delivery_charge,
        tax=tax,
        total=total,
    )


def format_price(amount: Decimal, currency: str = "₹", position: str = "before") -> str:
    formatted = f"{Decimal(amount).quantize(TWO_PLACES):.2f}"
    if position == "after":
        return f"{formatted}{currency}"
    return f"{currency}{formatted}"


def group_lines_by_category(lines: Iterable[CartLine]) -> Dict[str, List[CartLine]]:
    """Group lines by category in first-seen order; uncategorized lines go under 'Other'"""
    grouped: "OrderedDict[str, List[CartLine]]" = OrderedDict()
    for line in lines:
        grouped.setdefault(line.category or "Other", []).append(line)
    return grouped
