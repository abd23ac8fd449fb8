"""Jewellery pricing engine - metal value, making charges and GST"""

from decimal import Decimal
from typing import Dict, Optional

from ddm_jewellers.domain.exceptions import RatesUnavailableError
from ddm_jewellers.domain.models import PricingBreakdown, ProductPricingInput, RateSnapshot

DEFAULT_GST_RATE = Decimal("0.03")
DEFAULT_PURITY = "22k"

_ZERO = Decimal("0")
_CENTS = Decimal("0.01")

# Checked in order; the first match wins
_PURITY_MARKERS = (
    ("24k", ("24k", "24 k")),
    ("22k", ("22k", "22 k")),
    ("18k", ("18k", "18 k")),
)


def to_decimal(value) -> Decimal:
    """Convert a column value, float or string to Decimal; None becomes 0"""
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def extract_purity(material: Optional[str]) -> str:
    """
    Read gold fineness from a free-text material field.

    "22K Gold", "gold 22 k" -> "22k". Anything unrecognised is priced as 22k.
    """
    material_lower = (material or "").lower()
    for purity, markers in _PURITY_MARKERS:
        if any(marker in material_lower for marker in markers):
            return purity
    return DEFAULT_PURITY


def rate_per_gram(pricing_input: ProductPricingInput, rates: Optional[RateSnapshot]) -> Decimal:
    """
    Resolve the per-gram metal rate for a product.

    - Gold: live rate for the purity found in the material
    - Silver: fixed product rate when billed at a fixed rate, else live silver rate
    - Anything else: 0 (only making/stone charges apply)
    """
    material = (pricing_input.material or "").lower()

    if "gold" in material:
        return _live_rates(rates).rate_for_purity(extract_purity(material))

    if "silver" in material:
        if pricing_input.silver_billing_mode == "fixed_rate" and pricing_input.fixed_rate_per_gram:
            return to_decimal(pricing_input.fixed_rate_per_gram)
        return _live_rates(rates).silver

    return _ZERO


def _live_rates(rates: Optional[RateSnapshot]) -> RateSnapshot:
    if rates is None:
        raise RatesUnavailableError("Market rates not available")
    return rates


def imitation_breakdown(weight: Decimal) -> PricingBreakdown:
    """Imitation pieces sell at their catalog price; the calculated breakdown is all zero"""
    return PricingBreakdown(
        weight=weight,
        rate_per_gram=_ZERO,
        metal_cost=_ZERO,
        making_charges=_ZERO,
        gemstones_cost=_ZERO,
        diamonds_cost=_ZERO,
        subtotal=_ZERO,
        gst_amount=_ZERO,
        final_price=_ZERO,
    )


def calculate_price(
    pricing_input: ProductPricingInput,
    rates: Optional[RateSnapshot],
    gst_rate: Decimal = DEFAULT_GST_RATE,
) -> PricingBreakdown:
    """
    Calculate the price breakdown for a single piece.

    final_price = (weight * rate + making + gemstones + diamonds) * (1 + gst_rate)

    Raises:
        RatesUnavailableError: precious metal product and no rate snapshot exists
    """
    weight = to_decimal(pricing_input.weight)

    if pricing_input.product_type == "imitation":
        return imitation_breakdown(weight)

    rate = rate_per_gram(pricing_input, rates)
    making = to_decimal(pricing_input.making_charges)
    gemstones = to_decimal(pricing_input.gemstones_cost)
    diamonds = to_decimal(pricing_input.diamonds_cost)

    metal_cost = weight * rate
    subtotal = metal_cost + making + gemstones + diamonds
    gst_amount = subtotal * to_decimal(gst_rate)

    return PricingBreakdown(
        weight=weight,
        rate_per_gram=rate,
        metal_cost=metal_cost,
        making_charges=making,
        gemstones_cost=gemstones,
        diamonds_cost=diamonds,
        subtotal=subtotal,
        gst_amount=gst_amount,
        final_price=subtotal + gst_amount,
    )


def calculate_cart_item_price(
    pricing_input: ProductPricingInput,
    rates: Optional[RateSnapshot],
    quantity: int = 1,
    gst_rate: Decimal = DEFAULT_GST_RATE,
) -> PricingBreakdown:
    """Scale every monetary component by quantity; weight and rate stay per piece"""
    single = calculate_price(pricing_input, rates, gst_rate)
    qty = Decimal(quantity)

    return PricingBreakdown(
        weight=single.weight,
        rate_per_gram=single.rate_per_gram,
        metal_cost=single.metal_cost * qty,
        making_charges=single.making_charges * qty,
        gemstones_cost=single.gemstones_cost * qty,
        diamonds_cost=single.diamonds_cost * qty,
        subtotal=single.subtotal * qty,
        gst_amount=single.gst_amount * qty,
        final_price=single.final_price * qty,
    )


def _money(value: Decimal) -> str:
    return f"₹{value.quantize(_CENTS)}"


def format_breakdown(breakdown: PricingBreakdown, gst_rate: Decimal = DEFAULT_GST_RATE) -> Dict[str, str]:
    """Display strings for a breakdown, two decimals throughout"""
    gst_percent = (to_decimal(gst_rate) * 100).normalize()
    return {
        "weight": f"{breakdown.weight.normalize():f}g",
        "rate_per_gram": f"{_money(breakdown.rate_per_gram)}/g",
        "metal_cost": _money(breakdown.metal_cost),
        "making_charges": _money(breakdown.making_charges),
        "gemstones_cost": _money(breakdown.gemstones_cost),
        "diamonds_cost": _money(breakdown.diamonds_cost),
        "subtotal": _money(breakdown.subtotal),
        "gst_amount": f"{_money(breakdown.gst_amount)} ({gst_percent:f}%)",
        "final_price": _money(breakdown.final_price),
    }
