"""Price catalog products against the latest market rate"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ddm_jewellers.config import settings
from ddm_jewellers.domain.models import PricingBreakdown, ProductPricingInput, RateSnapshot
from ddm_jewellers.domain.pricing import calculate_cart_item_price, to_decimal
from ddm_jewellers.infrastructure.database.models import Product
from ddm_jewellers.services.market_rates import load_rate_snapshot


def gst_rate() -> Decimal:
    return to_decimal(settings.gst_rate)


def pricing_input_for(product: Product) -> ProductPricingInput:
    return ProductPricingInput(
        product_type=product.product_type,
        material=product.material or "",
        weight=to_decimal(product.weight),
        making_charges=to_decimal(product.making_charges),
        gemstones_cost=to_decimal(product.gemstones_cost),
        diamonds_cost=to_decimal(product.diamonds_cost),
        silver_billing_mode=product.silver_billing_mode or "live_rate",
        fixed_rate_per_gram=to_decimal(product.fixed_rate_per_gram),
    )


def price_product(
    db: Session,
    product: Product,
    quantity: int = 1,
    rates: Optional[RateSnapshot] = None,
) -> PricingBreakdown:
    """
    Breakdown for `quantity` pieces of a product.

    Raises:
        RatesUnavailableError: real gold/silver product and no rate has been fetched
    """
    if rates is None and product.product_type != "imitation":
        rates = load_rate_snapshot(db)
    return calculate_cart_item_price(pricing_input_for(product), rates, quantity, gst_rate())


def line_total(product: Product, breakdown: PricingBreakdown, quantity: int) -> Decimal:
    """Amount charged for a line: catalog price for imitation pieces, calculated price otherwise"""
    if product.product_type == "imitation":
        return to_decimal(product.price) * quantity
    return breakdown.final_price
