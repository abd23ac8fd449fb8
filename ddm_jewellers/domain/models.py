"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class RateQuote:
    """Per-gram metal prices as returned by one rate provider"""

    gold24k: Decimal
    gold22k: Decimal
    gold18k: Decimal
    silver: Decimal
    source: str


@dataclass
class RateSnapshot:
    """Persisted market rate used for pricing and savings valuation"""

    gold24k: Decimal
    gold22k: Decimal
    gold18k: Decimal
    silver: Decimal
    currency: str
    source: str
    effective_date: Optional[datetime] = None

    def rate_for_purity(self, purity: str) -> Decimal:
        """Rate per gram for "24k", "22k", "18k" or "silver"; unknown purities use 22k"""
        return {
            "24k": self.gold24k,
            "22k": self.gold22k,
            "18k": self.gold18k,
            "silver": self.silver,
        }.get(purity, self.gold22k)


@dataclass
class ProductPricingInput:
    """Product attributes that drive the price calculation"""

    product_type: str  # "real" or "imitation"
    material: str
    weight: Decimal
    making_charges: Decimal = Decimal("0")
    gemstones_cost: Decimal = Decimal("0")
    diamonds_cost: Decimal = Decimal("0")
    silver_billing_mode: str = "live_rate"  # "live_rate" or "fixed_rate"
    fixed_rate_per_gram: Decimal = Decimal("0")


@dataclass
class PricingBreakdown:
    """Customer-facing price components; derived, never persisted"""

    weight: Decimal
    rate_per_gram: Decimal
    metal_cost: Decimal
    making_charges: Decimal
    gemstones_cost: Decimal
    diamonds_cost: Decimal
    subtotal: Decimal
    gst_amount: Decimal
    final_price: Decimal


@dataclass
class GullakProgress:
    """Savings summary shown alongside a Gullak account"""

    progress_percent: float
    days_remaining: int
    current_metal_weight: Decimal
