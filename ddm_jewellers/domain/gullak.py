"""Gullak savings plan arithmetic - payment schedule and progress"""

import math
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ddm_jewellers.domain.models import GullakProgress
from ddm_jewellers.domain.pricing import to_decimal
from ddm_jewellers.utils.date_utils import add_months, next_weekday

DEFAULT_PAYMENT_WEEKDAY = 1  # Monday
DEFAULT_PAYMENT_DAY_OF_MONTH = 1

_GRAMS = Decimal("0.000001")


def calculate_next_payment_date(
    frequency: str,
    base: datetime,
    day_of_week: Optional[int] = None,
    day_of_month: Optional[int] = None,
) -> datetime:
    """
    Compute the next contribution date after `base`.

    - daily: base + 1 day
    - weekly: next `day_of_week` (Sunday = 0) strictly after base, Monday by default
    - monthly: `day_of_month` of the following month, clamped to that month's last day

    Example:
        monthly, day_of_month=31, base=2026-03-31 -> 2026-04-30

    Unknown frequencies fall back to daily.
    """
    if frequency == "weekly":
        target = DEFAULT_PAYMENT_WEEKDAY if day_of_week is None else day_of_week
        return next_weekday(base, target)

    if frequency == "monthly":
        target = day_of_month or DEFAULT_PAYMENT_DAY_OF_MONTH
        return add_months(base, 1, target)

    return base + timedelta(days=1)


def metal_value(amount, rate) -> Decimal:
    """Grams of metal bought by `amount` at `rate` per gram, to 6 decimals"""
    rate = to_decimal(rate)
    if rate <= 0:
        return Decimal("0")
    return (to_decimal(amount) / rate).quantize(_GRAMS, rounding=ROUND_HALF_UP)


def calculate_progress(current_balance, target_amount) -> float:
    """Percentage of target saved, capped at 100"""
    current = to_decimal(current_balance)
    target = to_decimal(target_amount)
    if target <= 0:
        return 0.0
    return float(min(current / target * 100, Decimal("100")))


def calculate_days_remaining(current_balance, target_amount, payment_amount) -> int:
    """Contributions still needed to reach target"""
    current = to_decimal(current_balance)
    target = to_decimal(target_amount)
    payment = to_decimal(payment_amount)
    if payment <= 0 or current >= target:
        return 0
    return math.ceil((target - current) / payment)


def calculate_current_metal_weight(current_balance, rate) -> Decimal:
    return metal_value(current_balance, rate)


def calculate_target_amount(target_weight, rate) -> Decimal:
    """Money needed to buy `target_weight` grams at `rate`"""
    return (to_decimal(target_weight) * to_decimal(rate)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def summarize_progress(current_balance, target_amount, payment_amount, rate) -> GullakProgress:
    return GullakProgress(
        progress_percent=round(calculate_progress(current_balance, target_amount), 2),
        days_remaining=calculate_days_remaining(current_balance, target_amount, payment_amount),
        current_metal_weight=calculate_current_metal_weight(current_balance, rate),
    )
