"""Gullak contributions - scheduled autopay sweep and manual deposits"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ddm_jewellers.domain.exceptions import (
    AccountNotFoundError,
    AutopayDisabledError,
    InvalidAccountStateError,
    RatesUnavailableError,
)
from ddm_jewellers.domain.gullak import calculate_next_payment_date, metal_value
from ddm_jewellers.domain.models import RateSnapshot
from ddm_jewellers.domain.pricing import to_decimal
from ddm_jewellers.infrastructure.database.models import GullakAccount, GullakTransaction
from ddm_jewellers.infrastructure.database.repositories import GullakRepository
from ddm_jewellers.infrastructure.observability.logging import log_autopay
from ddm_jewellers.infrastructure.observability.metrics import gullak_deposit_counter, record_autopay
from ddm_jewellers.services.market_rates import load_rate_snapshot
from ddm_jewellers.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

DEPOSIT_STATUSES = ("active", "paused")


def account_rate(account: GullakAccount, rates: RateSnapshot) -> Decimal:
    """Per-gram rate the account saves towards"""
    if account.metal_type == "silver":
        return rates.silver
    return rates.rate_for_purity(account.metal_purity)


def _current_rate(db: Session, account: GullakAccount) -> Decimal:
    rates = load_rate_snapshot(db)
    if rates is None:
        raise RatesUnavailableError("Market rates not available")
    return account_rate(account, rates)


def _mark_completed(account: GullakAccount, now: datetime) -> None:
    account.status = "completed"
    account.completed_at = now


def _contribute(
    db: Session,
    account: GullakAccount,
    amount: Decimal,
    transaction_type: str,
    description: str,
    now: datetime,
    payment_method: Optional[str] = None,
    reference: Optional[str] = None,
) -> GullakTransaction:
    """Write the ledger row and atomically add `amount` to the balance"""
    repo = GullakRepository(db)
    rate = _current_rate(db, account)

    transaction = repo.create_transaction(
        account_id=account.id,
        user_id=account.user_id,
        amount=amount,
        type=transaction_type,
        gold_rate=rate,
        gold_value=metal_value(amount, rate),
        description=description,
        payment_method=payment_method,
        reference=reference,
        status="completed",
        transaction_date=now,
    )

    new_balance = repo.increment_balance(account, amount)
    account.last_payment_date = now
    account.total_payments = (account.total_payments or 0) + 1
    if new_balance >= to_decimal(account.target_amount):
        _mark_completed(account, now)

    return transaction


def process_account_autopay(db: Session, account: GullakAccount, now: Optional[datetime] = None) -> str:
    """
    Run one scheduled contribution for an account.

    Returns "completed" when the account had already reached its target (no
    contribution is made), otherwise "paid". Commits on success.
    """
    now = now or utcnow()

    if to_decimal(account.current_balance) >= to_decimal(account.target_amount):
        _mark_completed(account, now)
        db.commit()
        record_autopay("completed")
        log_autopay(account.id, account.user_id, "completed", "0", str(account.current_balance))
        return "completed"

    amount = to_decimal(account.payment_amount)
    _contribute(
        db,
        account,
        amount,
        transaction_type="auto_pay",
        description=f"Automatic {account.payment_frequency} payment",
        now=now,
    )
    account.next_payment_date = calculate_next_payment_date(
        account.payment_frequency,
        now,
        account.payment_day_of_week,
        account.payment_day_of_month,
    )
    db.commit()

    record_autopay("paid")
    log_autopay(account.id, account.user_id, "paid", str(amount), str(account.current_balance))
    return "paid"


def find_due_accounts(db: Session, now: Optional[datetime] = None) -> List[GullakAccount]:
    return GullakRepository(db).list_due_accounts(now or utcnow())


def process_autopayments(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Advance every due account once.

    A failing account is rolled back and logged; the sweep carries on with
    the rest and the account is retried on its next due cycle.
    """
    now = now or utcnow()
    due_accounts = find_due_accounts(db, now)
    logger.info(f"Found {len(due_accounts)} eligible accounts for autopay")

    summary = {"processed": 0, "completed": 0, "failed": 0}
    for account in due_accounts:
        account_id = account.id
        try:
            outcome = process_account_autopay(db, account, now)
        except Exception:
            db.rollback()
            record_autopay("failed")
            summary["failed"] += 1
            logger.exception(f"Failed to process autopay for account {account_id}", extra={"account_id": account_id})
            continue

        if outcome == "completed":
            summary["completed"] += 1
        else:
            summary["processed"] += 1

    return summary


def trigger_autopay_for_account(db: Session, account_id: int, now: Optional[datetime] = None) -> str:
    """Run autopay for one account immediately, regardless of its due date"""
    account = GullakRepository(db).get_account(account_id)
    if account is None:
        raise AccountNotFoundError(f"Account {account_id} not found")
    if not account.auto_pay_enabled:
        raise AutopayDisabledError("Autopay is not enabled for this account")
    if account.status != "active":
        raise InvalidAccountStateError(f"Account is {account.status}")

    return process_account_autopay(db, account, now)


def record_deposit(
    db: Session,
    account: GullakAccount,
    amount: Decimal,
    payment_method: Optional[str] = None,
    reference: Optional[str] = None,
    now: Optional[datetime] = None,
) -> GullakTransaction:
    """User-initiated contribution; the schedule is left unchanged"""
    if account.status not in DEPOSIT_STATUSES:
        raise InvalidAccountStateError(f"Cannot deposit into a {account.status} account")

    now = now or utcnow()
    transaction = _contribute(
        db,
        account,
        to_decimal(amount),
        transaction_type="deposit",
        description="Manual deposit",
        now=now,
        payment_method=payment_method,
        reference=reference,
    )
    db.commit()
    gullak_deposit_counter.inc()
    return transaction
