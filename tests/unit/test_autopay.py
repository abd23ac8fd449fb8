"""Unit tests for Gullak autopay and deposits"""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from ddm_jewellers.domain.exceptions import (
    AccountNotFoundError,
    AutopayDisabledError,
    InvalidAccountStateError,
    RatesUnavailableError,
)
from ddm_jewellers.infrastructure.database.models import GullakAccount
from ddm_jewellers.infrastructure.database.repositories import GullakRepository
from ddm_jewellers.services.autopay import (
    find_due_accounts,
    process_account_autopay,
    process_autopayments,
    record_deposit,
    trigger_autopay_for_account,
)

NOW = datetime(2026, 3, 4, 6, 0)


@pytest.fixture
def open_account(db: Session, customer):
    """Factory for a due 22K account saving 1000 per payment towards 6200"""

    def _open(**fields) -> GullakAccount:
        values = {
            "user_id": customer.id,
            "name": "Wedding Gold",
            "metal_type": "gold",
            "metal_purity": "22k",
            "payment_amount": Decimal("1000.00"),
            "payment_frequency": "daily",
            "target_metal_weight": Decimal("1.000"),
            "target_amount": Decimal("6200.00"),
            "current_balance": Decimal("0"),
            "status": "active",
            "auto_pay_enabled": True,
            "next_payment_date": NOW - timedelta(minutes=5),
        }
        values.update(fields)
        account = GullakRepository(db).create_account(**values)
        db.commit()
        return account

    return _open


def test_autopay_contributes_and_reschedules(db, market_rate, open_account):
    account = open_account()

    outcome = process_account_autopay(db, account, NOW)

    db.refresh(account)
    assert outcome == "paid"
    assert account.current_balance == Decimal("1000.00")
    assert account.total_payments == 1
    assert account.last_payment_date == NOW
    assert account.next_payment_date == NOW + timedelta(days=1)
    assert account.status == "active"

    [transaction] = GullakRepository(db).list_transactions(account.id)
    assert transaction.type == "auto_pay"
    assert transaction.amount == Decimal("1000.00")
    assert transaction.gold_rate == Decimal("6200.00")
    assert transaction.gold_value == Decimal("0.161290")
    assert transaction.description == "Automatic daily payment"


def test_autopay_uses_account_purity(db, market_rate, open_account):
    account = open_account(metal_purity="18k")
    process_account_autopay(db, account, NOW)

    [transaction] = GullakRepository(db).list_transactions(account.id)
    assert transaction.gold_rate == Decimal("5100.00")


def test_silver_account_uses_silver_rate(db, market_rate, open_account):
    account = open_account(metal_type="silver", metal_purity="silver", target_amount=Decimal("8250.00"))
    process_account_autopay(db, account, NOW)

    [transaction] = GullakRepository(db).list_transactions(account.id)
    assert transaction.gold_rate == Decimal("82.50")


def test_weekly_autopay_schedules_requested_day(db, market_rate, open_account):
    account = open_account(payment_frequency="weekly", payment_day_of_week=5)
    process_account_autopay(db, account, NOW)

    db.refresh(account)
    assert account.next_payment_date == datetime(2026, 3, 6, 6, 0)
    assert account.transactions[0].description == "Automatic weekly payment"


def test_payment_reaching_target_completes_account(db, market_rate, open_account):
    account = open_account(current_balance=Decimal("5500.00"))

    assert process_account_autopay(db, account, NOW) == "paid"

    db.refresh(account)
    assert account.current_balance == Decimal("6500.00")
    assert account.status == "completed"
    assert account.completed_at == NOW


def test_account_already_at_target_is_completed_without_payment(db, market_rate, open_account):
    account = open_account(current_balance=Decimal("6200.00"))

    assert process_account_autopay(db, account, NOW) == "completed"

    db.refresh(account)
    assert account.status == "completed"
    assert account.total_payments == 0
    assert GullakRepository(db).list_transactions(account.id) == []


def test_due_accounts_filter(db, open_account):
    due = open_account(name="due")
    open_account(name="future", next_payment_date=NOW + timedelta(hours=1))
    open_account(name="paused", status="paused")
    open_account(name="manual", auto_pay_enabled=False)
    open_account(name="unscheduled", next_payment_date=None)

    assert [a.id for a in find_due_accounts(db, NOW)] == [due.id]


def test_sweep_counts_outcomes(db, market_rate, open_account):
    open_account(name="first")
    open_account(name="second")
    open_account(name="done", current_balance=Decimal("7000.00"))

    summary = process_autopayments(db, NOW)

    assert summary == {"processed": 2, "completed": 1, "failed": 0}


def test_sweep_continues_after_failure(db, market_rate, open_account):
    failing = open_account(name="failing")
    healthy = open_account(name="healthy")
    real = process_account_autopay

    def flaky(db, account, now=None):
        if account.id == failing.id:
            raise RuntimeError("database hiccup")
        return real(db, account, now)

    with patch("ddm_jewellers.services.autopay.process_account_autopay", side_effect=flaky):
        summary = process_autopayments(db, NOW)

    assert summary == {"processed": 1, "completed": 0, "failed": 1}
    db.refresh(healthy)
    assert healthy.current_balance == Decimal("1000.00")


def test_autopay_without_rates_fails(db, open_account):
    account = open_account()
    with pytest.raises(RatesUnavailableError):
        process_account_autopay(db, account, NOW)


def test_trigger_checks(db, market_rate, open_account):
    with pytest.raises(AccountNotFoundError):
        trigger_autopay_for_account(db, 9999, NOW)

    manual = open_account(auto_pay_enabled=False)
    with pytest.raises(AutopayDisabledError):
        trigger_autopay_for_account(db, manual.id, NOW)

    paused = open_account(status="paused")
    with pytest.raises(InvalidAccountStateError):
        trigger_autopay_for_account(db, paused.id, NOW)


def test_trigger_ignores_due_date(db, market_rate, open_account):
    account = open_account(next_payment_date=NOW + timedelta(days=10))
    assert trigger_autopay_for_account(db, account.id, NOW) == "paid"


def test_deposit_keeps_schedule(db, market_rate, open_account):
    account = open_account(next_payment_date=NOW + timedelta(days=1))

    transaction = record_deposit(db, account, Decimal("250"), payment_method="upi", reference="UTR123", now=NOW)

    db.refresh(account)
    assert transaction.type == "deposit"
    assert transaction.description == "Manual deposit"
    assert transaction.payment_method == "upi"
    assert account.current_balance == Decimal("250.00")
    assert account.next_payment_date == NOW + timedelta(days=1)


def test_deposit_allowed_while_paused(db, market_rate, open_account):
    account = open_account(status="paused")
    record_deposit(db, account, Decimal("100"), now=NOW)
    db.refresh(account)
    assert account.current_balance == Decimal("100.00")


def test_deposit_rejected_when_closed(db, market_rate, open_account):
    account = open_account(status="cancelled")
    with pytest.raises(InvalidAccountStateError):
        record_deposit(db, account, Decimal("100"), now=NOW)


def test_increment_balance_accumulates(db, open_account):
    account = open_account()
    repo = GullakRepository(db)

    repo.increment_balance(account, Decimal("100.00"))
    assert repo.increment_balance(account, Decimal("50.50")) == Decimal("150.50")
