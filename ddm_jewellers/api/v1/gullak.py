"""/api/gullak - metal savings accounts"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import get_current_user, get_request_id, require_admin, require_approved
from ddm_jewellers.api.v1.schemas import (
    AutopayRunResponse,
    AutopayTriggerResponse,
    GullakAccountCreate,
    GullakAccountDetail,
    GullakAccountResponse,
    GullakAccountUpdate,
    GullakDepositRequest,
    GullakProgressSchema,
    GullakTransactionResponse,
)
from ddm_jewellers.domain.exceptions import (
    AccountNotFoundError,
    AutopayDisabledError,
    InvalidAccountStateError,
    RatesUnavailableError,
)
from ddm_jewellers.domain.gullak import calculate_next_payment_date, calculate_target_amount, summarize_progress
from ddm_jewellers.infrastructure.database.models import GullakAccount, User
from ddm_jewellers.infrastructure.database.repositories import GullakRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.services.autopay import account_rate, process_autopayments, record_deposit, trigger_autopay_for_account
from ddm_jewellers.services.market_rates import load_rate_snapshot
from ddm_jewellers.utils.date_utils import utcnow

router = APIRouter()

CLOSED_STATUSES = ("completed", "cancelled")


def _owned_account(db: Session, account_id: int, user: User) -> GullakAccount:
    account = GullakRepository(db).get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Gullak account not found")
    if account.user_id != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not your Gullak account")
    return account


def _detail(db: Session, account: GullakAccount) -> GullakAccountDetail:
    """Account with progress; progress is omitted until a market rate exists"""
    rates = load_rate_snapshot(db)
    progress = None
    if rates is not None:
        progress = GullakProgressSchema.model_validate(
            summarize_progress(
                account.current_balance,
                account.target_amount,
                account.payment_amount,
                account_rate(account, rates),
            )
        )
    return GullakAccountDetail(account=GullakAccountResponse.model_validate(account), progress=progress)


@router.get("/gullak/accounts", response_model=List[GullakAccountResponse])
def list_accounts(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return GullakRepository(db).list_accounts(user.id)


@router.post("/gullak/accounts", response_model=GullakAccountResponse, status_code=201)
def create_account(
    body: GullakAccountCreate,
    request: Request,
    user: User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    """
    Open a savings plan.

    Without an explicit target_amount the target is the target weight
    valued at today's rate for the chosen purity. Daily plans are due
    immediately; weekly and monthly plans start on their next scheduled day.
    """
    fields = body.model_dump()
    now = utcnow()

    if fields["target_amount"] is None:
        rates = load_rate_snapshot(db)
        if rates is None:
            raise HTTPException(status_code=503, detail="Market rates not available")
        rate = rates.silver if body.metal_type == "silver" else rates.rate_for_purity(body.metal_purity)
        fields["target_amount"] = calculate_target_amount(body.target_metal_weight, rate)

    if body.payment_frequency == "daily":
        next_payment = now
    else:
        next_payment = calculate_next_payment_date(
            body.payment_frequency, now, body.payment_day_of_week, body.payment_day_of_month
        )

    account = GullakRepository(db).create_account(user_id=user.id, next_payment_date=next_payment, **fields)
    db.commit()

    logging.info(
        "Gullak account opened",
        extra={"request_id": get_request_id(request), "account_id": account.id, "user_id": user.id},
    )
    return account


@router.get("/gullak/accounts/{account_id}", response_model=GullakAccountDetail)
def get_account(account_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _detail(db, _owned_account(db, account_id, user))


@router.patch("/gullak/accounts/{account_id}", response_model=GullakAccountResponse)
def update_account(
    account_id: int,
    body: GullakAccountUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename, pause, resume, cancel, toggle autopay or change the contribution"""
    account = _owned_account(db, account_id, user)
    if account.status in CLOSED_STATUSES:
        raise HTTPException(status_code=409, detail=f"Account is {account.status}")

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(account, field, value)
    db.commit()
    return account


@router.get("/gullak/accounts/{account_id}/transactions", response_model=List[GullakTransactionResponse])
def list_transactions(
    account_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = _owned_account(db, account_id, user)
    return GullakRepository(db).list_transactions(account.id, limit)


@router.post("/gullak/accounts/{account_id}/deposit", response_model=GullakTransactionResponse, status_code=201)
def deposit(
    account_id: int,
    body: GullakDepositRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = _owned_account(db, account_id, user)
    try:
        transaction = record_deposit(db, account, body.amount, body.payment_method, body.reference)
    except InvalidAccountStateError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except RatesUnavailableError:
        db.rollback()
        raise HTTPException(status_code=503, detail="Market rates not available")

    logging.info(
        "Gullak deposit recorded",
        extra={"request_id": get_request_id(request), "account_id": account.id, "amount": str(body.amount)},
    )
    return transaction


@router.post(
    "/gullak/accounts/{account_id}/autopay",
    response_model=AutopayTriggerResponse,
    dependencies=[Depends(require_admin)],
)
def trigger_autopay(account_id: int, db: Session = Depends(get_db)):
    """Run one autopay contribution now, ignoring the due date"""
    try:
        outcome = trigger_autopay_for_account(db, account_id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (AutopayDisabledError, InvalidAccountStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RatesUnavailableError:
        db.rollback()
        raise HTTPException(status_code=503, detail="Market rates not available")

    account = GullakRepository(db).get_account(account_id)
    return AutopayTriggerResponse(outcome=outcome, account=GullakAccountResponse.model_validate(account))


@router.post("/gullak/autopay/run", response_model=AutopayRunResponse, dependencies=[Depends(require_admin)])
def run_autopay(db: Session = Depends(get_db)):
    """Sweep all due accounts, as the scheduler does"""
    return AutopayRunResponse(**process_autopayments(db))
