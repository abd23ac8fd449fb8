"""Data access layer for storefront, market rate and Gullak entities"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from ddm_jewellers.domain.models import RateQuote
from ddm_jewellers.infrastructure.database.models import (
    CartItem,
    Category,
    GullakAccount,
    GullakTransaction,
    MarketRate,
    Order,
    OrderItem,
    Product,
    User,
    UserActivityLog,
)
from ddm_jewellers.utils.date_utils import utcnow

MAX_PAGE_SIZE = 50


def _apply(instance: Any, changes: Dict[str, Any]) -> None:
    for field, value in changes.items():
        setattr(instance, field, value)


class UserRepository:
    """Repository for user accounts and their sessions"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        return user

    def update_session(self, user: User, token: Optional[str], expires_at: Optional[datetime]) -> None:
        user.session_token = token
        user.session_expires_at = expires_at
        if token is not None:
            user.last_login_at = utcnow()

    def list(self, role: Optional[str] = None) -> List[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc()).all()

    def count(self, role: Optional[str] = None, pending_approval: bool = False) -> int:
        query = self.db.query(func.count(User.id))
        if role:
            query = query.filter(User.role == role)
        if pending_approval:
            query = query.filter(User.is_approved.is_(False))
        return query.scalar() or 0


class ActivityRepository:
    """Repository for the user activity audit log"""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        user_id: Optional[str],
        action: str,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserActivityLog:
        entry = UserActivityLog(
            user_id=user_id,
            action=action,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(entry)
        return entry


class CategoryRepository:
    """Repository for catalog categories"""

    def __init__(self, db: Session):
        self.db = db

    def list(self, product_type: Optional[str] = None) -> List[Category]:
        """Categories for a product type also include those marked "both" """
        query = self.db.query(Category).filter(Category.is_active.is_(True))
        if product_type and product_type != "both":
            query = query.filter(or_(Category.product_type == product_type, Category.product_type == "both"))
        return query.order_by(Category.sort_order, Category.name).all()

    def get(self, category_id: int) -> Optional[Category]:
        return self.db.get(Category, category_id)

    def get_by_slug(self, slug: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.slug == slug).first()

    def create(self, **fields: Any) -> Category:
        category = Category(**fields)
        self.db.add(category)
        self.db.flush()
        return category

    def update(self, category: Category, changes: Dict[str, Any]) -> Category:
        _apply(category, changes)
        self.db.flush()
        return category

    def delete(self, category: Category) -> None:
        self.db.delete(category)

    def count(self) -> int:
        return self.db.query(func.count(Category.id)).scalar() or 0


class ProductRepository:
    """Repository for catalog products"""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        product_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Product]:
        """Active products, featured first then newest; page size capped at 50"""
        query = self.db.query(Product).filter(Product.is_active.is_(True))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if search:
            query = query.filter(Product.name.ilike(f"%{search}%"))
        if featured is not None:
            query = query.filter(Product.is_featured.is_(featured))
        if product_type:
            query = query.filter(Product.product_type == product_type)

        return (
            query.order_by(Product.is_featured.desc(), Product.created_at.desc(), Product.id.desc())
            .limit(min(limit, MAX_PAGE_SIZE))
            .offset(offset)
            .all()
        )

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def create(self, **fields: Any) -> Product:
        product = Product(**fields)
        self.db.add(product)
        self.db.flush()
        return product

    def update(self, product: Product, changes: Dict[str, Any]) -> Product:
        _apply(product, changes)
        self.db.flush()
        return product

    def delete(self, product: Product) -> None:
        self.db.delete(product)

    def count(self) -> int:
        return self.db.query(func.count(Product.id)).scalar() or 0


class CartRepository:
    """Repository for cart lines"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.id)
            .all()
        )

    def get(self, item_id: int) -> Optional[CartItem]:
        return self.db.get(CartItem, item_id)

    def add(self, user_id: str, product_id: int, quantity: int) -> CartItem:
        """Adding a product already in the cart increases its quantity"""
        existing = (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .first()
        )
        if existing:
            existing.quantity += quantity
            self.db.flush()
            return existing

        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        self.db.add(item)
        self.db.flush()
        return item

    def remove(self, item: CartItem) -> None:
        self.db.delete(item)

    def clear(self, user_id: str) -> None:
        self.db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)


class OrderRepository:
    """Repository for orders and their line items"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, total_amount: Decimal, items: List[OrderItem], **fields: Any) -> Order:
        order = Order(user_id=user_id, total_amount=total_amount, **fields)
        order.items = items
        self.db.add(order)
        self.db.flush()
        return order

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def list(self, user_id: Optional[str] = None) -> List[Order]:
        """All orders when user_id is None"""
        query = self.db.query(Order)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def count(self) -> int:
        return self.db.query(func.count(Order.id)).scalar() or 0

    def revenue(self) -> Decimal:
        """Sum of totals for orders that were not cancelled"""
        total = self.db.query(func.sum(Order.total_amount)).filter(Order.status != "cancelled").scalar()
        return Decimal(str(total)) if total is not None else Decimal("0")


class MarketRateRepository:
    """Repository for market rate snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, quote: RateQuote, currency: str, effective_date: datetime) -> MarketRate:
        rate = MarketRate(
            rate_24k=quote.gold24k,
            rate_22k=quote.gold22k,
            rate_18k=quote.gold18k,
            silver_rate=quote.silver,
            currency=currency,
            source=quote.source,
            effective_date=effective_date,
        )
        self.db.add(rate)
        self.db.flush()
        return rate

    def get_latest(self) -> Optional[MarketRate]:
        """Most recently inserted snapshot"""
        return self.db.query(MarketRate).order_by(MarketRate.id.desc()).first()

    def get_history(self, limit: int = 10) -> List[MarketRate]:
        return self.db.query(MarketRate).order_by(MarketRate.id.desc()).limit(limit).all()


class GullakRepository:
    """Repository for Gullak accounts and their ledger"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, **fields: Any) -> GullakAccount:
        account = GullakAccount(**fields)
        self.db.add(account)
        self.db.flush()
        return account

    def get_account(self, account_id: int) -> Optional[GullakAccount]:
        return self.db.get(GullakAccount, account_id)

    def list_accounts(self, user_id: Optional[str] = None) -> List[GullakAccount]:
        query = self.db.query(GullakAccount)
        if user_id is not None:
            query = query.filter(GullakAccount.user_id == user_id)
        return query.order_by(GullakAccount.id).all()

    def list_due_accounts(self, now: datetime) -> List[GullakAccount]:
        """Active, autopay-enabled accounts whose next payment date has passed"""
        return (
            self.db.query(GullakAccount)
            .filter(
                GullakAccount.status == "active",
                GullakAccount.auto_pay_enabled.is_(True),
                GullakAccount.next_payment_date.isnot(None),
                GullakAccount.next_payment_date <= now,
            )
            .order_by(GullakAccount.id)
            .all()
        )

    def count_active(self) -> int:
        return self.db.query(func.count(GullakAccount.id)).filter(GullakAccount.status == "active").scalar() or 0

    def increment_balance(self, account: GullakAccount, amount: Decimal) -> Decimal:
        """
        Add to the balance with a single UPDATE so concurrent contributions
        never overwrite each other, then reload and return the new balance.
        """
        self.db.execute(
            update(GullakAccount)
            .where(GullakAccount.id == account.id)
            .values(current_balance=GullakAccount.current_balance + amount)
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(account, attribute_names=["current_balance"])
        return Decimal(str(account.current_balance))

    def create_transaction(self, **fields: Any) -> GullakTransaction:
        transaction = GullakTransaction(**fields)
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def list_transactions(self, account_id: int, limit: int = 50) -> List[GullakTransaction]:
        return (
            self.db.query(GullakTransaction)
            .filter(GullakTransaction.account_id == account_id)
            .order_by(GullakTransaction.id.desc())
            .limit(limit)
            .all()
        )
