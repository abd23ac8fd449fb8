"""SQLAlchemy ORM models for the storefront, market rates and Gullak savings"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Text, JSON, Numeric
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ddm_jewellers.utils.date_utils import utcnow

Base = declarative_base()


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Customer, wholesaler or admin account"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default="customer")  # customer | wholesaler | admin
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=False)
    business_name = Column(String(255), nullable=True)
    business_address = Column(Text, nullable=True)
    gst_number = Column(String(20), nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    session_token = Column(String(128), nullable=True, index=True)
    session_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan")
    gullak_accounts = relationship("GullakAccount", back_populates="user")


class UserActivityLog(Base):
    """Audit trail of authentication events"""

    __tablename__ = "user_activity_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    action = Column(String(100), nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Category(Base):
    """Catalog category, optionally nested under a parent"""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    product_type = Column(String(20), nullable=False, default="both")  # real | imitation | both
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    products = relationship("Product", back_populates="category")


class Product(Base):
    """Real (metal priced) or imitation (flat priced) jewellery piece"""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    image_url = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    product_type = Column(String(20), nullable=False)  # real | imitation
    material = Column(String(100), nullable=True)
    weight = Column(Numeric(8, 3), nullable=True)
    making_charges = Column(Numeric(10, 2), nullable=True)
    gemstones_cost = Column(Numeric(10, 2), nullable=True)
    diamonds_cost = Column(Numeric(10, 2), nullable=True)
    silver_billing_mode = Column(String(20), nullable=True)  # live_rate | fixed_rate
    fixed_rate_per_gram = Column(Numeric(10, 2), nullable=True)
    purity = Column(String(20), nullable=True)
    size = Column(String(50), nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="products")


class CartItem(Base):
    """Product line in a user's cart"""

    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product", lazy="joined")


class Order(Base):
    """Checkout order with priced line items"""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(50), nullable=True)
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """Order line with the price breakdown captured at checkout"""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)  # line total
    weight_in_grams = Column(Numeric(8, 3), nullable=True)
    rate_per_gram = Column(Numeric(12, 2), nullable=True)
    metal_cost = Column(Numeric(12, 2), nullable=True)
    making_charges = Column(Numeric(12, 2), nullable=True)
    gemstones_cost = Column(Numeric(12, 2), nullable=True)
    diamonds_cost = Column(Numeric(12, 2), nullable=True)
    gst_amount = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class MarketRate(Base):
    """Immutable per-gram rate snapshot; the latest row is the current rate"""

    __tablename__ = "market_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rate_24k = Column(Numeric(12, 2), nullable=False)
    rate_22k = Column(Numeric(12, 2), nullable=False)
    rate_18k = Column(Numeric(12, 2), nullable=False)
    silver_rate = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="INR")
    source = Column(String(100), nullable=False)
    effective_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class GullakAccount(Base):
    """Recurring gold/silver savings plan"""

    __tablename__ = "gullak_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    metal_type = Column(String(10), nullable=False)  # gold | silver
    metal_purity = Column(String(10), nullable=False)  # 24k | 22k | 18k | silver
    payment_amount = Column(Numeric(12, 2), nullable=False)
    payment_frequency = Column(String(10), nullable=False)  # daily | weekly | monthly
    payment_day_of_week = Column(Integer, nullable=True)  # 0 = Sunday
    payment_day_of_month = Column(Integer, nullable=True)
    target_metal_weight = Column(Numeric(10, 3), nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    current_balance = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active | paused | completed | cancelled
    auto_pay_enabled = Column(Boolean, nullable=False, default=True)
    next_payment_date = Column(DateTime, nullable=True, index=True)
    last_payment_date = Column(DateTime, nullable=True)
    total_payments = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="gullak_accounts")
    transactions = relationship(
        "GullakTransaction",
        back_populates="account",
        order_by="GullakTransaction.id.desc()",
    )


class GullakTransaction(Base):
    """Immutable ledger entry for one contribution"""

    __tablename__ = "gullak_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("gullak_accounts.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(20), nullable=False)  # auto_pay | deposit
    gold_rate = Column(Numeric(12, 2), nullable=True)
    gold_value = Column(Numeric(14, 6), nullable=True)
    description = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    reference = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="completed")
    transaction_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    account = relationship("GullakAccount", back_populates="transactions")
