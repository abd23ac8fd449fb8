"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

ProductType = Literal["real", "imitation"]
CategoryProductType = Literal["real", "imitation", "both"]
SilverBillingMode = Literal["live_rate", "fixed_rate"]
OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
PaymentFrequency = Literal["daily", "weekly", "monthly"]
MetalPurity = Literal["24k", "22k", "18k", "silver"]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PartialUpdate(BaseModel):
    """PATCH/PUT body where omitted fields are left alone.

    Fields listed in `not_null` back NOT NULL columns, so they may be
    omitted but not sent as null.
    """

    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class MessageResponse(BaseModel):
    message: str


# --- Auth ---------------------------------------------------------------


class CustomerSignupRequest(BaseModel):
    """Request body for POST /api/auth/signup/customer"""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")
    confirm_password: str = Field(..., min_length=1)
    phone_number: Optional[str] = Field(None, max_length=20)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class WholesalerSignupRequest(CustomerSignupRequest):
    """Request body for POST /api/auth/signup/wholesaler"""

    business_name: str = Field(..., min_length=1, max_length=255)
    business_address: Optional[str] = None
    gst_number: Optional[str] = Field(None, max_length=20)
    years_in_business: int = Field(0, ge=0)


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(ORMModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    role: str
    is_active: bool
    is_email_verified: bool
    is_approved: bool
    business_name: Optional[str] = None
    last_login_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    redirect_to: Optional[str] = None


# --- Catalog ------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    product_type: CategoryProductType = "both"
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("name", "slug", "product_type", "sort_order", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    product_type: Optional[CategoryProductType] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(ORMModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    product_type: str
    sort_order: int
    is_active: bool


class ProductFields(BaseModel):
    description: Optional[str] = None
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    material: Optional[str] = Field(None, max_length=100)
    weight: Optional[Decimal] = Field(None, ge=0)
    making_charges: Optional[Decimal] = Field(None, ge=0)
    gemstones_cost: Optional[Decimal] = Field(None, ge=0)
    diamonds_cost: Optional[Decimal] = Field(None, ge=0)
    silver_billing_mode: Optional[SilverBillingMode] = None
    fixed_rate_per_gram: Optional[Decimal] = Field(None, ge=0)
    purity: Optional[str] = None
    size: Optional[str] = None


class ProductCreate(ProductFields):
    """Request body for POST /api/products"""

    name: str = Field(..., min_length=1, max_length=200)
    product_type: ProductType
    stock: int = Field(0, ge=0)
    is_featured: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def imitation_needs_price(self):
        if self.product_type == "imitation" and self.price is None:
            raise ValueError("Imitation products require a catalog price")
        return self


class ProductUpdate(ProductFields, PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("name", "product_type", "stock", "is_featured", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    product_type: Optional[ProductType] = None
    stock: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None


class ProductResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    image_url: Optional[str] = None
    price: Optional[Decimal] = None
    product_type: str
    material: Optional[str] = None
    weight: Optional[Decimal] = None
    making_charges: Optional[Decimal] = None
    gemstones_cost: Optional[Decimal] = None
    diamonds_cost: Optional[Decimal] = None
    silver_billing_mode: Optional[str] = None
    fixed_rate_per_gram: Optional[Decimal] = None
    purity: Optional[str] = None
    size: Optional[str] = None
    stock: int
    is_featured: bool
    is_active: bool


# --- Pricing ------------------------------------------------------------


class PricingRequest(BaseModel):
    """Request body for POST /api/pricing/calculate"""

    product_type: ProductType = "real"
    material: str = Field(..., min_length=1)
    weight: Decimal = Field(..., ge=0)
    making_charges: Decimal = Field(Decimal("0"), ge=0)
    gemstones_cost: Decimal = Field(Decimal("0"), ge=0)
    diamonds_cost: Decimal = Field(Decimal("0"), ge=0)
    silver_billing_mode: SilverBillingMode = "live_rate"
    fixed_rate_per_gram: Decimal = Field(Decimal("0"), ge=0)
    quantity: int = Field(1, ge=1)


class PricingBreakdownSchema(ORMModel):
    weight: Decimal
    rate_per_gram: Decimal
    metal_cost: Decimal
    making_charges: Decimal
    gemstones_cost: Decimal
    diamonds_cost: Decimal
    subtotal: Decimal
    gst_amount: Decimal
    final_price: Decimal


class PricingResponse(BaseModel):
    quantity: int
    breakdown: PricingBreakdownSchema
    formatted: Dict[str, str]
    payable: Decimal
    uses_catalog_price: bool = False


# --- Cart & orders ------------------------------------------------------


class CartAddRequest(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class CartUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class CartItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    product: ProductResponse
    line_total: Decimal
    pricing: PricingBreakdownSchema


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    total: Decimal


class OrderItemRequest(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class OrderCreateRequest(BaseModel):
    """Request body for POST /api/orders; the cart is used when items are omitted"""

    items: Optional[List[OrderItemRequest]] = None
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class OrderItemResponse(ORMModel):
    id: int
    product_id: Optional[int] = None
    quantity: int
    price: Decimal
    weight_in_grams: Optional[Decimal] = None
    rate_per_gram: Optional[Decimal] = None
    metal_cost: Optional[Decimal] = None
    making_charges: Optional[Decimal] = None
    gemstones_cost: Optional[Decimal] = None
    diamonds_cost: Optional[Decimal] = None
    gst_amount: Optional[Decimal] = None


class OrderResponse(ORMModel):
    id: int
    user_id: str
    status: str
    total_amount: Decimal
    payment_status: str
    payment_method: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    created_at: datetime
    items: List[OrderItemResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# --- Market rates -------------------------------------------------------


class MarketRateResponse(ORMModel):
    id: int
    rate_24k: Decimal
    rate_22k: Decimal
    rate_18k: Decimal
    silver_rate: Decimal
    currency: str
    source: str
    effective_date: datetime


# --- Gullak -------------------------------------------------------------


class GullakAccountCreate(BaseModel):
    """Request body for POST /api/gullak/accounts"""

    name: str = Field(..., min_length=1, max_length=255)
    metal_type: Literal["gold", "silver"]
    metal_purity: MetalPurity
    payment_amount: Decimal = Field(..., gt=0)
    payment_frequency: PaymentFrequency
    payment_day_of_week: Optional[int] = Field(None, ge=0, le=6, description="0 = Sunday")
    payment_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    target_metal_weight: Decimal = Field(..., gt=0)
    target_amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to weight x current rate")
    auto_pay_enabled: bool = True

    @model_validator(mode="after")
    def purity_matches_metal(self):
        if (self.metal_type == "silver") != (self.metal_purity == "silver"):
            raise ValueError("metal_purity must be 'silver' exactly when metal_type is silver")
        return self


class GullakAccountUpdate(PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("name", "status", "auto_pay_enabled", "payment_amount")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[Literal["active", "paused", "cancelled"]] = None
    auto_pay_enabled: Optional[bool] = None
    payment_amount: Optional[Decimal] = Field(None, gt=0)


class GullakAccountResponse(ORMModel):
    id: int
    user_id: str
    name: str
    metal_type: str
    metal_purity: str
    payment_amount: Decimal
    payment_frequency: str
    payment_day_of_week: Optional[int] = None
    payment_day_of_month: Optional[int] = None
    target_metal_weight: Decimal
    target_amount: Decimal
    current_balance: Decimal
    status: str
    auto_pay_enabled: bool
    next_payment_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    total_payments: int
    completed_at: Optional[datetime] = None


class GullakProgressSchema(ORMModel):
    progress_percent: float
    days_remaining: int
    current_metal_weight: Decimal


class GullakAccountDetail(BaseModel):
    account: GullakAccountResponse
    progress: Optional[GullakProgressSchema] = None


class GullakDepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = Field(None, max_length=50)
    reference: Optional[str] = Field(None, max_length=255)


class GullakTransactionResponse(ORMModel):
    id: int
    account_id: int
    amount: Decimal
    type: str
    gold_rate: Optional[Decimal] = None
    gold_value: Optional[Decimal] = None
    description: Optional[str] = None
    payment_method: Optional[str] = None
    status: str
    transaction_date: datetime


class AutopayTriggerResponse(BaseModel):
    outcome: str
    account: GullakAccountResponse


class AutopayRunResponse(BaseModel):
    processed: int
    completed: int
    failed: int


# --- Admin --------------------------------------------------------------


class DashboardResponse(BaseModel):
    total_users: int
    total_customers: int
    total_wholesalers: int
    pending_wholesalers: int
    total_products: int
    total_categories: int
    total_orders: int
    total_revenue: Decimal
    active_gullak_accounts: int


class UserActiveUpdate(BaseModel):
    is_active: bool
