"""
Pydantic models for the cart engine, checkout, requests, and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, List, Literal
from decimal import Decimal

DeliveryType = Literal["pickup", "home"]
CheckoutChannel = Literal["whatsapp", "pos", "direct"]
OrderDateFormat = Literal["YYYYMMDD", "DDMMYYYY"]


class CatalogItem(BaseModel):
    """Purchasable product as supplied by the external catalog"""
    model_config = {"frozen": True}

    id: str = Field(..., description="Product identifier")
    title: str = Field("", description="Display title")
    unit_price: Decimal = Field(..., ge=0, description="Current catalog price")
    stock: Optional[int] = Field(None, ge=0, description="Units available; None means unlimited")
    category: Optional[str] = Field(None, description="Product category")


class CartLine(BaseModel):
    """Committed cart line"""
    product_id: str = Field(..., description="Product identifier")
    title: str = Field("", description="Title at time of add")
    quantity: int = Field(..., ge=1, description="Committed quantity")
    unit_price_snapshot: Decimal = Field(..., description="Price at time of add")
    category: Optional[str] = Field(None, description="Product category")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price_snapshot * self.quantity


class CartOperationResult(BaseModel):
    """Outcome of a cart mutation. ok=False means the state was left untouched."""
    ok: bool
    action: str
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)


class PricingConfig(BaseModel):
    """Delivery and tax settings for the pricing engine"""
    delivery_charge_flat: Decimal = Field(Decimal("50"), ge=0)
    free_delivery_threshold: Decimal = Field(Decimal("1000"), ge=0)
    tax_rate: Decimal = Field(Decimal("0.18"), ge=0)
    delivery_type: DeliveryType = "home"


class CheckoutConfig(BaseModel):
    """Order id and validation settings for checkout"""
    order_prefix: str = "SHOP"
    order_start_number: int = Field(1, ge=0)
    order_date_format: OrderDateFormat = "YYYYMMDD"
    min_order_amount: Decimal = Decimal("0")
    max_order_amount: Decimal = Decimal("0")
    required_fields: List[str] = Field(default_factory=lambda: ["name", "phone", "address"])
    validate_phone: bool = True
    validate_email: bool = False
    currency: str = "₹"
    currency_position: Literal["before", "after"] = "before"


class OrderTotals(BaseModel):
    """Derived order computation for the committed cart"""
    subtotal: Decimal
    delivery_charge: Decimal
    tax: Decimal
    total: Decimal


class ValidationResult(BaseModel):
    """Checkout validation outcome"""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)


class CustomerDetails(BaseModel):
    """Customer-supplied checkout fields"""
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    delivery_type: DeliveryType = "home"
    custom_fields: Dict[str, str] = Field(default_factory=dict)


class OrderData(CustomerDetails):
    """Customer fields plus the priced cart, as seen by validators and hooks"""
    lines: List[CartLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    delivery_charge: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    def totals(self) -> OrderTotals:
        return OrderTotals(
            subtotal=self.subtotal,
            delivery_charge=self.delivery_charge,
            tax=self.tax,
            total=self.total,
        )


class PlacedOrder(BaseModel):
    """Order stamped with an id after a successful checkout"""
    order_id: str
    channel: CheckoutChannel = "direct"
    placed_at: datetime
    customer: CustomerDetails
    lines: List[CartLine]
    totals: OrderTotals
    item_count: int


class CheckoutResult(BaseModel):
    """Response of a checkout attempt"""
    success: bool
    order: Optional[PlacedOrder] = None
    errors: List[str] = Field(default_factory=list)


# Request / response models for the HTTP API

class AddItemRequest(BaseModel):
    """Request model for adding items to the cart"""
    product_id: str = Field(..., description="Product identifier")
    quantity: int = Field(1, description="Requested quantity")


class StageDeltaRequest(BaseModel):
    """Request model for a +/- quantity step"""
    delta: int = Field(..., description="Signed quantity change")

    @field_validator("delta")
    @classmethod
    def validate_delta(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Delta must be non-zero")
        return v


class StageAbsoluteRequest(BaseModel):
    """Request model for a typed quantity"""
    value: str = Field(..., description="Quantity as typed by the user")


class CheckoutRequest(BaseModel):
    """Request model for checkout"""
    customer: CustomerDetails
    channel: CheckoutChannel = "direct"


class CartResponse(BaseModel):
    """Response model for cart retrieval"""
    cart_id: str = Field(..., description="Cart identifier")
    items: List[CartLine] = Field(default_factory=list, description="Committed lines in cart order")
    staged: Dict[str, int] = Field(default_factory=dict, description="Pending quantities by product_id")
    total_items: int = Field(0, description="Total number of items")
    total_price: Decimal = Field(Decimal("0"), description="Total cart price")
    has_unsaved_changes: bool = False
