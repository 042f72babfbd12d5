"""
Checkout service for pricing, validating, and placing orders from a cart.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from shopcart.cart_service import CartStore
from shopcart.models import (
    CheckoutChannel,
    CheckoutConfig,
    CheckoutResult,
    CustomerDetails,
    DeliveryType,
    OrderData,
    OrderTotals,
    PlacedOrder,
    PricingConfig,
    ValidationResult,
)
from shopcart.order_ids import OrderIdGenerator
from shopcart.pricing import compute_order
from shopcart.validation import CustomValidator, OrderValidator

logger = logging.getLogger(__name__)

UNSAVED_CHANGES_ERROR = "Please save or cancel your changes before checkout"

BeforePlaceHook = Callable[[OrderData], Optional[bool]]


class CheckoutService:
    """Service for checkout operations"""

    def __init__(
        self,
        cart: CartStore,
        pricing: PricingConfig,
        checkout: CheckoutConfig,
        order_ids: Optional[OrderIdGenerator] = None,
        custom_validator: Optional[CustomValidator] = None,
        before_place: Optional[BeforePlaceHook] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cart = cart
        self.pricing = pricing
        self.checkout = checkout
        self.clock = clock
        self.order_ids = order_ids or OrderIdGenerator.from_config(checkout, clock=clock)
        self.validator = OrderValidator(checkout, custom_validator)
        self.before_place = before_place

    def compute_totals(self, delivery_type: DeliveryType = "home") -> OrderTotals:
        config = self.pricing.model_copy(update={"delivery_type": delivery_type})
        return compute_order(self.cart.get_lines(), config)

    def build_order_data(self, customer: CustomerDetails) -> OrderData:
        """Combine customer fields with the priced committed cart; no order id is consumed"""
        totals = self.compute_totals(customer.delivery_type)
        return OrderData(
            **customer.model_dump(),
            lines=self.cart.get_lines(),
            subtotal=totals.subtotal,
            delivery_charge=totals.delivery_charge,
            tax=totals.tax,
            total=totals.total,
        )

    def validate(self, customer: CustomerDetails) -> ValidationResult:
        """Validate without side effects; safe for live as-you-type checks"""
        return self.validator.validate(self.build_order_data(customer))

    def place_order(
        self,
        customer: CustomerDetails,
        channel: CheckoutChannel = "direct"
    ) -> CheckoutResult:
        """
        Place an order:
        1. Refuse while quantity edits are unsaved
        2. Price the committed cart
        3. Validate customer details and amounts
        4. Give the before-place hook a chance to cancel
        5. Stamp an order id
        6. Notify listeners and clear the cart

        Args:
            customer: Customer-supplied fields
            channel: Checkout flow the order came from

        Returns:
            CheckoutResult with the placed order or the errors
        """
        if self.cart.has_unsaved_changes():
            errors = [UNSAVED_CHANGES_ERROR]
            self.cart.callbacks.notify("warning", UNSAVED_CHANGES_ERROR)
            return CheckoutResult(success=False, errors=errors)

        order_data = self.build_order_data(customer)
        validation = self.validator.validate(order_data)
        if not validation.is_valid:
            self.cart.callbacks.validation_error(validation.errors)
            return CheckoutResult(success=False, errors=validation.errors)

        if self.before_place is not None and self.before_place(order_data) is False:
            return CheckoutResult(success=False, errors=["Cancelled by before-place hook"])

        order = PlacedOrder(
            order_id=self.order_ids.generate(),
            channel=channel,
            placed_at=self.clock(),
            customer=CustomerDetails(**customer.model_dump()),
            lines=order_data.lines,
            totals=order_data.totals(),
            item_count=sum(line.quantity for line in order_data.lines),
        )

        logger.info(f"Order placed: {order.order_id} via {channel}, total {order.totals.total}")

        self.cart.callbacks.order_placed(order)
        self.cart.clear()
        self.cart.callbacks.notify("success", "Order placed successfully! Cart cleared.")

        return CheckoutResult(success=True, order=order)
