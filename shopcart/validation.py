"""
Checkout validation for customer details and order amounts.
"""
import re
from typing import Callable, List, Optional

from shopcart.models import CheckoutConfig, OrderData, ValidationResult
from shopcart.pricing import format_price

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGITS_RE = re.compile(r"\D")

CustomValidator = Callable[[OrderData], Optional[List[str]]]


class OrderValidator:
    """Runs every check and collects all failures instead of stopping at the first"""

    def __init__(self, config: CheckoutConfig, custom_validator: Optional[CustomValidator] = None):
        self.config = config
        self.custom_validator = custom_validator

    def _requires(self, field: str) -> bool:
        return field in self.config.required_fields

    def _price(self, amount) -> str:
        return format_price(amount, self.config.currency, self.config.currency_position)

    def validate(self, order_data: OrderData) -> ValidationResult:
        errors: List[str] = []

        name = order_data.name.strip()
        if self._requires("name"):
            if not name:
                errors.append("Customer name is required")
            elif len(name) < 2:
                errors.append("Name must be at least 2 characters")

        phone = order_data.phone.strip()
        if self._requires("phone"):
            if not phone:
                errors.append("Mobile number is required")
            elif self.config.validate_phone and len(NON_DIGITS_RE.sub("", phone)) != 10:
                errors.append("Mobile number must be 10 digits")

        email = order_data.email.strip()
        if self.config.validate_email and email and not EMAIL_RE.match(email):
            errors.append("Invalid email address")

        address = order_data.address.strip()
        if self._requires("address"):
            if not address:
                errors.append("Delivery address is required")
            elif len(address) < 10:
                errors.append("Please enter complete delivery address")

        if not order_data.lines:
            errors.append("Cart is empty")

        if self.config.min_order_amount > 0 and order_data.subtotal < self.config.min_order_amount:
            errors.append(f"Minimum order amount is {self._price(self.config.min_order_amount)}")

        if self.config.max_order_amount > 0 and order_data.subtotal > self.config.max_order_amount:
            errors.append(f"Maximum order amount is {self._price(self.config.max_order_amount)}")

        if self.custom_validator:
            custom_errors = self.custom_validator(order_data)
            if custom_errors:
                errors.extend(custom_errors)

        return ValidationResult(is_valid=not errors, errors=errors)
