"""Tests for checkout validation."""

from decimal import Decimal

from shopcart.models import CartLine, CheckoutConfig, OrderData
from shopcart.validation import OrderValidator

LINE = CartLine(product_id="tee", quantity=2, unit_price_snapshot=Decimal("100"))


def _order(**overrides) -> OrderData:
    data = dict(
        name="Asha Rao",
        phone="9876543210",
        email="",
        address="12 MG Road, Bengaluru",
        lines=[LINE],
        subtotal=Decimal("200"),
    )
    data.update(overrides)
    return OrderData(**data)


class TestOrderValidator:
    def test_complete_order_is_valid(self) -> None:
        result = OrderValidator(CheckoutConfig()).validate(_order())
        assert result.is_valid is True
        assert result.errors == []

    def test_short_phone(self) -> None:
        result = OrderValidator(CheckoutConfig(validate_phone=True)).validate(_order(phone="12345"))
        assert result.is_valid is False
        assert "Mobile number must be 10 digits" in result.errors

    def test_phone_formatting_is_ignored(self) -> None:
        result = OrderValidator(CheckoutConfig()).validate(_order(phone="+98765 43210"))
        assert result.is_valid is True

    def test_phone_not_checked_when_disabled(self) -> None:
        result = OrderValidator(CheckoutConfig(validate_phone=False)).validate(_order(phone="12345"))
        assert result.is_valid is True

    def test_collects_every_error_in_order(self) -> None:
        result = OrderValidator(CheckoutConfig()).validate(
            _order(name="A", phone="", address="short", lines=[], subtotal=Decimal("0"))
        )
        assert result.errors == [
            "Name must be at least 2 characters",
            "Mobile number is required",
            "Please enter complete delivery address",
            "Cart is empty",
        ]

    def test_missing_fields(self) -> None:
        result = OrderValidator(CheckoutConfig()).validate(_order(name="  ", address=""))
        assert result.errors == ["Customer name is required", "Delivery address is required"]

    def test_fields_not_required(self) -> None:
        config = CheckoutConfig(required_fields=["phone"])
        result = OrderValidator(config).validate(_order(name="", address=""))
        assert result.is_valid is True

    def test_email_checked_only_when_enabled(self) -> None:
        order = _order(email="not-an-email")
        assert OrderValidator(CheckoutConfig()).validate(order).is_valid is True
        result = OrderValidator(CheckoutConfig(validate_email=True)).validate(order)
        assert result.errors == ["Invalid email address"]

    def test_valid_email(self) -> None:
        result = OrderValidator(CheckoutConfig(validate_email=True)).validate(_order(email="asha@example.in"))
        assert result.is_valid is True

    def test_min_order_amount(self) -> None:
        config = CheckoutConfig(min_order_amount=Decimal("500"))
        result = OrderValidator(config).validate(_order())
        assert result.errors == ["Minimum order amount is ₹500.00"]

    def test_max_order_amount(self) -> None:
        config = CheckoutConfig(max_order_amount=Decimal("150"), currency="$")
        result = OrderValidator(config).validate(_order())
        assert result.errors == ["Maximum order amount is $150.00"]

    def test_custom_validator_appends(self) -> None:
        def no_tees(order: OrderData):
            if any(line.product_id == "tee" for line in order.lines):
                return ["Tees are not available for delivery"]
            return None

        result = OrderValidator(CheckoutConfig(), custom_validator=no_tees).validate(_order(phone="1"))
        assert result.errors == ["Mobile number must be 10 digits", "Tees are not available for delivery"]

    def test_repeatable(self) -> None:
        validator = OrderValidator(CheckoutConfig())
        order = _order(phone="123")
        first = validator.validate(order)
        second = validator.validate(order)
        assert first == second
        assert order.phone == "123"
