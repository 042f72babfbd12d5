"""
Configuration management for the storefront cart engine.
Loads settings from environment variables and AWS Secrets Manager.
"""
import os
import json
import logging
import boto3
from decimal import Decimal
from typing import List, Optional

from shopcart.models import CheckoutConfig, PricingConfig

logger = logging.getLogger(__name__)


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    """Application configuration"""

    # Application settings
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "shopcart")
    REGION: str = os.getenv("REGION", "ap-south-1")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Cart persistence
    CART_STORAGE_BACKEND: str = os.getenv("CART_STORAGE_BACKEND", "memory")  # 'memory' or 'redis'
    CART_SNAPSHOT_PREFIX: str = os.getenv("CART_SNAPSHOT_PREFIX", "shopcart_items")
    ORDER_COUNTER_KEY: str = os.getenv("ORDER_COUNTER_KEY", "shopcart:order_counter")
    CART_TTL_SECONDS: int = int(os.getenv("CART_TTL_SECONDS", str(7 * 24 * 60 * 60)))  # 7 days default, 0 disables
    CART_SESSION_LIMIT: int = int(os.getenv("CART_SESSION_LIMIT", "1000"))  # carts held in process

    # Redis settings
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_AUTH_TOKEN: Optional[str] = os.getenv("REDIS_AUTH_TOKEN")
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_USE_SSL: bool = _get_bool("REDIS_USE_SSL", False)

    # Redis connection settings
    REDIS_SOCKET_CONNECT_TIMEOUT: int = 5
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_RETRY_ON_TIMEOUT: bool = True
    REDIS_MAX_CONNECTIONS: int = 50

    # Presentation
    CURRENCY: str = os.getenv("CURRENCY", "₹")
    CURRENCY_POSITION: str = os.getenv("CURRENCY_POSITION", "before")

    # Pricing
    DELIVERY_CHARGE: Decimal = Decimal(os.getenv("DELIVERY_CHARGE", "50"))
    FREE_DELIVERY_ABOVE: Decimal = Decimal(os.getenv("FREE_DELIVERY_ABOVE", "1000"))
    TAX_RATE: Decimal = Decimal(os.getenv("TAX_RATE", "0.18"))  # 18% GST

    # Order ids
    ORDER_PREFIX: str = os.getenv("ORDER_PREFIX", "SHOP")
    ORDER_START_NUMBER: int = int(os.getenv("ORDER_START_NUMBER", "1"))
    ORDER_DATE_FORMAT: str = os.getenv("ORDER_DATE_FORMAT", "YYYYMMDD")  # or 'DDMMYYYY'

    # Checkout validation
    MIN_ORDER_AMOUNT: Decimal = Decimal(os.getenv("MIN_ORDER_AMOUNT", "0"))
    MAX_ORDER_AMOUNT: Decimal = Decimal(os.getenv("MAX_ORDER_AMOUNT", "0"))
    REQUIRED_FIELDS: List[str] = _get_list("REQUIRED_FIELDS", "name,phone,address")
    VALIDATE_PHONE: bool = _get_bool("VALIDATE_PHONE", True)
    VALIDATE_EMAIL: bool = _get_bool("VALIDATE_EMAIL", False)

    @classmethod
    def load_redis_secrets(cls) -> None:
        """Load Redis authentication token from AWS Secrets Manager"""
        if cls.REDIS_AUTH_TOKEN:
            return  # Already loaded from environment

        secret_name = os.getenv("REDIS_SECRET_NAME")
        if not secret_name:
            return  # No secret name provided, use no auth

        try:
            client = boto3.client("secretsmanager", region_name=cls.REGION)
            response = client.get_secret_value(SecretId=secret_name)
            secret_data = json.loads(response["SecretString"])

            cls.REDIS_AUTH_TOKEN = secret_data.get("auth_token")
            if "endpoint" in secret_data:
                cls.REDIS_HOST = secret_data["endpoint"]
        except Exception as e:
            logger.warning(f"Could not load Redis secrets from Secrets Manager: {e}")
            # Continue without auth token (may fail on connection)

    @classmethod
    def redis_url(cls) -> str:
        scheme = "rediss" if cls.REDIS_USE_SSL else "redis"
        auth = f":{cls.REDIS_AUTH_TOKEN}@" if cls.REDIS_AUTH_TOKEN else ""
        return f"{scheme}://{auth}{cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}"


def pricing_config() -> PricingConfig:
    """Build the pricing record from the current Config values"""
    return PricingConfig(
        delivery_charge_flat=Config.DELIVERY_CHARGE,
        free_delivery_threshold=Config.FREE_DELIVERY_ABOVE,
        tax_rate=Config.TAX_RATE,
    )


def checkout_config() -> CheckoutConfig:
    """Build the checkout record from the current Config values"""
    return CheckoutConfig(
        order_prefix=Config.ORDER_PREFIX,
        order_start_number=Config.ORDER_START_NUMBER,
        order_date_format=Config.ORDER_DATE_FORMAT,
        min_order_amount=Config.MIN_ORDER_AMOUNT,
        max_order_amount=Config.MAX_ORDER_AMOUNT,
        required_fields=list(Config.REQUIRED_FIELDS),
        validate_phone=Config.VALIDATE_PHONE,
        validate_email=Config.VALIDATE_EMAIL,
        currency=Config.CURRENCY,
        currency_position=Config.CURRENCY_POSITION,
    )


# Load secrets at module import
Config.load_redis_secrets()
