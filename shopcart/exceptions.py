"""
Custom exceptions for the cart engine.
"""


class CartException(Exception):
    """Base exception for cart operations"""
    pass


class ProductNotFoundError(CartException):
    """Raised when a product id is unknown to the catalog or absent from the cart"""
    def __init__(self, product_id: str, where: str = "catalog"):
        self.product_id = product_id
        self.where = where
        super().__init__(f"Product not found in {where}: {product_id}")


class ValidationError(CartException):
    """Raised when a request value cannot be accepted"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PersistenceError(CartException):
    """Raised when the snapshot store is unavailable"""
    pass


class RedisConnectionError(PersistenceError):
    """Raised when Redis connection fails"""
    pass
