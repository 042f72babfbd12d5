"""
FastAPI application exposing the cart engine to the storefront widgets.
"""
import time
import logging
from collections import OrderedDict
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Header, Query
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from shopcart.config import Config, checkout_config, pricing_config
from shopcart.callbacks import CartCallbacks
from shopcart.cart_service import CartStore
from shopcart.catalog import ProductCatalog
from shopcart.checkout_service import CheckoutService
from shopcart.exceptions import (
    PersistenceError,
    ProductNotFoundError,
    ValidationError,
)
from shopcart.middleware import MetricsMiddleware, configure_logging, hash_identifier
from shopcart.models import (
    AddItemRequest,
    CartResponse,
    CatalogItem,
    CheckoutRequest,
    CheckoutResult,
    CustomerDetails,
    DeliveryType,
    StageAbsoluteRequest,
    StageDeltaRequest,
)
from shopcart.order_ids import InMemoryOrderCounter, OrderIdGenerator, RedisOrderCounter
from shopcart.snapshot_store import SnapshotStore, get_snapshot_store

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Storefront Cart API",
    description="Cart quantity staging, pricing, and checkout for storefront widgets",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)

# Shared state. Endpoints are async and run on one event loop, so each
# request's cart operations complete before the next one starts.
# Sessions are kept most recently used last and capped at CART_SESSION_LIMIT.
catalog = ProductCatalog()
snapshot_store: SnapshotStore = get_snapshot_store()
sessions: "OrderedDict[str, CheckoutService]" = OrderedDict()
_order_ids: Optional[OrderIdGenerator] = None


def get_order_ids() -> OrderIdGenerator:
    """Order id generator shared by every cart (created on first use)"""
    global _order_ids
    if _order_ids is None:
        config = checkout_config()
        if Config.CART_STORAGE_BACKEND.lower() == "redis":
            from shopcart.redis_client import get_redis_client
            counter = RedisOrderCounter(get_redis_client(), Config.ORDER_COUNTER_KEY, config.order_start_number)
        else:
            counter = InMemoryOrderCounter(config.order_start_number)
        _order_ids = OrderIdGenerator.from_config(config, counter=counter)
    return _order_ids


def _require_cart_id(cart_id: Optional[str]) -> str:
    if not cart_id or not cart_id.strip():
        raise HTTPException(status_code=400, detail="Cart ID is required")
    return cart_id.strip()


def get_session(cart_id: Optional[str]) -> CheckoutService:
    """Get or create the cart + checkout pair for a cart id"""
    cart_id = _require_cart_id(cart_id)
    session = sessions.get(cart_id)
    if session is not None:
        sessions.move_to_end(cart_id)
    else:
        hashed = hash_identifier(cart_id)
        callbacks = CartCallbacks(
            on_stock_warning=lambda pid, qty: logger.info(f"Cart {hashed}: {pid} clamped to stock {qty}"),
            on_validation_error=lambda errors: logger.info(f"Cart {hashed}: checkout rejected ({len(errors)} errors)"),
        )
        cart = CartStore(
            catalog=catalog,
            store=snapshot_store,
            snapshot_key=f"{Config.CART_SNAPSHOT_PREFIX}:{cart_id}",
            callbacks=callbacks,
        )
        session = CheckoutService(
            cart=cart,
            pricing=pricing_config(),
            checkout=checkout_config(),
            order_ids=get_order_ids(),
        )
        sessions[cart_id] = session
        while len(sessions) > max(Config.CART_SESSION_LIMIT, 1):
            evicted, _ = sessions.popitem(last=False)
            logger.info(f"Evicted cart session {hash_identifier(evicted)}")
    return session


def release_session(cart_id: str) -> None:
    """
    Drop an idle session. An empty cart with no pending edits has nothing
    that its snapshot cannot rebuild.
    """
    cart_id = cart_id.strip()
    session = sessions.get(cart_id)
    if session is not None and session.cart.is_empty() and not session.cart.has_unsaved_changes():
        del sessions[cart_id]


def cart_response(cart_id: str, cart: CartStore) -> dict:
    return CartResponse(
        cart_id=cart_id,
        items=cart.get_lines(),
        staged=cart.staged.snapshot(),
        total_items=cart.get_total_quantity(),
        total_price=cart.get_total_value(),
        has_unsaved_changes=cart.has_unsaved_changes(),
    ).model_dump(mode="json")


def _latency(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


@app.get("/health")
async def health_check():
    """Health check; reports the storage backend but never fails on it"""
    storage = {"backend": Config.CART_STORAGE_BACKEND, "status": "healthy"}

    if Config.CART_STORAGE_BACKEND.lower() == "redis":
        try:
            from shopcart.redis_client import get_redis_client
            if not get_redis_client().ping():
                storage["status"] = "unhealthy"
        except PersistenceError:
            storage["status"] = "unhealthy"

    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": "cart-api",
            "storage": storage,
            "timestamp": time.time()
        }
    )


# Catalog endpoints
@app.get("/products", response_model=List[CatalogItem])
async def list_products():
    return catalog.list_products()


@app.put("/products", response_model=dict)
async def set_products(products: List[CatalogItem]):
    """Replace the catalog the carts look prices and stock up in"""
    catalog.set_products(products)
    return {"success": True, "count": len(catalog)}


# Cart endpoints
@app.get("/cart", response_model=dict)
async def get_cart(
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    start_time = time.time()
    session = get_session(cart_id)
    response = {**cart_response(cart_id.strip(), session.cart), "latency_ms": _latency(start_time)}
    release_session(cart_id)
    return response


@app.delete("/cart", response_model=dict)
async def clear_cart(
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    session.cart.clear()
    release_session(cart_id)
    return {"success": True, "message": "Cart cleared"}


@app.post("/cart/items", response_model=dict)
async def add_cart_item(
    request: AddItemRequest,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    """Add a product to the cart, clamped to stock"""
    start_time = time.time()
    session = get_session(cart_id)
    result = session.cart.add_to_cart(request.product_id, request.quantity)
    response = {
        **result.model_dump(),
        "cart": cart_response(cart_id.strip(), session.cart),
        "latency_ms": _latency(start_time),
    }
    release_session(cart_id)
    return response


@app.delete("/cart/items/{product_id}", response_model=dict)
async def remove_cart_item(
    product_id: str,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    result = session.cart.remove_from_cart(product_id)
    response = {**result.model_dump(), "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.post("/cart/items/{product_id}/stage", response_model=dict)
async def stage_delta(
    product_id: str,
    request: StageDeltaRequest,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    """Step a line's pending quantity up or down"""
    session = get_session(cart_id)
    result = session.cart.stage_delta(product_id, request.delta)
    response = {**result.model_dump(), "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.put("/cart/items/{product_id}/stage", response_model=dict)
async def stage_absolute(
    product_id: str,
    request: StageAbsoluteRequest,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    """Set a line's pending quantity from typed input"""
    session = get_session(cart_id)
    result = session.cart.stage_absolute(product_id, request.value)
    response = {**result.model_dump(), "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.delete("/cart/items/{product_id}/stage", response_model=dict)
async def cancel_stage(
    product_id: str,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    result = session.cart.cancel_quantity(product_id)
    response = {**result.model_dump(), "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.post("/cart/items/{product_id}/save", response_model=dict)
async def save_stage(
    product_id: str,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    result = session.cart.save_quantity(product_id)
    response = {**result.model_dump(), "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.post("/cart/save-all", response_model=dict)
async def save_all(
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    result = session.cart.save_all()
    response = {"success": True, **result, "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


@app.post("/cart/cancel-all", response_model=dict)
async def cancel_all(
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    dropped = session.cart.cancel_all()
    response = {"success": True, "cancelled": dropped, "cart": cart_response(cart_id.strip(), session.cart)}
    release_session(cart_id)
    return response


# Checkout endpoints
@app.get("/checkout/totals", response_model=dict)
async def checkout_totals(
    delivery_type: DeliveryType = Query("home"),
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    totals = session.compute_totals(delivery_type)
    release_session(cart_id)
    return {"delivery_type": delivery_type, **totals.model_dump(mode="json")}


@app.post("/checkout/validate", response_model=dict)
async def checkout_validate(
    customer: CustomerDetails,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    session = get_session(cart_id)
    result = session.validate(customer)
    release_session(cart_id)
    return result.model_dump()


@app.post("/checkout/place", response_model=CheckoutResult)
async def checkout_place(
    request: CheckoutRequest,
    cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")
):
    """
    Place an order from the committed cart.
    Validation failures come back with success=false and the error list.
    """
    session = get_session(cart_id)
    result = session.place_order(request.customer, channel=request.channel)
    release_session(cart_id)
    status_code = 200 if result.success else 422
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


# Error handlers
@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "message": str(exc)}
    )


@app.exception_handler(ProductNotFoundError)
async def product_not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={"error": "Product not found", "message": str(exc), "product_id": exc.product_id}
    )


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request, exc):
    return JSONResponse(
        status_code=503,
        content={"error": "Service unavailable", "message": "Cart storage unavailable"}
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "type": type(exc).__name__
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=Config.APP_PORT)
