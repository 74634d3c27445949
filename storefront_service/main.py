"""
main.py — FastAPI Entry Point for the Storefront Service

This module provides the REST API used by the storefront UI and the payment provider.
It wires the catalog, cart, checkout orchestration and webhook receiver together.

Responsibilities:
    • Serve catalog reads and the stateless cart endpoints
    • Create payment orders (live provider or demo mode) for authenticated users
    • Receive and acknowledge payment notifications from the provider
    • Provide system health information
"""

import random
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .cart import snapshot_line
from .catalog import CatalogStore, seeded_catalog
from .config import Settings, load_settings
from .errors import InvalidInput, ProductNotFound, StorefrontError, Unauthenticated
from .gateways import DemoOrderGateway, OrderGateway, select_gateway
from .identity import clear_session_cookie, identity_from_request
from .logging_config import get_logger, setup_logging
from .models import AddToCartRequest, CheckoutResult, Identity, UpdateCartItemRequest
from .webhooks import PaymentLedger, WebhookReceiver
from .workflow import OrderOrchestrator

log = get_logger(__name__)
router = APIRouter()


# Dependencies
def current_identity(request: Request) -> Optional[Identity]:
    return identity_from_request(request, request.app.state.settings.jwt_secret)


def require_identity(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


# Error rendering
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_body()))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


# Identity
@router.get("/api/auth/me")
def me(identity: Optional[Identity] = Depends(current_identity)):
    if identity is None:
        return {"authenticated": False}
    return {"authenticated": True, "user": {"id": identity.userId, "email": identity.email}}


@router.post("/api/auth/logout")
def logout():
    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    return response


# Catalog
@router.get("/api/products")
def list_products(request: Request):
    catalog: CatalogStore = request.app.state.catalog
    return [product.model_dump(mode="json") for product in catalog.list_products()]


@router.get("/api/products/{product_id}")
def get_product(product_id: str, request: Request):
    product = request.app.state.catalog.get_product(product_id)
    if product is None:
        raise ProductNotFound()
    return product.model_dump(mode="json")


# Cart (client-resident; the server only validates and snapshots lines)
@router.get("/api/cart")
def get_cart(identity: Identity = Depends(require_identity)):
    return []


@router.post("/api/cart", status_code=201)
def add_to_cart(body: AddToCartRequest, request: Request, identity: Identity = Depends(require_identity)):
    product = request.app.state.catalog.get_product(body.productId)
    if product is None:
        log.warning(f"[Cart] User {identity.userId} tried to add unknown product {body.productId}.")
        raise ProductNotFound()
    return snapshot_line(product, body.quantity).model_dump(mode="json")


@router.put("/api/cart/{product_id}")
def update_cart_item(product_id: str, body: UpdateCartItemRequest,
                     identity: Identity = Depends(require_identity)):
    if body.quantity < 1:
        raise InvalidInput("Quantity must be at least 1")
    return {"success": True}


@router.delete("/api/cart/{product_id}")
def remove_cart_item(product_id: str, identity: Identity = Depends(require_identity)):
    return {"success": True}


@router.delete("/api/cart")
def clear_cart(identity: Identity = Depends(require_identity)):
    return {"success": True}


# Payment
@router.post("/api/payment/create-order")
async def create_order(request: Request, identity: Optional[Identity] = Depends(current_identity)):
    """
    Creates a payment order for the submitted cart.

    Returns:
        dict: {orderCode, paymentUrl, demo: true} in demo mode,
              {orderCode, paymentUrl, qrCode?} in live mode,
              or {error, details, fallback: true} with HTTP 500 when the provider failed.

    Raises:
        Unauthenticated (401), EmptyCart / InvalidInput (400).
    """
    orchestrator: OrderOrchestrator = request.app.state.orchestrator
    payload = await _json_body(request)
    try:
        result: CheckoutResult = await run_in_threadpool(orchestrator.create_order, identity, payload)
    except StorefrontError:
        raise
    except Exception as e:
        log.critical(f"Unexpected error while creating payment order: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to create payment order"})
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.to_response()))


@router.post("/api/payment/test")
async def create_test_order(request: Request):
    """Always answers with a demo checkout. Used by the payment test page."""
    orchestrator: OrderOrchestrator = request.app.state.test_orchestrator
    result = orchestrator.create_test_order(await _json_body(request))
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.to_response()))


@router.post("/api/payment/webhook")
async def payment_webhook(request: Request):
    receiver: WebhookReceiver = request.app.state.receiver
    raw = await request.body()
    try:
        ack = receiver.handle_notification(raw)
    except Exception as e:
        log.critical(f"[Webhook] Unexpected error while processing notification: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})
    return ack.model_dump()


# Health Check Endpoint
@router.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


def create_app(settings: Optional[Settings] = None,
               gateway: Optional[OrderGateway] = None,
               catalog: Optional[CatalogStore] = None,
               ledger: Optional[PaymentLedger] = None,
               rng: Optional[random.Random] = None) -> FastAPI:
    """
    Builds the application with explicitly injected collaborators.

    Args:
        settings (Optional[Settings]): Configuration, read from the environment if omitted.
        gateway (Optional[OrderGateway]): Checkout strategy, selected from the settings if omitted.
        catalog (Optional[CatalogStore]): Product store, the seeded sample catalog if omitted.
        ledger (Optional[PaymentLedger]): Payment record, a fresh in-memory ledger if omitted.
        rng (Optional[random.Random]): Order-code source.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or load_settings()
    catalog = catalog if catalog is not None else seeded_catalog()
    gateway = gateway or select_gateway(settings)
    ledger = ledger if ledger is not None else PaymentLedger()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"Storefront service starting (checkout mode: {gateway.mode}).")
        yield
        gateway.close()
        log.info("Storefront service stopped.")

    app = FastAPI(title="Storefront Checkout Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.ledger = ledger
    app.state.orchestrator = OrderOrchestrator(gateway, catalog=catalog, rng=rng)
    app.state.test_orchestrator = OrderOrchestrator(DemoOrderGateway(), rng=app.state.orchestrator.rng)
    app.state.receiver = WebhookReceiver(ledger, settings.payos_checksum_key)

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


# Initialization
_settings = load_settings()
setup_logging(_settings.log_file)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3002)
