"""Checkout FastAPI application.

Every request under a checkout prefix runs inside the checkout domain
context; commands are processed synchronously.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from checkout.domain import checkout
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

checkout.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_PREFIXES = ("/checkout", "/cart", "/orders")


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    if path.startswith(_ROUTE_PREFIXES):
        return checkout
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Checkout API",
    description="Multi-seller checkout: order placement and payment settlement",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context for checkout requests."""
    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handling
# ---------------------------------------------------------------------------
from checkout.api.errors import register_error_handlers  # noqa: E402
from checkout.api.routes import cart_router, checkout_router, order_router  # noqa: E402

app.include_router(checkout_router)
app.include_router(cart_router)
app.include_router(order_router)

register_exception_handlers(app)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": checkout.name})
