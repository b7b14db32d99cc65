"""Checkout error taxonomy.

Every error carries a stable machine-readable ``code`` and the HTTP status it
maps to. The API layer renders them as ``{"error": message, "code": code}``.

    CheckoutError
    ├── BadRequest                   malformed input, rejected before any read
    ├── NotFoundError                address / order / coupon missing
    ├── AuthorizationError           resource not owned by the caller
    ├── BusinessRuleError            stock, product status, coupon rules
    ├── IntegrityError               signature mismatch, undecodable records
    ├── TransientError               store or gateway unavailable; may be retried
    └── RateLimited
"""


class CheckoutError(Exception):
    status_code = 400
    code = "checkout_error"

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class BadRequest(CheckoutError):
    code = "bad_request"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class NotFoundError(CheckoutError):
    status_code = 404
    code = "not_found"


class AddressNotFound(NotFoundError):
    # Order placement reports a dangling address id as a bad request.
    status_code = 400
    code = "address_not_found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"


class CouponNotFound(NotFoundError):
    code = "coupon_not_found"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------
class AuthorizationError(CheckoutError):
    status_code = 403
    code = "forbidden"


class Forbidden(AuthorizationError):
    pass


class Unauthenticated(AuthorizationError):
    status_code = 401
    code = "unauthenticated"


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------
class BusinessRuleError(CheckoutError):
    code = "business_rule_violation"


class OrderRejected(BusinessRuleError):
    """The whole multi-shop request was refused; nothing was written."""

    code = "order_rejected"


class ProductNotFound(OrderRejected):
    code = "product_not_found"


class ProductUnavailable(OrderRejected):
    code = "product_unavailable"


class InsufficientStock(OrderRejected):
    code = "insufficient_stock"


class CouponNotApplicable(BusinessRuleError):
    code = "coupon_not_applicable"


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------
class IntegrityError(CheckoutError):
    code = "integrity_error"


class PaymentVerificationFailed(IntegrityError):
    code = "payment_verification_failed"


class RecordIntegrityError(IntegrityError):
    status_code = 500
    code = "record_integrity_error"


# ---------------------------------------------------------------------------
# Transient
# ---------------------------------------------------------------------------
class TransientError(CheckoutError):
    status_code = 503
    code = "transient_error"


class StoreUnavailable(TransientError):
    code = "store_unavailable"


class ConcurrentUpdate(TransientError):
    status_code = 409
    code = "concurrent_update"


class GatewayUnavailable(TransientError):
    status_code = 502
    code = "gateway_unavailable"


class SettlementFailed(TransientError):
    status_code = 500
    code = "settlement_failed"


# ---------------------------------------------------------------------------
# Throttling
# ---------------------------------------------------------------------------
class RateLimited(CheckoutError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, message: str, retry_after: int, **context) -> None:
        super().__init__(message, **context)
        self.retry_after = retry_after
