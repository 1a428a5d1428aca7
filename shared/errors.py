"""
Settlement error taxonomy.

Every failure the settlement core reports to a caller is a SettlementError
subclass carrying an HTTP status and a stable machine-readable code. Routers
never build HTTPExceptions for these; the handlers registered here render
them as {"error": code, "detail": message}.

CollaboratorFailure is the exception to the rule: it is raised and caught
inside best-effort side effects (notifications, referral attribution) and is
never returned as the result of a settlement operation.
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class SettlementError(Exception):
    status_code = 500
    code = "settlement_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(SettlementError):
    status_code = 422
    code = "validation_error"


class PaymentConfigurationError(SettlementError):
    """The verifier cannot run: secret or required configuration is missing."""
    status_code = 500
    code = "payment_configuration_error"


class SecurityError(SettlementError):
    """Signature mismatch. Treated as potential tampering."""
    status_code = 400
    code = "invalid_payment_signature"


class PaymentMismatch(SettlementError):
    """A verified payment does not belong to the order it is presented with."""
    status_code = 400
    code = "payment_amount_mismatch"


class GatewayUnavailable(SettlementError):
    status_code = 502
    code = "payment_gateway_unavailable"


class NotFoundError(SettlementError):
    status_code = 404
    code = "not_found"


class ConflictError(SettlementError):
    status_code = 409
    code = "conflict"


class LedgerFailure(SettlementError):
    status_code = 500
    code = "ledger_failure"

    def __init__(self, message: str, order_id: str | None = None, orphaned: bool = False, code: str | None = None):
        super().__init__(message, code=code)
        self.order_id = order_id
        self.orphaned = orphaned


class PayoutBlocked(SettlementError):
    status_code = 409
    code = "payout_blocked"


class CollaboratorFailure(SettlementError):
    code = "collaborator_failure"


async def settlement_error_handler(request: Request, exc: SettlementError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, detail=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SettlementError, settlement_error_handler)
