"""
Gateway signature verification.

The gateway signs a successful checkout as
HMAC-SHA256(secret, "<gateway_order_id>|<gateway_payment_id>") in hex, and
signs webhooks as HMAC-SHA256(webhook_secret, raw_body). Both comparisons are
constant time.

verify_* functions are pure predicates and never raise. ensure_payment_signature
is the checkout form: it separates misconfiguration and missing input from an
actual mismatch so operators can tell tampering apart from a broken deploy.
"""
import hashlib
import hmac

import structlog

from shared.errors import PaymentConfigurationError, SecurityError, ValidationError
from shared.observability import settlement_signature_failures_total

logger = structlog.get_logger(__name__)


def compute_payment_signature(gateway_order_id: str, gateway_payment_id: str, shared_secret: str) -> str:
    body = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(shared_secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_payment_signature(gateway_order_id, gateway_payment_id, claimed_signature, shared_secret) -> bool:
    try:
        if not (gateway_order_id and gateway_payment_id and claimed_signature and shared_secret):
            return False
        expected = compute_payment_signature(gateway_order_id, gateway_payment_id, shared_secret)
        return hmac.compare_digest(expected, str(claimed_signature))
    except (TypeError, ValueError, AttributeError, UnicodeError):
        return False


def verify_webhook_signature(raw_body: bytes, claimed_signature, webhook_secret) -> bool:
    try:
        if not (claimed_signature and webhook_secret):
            return False
        expected = hmac.new(webhook_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, str(claimed_signature))
    except (TypeError, ValueError, AttributeError, UnicodeError):
        return False


def ensure_payment_signature(gateway_order_id, gateway_payment_id, claimed_signature, shared_secret):
    missing = [
        name for name, value in (
            ("gateway_order_id", gateway_order_id),
            ("gateway_payment_id", gateway_payment_id),
            ("signature", claimed_signature),
        )
        if not value
    ]
    if missing:
        raise ValidationError(
            f"Missing payment confirmation fields: {', '.join(missing)}",
            code="missing_payment_fields",
        )
    if not shared_secret:
        logger.error("payment_secret_missing")
        raise PaymentConfigurationError("Payment verification is not configured")

    if not verify_payment_signature(gateway_order_id, gateway_payment_id, claimed_signature, shared_secret):
        # Never log the secret or the claimed signature
        logger.critical(
            "payment_signature_mismatch",
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        )
        settlement_signature_failures_total.labels(source="checkout").inc()
        raise SecurityError("Payment could not be verified. Please retry the payment.")
