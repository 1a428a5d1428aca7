from .setup import setup_observability
from .metrics import (
    settlement_orders_created_total,
    settlement_checkout_duration_seconds,
    settlement_signature_failures_total,
    settlement_ledger_compensation_total,
    settlement_orphan_orders_total,
    settlement_payouts_generated_total,
    settlement_payout_generation_failures_total,
    settlement_notifications_total
)
