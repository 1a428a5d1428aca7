from prometheus_client import Counter, Histogram

# Business Metrics
settlement_orders_created_total = Counter(
    "settlement_orders_created_total",
    "Orders durably recorded by the ledger",
    ["payment_method"] # Labels: 'cod', 'online'
)

settlement_checkout_duration_seconds = Histogram(
    "settlement_checkout_duration_seconds",
    "Checkout duration in seconds",
    ["payment_method"]
)

settlement_signature_failures_total = Counter(
    "settlement_signature_failures_total",
    "Payment confirmations rejected by signature verification",
    ["source"] # Labels: 'checkout', 'webhook'
)

settlement_ledger_compensation_total = Counter(
    "settlement_ledger_compensation_total",
    "Compensating actions executed by the ledger saga",
    ["step_name"]
)

settlement_orphan_orders_total = Counter(
    "settlement_orphan_orders_total",
    "Orders left behind after compensation exhausted its retries (operator alarm)"
)

settlement_payouts_generated_total = Counter(
    "settlement_payouts_generated_total",
    "Payout requests written by the batch generator"
)

settlement_payout_generation_failures_total = Counter(
    "settlement_payout_generation_failures_total",
    "Per-seller payout batches that failed during generation"
)

settlement_notifications_total = Counter(
    "settlement_notifications_total",
    "Outbound notifications by outcome",
    ["event_type", "status"] # status: 'sent', 'failed', 'skipped'
)
