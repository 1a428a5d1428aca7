from datetime import datetime
from decimal import Decimal
from html import escape

from .schemas import NotificationEvent


def _money(value) -> str:
    return f"₹{Decimal(str(value)):,.2f}"


def _date(value) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.strftime("%d %B %Y")
    return ""


def _text(value) -> str:
    # Buyer and seller fields come from public forms
    return escape(str(value if value is not None else ""))


def render(event: NotificationEvent) -> tuple[str, str]:
    f = event.fields
    if event.event_type == "order_placed":
        subject = f"Order confirmed at {f.get('store_name') or 'your store'}"
        lines = "".join(
            f"<li>{_text(item.get('name'))} x {_text(item.get('quantity'))} - {_money(item.get('price', 0))}</li>"
            for item in f.get("items", [])
        )
        html = (
            f"<h2>Thank you, {_text(f.get('buyer_name'))}!</h2>"
            f"<p>Your order <strong>{_text(event.reference_id)}</strong> has been placed.</p>"
            f"<ul>{lines}</ul>"
            f"<p>Total: <strong>{_money(f.get('total_price', 0))}</strong> "
            f"({_text(f.get('payment_label'))})</p>"
        )
        return subject, html

    if event.event_type == "payout_paid":
        subject = f"Your Weekly Payout from ShopZap - {_money(f.get('amount', 0))}"
        html = (
            f"<h2>Hi {_text(f.get('seller_name'))},</h2>"
            f"<p>Your payout of <strong>{_money(f.get('amount', 0))}</strong> "
            f"was sent on {_date(f.get('paid_at'))}.</p>"
            f"<p>Orders settled: {_text(f.get('orders_count', 0))}<br>"
            f"Payout method: {_text(f.get('payout_method') or 'Bank Transfer')}</p>"
        )
        return subject, html

    raise ValueError(f"Unknown notification event {event.event_type}")
