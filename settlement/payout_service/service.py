import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import utcnow
from shared.config.settings import Settings
from shared.errors import NotFoundError, PayoutBlocked
from shared.observability import (
    settlement_payouts_generated_total,
    settlement_payout_generation_failures_total,
)
from settlement.notification_service.schemas import NotificationEvent
from settlement.seller_service.repository import BankDetailRepository, StoreRepository
from settlement.seller_service.schemas import BankDetailView, PAYOUT_METHOD_LABELS
from .models import PayoutLog, PayoutOrder, PayoutRequest
from .repository import PayoutRepository
from .schemas import (
    GenerationReport,
    MarkPaidRequest,
    PayoutAdminView,
    PayoutLogResponse,
    PayoutRequestResponse,
    RejectPayoutRequest,
)

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def compute_platform_fee(total_earned: Decimal, rate: Decimal) -> Decimal:
    return (Decimal(total_earned) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def settlement_week(today: date) -> tuple[date, date]:
    """Calendar week containing today, Sunday through Saturday."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


class PayoutGenerator:
    @staticmethod
    async def generate(db: AsyncSession, settings: Settings, now: datetime | None = None) -> GenerationReport:
        """
        Builds one pending PayoutRequest per seller and store from delivered orders past
        the eligibility window that no payout has claimed yet.

        Each seller's batch commits on its own, so one failing seller never
        blocks the others. Re-running is safe: claimed orders are excluded by
        the query, and the unique claim constraint rejects a concurrent run.
        """
        now = now or utcnow()
        cutoff = now - timedelta(days=settings.payout_eligibility_days)
        week_start, week_end = settlement_week(now.date())

        rows = await PayoutRepository.find_eligible_orders(db, cutoff)
        batches: dict[tuple[str, str], list] = {}
        for row in rows:
            batches.setdefault((row.seller_id, row.store_id), []).append(row)

        report = GenerationReport(
            week_start_date=week_start,
            week_end_date=week_end,
            eligible_orders=len(rows),
        )
        logger.info("payout_generation_started", eligible_orders=len(rows), batches=len(batches))

        for (seller_id, store_id), orders in batches.items():
            try:
                payout = await PayoutGenerator._create_batch(
                    db, settings, seller_id, store_id, orders, week_start, week_end, now
                )
            except Exception as e:
                await db.rollback()
                settlement_payout_generation_failures_total.inc()
                logger.error(
                    "payout_batch_failed",
                    seller_id=seller_id,
                    store_id=store_id,
                    orders=len(orders),
                    error=str(e),
                )
                report.failed_sellers.append(seller_id)
                continue
            if payout is not None:
                report.created.append(payout)

        report.payouts_created = len(report.created)
        logger.info(
            "payout_generation_finished",
            payouts_created=report.payouts_created,
            failed_sellers=len(report.failed_sellers),
        )
        return report

    @staticmethod
    async def _create_batch(db, settings, seller_id, store_id, orders, week_start, week_end, now):
        total_earned = sum((Decimal(o.total_price) for o in orders), Decimal("0")).quantize(CENT)
        if total_earned <= 0:
            logger.info("payout_batch_skipped", seller_id=seller_id, reason="zero_total")
            return None

        platform_fee = compute_platform_fee(total_earned, settings.platform_fee_rate)
        payout = PayoutRequest(
            id=str(uuid.uuid4()),
            seller_id=seller_id,
            store_id=store_id,
            total_earned=total_earned,
            platform_fee=platform_fee,
            final_amount=total_earned - platform_fee,
            status="pending",
            week_start_date=week_start,
            week_end_date=week_end,
        )
        payout.claims = [PayoutOrder(order_id=o.id) for o in orders]
        log = PayoutLog(
            payout_request_id=payout.id,
            action="auto_generated",
            performed_by="system",
            details={
                "orders_count": len(orders),
                "generation_date": now.isoformat(),
                "week_start": week_start.isoformat(),
                "week_end": week_end.isoformat(),
            },
        )
        await PayoutRepository.create_payout(db, payout, log)

        settlement_payouts_generated_total.inc()
        logger.info(
            "payout_batch_created",
            payout_id=payout.id,
            seller_id=seller_id,
            orders=len(orders),
            total_earned=str(total_earned),
            platform_fee=str(platform_fee),
        )
        # Snapshot now: a later seller's rollback expires this instance
        return PayoutRequestResponse.model_validate(payout)


class PayoutProcessor:
    @staticmethod
    async def get_payout(db: AsyncSession, payout_id: str) -> PayoutRequest:
        payout = await PayoutRepository.get_payout(db, payout_id)
        if payout is None:
            raise NotFoundError("Payout request not found", code="payout_not_found")
        return payout

    @staticmethod
    async def mark_paid(db: AsyncSession, payout_id: str, data: MarkPaidRequest):
        """
        pending -> paid. Returns (payout, notification event); the caller
        schedules the event, it never delays or undoes the transition.
        """
        payout = await PayoutProcessor.get_payout(db, payout_id)

        bank = await BankDetailRepository.get_for_seller(db, payout.seller_id)
        if bank is None:
            logger.warning("payout_blocked", payout_id=payout_id, seller_id=payout.seller_id, reason="missing_payout_destination")
            raise PayoutBlocked(
                "Seller has no payout destination on file",
                code="missing_payout_destination",
            )

        paid_at = utcnow()
        values = {"status": "paid", "paid_at": paid_at, "paid_by": data.paid_by}
        if data.proof_url is not None:
            values["proof_url"] = data.proof_url
        if data.admin_notes is not None:
            values["admin_notes"] = data.admin_notes

        changed = await PayoutRepository.transition(db, payout_id, "pending", **values)
        if not changed:
            await db.rollback()
            raise PayoutBlocked(f"Payout {payout_id} is not pending", code="not_pending")

        await PayoutRepository.add_log(db, PayoutLog(
            payout_request_id=payout_id,
            action="marked_as_paid",
            performed_by=data.paid_by,
            details={
                "amount": str(payout.final_amount),
                "admin_notes": data.admin_notes,
                "proof_attached": bool(data.proof_url),
            },
        ))
        await db.commit()

        payout = await PayoutRepository.get_payout(db, payout_id)
        store = await StoreRepository.get_store(db, payout.store_id)
        payout_method = PAYOUT_METHOD_LABELS.get(bank.payout_method, "Bank Transfer")
        logger.info(
            "payout_marked_paid",
            payout_id=payout_id,
            seller_id=payout.seller_id,
            final_amount=str(payout.final_amount),
            payout_method=bank.payout_method,
            paid_by=data.paid_by,
        )

        event = NotificationEvent(
            event_type="payout_paid",
            recipient_email=store.business_email if store else None,
            reference_id=payout_id,
            fields={
                "seller_name": store.name if store else "",
                "amount": str(payout.final_amount),
                "paid_at": paid_at.isoformat(),
                "orders_count": len(payout.order_ids),
                "payout_method": payout_method,
            },
        )
        return payout, event

    @staticmethod
    async def reject(db: AsyncSession, payout_id: str, data: RejectPayoutRequest) -> PayoutRequest:
        """pending -> rejected. The claimed orders stay claimed."""
        await PayoutProcessor.get_payout(db, payout_id)

        values = {"status": "rejected"}
        if data.admin_notes is not None:
            values["admin_notes"] = data.admin_notes
        changed = await PayoutRepository.transition(db, payout_id, "pending", **values)
        if not changed:
            await db.rollback()
            raise PayoutBlocked(f"Payout {payout_id} is not pending", code="not_pending")

        await PayoutRepository.add_log(db, PayoutLog(
            payout_request_id=payout_id,
            action="rejected",
            performed_by=data.rejected_by,
            details={"admin_notes": data.admin_notes},
        ))
        await db.commit()
        logger.info("payout_rejected", payout_id=payout_id, rejected_by=data.rejected_by)
        return await PayoutRepository.get_payout(db, payout_id)

    @staticmethod
    async def get_logs(db: AsyncSession, payout_id: str) -> list[PayoutLogResponse]:
        await PayoutProcessor.get_payout(db, payout_id)
        logs = await PayoutRepository.get_logs(db, payout_id)
        return [PayoutLogResponse.model_validate(log) for log in logs]

    @staticmethod
    async def list_for_admin(db: AsyncSession, status: str | None = None) -> list[PayoutAdminView]:
        payouts = await PayoutRepository.list_payouts(db, status)
        return await PayoutProcessor._admin_views(db, payouts)

    @staticmethod
    async def get_for_admin(db: AsyncSession, payout_id: str) -> PayoutAdminView:
        payout = await PayoutProcessor.get_payout(db, payout_id)
        views = await PayoutProcessor._admin_views(db, [payout])
        return views[0]

    @staticmethod
    async def _admin_views(db: AsyncSession, payouts) -> list[PayoutAdminView]:
        banks = await BankDetailRepository.get_for_sellers(db, list({p.seller_id for p in payouts}))
        stores = await StoreRepository.get_stores(db, list({p.store_id for p in payouts}))
        views = []
        for payout in payouts:
            view = PayoutAdminView.model_validate(payout)
            bank = banks.get(payout.seller_id)
            store = stores.get(payout.store_id)
            view.bank_details = BankDetailView.from_model(bank) if bank else None
            view.store_name = store.name if store else None
            views.append(view)
        return views
