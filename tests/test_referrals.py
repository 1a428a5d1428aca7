from settlement.referral_service.repository import ReferralRepository
from settlement.referral_service.schemas import ReferralCreate
from settlement.referral_service.service import ReferralService


async def test_click_is_recorded_once_per_session(db):
    first = await ReferralService.record_click(db, ReferralCreate(store_id="store-1", session_id="sess-1", source="whatsapp"))
    again = await ReferralService.record_click(db, ReferralCreate(store_id="store-1", session_id="sess-1"))

    assert first.status == "clicked"
    assert again.id == first.id
    assert again.source == "whatsapp"


async def test_click_without_session_gets_one(db):
    referral = await ReferralService.record_click(db, ReferralCreate(store_id="store-1"))
    assert referral.session_id


async def test_first_order_wins_attribution(db, session_factory):
    await ReferralService.record_click(db, ReferralCreate(store_id="store-1", session_id="sess-2"))

    assert await ReferralService.attribute_order(session_factory, "sess-2", "order-a") is True
    assert await ReferralService.attribute_order(session_factory, "sess-2", "order-b") is False

    async with session_factory() as fresh:
        referral = await ReferralRepository.get_by_session(fresh, "sess-2")
    assert referral.order_id == "order-a"
    assert referral.converted_at is not None


async def test_attribution_failure_is_swallowed(session_factory, monkeypatch):
    async def broken(db, session_id, order_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(ReferralRepository, "mark_converted", staticmethod(broken))

    assert await ReferralService.attribute_order(session_factory, "sess-3", "order-a") is False
    assert await ReferralService.attribute_order(session_factory, "", "order-a") is False
