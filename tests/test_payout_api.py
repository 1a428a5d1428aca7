from conftest import order_payload
from settlement.notification_service.repository import NotificationLogRepository


async def _delivered_order(client, store_id):
    order_id = (await client.post("/checkout/cod", json=order_payload(store_id, total="10000.00"))).json()["id"]
    for status in ("confirmed", "shipped", "delivered"):
        resp = await client.patch(f"/orders/{order_id}/status", json={"status": status})
        assert resp.status_code == 200
    return order_id


async def test_generate_endpoint_respects_eligibility_window(client, make_store):
    store = await make_store()
    await _delivered_order(client, store.id)

    # Delivered just now: still inside the 7 day window
    resp = await client.post("/payouts/generate")
    assert resp.status_code == 200
    assert resp.json()["payouts_created"] == 0


async def test_admin_payout_flow(client, session_factory, settings, make_store, make_delivered_order):
    store = await make_store(business_email="owner@demo.store")
    await make_delivered_order(store, total="10000.00", days_ago=30)

    generated = await client.post("/payouts/generate")
    assert generated.status_code == 200
    payout = generated.json()["created"][0]
    assert payout["final_amount"] == "9610.00"

    listed = await client.get("/payouts/", params={"status": "pending"})
    assert [p["id"] for p in listed.json()] == [payout["id"]]
    assert listed.json()[0]["bank_details"] is None

    blocked = await client.post(f"/payouts/{payout['id']}/mark-paid", json={"paid_by": "admin@shopzap.io"})
    assert blocked.status_code == 409
    assert blocked.json()["error"] == "missing_payout_destination"

    saved = await client.put(f"/sellers/{store.seller_id}/bank-details", json={
        "account_holder_name": "Asha Rao",
        "bank_name": "HDFC Bank",
        "account_number": "50100123456789",
        "ifsc_code": "hdfc0001234",
    })
    assert saved.status_code == 200
    assert saved.json()["account_number_masked"] == "XXXX6789"
    assert saved.json()["ifsc_code"] == "HDFC0001234"

    detail = await client.get(f"/payouts/{payout['id']}")
    assert detail.json()["store_name"] == store.name
    assert "50100123456789" not in detail.text

    paid = await client.post(f"/payouts/{payout['id']}/mark-paid", json={"paid_by": "admin@shopzap.io"})
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"

    again = await client.post(f"/payouts/{payout['id']}/mark-paid", json={"paid_by": "admin@shopzap.io"})
    assert again.status_code == 409
    assert again.json()["error"] == "not_pending"

    async with session_factory() as db:
        logs = await NotificationLogRepository.list_for_reference(db, payout["id"])
    assert [(log.event_type, log.recipient_email) for log in logs] == [("payout_paid", "owner@demo.store")]


async def test_reject_endpoint(client, make_store, make_delivered_order):
    store = await make_store()
    await make_delivered_order(store, days_ago=30)
    payout_id = (await client.post("/payouts/generate")).json()["created"][0]["id"]

    resp = await client.post(f"/payouts/{payout_id}/reject", json={"rejected_by": "admin@shopzap.io"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

    paid = await client.post(f"/payouts/{payout_id}/mark-paid", json={"paid_by": "admin@shopzap.io"})
    assert paid.status_code == 409


async def test_payout_routes_require_internal_key(client):
    resp = await client.post("/payouts/generate", headers={"X-Internal-API-Key": ""})
    assert resp.status_code == 403
    assert (await client.get("/payouts/missing")).status_code == 404


async def test_bank_details_validation(client, make_store):
    store = await make_store()
    base = {
        "account_holder_name": "Asha Rao",
        "bank_name": "HDFC Bank",
        "account_number": "50100123456789",
        "ifsc_code": "HDFC0001234",
    }

    bad_account = await client.put(f"/sellers/{store.seller_id}/bank-details", json={**base, "account_number": "12AB5678"})
    assert bad_account.status_code == 422

    no_alias = await client.put(
        f"/sellers/{store.seller_id}/bank-details", json={**base, "payout_method": "alias_transfer"}
    )
    assert no_alias.status_code == 422

    missing = await client.get(f"/sellers/{store.seller_id}/bank-details")
    assert missing.status_code == 404


async def test_register_store(client):
    resp = await client.post("/sellers/stores", json={"seller_id": "seller-1", "name": "Chai Corner"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Chai Corner"


async def test_payout_audit_trail(client, make_store, make_delivered_order, make_bank_detail):
    store = await make_store()
    await make_delivered_order(store, days_ago=30)
    await make_bank_detail(store.seller_id)
    payout_id = (await client.post("/payouts/generate")).json()["created"][0]["id"]
    await client.post(f"/payouts/{payout_id}/mark-paid", json={"paid_by": "admin@shopzap.io", "admin_notes": "UTR 4411"})

    resp = await client.get(f"/payouts/{payout_id}/logs")

    assert resp.status_code == 200
    entries = resp.json()
    assert [e["action"] for e in entries] == ["auto_generated", "marked_as_paid"]
    assert entries[1]["performed_by"] == "admin@shopzap.io"
    assert entries[1]["details"]["admin_notes"] == "UTR 4411"

    assert (await client.get("/payouts/missing/logs")).status_code == 404
