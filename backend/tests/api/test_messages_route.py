"""API Tests: POST /api/v1/messages and the health probes.

Invariants:
    - Conversation outcomes are HTTP 200 with a typed reply payload
    - Invalid bodies are 400 with field-level details, engine untouched
    - Absent optional reply fields are omitted, not null
"""

import chatshop.infrastructure.database as db_module

CUSTOMER = "628123456789"
ADMIN = "628000000001"


async def _send(client, text="", customer=CUSTOMER, has_media=False):
    return await client.post("/api/v1/messages", json={
        "customer_id": customer, "text": text, "has_media": has_media,
    })


async def test_text_reply(client):
    resp = await _send(client, "menu")
    assert resp.status_code == 200
    body = resp.json()
    assert body["type"] == "text"
    assert "Browse products" in body["message"]
    assert "recipients" not in body
    assert "customer_id" not in body


async def test_customer_id_is_stripped(client, ctx):
    await _send(client, "menu", customer=f"  {CUSTOMER}  ")
    assert CUSTOMER in await ctx.sessions.list_customer_ids()


async def test_media_without_text_is_accepted(client):
    resp = await _send(client, has_media=True)
    assert resp.status_code == 200
    assert "no order waiting for payment" in resp.json()["message"]


async def test_full_order_over_http(client):
    for text in ("1", "netflix", "cart", "checkout", "2"):
        assert (await _send(client, text)).status_code == 200

    notice = (await _send(client, has_media=True)).json()
    assert notice["type"] == "admin_notice"
    assert notice["recipients"] == [ADMIN]
    order_id = notice["admin_message"].rsplit(" ", 1)[-1]

    delivered = (await _send(client, f"/approve {order_id}", customer=ADMIN)).json()
    assert delivered["type"] == "delivery"
    assert delivered["customer_id"] == CUSTOMER
    assert delivered["deliver_to_customer"] is True
    assert "netflix0@mail.com" in delivered["customer_message"]


async def test_broadcast_payload(client):
    await _send(client, "hi")
    body = (await _send(client, "/broadcast Sale today", customer=ADMIN)).json()
    assert body["type"] == "broadcast"
    assert body["recipients"] == [CUSTOMER]


async def test_empty_text_without_media_is_400(client, ctx):
    resp = await _send(client, "   ")
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert await ctx.sessions.count() == 0


async def test_missing_customer_id_is_400(client):
    resp = await client.post("/api/v1/messages", json={"text": "menu"})
    assert resp.status_code == 400
    fields = [d["field"] for d in resp.json()["error"]["details"]]
    assert "body.customer_id" in fields


async def test_oversized_text_is_400(client):
    resp = await _send(client, "x" * 4_001)
    assert resp.status_code == 400


# ─── Health ──────────────────────────────────────────────────────

async def test_liveness(client):
    resp = await client.get("/api/v1/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "alive"


async def test_readiness_with_database(client):
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["database_latency_ms"] >= 0
    assert body["pending_audit_writes"] == 0


async def test_readiness_without_database(client):
    db_module.db_manager = None
    resp = await client.get("/api/v1/health/ready")
    assert resp.status_code == 503
    assert resp.json()["reason"] == "database_unavailable"
