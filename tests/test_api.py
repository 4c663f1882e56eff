from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from core.errors import PersistenceFailure
from core.http_errors import status_for
from main import app
from routers.deps import get_movement_engine


async def _putaway(client, item_id, label="A-01-01", quantity=10, user_id="op-1"):
    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(item_id), "location_label": label, "quantity": quantity, "user_id": user_id},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_putaway_and_stock_at_location(client, sql_items):
    body = await _putaway(client, sql_items["X"], label="a-01-01", quantity=10)

    assert body["stock"]["quantity"] == 10
    assert body["transaction"]["type"] == "ADD"
    assert body["transaction"]["created_by"] == "op-1"
    assert body["transaction"]["from_location_id"] is None

    resp = await client.get("/stock/location/A-01-01")
    assert resp.status_code == 200
    [row] = resp.json()
    assert (row["sku"], row["quantity"], row["location_label"]) == ("X", 10, "A-01-01")


async def test_request_validation_maps_to_400(client, sql_items):
    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(sql_items["X"]), "location_label": "A-01-01", "quantity": 0},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert body["context"] == {"field": "quantity"}

    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(sql_items["X"]), "location_label": "A1-01", "quantity": 1},
    )
    assert resp.status_code == 400

    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(sql_items["X"]), "location_label": "A-\u0661\u0662-\u0660\u0661", "quantity": 1},
    )
    assert resp.status_code == 400
    assert resp.json()["context"] == {"field": "location_label"}


async def test_quantity_beyond_column_range_is_400(client, sql_items):
    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(sql_items["X"]), "location_label": "A-01-01", "quantity": 2**31},
    )
    assert resp.status_code == 400
    assert resp.json()["context"] == {"field": "quantity"}

    await _putaway(client, sql_items["X"], quantity=2**31 - 1)
    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(sql_items["X"]), "location_label": "A-01-01", "quantity": 1},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_state"
    assert resp.json()["context"]["limit"] == 2**31 - 1


async def test_move_same_location_rejected(client, sql_items):
    body = await _putaway(client, sql_items["X"])

    resp = await client.post(
        "/stock/move",
        json={
            "from_location_label": "A-01-01",
            "to_location_label": "a-01-01",
            "items": [{"stock_id": body["stock"]["id"], "quantity": 1}],
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


async def test_move_and_remove_flow(client, sql_items):
    body = await _putaway(client, sql_items["X"])
    await _putaway(client, sql_items["Y"], label="A-01-02", quantity=1)

    resp = await client.post(
        "/stock/move",
        json={
            "from_location_label": "A-01-01",
            "to_location_label": "A-01-02",
            "items": [{"stock_id": body["stock"]["id"], "quantity": 4}],
            "user_id": "op-2",
        },
    )
    assert resp.status_code == 200, resp.text
    moved = resp.json()
    assert moved["source_stock"][0]["quantity"] == 6
    assert moved["destination_stock"][0]["quantity"] == 4
    destination_id = moved["destination_stock"][0]["id"]

    resp = await client.post(
        "/stock/remove",
        json={"items": [{"stock_id": destination_id, "quantity": 7}], "location_label": "A-01-02"},
    )
    assert resp.status_code == 409
    err = resp.json()
    assert err["error"] == "insufficient_stock"
    assert err["detail"] == "insufficient quantity for X at A-01-02: available 4, requested 7"
    assert err["context"] == {"item": "X", "location": "A-01-02", "available": 4, "requested": 7}

    resp = await client.post("/stock/remove", json={"items": [{"stock_id": destination_id, "quantity": 4}]})
    assert resp.status_code == 200
    assert resp.json()["transactions"][0]["type"] == "REMOVE"


async def test_move_to_unknown_location_is_404(client, sql_items):
    body = await _putaway(client, sql_items["X"])

    resp = await client.post(
        "/stock/move",
        json={
            "from_location_label": "A-01-01",
            "to_location_label": "Q-09-09",
            "items": [{"stock_id": body["stock"]["id"], "quantity": 1}],
        },
    )
    assert resp.status_code == 404
    assert resp.json()["context"]["entity"] == "location"


async def test_undo_transaction(client, sql_items):
    body = await _putaway(client, sql_items["X"], quantity=3)
    tx_id = body["transaction"]["id"]

    resp = await client.post(f"/transactions/{tx_id}/undo", params={"user_id": "supervisor"})
    assert resp.status_code == 200, resp.text
    undone = resp.json()
    assert undone["transaction"]["status"] == "UNDONE"
    assert undone["transaction"]["undone_by"] == "supervisor"
    assert undone["stock"][0]["quantity"] == 0

    resp = await client.post(f"/transactions/{tx_id}/undo")
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_undone"

    resp = await client.post(f"/transactions/{uuid.uuid4()}/undo")
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


async def test_transaction_history_filters(client, sql_items):
    body = await _putaway(client, sql_items["X"])
    await client.post("/stock/remove", json={"items": [{"stock_id": body["stock"]["id"], "quantity": 2}]})

    resp = await client.get("/transactions/")
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 2

    resp = await client.get("/transactions/", params={"type": "REMOVE"})
    [row] = resp.json()["data"]
    assert (row["type"], row["quantity"], row["from_location"]) == ("REMOVE", 2, "A-01-01")

    resp = await client.get("/transactions/", params={"status": "UNDONE"})
    assert resp.json()["data"] == []


async def test_transaction_history_accepts_offset_aware_bounds(client, sql_items):
    await _putaway(client, sql_items["X"])
    now = datetime.now(timezone.utc)

    hour_ago = (now - timedelta(hours=1)).strftime("%Y-%m-%dT%H:%M:%SZ")
    resp = await client.get("/transactions/", params={"start_date": hour_ago})
    assert resp.status_code == 200, resp.text
    assert len(resp.json()["data"]) == 1

    # a minute before now, written in UTC+05:00: read as wall-clock time it would be hours ahead
    minute_ago = (now - timedelta(minutes=1)).astimezone(timezone(timedelta(hours=5)))
    resp = await client.get("/transactions/", params={"end_date": minute_ago.isoformat()})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"] == []


async def test_putaway_batch_lifecycle(client, sql_items):
    resp = await client.post(
        "/stock/putaway-batch",
        json={
            "location_label": "B-02-01",
            "items": [
                {"item_id": str(sql_items["X"]), "quantity": 5},
                {"item_id": str(sql_items["Y"]), "quantity": 3},
            ],
            "user_id": "op-3",
        },
    )
    assert resp.status_code == 201, resp.text
    created = resp.json()
    batch_id = created["batch"]["id"]
    x_tx = created["transactions"][0]["id"]

    resp = await client.get(f"/putaway-batches/{batch_id}")
    assert resp.status_code == 200
    assert [t["quantity"] for t in resp.json()["transactions"]] == [5, 3]

    resp = await client.patch(
        f"/putaway-batches/{batch_id}",
        json={"transactions": [{"transaction_id": x_tx, "quantity": 2}], "user_id": "op-3"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["batch"]["status"] == "EDITED"

    resp = await client.get("/stock/summary")
    totals = {row["sku"]: row["total_quantity"] for row in resp.json()}
    assert totals == {"X": 2, "Y": 3}

    resp = await client.delete(f"/putaway-batches/{batch_id}", params={"user_id": "supervisor"})
    assert resp.status_code == 200
    assert resp.json()["batch"]["status"] == "UNDONE"

    resp = await client.delete(f"/putaway-batches/{batch_id}")
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_undone"

    resp = await client.patch(
        f"/putaway-batches/{batch_id}",
        json={"transactions": [{"transaction_id": x_tx, "quantity": 1}]},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_state"


async def test_lookup_requires_a_filter(client, sql_items):
    resp = await client.get("/stock/lookup")
    assert resp.status_code == 400

    await _putaway(client, sql_items["X"])
    resp = await client.get("/stock/lookup", params={"company_id": str(sql_items["company"])})
    assert [r["sku"] for r in resp.json()] == ["X"]


async def test_persistence_failure_is_503(client):
    class Unavailable:
        async def putaway(self, *args, **kwargs):
            raise PersistenceFailure("ledger store unavailable after 5 attempts", attempts=5)

    app.dependency_overrides[get_movement_engine] = lambda: Unavailable()

    resp = await client.post(
        "/stock/putaway",
        json={"item_id": str(uuid.uuid4()), "location_label": "A-01-01", "quantity": 1},
    )
    assert resp.status_code == 503
    assert resp.json() == {
        "error": "persistence_failure",
        "detail": "ledger store unavailable after 5 attempts",
        "context": {"attempts": 5},
    }
    assert status_for(PersistenceFailure("x")) == 503
