from pantryplan import models
from pantryplan.domain import ShoppingEntry
from pantryplan.services.products import find_or_create_product
from pantryplan.services.shopping_list import (
    ShoppingListMerger,
    apply_shopping_changes,
    load_pending_entries,
)


# --- Merger ---

def test_merger_matches_free_text_lines_by_label():
    existing = ShoppingEntry(id="s1", product_id=None, name="Œufs", quantity=6, unit="pcs", priority="low")
    merger = ShoppingListMerger([existing])

    entry = merger.add_shortfall(None, "oeufs", 4, "pcs")

    assert entry is existing
    assert existing.quantity == 10
    assert existing.priority == "high"
    assert merger.updates == [existing]
    assert merger.insertions == []
    assert merger.changed


def test_merger_keeps_product_lines_apart_from_free_text():
    merger = ShoppingListMerger([ShoppingEntry(id="s1", product_id=None, name="Riz", quantity=1, unit="kg")])
    merger.add_shortfall("p-riz", "Riz", 400, "g")

    [inserted] = merger.insertions
    assert inserted.product_id == "p-riz"
    assert inserted.name is None
    assert merger.updates == []


def test_merger_sums_raw_quantity_across_unit_families():
    existing = ShoppingEntry(id="s1", product_id="p-lait", name=None, quantity=2, unit="pcs")
    merger = ShoppingListMerger([existing])
    merger.add_shortfall("p-lait", None, 250, "ml")
    assert existing.quantity == 252


def test_merger_without_changes():
    merger = ShoppingListMerger()
    assert not merger.changed
    assert merger.find(None, "Riz") is None


# --- Persistence ---

def test_apply_changes_updates_and_inserts(db_session):
    riz = find_or_create_product(db_session, "Riz", "kg")
    row = models.ShoppingListEntry(product_id=riz.id, quantity=1, unit="kg", priority="low", added_reason="manual")
    db_session.add(row)
    db_session.commit()

    merger = ShoppingListMerger(load_pending_entries(db_session))
    merger.add_shortfall(riz.id, "Riz", 500, "g")
    for i in range(60):
        merger.add_shortfall(None, f"Épice {i}", 10, "g")

    written = apply_shopping_changes(db_session, merger)

    assert written == 61
    db_session.refresh(row)
    assert row.quantity == 1.5
    assert row.priority == "high"
    assert all(e.id for e in merger.insertions)
    assert db_session.query(models.ShoppingListEntry).count() == 61


def test_purchased_lines_are_not_merged(db_session):
    db_session.add(models.ShoppingListEntry(name="Riz", quantity=1, unit="kg", is_purchased=True))
    db_session.commit()
    assert load_pending_entries(db_session) == []


# --- API ---

def test_create_manual_item_records_notification(client):
    resp = client.post("/api/shopping-lists", json={"name": "Lessive", "quantity": 2})
    assert resp.status_code == 201, resp.text
    item = resp.json()
    assert (item["name"], item["priority"], item["added_reason"]) == ("Lessive", "medium", "manual")
    assert item["is_purchased"] is False

    [notification] = client.get("/api/notifications").json()
    assert notification["type"] == "shopping_reminder"
    assert notification["message"] == "Lessive ajouté à la liste (2 pcs)"


def test_create_item_validation(client):
    assert client.post("/api/shopping-lists", json={"quantity": 1}).status_code == 400
    assert client.post("/api/shopping-lists", json={"product_id": "missing"}).status_code == 404
    assert client.post("/api/shopping-lists", json={"name": "Riz", "quantity": 0}).status_code == 422


def test_list_orders_open_items_by_priority(client):
    low = client.post("/api/shopping-lists", json={"name": "Bougies", "priority": "low"}).json()
    high = client.post("/api/shopping-lists", json={"name": "Lait", "priority": "high"}).json()
    done = client.post("/api/shopping-lists", json={"name": "Pain"}).json()

    resp = client.patch(f"/api/shopping-lists/{done['id']}", json={"is_purchased": True})
    assert resp.status_code == 200
    assert resp.json()["purchased_at"] is not None

    ids = [item["id"] for item in client.get("/api/shopping-lists").json()]
    assert ids == [high["id"], low["id"], done["id"]]


def test_update_and_delete_item(client):
    item = client.post("/api/shopping-lists", json={"name": "Riz"}).json()

    resp = client.patch(f"/api/shopping-lists/{item['id']}", json={"quantity": 3, "unit": "kg"})
    assert resp.json()["quantity"] == 3
    assert resp.json()["unit"] == "kg"

    assert client.patch("/api/shopping-lists/missing", json={"quantity": 1}).status_code == 404
    assert client.delete(f"/api/shopping-lists/{item['id']}").status_code == 204
    assert client.delete(f"/api/shopping-lists/{item['id']}").status_code == 404


# --- Voice assistant ---

def test_voice_request_requires_item(client):
    resp = client.post("/api/alexa/shopping-list", json={"quantity": 2})
    assert resp.status_code == 400
    assert resp.json()["detail"] == 'Paramètre "item" requis.'


def test_voice_request_links_known_product(client, db_session):
    pates = find_or_create_product(db_session, "Pâtes", "g")

    resp = client.post("/api/alexa/shopping-list", json={"item": "pates", "quantity": 2})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["item"]["product_id"] == pates.id
    assert body["item"]["name"] is None
    assert body["item"]["priority"] == "medium"
    assert body["item"]["added_reason"] == "alexa"

    titles = [n["title"] for n in client.get("/api/notifications").json()]
    assert titles == ["Demande Alexa"]


def test_voice_request_free_text(client):
    body = client.post("/api/alexa/shopping-list", json={"item": "  Papier toilette "}).json()
    assert body["item"]["product_id"] is None
    assert body["item"]["name"] == "Papier toilette"
