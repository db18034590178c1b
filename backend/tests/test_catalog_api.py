from datetime import date, timedelta

from sqlalchemy import select

from backend.app.db.models.core_types import AuditAction
from backend.app.db.models.models_v1 import AuditLog, StockMovement
from backend.services import catalog


def _category(client, headers, name="Beverages"):
    resp = client.post("/v1/categories", json={"name": name}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _product(client, headers, category_id, **overrides):
    payload = {
        "name": "Cola",
        "sku": "BEV-001",
        "category_id": category_id,
        "cost_price": 0.5,
        "selling_price": 1.25,
        "current_stock": 10,
        "minimum_stock": 5,
    }
    payload.update(overrides)
    return client.post("/v1/products", json=payload, headers=headers)


# ---------- categories ----------
def test_category_crud(client, admin_headers):
    cat = _category(client, admin_headers)
    assert cat["product_count"] == 0

    resp = client.post("/v1/categories", json={"name": "Beverages"}, headers=admin_headers)
    assert resp.status_code == 409

    resp = client.patch(f"/v1/categories/{cat['id']}", json={"name": "Drinks"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Drinks"

    resp = client.get("/v1/categories", headers=admin_headers)
    assert [c["name"] for c in resp.json()] == ["Drinks"]

    resp = client.delete(f"/v1/categories/{cat['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"/v1/categories/{cat['id']}", headers=admin_headers).status_code == 404


def test_category_in_use_cannot_be_deleted(client, admin_headers):
    cat = _category(client, admin_headers)
    assert _product(client, admin_headers, cat["id"]).status_code == 200

    resp = client.get(f"/v1/categories/{cat['id']}", headers=admin_headers)
    assert resp.json()["product_count"] == 1

    resp = client.delete(f"/v1/categories/{cat['id']}", headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Cannot delete category. 1 product(s) are using this category."


def test_category_changes_are_audited(client, db_session, admin_headers):
    cat = _category(client, admin_headers)
    client.patch(f"/v1/categories/{cat['id']}", json={"name": "Drinks"}, headers=admin_headers)

    logs = db_session.execute(
        select(AuditLog).where(AuditLog.entity_type == "Category").order_by(AuditLog.id)
    ).scalars().all()
    assert [log.action for log in logs] == [AuditAction.create, AuditAction.update]
    assert logs[1].old_value == "Beverages"
    assert logs[1].new_value == "Drinks"


# ---------- products ----------
def test_product_create_and_read(client, admin_headers):
    cat = _category(client, admin_headers)
    resp = _product(client, admin_headers, cat["id"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["sku"] == "BEV-001"
    assert body["current_stock"] == 10
    assert body["status"] == "ACTIVE"
    assert body["category"]["name"] == "Beverages"
    assert body["selling_price"] == 1.25

    resp = client.get(f"/v1/products/{body['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Cola"


def test_product_create_conflicts_and_missing_category(client, admin_headers):
    cat = _category(client, admin_headers)
    assert _product(client, admin_headers, cat["id"]).status_code == 200

    resp = _product(client, admin_headers, cat["id"], name="Other cola")
    assert resp.status_code == 409

    resp = _product(client, admin_headers, cat["id"] + 50, sku="BEV-002")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Category not found"

    resp = _product(client, admin_headers, cat["id"], sku="BEV-003", current_stock=-1)
    assert resp.status_code == 422


def test_patch_never_touches_stock(client, db_session, admin_headers):
    cat = _category(client, admin_headers)
    product = _product(client, admin_headers, cat["id"]).json()

    resp = client.patch(
        f"/v1/products/{product['id']}",
        json={"current_stock": 999, "name": "Cola Zero", "status": "INACTIVE"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["current_stock"] == 10
    assert body["name"] == "Cola Zero"
    assert body["status"] == "INACTIVE"

    actions = db_session.execute(
        select(AuditLog.action).where(AuditLog.entity_type == "Product").order_by(AuditLog.id)
    ).scalars().all()
    assert actions == [AuditAction.create, AuditAction.status_change, AuditAction.update]


def test_delete_product_removes_its_movements(client, db_session, admin_headers):
    cat = _category(client, admin_headers)
    product = _product(client, admin_headers, cat["id"]).json()
    client.post(
        "/v1/stock/move",
        json={"product_id": product["id"], "quantity": 3, "type": "OUT", "reason": "sale"},
        headers=admin_headers,
    )

    resp = client.delete(f"/v1/products/{product['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"/v1/products/{product['id']}", headers=admin_headers).status_code == 404

    left = db_session.execute(
        select(StockMovement).where(StockMovement.product_id == product["id"])
    ).scalars().all()
    assert left == []


def test_list_products_search_filter_and_paging(client, admin_headers):
    cat = _category(client, admin_headers)
    other = _category(client, admin_headers, name="Snacks")
    _product(client, admin_headers, cat["id"], name="Cola", sku="BEV-001")
    _product(client, admin_headers, cat["id"], name="Lemonade", sku="BEV-002")
    _product(client, admin_headers, other["id"], name="Chips", sku="SNK-001", status="INACTIVE")

    resp = client.get("/v1/products", params={"limit": 2}, headers=admin_headers)
    body = resp.json()
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}
    assert len(body["data"]) == 2

    resp = client.get("/v1/products", params={"search": "lemon"}, headers=admin_headers)
    assert [p["sku"] for p in resp.json()["data"]] == ["BEV-002"]

    resp = client.get("/v1/products", params={"category_id": other["id"]}, headers=admin_headers)
    assert [p["sku"] for p in resp.json()["data"]] == ["SNK-001"]

    resp = client.get("/v1/products", params={"status": "ACTIVE"}, headers=admin_headers)
    assert resp.json()["meta"]["total"] == 2


def test_low_and_out_of_stock(client, admin_headers):
    cat = _category(client, admin_headers)
    _product(client, admin_headers, cat["id"], sku="A", current_stock=2, minimum_stock=5)
    _product(client, admin_headers, cat["id"], sku="B", current_stock=0, minimum_stock=1)
    _product(client, admin_headers, cat["id"], sku="C", current_stock=50, minimum_stock=5)
    _product(client, admin_headers, cat["id"], sku="D", current_stock=0, minimum_stock=3, status="INACTIVE")

    resp = client.get("/v1/products/low-stock", headers=admin_headers)
    assert [p["sku"] for p in resp.json()] == ["B", "A"]

    resp = client.get("/v1/products/out-of-stock", headers=admin_headers)
    assert [p["sku"] for p in resp.json()] == ["B"]


def test_expiration_buckets(db_session, admin_auth, make_product):
    org_id = admin_auth["user"]["organization_id"]
    today = date(2024, 6, 1)
    make_product(org_id, sku="OLD", expiration_date=today - timedelta(days=1))
    make_product(org_id, sku="SOON", expiration_date=today + timedelta(days=30))
    make_product(org_id, sku="LATER", expiration_date=today + timedelta(days=31))
    make_product(org_id, sku="NONE")

    stats = catalog.expiration_stats(db_session, org_id, today=today)
    assert (stats["total"], stats["expired"], stats["expiring_soon"], stats["active"]) == (3, 1, 1, 1)
    assert stats["expired_products"][0].sku == "OLD"
    assert stats["expiring_soon_products"][0].sku == "SOON"
    assert stats["active_products"][0].sku == "LATER"

    def _skus(**flags):
        stmt = catalog.products_query(org_id, today=today, **flags)
        return {p.sku for p in db_session.execute(stmt).scalars()}

    assert _skus(expired=True) == {"OLD"}
    assert _skus(expiring_soon=True) == {"SOON"}
    assert _skus(active_expiration=True) == {"LATER"}
    assert _skus(has_expiration_date=True) == {"OLD", "SOON", "LATER"}
    # first flag wins
    assert _skus(expired=True, expiring_soon=True) == {"OLD"}


def test_expiration_stats_endpoint(client, admin_headers):
    resp = client.get("/v1/products/expiration-stats", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["total"] == 0


def test_staff_cannot_create_or_delete_products(client, admin_headers):
    cat = _category(client, admin_headers)
    product = _product(client, admin_headers, cat["id"]).json()
    client.post(
        "/v1/auth/register-staff",
        json={"email": "staff@acme.com", "password": "staffpass", "name": "Sam Staff"},
        headers=admin_headers,
    )
    token = client.post(
        "/v1/auth/login",
        json={"organization_name": "Acme", "email": "staff@acme.com", "password": "staffpass"},
    ).json()["access_token"]
    staff = {"Authorization": f"Bearer {token}"}

    assert _product(client, staff, cat["id"], sku="NEW").status_code == 403
    assert client.delete(f"/v1/products/{product['id']}", headers=staff).status_code == 403
    assert client.post("/v1/categories", json={"name": "X"}, headers=staff).status_code == 403

    resp = client.patch(f"/v1/products/{product['id']}", json={"minimum_stock": 8}, headers=staff)
    assert resp.status_code == 200
    assert resp.json()["minimum_stock"] == 8
