from spareparts.core.security import hash_password
from spareparts.models import AppUser, Notification


def _create_order(client, headers, **extra):
    body = {"PartName": "Door seal", "Quantity": 2, "EstimatedCost": 12.5}
    body.update(extra)
    r = client.post("/spare-parts", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_requires_token(client):
    r = client.get("/spare-parts")
    assert r.status_code == 401
    assert r.json() == {"ok": False, "error": "Authentication required"}


def test_garbage_token_is_rejected(client):
    r = client.get("/spare-parts", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401


def test_role_guard(client, make_user, workshop):
    _, tech = make_user("gligorije", "technician", technician_id=workshop["technician"].TechnicianID)
    r = client.get("/spare-parts/requests", headers=tech)
    assert r.status_code == 403
    assert r.json()["ok"] is False


def test_not_found_envelope(client, make_user):
    _, admin = make_user("admin", "admin")
    r = client.get("/spare-parts/999", headers=admin)
    assert r.status_code == 404
    body = r.json()
    assert body["ok"] is False
    assert body["meta"]["code"] == "NOT_FOUND"
    assert "999" in body["error"]


def test_validation_envelope(client, make_user):
    _, admin = make_user("admin", "admin")
    r = client.post("/spare-parts", json={"PartName": "Belt", "Quantity": 0}, headers=admin)
    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "Validation error"
    assert body["meta"]["errors"][0]["loc"][-1] == "Quantity"


def test_reapproval_conflict_envelope(client, make_user):
    _, admin = make_user("admin", "admin")
    order = _create_order(client, admin)
    assert client.post(f"/spare-parts/{order['OrderID']}/approve", headers=admin).status_code == 200

    r = client.post(f"/spare-parts/{order['OrderID']}/approve", headers=admin)
    assert r.status_code == 409
    assert r.json()["meta"]["code"] == "CONFLICT"


def test_technician_sees_only_own_orders(client, make_user, workshop):
    _, admin = make_user("admin", "admin")
    _, tech = make_user("gligorije", "technician", technician_id=workshop["technician"].TechnicianID)

    mine = _create_order(client, tech, ServiceID=workshop["service"].ServiceID)
    other = _create_order(client, admin)
    assert mine["Status_s"] == "requested"
    assert mine["TechnicianID"] == workshop["technician"].TechnicianID
    assert mine["EstimatedCost"] == 12.5

    r = client.get("/spare-parts", headers=tech)
    assert [o["OrderID"] for o in r.json()["data"]] == [mine["OrderID"]]
    assert client.get(f"/spare-parts/{other['OrderID']}", headers=tech).status_code == 403


def test_procurement_over_http(client, db, make_user, parties, workshop):
    _, admin = make_user("admin", "admin")
    _, electrolux = make_user("electrolux", "supplier", party_id=parties["Electrolux"].PartyID)

    order = _create_order(client, admin, ServiceID=workshop["service"].ServiceID)
    oid = order["OrderID"]

    # nobody serves Vox: no task, the reason travels in meta.warnings
    r = client.post(f"/spare-parts/{oid}/assign", json={"Brand": "Vox"}, headers=admin)
    assert r.status_code == 200
    body = r.json()
    assert body["data"]["task"] is None
    assert body["meta"]["warnings"][0]["code"] == "ROUTING_UNRESOLVED"
    assert body["meta"]["warnings"][0]["brand"] == "Vox"

    r = client.post(f"/spare-parts/{oid}/assign", json={"Brand": "AEG"}, headers=admin)
    data = r.json()["data"]
    assert data["order"]["Status_s"] == "assigned_to_supplier"
    assert data["route"] == {
        "party_id": parties["Electrolux"].PartyID,
        "party_name": "Electrolux",
        "rule": "exact",
        "matched_key": "AEG",
    }
    task_id = data["task"]["TaskID"]

    r = client.get("/tasks", headers=electrolux)
    assert [t["TaskID"] for t in r.json()["data"]] == [task_id]

    r = client.post(
        f"/tasks/{task_id}/status",
        json={"Status": "sent", "TrackingNumber": "PE-55", "SupplierPrice": 11.0},
        headers=electrolux,
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["Status_s"] == "sent"
    assert r.json()["meta"]["order_status"] == "waiting_delivery"
    assert "warnings" not in r.json()["meta"]

    r = client.post(f"/spare-parts/{oid}/receive", json={"Location": "B2"}, headers=admin)
    assert r.status_code == 200, r.text
    stock = r.json()["data"]["stock_item"]
    assert stock["Quantity"] == 2
    assert stock["UnitCost"] == 11.0
    assert stock["ClientName"] == "Milena Jovanovic"

    r = client.post(
        "/warehouse/allocations",
        json={
            "StockItemID": stock["StockItemID"],
            "ServiceID": workshop["service"].ServiceID,
            "TechnicianID": workshop["technician"].TechnicianID,
            "Quantity": 5,
        },
        headers=admin,
    )
    assert r.status_code == 409
    assert r.json()["meta"]["code"] == "INSUFFICIENT_STOCK"

    r = client.post(
        "/warehouse/allocations",
        json={
            "StockItemID": stock["StockItemID"],
            "ServiceID": workshop["service"].ServiceID,
            "TechnicianID": workshop["technician"].TechnicianID,
            "Quantity": 2,
        },
        headers=admin,
    )
    assert r.status_code == 201, r.text

    assert client.get(f"/spare-parts/{oid}", headers=admin).json()["data"]["Status_s"] == "consumed"
    assert client.get(f"/warehouse/stock/{stock['StockItemID']}", headers=admin).json()["data"]["Quantity"] == 0
    activity = client.get("/warehouse/activity", headers=admin).json()["data"]
    assert [a["Action"] for a in activity] == ["allocated", "received"]

    db.expire_all()
    assert db.query(Notification).filter_by(RelatedOrderID=oid).count() >= 4


def test_portal_user_stays_inside_own_party(client, make_user, parties):
    _, admin = make_user("admin", "admin")
    _, elica = make_user("elica", "supplier", party_id=parties["Elica Service"].PartyID)

    order = _create_order(client, admin)
    r = client.post(
        f"/spare-parts/{order['OrderID']}/assign",
        json={"PartyID": parties["Electrolux"].PartyID},
        headers=admin,
    )
    task_id = r.json()["data"]["task"]["TaskID"]

    assert client.get(f"/tasks/{task_id}", headers=elica).status_code == 403
    r = client.post(f"/tasks/{task_id}/status", json={"Status": "separated"}, headers=elica)
    assert r.status_code == 403
    assert client.get(f"/parties/{parties['Electrolux'].PartyID}/tasks", headers=elica).status_code == 403
    assert client.get("/spare-parts", headers=elica).status_code == 403

    r = client.get(f"/parties/{parties['Elica Service'].PartyID}/stats", headers=elica)
    assert r.status_code == 200
    assert r.json()["data"]["total"] == 0


def test_route_preview(client, make_user, parties):
    _, admin = make_user("admin", "admin")
    r = client.post("/parties/route-preview", json={"Brand": "Hoover"}, headers=admin)
    assert r.json()["data"]["party_name"] == "ComPlus"
    assert r.json()["data"]["rule"] == "priority_group"

    r = client.post("/parties/route-preview", json={"Brand": "Hoover", "PartyType": "supplier"}, headers=admin)
    assert r.json()["data"] is None
    assert r.json()["meta"]["warnings"][0]["code"] == "ROUTING_UNRESOLVED"


def test_party_admin_endpoints(client, make_user, parties):
    _, admin = make_user("admin", "admin")
    r = client.post(
        "/parties",
        json={"Name": "Gorenje Servis", "PartyType": "supplier", "Brands": ["Gorenje", "Gorenje"]},
        headers=admin,
    )
    assert r.status_code == 201
    party_id = r.json()["data"]["PartyID"]
    assert [b["BrandName"] for b in r.json()["data"]["brands"]] == ["Gorenje"]

    r = client.post(f"/parties/{party_id}/brands", json={"BrandName": "Asko"}, headers=admin)
    assert r.status_code == 201
    assert client.post(f"/parties/{party_id}/brands", json={"BrandName": "Asko"}, headers=admin).status_code == 409

    r = client.post("/parties", json={"Name": "Electrolux", "PartyType": "supplier"}, headers=admin)
    assert r.status_code == 409


def test_login_and_me(client, db):
    db.add(AppUser(Username="admin", Role="admin", HashedPassword=hash_password("s3cret!")))
    db.commit()

    r = client.post("/auth/login", data={"username": "admin", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/auth/login", data={"username": " admin ", "password": "s3cret!"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = client.get("/auth/me", headers={"Authorization": f"Bearer  Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["data"]["Username"] == "admin"


def test_register_checks_party_binding(client, make_user, parties):
    _, admin = make_user("admin", "admin")
    r = client.post(
        "/auth/register",
        json={"username": "complus", "password": "secret123", "role": "business_partner"},
        headers=admin,
    )
    assert r.status_code == 422

    r = client.post(
        "/auth/register",
        json={"username": "complus", "password": "secret123", "role": "business_partner",
              "party_id": parties["ComPlus"].PartyID},
        headers=admin,
    )
    assert r.status_code == 201
    assert r.json()["data"]["PartyID"] == parties["ComPlus"].PartyID


def test_reconcile_endpoint(client, make_user):
    _, admin = make_user("admin", "admin")
    r = client.post("/admin/reconcile", headers=admin)
    assert r.status_code == 200
    assert r.json()["data"] == {"checked": 0, "updated": []}
