import json
import re
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from domain.errors import EncodingError
from domain.services import occupancy
from domain.services import passes as pass_service
from domain.timeutils import utcnow
from infrastructure.qr import get_qr_encoder
from main import app
from tests.conftest import iso, parse_dt

MALFORMED_ID = "not-a-valid-id"


class FailingEncoder:
    def encode(self, payload: str) -> str:
        raise EncodingError("encoder offline")


def test_issue_pass(issue, employee, visitor):
    response = issue(building="HQ", purpose="Interview")

    assert response.status_code == 201, response.text
    body = response.json()
    assert re.fullmatch(r"PASS-\d+-\d{1,3}", body["passNumber"])
    assert json.loads(body["qrData"]) == {"passNumber": body["passNumber"]}
    assert body["qrImage"].startswith("data:image/png;base64,")
    assert body["qrState"] == "complete"
    assert body["status"] == "active"
    assert body["createdBy"] == employee["id"]
    assert body["building"] == "HQ"
    assert body["visitor"]["name"] == visitor["name"]
    assert body["visitor"]["company"] == "Acme"
    assert body["host"] == {"id": employee["id"], "name": "Erin Employee", "email": "erin@example.com"}
    assert body["appointment"] is None


def test_issued_timestamps_are_utc(issue):
    now = utcnow()
    body = issue(validTo=iso(now + timedelta(hours=2))).json()

    assert parse_dt(body["createdAt"]) - now < timedelta(minutes=1)
    assert abs(parse_dt(body["validTo"]) - (now + timedelta(hours=2))) < timedelta(seconds=1)


def test_host_must_be_able_to_host(issue, security):
    response = issue(host=security["id"])

    assert response.status_code == 400
    assert response.json()["fields"] == ["host"]


def test_issue_reports_every_missing_field_in_order(client, employee):
    response = client.post("/api/passes", json={}, headers=employee["headers"])

    assert response.status_code == 400
    assert response.json() == {
        "error": "Please fill out all the fields!",
        "emptyFields": ["visitor", "host", "validFrom", "validTo"],
    }


def test_issue_reports_only_absent_fields(issue):
    response = issue(host=None, validTo="")

    assert response.status_code == 400
    assert response.json()["emptyFields"] == ["host", "validTo"]


def test_issue_rejects_unknown_references(issue):
    response = issue(visitor="3f1c1a8e-0000-4000-8000-000000000000", host=MALFORMED_ID)

    assert response.status_code == 400
    assert response.json()["fields"] == ["visitor", "host"]


def test_issue_rejects_inverted_validity_window(issue):
    now = utcnow()
    response = issue(validFrom=iso(now + timedelta(hours=2)), validTo=iso(now))

    assert response.status_code == 400
    assert response.json()["fields"] == ["validFrom", "validTo"]


def test_security_cannot_issue(issue, security):
    response = issue(headers=security["headers"])

    assert response.status_code == 403


def test_list_is_scoped_to_creator_for_non_admins(client, issue, employee, other_employee, admin):
    mine = issue().json()
    theirs = issue(headers=other_employee["headers"]).json()

    own = client.get("/api/passes", headers=employee["headers"]).json()
    assert [p["id"] for p in own] == [mine["id"]]

    everything = client.get("/api/passes", headers=admin["headers"]).json()
    assert [p["id"] for p in everything] == [theirs["id"], mine["id"]]


def test_list_filters(client, issue, employee, visitor):
    first = issue().json()
    second = issue().json()
    client.put(
        f"/api/passes/{first['id']}",
        json={"type": "status", "status": "revoked"},
        headers=employee["headers"],
    )

    active = client.get("/api/passes", params={"status": "ACTIVE"}, headers=employee["headers"]).json()
    assert [p["id"] for p in active] == [second["id"]]

    by_visitor = client.get("/api/passes", params={"visitor": visitor["id"]}, headers=employee["headers"]).json()
    assert len(by_visitor) == 2

    by_host = client.get("/api/passes", params={"host": MALFORMED_ID}, headers=employee["headers"]).json()
    assert by_host == []


def test_get_pass(client, issue, employee):
    issued = issue().json()

    response = client.get(f"/api/passes/{issued['id']}", headers=employee["headers"])

    assert response.status_code == 200
    assert response.json()["passNumber"] == issued["passNumber"]


def test_other_users_pass_is_not_found_for_non_admin(client, issue, other_employee, admin):
    issued = issue().json()

    hidden = client.get(f"/api/passes/{issued['id']}", headers=other_employee["headers"])
    assert hidden.status_code == 404

    visible = client.get(f"/api/passes/{issued['id']}", headers=admin["headers"])
    assert visible.status_code == 200


def test_malformed_id_is_not_found(client, employee):
    headers = employee["headers"]
    responses = [
        client.get(f"/api/passes/{MALFORMED_ID}", headers=headers),
        client.get(f"/api/passes/{MALFORMED_ID}/qr", headers=headers),
        client.put(f"/api/passes/{MALFORMED_ID}", json={"type": "location", "building": "A"}, headers=headers),
        client.delete(f"/api/passes/{MALFORMED_ID}", headers=headers),
    ]

    for response in responses:
        assert response.status_code == 404
        assert response.json() == {"error": "No such pass"}


def test_get_qr_image_only(client, issue, employee):
    issued = issue().json()

    response = client.get(f"/api/passes/{issued['id']}/qr", headers=employee["headers"])

    assert response.status_code == 200
    assert response.json() == {"qrImage": issued["qrImage"]}


def test_delete_returns_last_state_then_not_found(client, issue, employee):
    issued = issue().json()

    deleted = client.delete(f"/api/passes/{issued['id']}", headers=employee["headers"])
    assert deleted.status_code == 200
    assert deleted.json()["id"] == issued["id"]
    assert deleted.json()["passNumber"] == issued["passNumber"]

    again = client.get(f"/api/passes/{issued['id']}", headers=employee["headers"])
    assert again.status_code == 404


def test_encoding_failure_leaves_pending_pass_that_backfill_completes(client, issue, employee, admin):
    app.dependency_overrides[get_qr_encoder] = lambda: FailingEncoder()

    failed = issue()
    assert failed.status_code == 500
    assert failed.json() == {"error": "encoder offline"}

    pending = client.get("/api/passes", headers=employee["headers"]).json()
    assert len(pending) == 1
    assert pending[0]["qrState"] == "pending-image"
    assert pending[0]["qrImage"] is None

    still_failing = client.post("/api/passes/qr/backfill", headers=admin["headers"]).json()
    assert still_failing["processed"] == 1
    assert still_failing["failed"] == 1
    assert still_failing["failedIds"] == [pending[0]["id"]]

    app.dependency_overrides.pop(get_qr_encoder)
    result = client.post("/api/passes/qr/backfill", headers=admin["headers"]).json()
    assert result == {"processed": 1, "completed": 1, "failed": 0, "failedIds": []}

    repaired = client.get(f"/api/passes/{pending[0]['id']}", headers=employee["headers"]).json()
    assert repaired["qrState"] == "complete"
    assert repaired["qrImage"].startswith("data:image/png;base64,")


def test_backfill_requires_admin(client, employee):
    response = client.post("/api/passes/qr/backfill", headers=employee["headers"])

    assert response.status_code == 403


def test_live_occupancy_endpoint(client, issue, employee, security):
    now = utcnow()
    issue(building="HQ", validTo=iso(now + timedelta(minutes=10)))
    issue(building="HQ", validTo=iso(now + timedelta(hours=3)))
    issue(building="Lab", validFrom=iso(now - timedelta(hours=2)), validTo=iso(now - timedelta(minutes=5)))
    revoked = issue(building="Annex").json()
    client.put(
        f"/api/passes/{revoked['id']}",
        json={"type": "status", "status": "revoked"},
        headers=employee["headers"],
    )

    response = client.get("/api/passes/live", headers=security["headers"])

    assert response.status_code == 200
    body = response.json()
    assert "generatedAt" in body
    buildings = {b["building"]: b for b in body["buildings"]}
    assert set(buildings) == {"HQ", "Lab"}
    assert (buildings["HQ"]["total"], buildings["HQ"]["onTime"], buildings["HQ"]["approachingExit"]) == (2, 1, 1)
    assert (buildings["Lab"]["total"], buildings["Lab"]["overstay"]) == (1, 1)
    assert buildings["Lab"]["visitors"][0]["name"] == "Maria Gonzalez"
    assert buildings["Lab"]["visitors"][0]["host"] == "Erin Employee"


def test_live_occupancy_empty(client, employee):
    response = client.get("/api/passes/live", headers=employee["headers"])

    assert response.status_code == 200
    assert response.json()["buildings"] == []


def test_requests_without_user_are_rejected(client):
    response = client.get("/api/passes")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


def test_live_occupancy_timestamps_carry_utc_designator(client, issue, employee):
    issue(building="HQ")

    body = client.get("/api/passes/live", headers=employee["headers"]).json()

    assert body["generatedAt"].endswith(("Z", "+00:00"))
    assert body["buildings"][0]["visitors"][0]["expectedExit"].endswith(("Z", "+00:00"))


def test_live_occupancy_inside_only(client, issue, employee, security):
    inside = issue(building="HQ").json()
    issue(building="Lab")
    scanned = client.post(
        "/api/checklogs/scan",
        json={"qrData": inside["qrData"], "action": "check_in"},
        headers=security["headers"],
    )
    assert scanned.status_code == 201

    everyone = client.get("/api/passes/live", headers=employee["headers"]).json()
    assert [b["building"] for b in everyone["buildings"]] == ["HQ", "Lab"]

    checked_in = client.get("/api/passes/live", params={"insideOnly": "true"}, headers=employee["headers"]).json()
    assert [b["building"] for b in checked_in["buildings"]] == ["HQ"]
    assert checked_in["buildings"][0]["visitors"][0]["id"] == inside["id"]
    assert checked_in["buildings"][0]["visitors"][0]["entryTime"] is not None


def test_live_occupancy_store_failure(client, employee, monkeypatch):
    async def unavailable(session, inside_only=False):
        raise OperationalError("SELECT passes", {}, Exception("database is locked"))

    monkeypatch.setattr(occupancy, "load_active_passes", unavailable)

    response = client.get("/api/passes/live", headers=employee["headers"])

    assert response.status_code == 500
    assert response.json() == {"message": "Failed to fetch live visitors"}


def test_store_failure_message_is_passed_through(client, employee, monkeypatch):
    error = OperationalError("SELECT passes", {}, Exception("disk I/O error"))

    async def failing(session, filters, user):
        raise error

    monkeypatch.setattr(pass_service, "list_passes", failing)

    response = client.get("/api/passes", headers=employee["headers"])

    assert response.status_code == 500
    assert response.json() == {"error": str(error)}
