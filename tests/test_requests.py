from datetime import date

import pytest
from fastapi import HTTPException

from borrow_buddy.modules.requests.service import RequestService, is_overdue
from tests.conftest import make_group, make_tool


@pytest.fixture
def drill(db, alice, bob):
    make_group(db, alice, "Maple Street", bob)
    return make_tool(db, alice, "Cordless Drill")


def create_request(client, bob, tool, start="2026-03-01", end="2026-03-05"):
    return client.login(bob).post("/api/v1/requests", json={
        "tool_id": tool["id"],
        "start_date": start,
        "end_date": end,
        "message": "For the deck"
    })


def statuses(db, request_id):
    return [h["action_type"] for h in db.rows("tool_history") if h["request_id"] == request_id]


def test_create_request_notifies_owner(client, db, alice, bob, drill):
    response = create_request(client, bob, drill)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["tool_name"] == "Cordless Drill"
    assert body["owner_name"] == "Alice"
    assert body["requester_name"] == "Bob"

    notes = [n for n in db.rows("notifications") if n["user_id"] == alice["id"]]
    assert [n["type"] for n in notes] == ["tool_request"]
    assert notes[0]["data"]["request_id"] == body["id"]
    assert statuses(db, body["id"]) == ["pending"]


def test_cannot_borrow_own_tool(client, alice, drill):
    response = create_request(client, alice, drill)
    assert response.status_code == 400


def test_cannot_borrow_outside_groups(client, db, carol, drill):
    response = create_request(client, carol, drill)
    assert response.status_code == 403


def test_cannot_borrow_unavailable_tool(client, db, alice, bob):
    make_group(db, alice, "Maple Street", bob)
    saw = make_tool(db, alice, "Circular Saw", status="borrowed")
    response = create_request(client, bob, saw)
    assert response.status_code == 409


def test_start_after_end_is_rejected(client, bob, drill):
    response = create_request(client, bob, drill, start="2026-03-05", end="2026-03-01")
    assert response.status_code == 400


def test_full_lifecycle(client, db, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]

    assert client.login(alice).post(f"/api/v1/requests/{request_id}/approve").json()["status"] == "approved"

    picked = client.login(bob).post(f"/api/v1/requests/{request_id}/pickup").json()
    assert picked["status"] == "picked_up"
    assert picked["picked_up_at"] is not None
    assert db.rows("tools")[0]["status"] == "in_use"

    assert client.login(bob).post(f"/api/v1/requests/{request_id}/return").json()["status"] == "return_pending"

    returned = client.login(alice).post(
        f"/api/v1/requests/{request_id}/confirm-return",
        json={"notes": "Chuck is a bit loose"}
    ).json()
    assert returned["status"] == "returned"
    assert returned["return_notes"] == "Chuck is a bit loose"
    assert returned["returned_at"] is not None
    assert db.rows("tools")[0]["status"] == "available"

    assert statuses(db, request_id) == ["pending", "approved", "picked_up", "return_pending", "returned"]
    bob_types = [n["type"] for n in db.rows("notifications") if n["user_id"] == bob["id"]]
    assert bob_types == ["request_approved", "tool_returned"]


def test_second_approve_is_rejected(client, db, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    owner = client.login(alice)
    assert owner.post(f"/api/v1/requests/{request_id}/approve").status_code == 200
    second = owner.post(f"/api/v1/requests/{request_id}/approve")
    assert second.status_code == 409
    assert statuses(db, request_id).count("approved") == 1


def test_deny_after_approve_is_rejected(client, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    owner = client.login(alice)
    owner.post(f"/api/v1/requests/{request_id}/approve")
    assert owner.post(f"/api/v1/requests/{request_id}/deny").status_code == 409


def test_only_owner_can_approve(client, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    assert client.login(bob).post(f"/api/v1/requests/{request_id}/approve").status_code == 403


def test_only_requester_can_cancel(client, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    assert client.login(alice).post(f"/api/v1/requests/{request_id}/cancel").status_code == 403
    canceled = client.login(bob).post(f"/api/v1/requests/{request_id}/cancel")
    assert canceled.json()["status"] == "canceled"


def test_outsiders_cannot_read_a_request(client, db, bob, carol, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    assert client.login(carol).get(f"/api/v1/requests/{request_id}").status_code == 404


def test_write_lost_to_concurrent_change_is_a_conflict(db, alice, bob, drill, monkeypatch):
    service = RequestService(db)
    request = db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                      start_date="2026-03-01", end_date="2026-03-05", status="pending")
    original = service.get_with_tool

    def stale_read(request_id, user_id):
        row, tool = original(request_id, user_id)
        # Someone else denied it between our read and our write
        db.rows("tool_requests")[0]["status"] = "denied"
        return row, tool

    monkeypatch.setattr(service, "get_with_tool", stale_read)
    with pytest.raises(HTTPException) as exc:
        service.approve(request["id"], alice["id"])
    assert exc.value.status_code == 409
    assert db.rows("tool_requests")[0]["status"] == "denied"


def test_side_effect_failures_do_not_undo_transition(client, db, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    db.fail("tool_history", "insert")
    db.fail("notifications", "insert")
    response = client.login(alice).post(f"/api/v1/requests/{request_id}/approve")
    assert response.status_code == 200
    assert db.rows("tool_requests")[0]["status"] == "approved"


def test_list_incoming_and_outgoing(client, alice, bob, drill):
    request_id = create_request(client, bob, drill).json()["id"]
    incoming = client.login(alice).get("/api/v1/requests", params={"role": "incoming"}).json()
    assert [r["id"] for r in incoming] == [request_id]
    assert client.login(alice).get("/api/v1/requests", params={"role": "outgoing"}).json() == []
    outgoing = client.login(bob).get("/api/v1/requests", params={"role": "outgoing", "status": "pending"}).json()
    assert [r["id"] for r in outgoing] == [request_id]


def test_mark_overdue_flips_only_unfinished_requests(db, alice, bob, drill):
    def seed(status, end_date):
        return db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                       start_date="2026-03-01", end_date=end_date, status=status)

    late_pickup = seed("picked_up", "2026-03-05")
    late_pending = seed("pending", "2026-03-05")
    denied = seed("denied", "2026-03-05")
    returned = seed("returned", "2026-03-05")
    not_due = seed("approved", "2026-03-20")

    result = RequestService(db).mark_overdue(today=date(2026, 3, 10))

    assert result.updated == 2
    assert set(result.request_ids) == {late_pickup["id"], late_pending["id"]}
    by_id = {r["id"]: r["status"] for r in db.rows("tool_requests")}
    assert by_id[late_pickup["id"]] == "overdue"
    assert by_id[denied["id"]] == "denied"
    assert by_id[returned["id"]] == "returned"
    assert by_id[not_due["id"]] == "approved"
    assert [n["type"] for n in db.rows("notifications")] == ["request_overdue", "request_overdue"]


def test_overdue_request_can_still_be_returned(client, db, alice, bob, drill):
    request = db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                      start_date="2026-03-01", end_date="2026-03-05", status="overdue",
                      picked_up_at="2026-03-01T09:00:00")
    response = client.login(bob).post(f"/api/v1/requests/{request['id']}/return")
    assert response.json()["status"] == "return_pending"


def test_is_overdue_flag():
    today = date(2026, 3, 10)
    assert is_overdue({"status": "picked_up", "end_date": "2026-03-09"}, today)
    assert not is_overdue({"status": "picked_up", "end_date": "2026-03-10"}, today)
    assert not is_overdue({"status": "returned", "end_date": "2026-03-01"}, today)
    assert is_overdue({"status": "overdue", "end_date": "2026-03-20"}, today)


@pytest.fixture
def expired(db, bob, drill):
    """A pending request whose end date passed before anyone approved it"""
    request = db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                      start_date="2026-03-01", end_date="2026-03-05", status="pending")
    RequestService(db).mark_overdue(today=date(2026, 3, 10))
    assert db.rows("tool_requests")[0]["status"] == "overdue"
    return request


def test_owner_can_deny_request_that_expired_before_pickup(client, alice, expired):
    response = client.login(alice).post(f"/api/v1/requests/{expired['id']}/deny")
    assert response.status_code == 200
    assert response.json()["status"] == "denied"


def test_requester_can_cancel_request_that_expired_before_pickup(client, bob, expired):
    response = client.login(bob).post(f"/api/v1/requests/{expired['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "canceled"


def test_tool_never_handed_over_cannot_be_returned(client, db, alice, bob, expired):
    assert client.login(bob).post(f"/api/v1/requests/{expired['id']}/return").status_code == 409
    assert client.login(alice).post(f"/api/v1/requests/{expired['id']}/confirm-return").status_code == 409
    assert db.rows("tool_requests")[0]["status"] == "overdue"


def test_expired_request_does_not_block_tool_delete(client, db, alice, drill, expired):
    assert client.login(alice).delete(f"/api/v1/tools/{drill['id']}").status_code == 204
    assert db.rows("tools") == []


def test_late_borrower_blocks_tool_delete(client, db, alice, bob, drill):
    db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
            start_date="2026-03-01", end_date="2026-03-05", status="overdue",
            picked_up_at="2026-03-01T09:00:00")
    assert client.login(alice).delete(f"/api/v1/tools/{drill['id']}").status_code == 409


def test_started_return_survives_later_sweeps(client, db, alice, bob, drill):
    request = db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
                      start_date="2026-03-01", end_date="2026-03-05", status="picked_up",
                      picked_up_at="2026-03-01T09:00:00")
    service = RequestService(db)
    assert service.mark_overdue(today=date(2026, 3, 10)).updated == 1

    assert client.login(bob).post(f"/api/v1/requests/{request['id']}/return").json()["status"] == "return_pending"
    assert service.mark_overdue(today=date(2026, 3, 11)).updated == 0
    assert service.mark_overdue(today=date(2026, 3, 12)).updated == 0

    assert db.rows("tool_requests")[0]["status"] == "return_pending"
    assert statuses(db, request["id"]) == ["overdue", "return_pending"]
    bob_types = [n["type"] for n in db.rows("notifications") if n["user_id"] == bob["id"]]
    assert bob_types == ["request_overdue"]


def test_lent_tool_cannot_be_picked_up_twice(client, db, alice, bob, carol, drill):
    def approved(requester):
        return db.seed("tool_requests", tool_id=drill["id"], requester_id=requester["id"],
                       start_date="2026-03-01", end_date="2026-03-05", status="approved")

    first, second = approved(bob), approved(carol)
    assert client.login(bob).post(f"/api/v1/requests/{first['id']}/pickup").status_code == 200
    assert client.login(carol).post(f"/api/v1/requests/{second['id']}/pickup").status_code == 409
    assert {r["id"]: r["status"] for r in db.rows("tool_requests")}[second["id"]] == "approved"


def test_return_keeps_tool_in_use_while_lent_on_another_request(client, db, alice, bob, carol):
    make_group(db, alice, "Maple Street", bob, carol)
    ladder = make_tool(db, alice, "Ladder", status="in_use")

    def lent(requester, status):
        return db.seed("tool_requests", tool_id=ladder["id"], requester_id=requester["id"],
                       start_date="2026-03-01", end_date="2026-03-05", status=status,
                       picked_up_at="2026-03-01T09:00:00")

    returning = lent(bob, "return_pending")
    lent(carol, "picked_up")

    response = client.login(alice).post(f"/api/v1/requests/{returning['id']}/confirm-return")
    assert response.json()["status"] == "returned"
    assert db.rows("tools")[-1]["status"] == "in_use"
