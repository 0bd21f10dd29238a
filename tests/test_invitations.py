import pytest

from borrow_buddy.config import settings
from borrow_buddy.modules.invitations.service import InvitationService, is_expired
from tests.conftest import make_group, make_user


@pytest.fixture
def group(db, alice, bob):
    return make_group(db, alice, "Maple Street", bob)


def members_of(db, group):
    return [m["user_id"] for m in db.rows("group_members") if m["group_id"] == group["id"]]


def invite(client, user, group, email):
    return client.login(user).post("/api/v1/invitations", json={"group_id": group["id"], "email": email})


def test_admin_invites_by_email(client, db, alice, group):
    response = invite(client, alice, group, "Carol@Example.com")
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "carol@example.com"
    assert body["invite_code"]
    assert body["expires_at"] is not None


def test_duplicate_invite_is_rejected(client, alice, group):
    invite(client, alice, group, "carol@example.com")
    assert invite(client, alice, group, "carol@example.com").status_code == 409


def test_plain_member_cannot_invite(client, bob, group):
    assert invite(client, bob, group, "carol@example.com").status_code == 403


def test_accepting_personal_invite_joins_and_consumes_it(client, db, alice, carol, group):
    invite_id = invite(client, alice, group, carol["email"]).json()["id"]

    response = client.login(carol).post(f"/api/v1/invitations/{invite_id}/accept")
    assert response.status_code == 200
    assert response.json()["already_member"] is False
    assert carol["id"] in members_of(db, group)
    assert db.rows("group_invites") == []

    note = [n for n in db.rows("notifications") if n["user_id"] == alice["id"]]
    assert [n["type"] for n in note] == ["group_invite"]


def test_someone_else_cannot_accept_personal_invite(client, db, alice, carol, group):
    invite_id = invite(client, alice, group, carol["email"]).json()["id"]
    dave = make_user(db, "Dave")
    assert client.login(dave).post(f"/api/v1/invitations/{invite_id}/accept").status_code == 403
    assert dave["id"] not in members_of(db, group)


def test_general_link_is_reused_and_never_consumed(client, db, bob, carol, group):
    first = client.login(bob).get(f"/api/v1/invitations/link/{group['id']}").json()
    second = client.login(bob).get(f"/api/v1/invitations/link/{group['id']}").json()
    assert first["invite_code"] == second["invite_code"]
    assert first["email"] == "*"

    dave = make_user(db, "Dave")
    for user in (carol, dave):
        response = client.login(user).post(f"/api/v1/invitations/code/{first['invite_code']}/accept")
        assert response.json()["already_member"] is False

    assert {carol["id"], dave["id"]} <= set(members_of(db, group))
    assert len(db.rows("group_invites")) == 1


def test_accepting_twice_creates_no_duplicate_membership(client, db, bob, carol, group):
    code = client.login(bob).get(f"/api/v1/invitations/link/{group['id']}").json()["invite_code"]
    client.login(carol).post(f"/api/v1/invitations/code/{code}/accept")
    again = client.login(carol).post(f"/api/v1/invitations/code/{code}/accept").json()
    assert again["already_member"] is True
    assert members_of(db, group).count(carol["id"]) == 1


def test_personal_invite_for_existing_member_is_consumed(client, db, alice, bob, group):
    invite_id = invite(client, alice, group, bob["email"]).json()["id"]
    response = client.login(bob).post(f"/api/v1/invitations/{invite_id}/accept").json()
    assert response["already_member"] is True
    assert members_of(db, group).count(bob["id"]) == 1
    assert db.rows("group_invites") == []


def test_unique_violation_on_insert_means_already_member(db, alice, carol, group):
    service = InvitationService(db)
    created = service.create_personal(group["id"], carol["email"], alice["id"])
    db.seed("group_members", group_id=group["id"], user_id=carol["id"], role="member")

    real_table = db.table

    def racing_table(name):
        query = real_table(name)
        if name == "group_members":
            # The membership check misses the row inserted by a concurrent accept
            query.filters.append(lambda row: False)
        return query

    db.table = racing_table
    result = service.accept_by_id(created.id, carol)

    assert result.already_member is True
    assert result.membership_id is None
    assert members_of(db, group).count(carol["id"]) == 1
    assert db.rows("group_invites") == []


def test_lookup_by_code_shows_group(client, db, alice, bob, carol, group):
    code = client.login(bob).get(f"/api/v1/invitations/link/{group['id']}").json()["invite_code"]
    body = client.login(carol).get(f"/api/v1/invitations/code/{code}").json()
    assert body["group_name"] == "Maple Street"
    assert body["creator_name"] == "Alice"
    assert body["is_general"] is True


def test_unknown_code_is_not_found(client, carol):
    assert client.login(carol).get("/api/v1/invitations/code/nope").status_code == 404


def test_personal_code_only_works_for_its_invitee(client, db, alice, carol, group):
    code = invite(client, alice, group, carol["email"]).json()["invite_code"]
    dave = make_user(db, "Dave")
    assert client.login(dave).get(f"/api/v1/invitations/code/{code}").status_code == 404
    assert client.login(carol).get(f"/api/v1/invitations/code/{code}").json()["is_general"] is False


def test_decline_deletes_personal_invite(client, db, alice, carol, group):
    invite_id = invite(client, alice, group, carol["email"]).json()["id"]
    assert client.login(carol).post(f"/api/v1/invitations/{invite_id}/decline").status_code == 204
    assert db.rows("group_invites") == []
    assert carol["id"] not in members_of(db, group)


def test_general_invite_cannot_be_declined(client, bob, carol, group):
    link = client.login(bob).get(f"/api/v1/invitations/link/{group['id']}").json()
    assert client.login(carol).post(f"/api/v1/invitations/{link['id']}/decline").status_code == 400


def test_cancel_by_inviter_or_admin_only(client, db, alice, bob, group):
    invite_id = invite(client, alice, group, "carol@example.com").json()["id"]
    assert client.login(bob).delete(f"/api/v1/invitations/{invite_id}").status_code == 403
    assert client.login(alice).delete(f"/api/v1/invitations/{invite_id}").status_code == 204
    assert db.rows("group_invites") == []


def test_lists_hide_general_invites(client, db, alice, bob, carol, group):
    client.login(bob).get(f"/api/v1/invitations/link/{group['id']}")
    invite(client, alice, group, carol["email"])

    received = client.login(carol).get("/api/v1/invitations").json()
    assert [i["group_name"] for i in received] == ["Maple Street"]
    sent = client.login(alice).get("/api/v1/invitations/sent").json()
    assert [i["email"] for i in sent] == [carol["email"]]
    assert client.login(bob).get("/api/v1/invitations/sent").json() == []


def test_expiry_only_enforced_when_enabled(client, db, alice, carol, group, monkeypatch):
    expired = db.seed("group_invites", group_id=group["id"], email=carol["email"], invite_code="old123",
                      created_by=alice["id"], expires_at="2020-01-01T00:00:00+00:00")
    assert is_expired(expired)

    monkeypatch.setattr(settings, "invite_expiry_enforced", True)
    assert client.login(carol).post("/api/v1/invitations/code/old123/accept").status_code == 410

    monkeypatch.setattr(settings, "invite_expiry_enforced", False)
    assert client.login(carol).post("/api/v1/invitations/code/old123/accept").status_code == 200
