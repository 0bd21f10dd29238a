import pytest

from borrow_buddy.modules.search.service import matches, split_terms
from tests.conftest import make_group, make_tool


@pytest.fixture
def neighbourhood(db, alice, bob, carol):
    power = db.seed("tool_categories", name="Power Tools")
    garden = db.seed("tool_categories", name="Garden & Outdoor")
    maple = make_group(db, alice, "Maple Street", bob)
    oak = make_group(db, carol, "Oak Lane", bob)
    tools = {
        "drill": make_tool(db, alice, "Cordless Drill", category_id=power["id"],
                           brand="DeWalt", power_source="battery"),
        "mower": make_tool(db, alice, "Lawn Mower", category_id=garden["id"], power_source="gas"),
        "sander": make_tool(db, carol, "Orbital Sander", category_id=power["id"], brand="Bosch"),
        "rake": make_tool(db, bob, "Leaf Rake", description="Wide metal rake", category_id=garden["id"]),
    }
    return {"maple": maple, "oak": oak, "power": power, "garden": garden, **tools}


def names(results):
    return [r["name"] for r in results]


def test_seeded_rows_keep_their_name_column(db, alice):
    group = make_group(db, alice, "Oak Lane")
    tool = make_tool(db, alice, "Belt Sander")
    category = db.seed("tool_categories", name="Sanders")
    assert (group["name"], tool["name"], category["name"]) == ("Oak Lane", "Belt Sander", "Sanders")
    assert db.rows("tools")[0]["name"] == "Belt Sander"


def test_create_and_read_tool(client, db, alice):
    created = client.login(alice).post("/api/v1/tools", json={
        "name": "Jigsaw", "condition": "good", "power_source": "corded"
    })
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "available"
    assert body["owner_name"] == "Alice"
    assert client.login(alice).get(f"/api/v1/tools/{body['id']}").json()["name"] == "Jigsaw"


def test_legacy_borrowed_status_reads_as_in_use(client, db, alice):
    tool = make_tool(db, alice, status="borrowed")
    assert client.login(alice).get(f"/api/v1/tools/{tool['id']}").json()["status"] == "in_use"


def test_only_owner_can_update_or_delete(client, neighbourhood, alice, bob):
    drill = neighbourhood["drill"]
    assert client.login(bob).put(f"/api/v1/tools/{drill['id']}", json={"name": "Mine"}).status_code == 403
    assert client.login(bob).delete(f"/api/v1/tools/{drill['id']}").status_code == 403
    updated = client.login(alice).put(f"/api/v1/tools/{drill['id']}", json={"brand": "Makita"})
    assert updated.json()["brand"] == "Makita"
    assert updated.json()["name"] == "Cordless Drill"


def test_tool_on_loan_cannot_be_deleted(client, db, neighbourhood, alice, bob):
    drill = neighbourhood["drill"]
    db.seed("tool_requests", tool_id=drill["id"], requester_id=bob["id"],
            start_date="2026-03-01", end_date="2026-03-05", status="picked_up")
    assert client.login(alice).delete(f"/api/v1/tools/{drill['id']}").status_code == 409


def test_visible_tools_span_all_my_groups(client, neighbourhood, bob):
    tools = client.login(bob).get("/api/v1/tools").json()
    assert sorted(names(tools)) == ["Cordless Drill", "Lawn Mower", "Orbital Sander"]


def test_visible_tools_filters(client, neighbourhood, bob):
    by_group = client.login(bob).get("/api/v1/tools", params={"group_id": neighbourhood["oak"]["id"]}).json()
    assert names(by_group) == ["Orbital Sander"]
    by_category = client.login(bob).get("/api/v1/tools", params={"category_id": neighbourhood["garden"]["id"]}).json()
    assert names(by_category) == ["Lawn Mower"]


def test_strangers_do_not_see_each_other(client, neighbourhood, alice, carol):
    assert names(client.login(alice).get("/api/v1/tools").json()) == ["Leaf Rake"]
    sander = neighbourhood["sander"]
    assert client.login(alice).get(f"/api/v1/tools/{sander['id']}").status_code == 404


def test_hidden_tool_disappears_from_that_group(client, neighbourhood, alice, bob):
    drill = neighbourhood["drill"]
    response = client.login(alice).put(f"/api/v1/tools/{drill['id']}/visibility", json={
        "group_id": neighbourhood["maple"]["id"], "is_hidden": True
    })
    assert response.json()["is_hidden"] is True
    assert "Cordless Drill" not in names(client.login(bob).get("/api/v1/tools").json())
    assert client.login(bob).get(f"/api/v1/tools/{drill['id']}").status_code == 404

    client.login(alice).put(f"/api/v1/tools/{drill['id']}/visibility", json={
        "group_id": neighbourhood["maple"]["id"], "is_hidden": False
    })
    assert "Cordless Drill" in names(client.login(bob).get("/api/v1/tools").json())


def test_upload_image_stores_public_url(client, db, alice):
    tool = make_tool(db, alice)
    response = client.login(alice).post(
        f"/api/v1/tools/{tool['id']}/image",
        files={"file": ("drill.png", b"\x89PNG fake", "image/png")}
    )
    assert response.status_code == 200
    url = response.json()["image_url"]
    assert url.startswith(f"https://storage.test/tool-images/{alice['id']}/{tool['id']}-")
    assert url.endswith(".png")


def test_upload_rejects_non_images(client, db, alice):
    tool = make_tool(db, alice)
    response = client.login(alice).post(
        f"/api/v1/tools/{tool['id']}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")}
    )
    assert response.status_code == 400


def test_history_newest_first(client, db, neighbourhood, alice, bob):
    drill = neighbourhood["drill"]
    for action in ("pending", "approved"):
        db.seed("tool_history", tool_id=drill["id"], request_id="r1", borrower_id=bob["id"],
                owner_id=alice["id"], action_type=action, action_by=alice["id"])
    history = client.login(bob).get(f"/api/v1/tools/{drill['id']}/history").json()
    assert [h["action_type"] for h in history] == ["approved", "pending"]
    assert history[0]["borrower_name"] == "Bob"


def test_categories_sorted(client, neighbourhood, bob):
    categories = client.login(bob).get("/api/v1/categories").json()
    assert [c["name"] for c in categories] == ["Garden & Outdoor", "Power Tools"]


def test_every_word_must_match_some_field():
    tool = {"name": "Cordless Drill", "description": None, "brand": "DeWalt", "power_source": "battery"}
    assert matches(tool, split_terms("dewalt DRILL"))
    assert matches(tool, split_terms("power drill"), category_name="Power Tools")
    assert not matches(tool, split_terms("drill saw"))


def test_search_results_carry_names_and_sort(client, neighbourhood, bob):
    results = client.login(bob).get("/api/v1/search", params={"q": "power"}).json()
    assert names(results) == ["Cordless Drill", "Orbital Sander"]
    drill = results[0]
    assert drill["owner_name"] == "Alice"
    assert drill["group_name"] == "Maple Street"
    assert drill["category_name"] == "Power Tools"


def test_search_includes_own_tools_and_matches_description(client, neighbourhood, bob):
    assert names(client.login(bob).get("/api/v1/search", params={"q": "metal"}).json()) == ["Leaf Rake"]


def test_search_excludes_hidden_and_foreign_tools(client, db, neighbourhood, alice):
    db.seed("tool_group_visibility", tool_id=neighbourhood["rake"]["id"],
            group_id=neighbourhood["maple"]["id"], is_hidden=True)
    assert client.login(alice).get("/api/v1/search", params={"q": "rake"}).json() == []
    assert client.login(alice).get("/api/v1/search", params={"q": "sander"}).json() == []


def test_search_preview_and_blank_term(client, db, neighbourhood, alice, bob):
    for i in range(7):
        make_tool(db, alice, f"Clamp {i}")
    assert len(client.login(bob).get("/api/v1/search/preview", params={"q": "clamp"}).json()) == 5
    assert client.login(bob).get("/api/v1/search", params={"q": "   "}).json() == []


def test_search_filters_by_group_name(client, neighbourhood, bob):
    results = client.login(bob).get("/api/v1/search", params={"q": "power", "group": "Oak Lane"}).json()
    assert names(results) == ["Orbital Sander"]


def test_filter_options(client, neighbourhood, bob):
    options = client.login(bob).get("/api/v1/search/filters").json()
    assert options["categories"] == ["Garden & Outdoor", "Power Tools"]
    assert options["groups"] == ["Maple Street", "Oak Lane"]
    assert options["statuses"] == ["available"]


def test_new_tools_feed_newest_first(client, neighbourhood, bob):
    feed = client.login(bob).get("/api/v1/search/new-tools", params={"limit": 2}).json()
    assert names(feed) == ["Orbital Sander", "Lawn Mower"]
