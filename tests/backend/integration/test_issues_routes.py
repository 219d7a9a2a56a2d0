import pytest

from app.core.pubsub import broadcaster


pytestmark = pytest.mark.asyncio

ISSUES = "/api/v1/issues"


def issue_payload(**overrides):
    payload = {
        "title": "Build fails on CI",
        "description": "The pipeline breaks at the lint step since yesterday.",
        "priority": "high",
    }
    payload.update(overrides)
    return payload


async def create_issue(client, headers, **overrides):
    resp = await client.post(ISSUES, headers=headers, json=issue_payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_and_get_issue(client, login_as):
    user, headers = await login_as("contributor")

    resp = await client.post(ISSUES, headers=headers, json=issue_payload(tags=[" Backend ", "CI", "ci"]))
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    issue = body["data"]
    assert issue["status"] == "open"
    assert issue["priority"] == "high"
    assert issue["createdBy"] == str(user.id)
    assert issue["creator"]["username"] == user.username
    assert issue["assignedTo"] is None
    assert issue["tags"] == ["backend", "ci"]
    assert issue["commentsCount"] == 0

    get_resp = await client.get(f"{ISSUES}/{issue['id']}", headers=headers)
    assert get_resp.status_code == 200
    assert get_resp.json()["data"]["title"] == "Build fails on CI"


async def test_default_priority_is_medium(client, login_as):
    _, headers = await login_as("contributor")
    payload = issue_payload()
    del payload["priority"]
    resp = await client.post(ISSUES, headers=headers, json=payload)
    assert resp.json()["data"]["priority"] == "medium"


@pytest.mark.parametrize(
    "title,description,ok",
    [
        ("a" * 5, "d" * 10, True),
        ("a" * 200, "d" * 2000, True),
        ("a" * 4, "d" * 10, False),
        ("a" * 201, "d" * 10, False),
        ("a" * 5, "d" * 9, False),
        ("a" * 5, "d" * 2001, False),
        ("   abc   ", "d" * 10, False),
    ],
)
async def test_issue_field_bounds(client, login_as, title, description, ok):
    _, headers = await login_as("contributor")
    resp = await client.post(ISSUES, headers=headers, json=issue_payload(title=title, description=description))
    if ok:
        assert resp.status_code == 201
    else:
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert resp.json()["error"]


async def test_invalid_enum_and_long_tag_rejected(client, login_as):
    _, headers = await login_as("contributor")
    bad_priority = await client.post(ISSUES, headers=headers, json=issue_payload(priority="critical"))
    assert bad_priority.status_code == 400
    long_tag = await client.post(ISSUES, headers=headers, json=issue_payload(tags=["x" * 21]))
    assert long_tag.status_code == 400
    assert "Tag cannot exceed 20 characters" in long_tag.json()["error"]


async def test_viewer_cannot_create_but_can_list(client, login_as):
    _, headers = await login_as("viewer")

    create_resp = await client.post(ISSUES, headers=headers, json=issue_payload())
    assert create_resp.status_code == 403
    assert create_resp.json()["success"] is False

    list_resp = await client.get(ISSUES, headers=headers)
    assert list_resp.status_code == 200
    assert list_resp.json()["success"] is True


async def test_listing_requires_authentication(client):
    resp = await client.get(ISSUES)
    assert resp.status_code == 401


async def test_get_missing_issue_is_404(client, login_as):
    _, headers = await login_as("viewer")
    missing = await client.get(f"{ISSUES}/00000000-0000-0000-0000-000000000000", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Issue not found"}
    malformed = await client.get(f"{ISSUES}/not-a-uuid", headers=headers)
    assert malformed.status_code == 404


async def test_pagination(client, login_as):
    _, headers = await login_as("contributor")
    for n in range(25):
        await create_issue(client, headers, title=f"Issue number {n:02d}")

    page3 = await client.get(ISSUES, headers=headers, params={"page": 3, "limit": 10})
    body = page3.json()
    assert len(body["data"]) == 5
    assert body["pagination"] == {"page": 3, "limit": 10, "total": 25, "totalPages": 3}

    page10 = await client.get(ISSUES, headers=headers, params={"page": 10, "limit": 10})
    assert page10.status_code == 200
    assert page10.json()["data"] == []
    assert page10.json()["pagination"]["totalPages"] == 3


async def test_default_page_size_and_newest_first(client, login_as):
    _, headers = await login_as("contributor")
    for n in range(12):
        await create_issue(client, headers, title=f"Ordered issue {n:02d}")

    resp = await client.get(ISSUES, headers=headers)
    body = resp.json()
    assert len(body["data"]) == 10
    assert body["pagination"]["limit"] == 10
    stamps = [i["createdAt"] for i in body["data"]]
    assert stamps == sorted(stamps, reverse=True)

    oldest_first = await client.get(ISSUES, headers=headers, params={"sort": "created_at", "limit": 12})
    stamps = [i["createdAt"] for i in oldest_first.json()["data"]]
    assert stamps == sorted(stamps)


async def test_invalid_paging_and_sort_rejected(client, login_as):
    _, headers = await login_as("viewer")
    assert (await client.get(ISSUES, headers=headers, params={"page": 0})).status_code == 400
    assert (await client.get(ISSUES, headers=headers, params={"limit": 1000})).status_code == 400
    assert (await client.get(ISSUES, headers=headers, params={"sort": "password"})).status_code == 400


async def test_filters_combine(client, login_as):
    alice, alice_headers = await login_as("contributor")
    bob, bob_headers = await login_as("contributor")

    await create_issue(client, alice_headers, title="Login page crashes", priority="urgent", tags=["auth", "ui"])
    await create_issue(client, alice_headers, title="Slow dashboard query", priority="low", tags=["perf"])
    await create_issue(client, bob_headers, title="Token refresh loops", priority="urgent", tags=["auth"],
                       assignedTo=str(alice.id))

    async def titles(**params):
        resp = await client.get(ISSUES, headers=alice_headers, params=params)
        assert resp.status_code == 200, resp.text
        return sorted(i["title"] for i in resp.json()["data"])

    assert await titles(priority="urgent") == ["Login page crashes", "Token refresh loops"]
    assert await titles(priority="urgent", createdBy=str(alice.id)) == ["Login page crashes"]
    assert await titles(assignedTo=str(alice.id)) == ["Token refresh loops"]
    assert await titles(tags="perf") == ["Slow dashboard query"]
    assert await titles(tags="perf,ui") == ["Login page crashes", "Slow dashboard query"]
    assert await titles(tags="nothing") == []
    assert await titles(status="open", priority="low") == ["Slow dashboard query"]
    assert await titles(status="closed") == []


async def test_text_search(client, login_as):
    _, headers = await login_as("contributor")
    await create_issue(client, headers, title="Payment gateway timeout", description="Stripe calls hang for a minute.")
    await create_issue(client, headers, title="Broken avatar upload", description="Images larger than 2MB fail.")

    resp = await client.get(ISSUES, headers=headers, params={"search": "stripe"})
    assert [i["title"] for i in resp.json()["data"]] == ["Payment gateway timeout"]

    resp = await client.get(ISSUES, headers=headers, params={"search": "avatar TIMEOUT"})
    assert resp.json()["pagination"]["total"] == 2

    resp = await client.get(ISSUES, headers=headers, params={"search": "avatar", "priority": "low"})
    assert resp.json()["data"] == []


async def test_update_permissions(client, login_as):
    creator, creator_headers = await login_as("contributor")
    assignee, assignee_headers = await login_as("viewer")
    _, stranger_headers = await login_as("contributor")
    _, admin_headers = await login_as("admin")

    issue = await create_issue(client, creator_headers, assignedTo=str(assignee.id))
    url = f"{ISSUES}/{issue['id']}"

    stranger = await client.put(url, headers=stranger_headers, json={"title": "Hijacked title"})
    assert stranger.status_code == 403

    by_assignee = await client.put(url, headers=assignee_headers, json={"status": "in_progress"})
    assert by_assignee.status_code == 200
    assert by_assignee.json()["data"]["status"] == "in_progress"

    by_admin = await client.put(url, headers=admin_headers, json={"priority": "urgent"})
    assert by_admin.status_code == 200

    by_creator = await client.put(url, headers=creator_headers, json={"title": "Renamed by creator"})
    assert by_creator.status_code == 200
    assert by_creator.json()["data"]["title"] == "Renamed by creator"


async def test_update_ignores_creator_field(client, login_as):
    creator, headers = await login_as("contributor")
    other, _ = await login_as("contributor")
    issue = await create_issue(client, headers)

    resp = await client.put(
        f"{ISSUES}/{issue['id']}",
        headers=headers,
        json={"createdBy": str(other.id), "title": "Still mine after patch"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["createdBy"] == str(creator.id)
    assert resp.json()["data"]["title"] == "Still mine after patch"


async def test_update_validates_fields(client, login_as):
    _, headers = await login_as("contributor")
    issue = await create_issue(client, headers)
    url = f"{ISSUES}/{issue['id']}"
    assert (await client.put(url, headers=headers, json={"title": "no"})).status_code == 400
    assert (await client.put(url, headers=headers, json={"status": "done"})).status_code == 400


async def test_viewer_assignee_cannot_reassign_via_update(client, login_as):
    _, creator_headers = await login_as("contributor")
    assignee, assignee_headers = await login_as("viewer")
    other, _ = await login_as("viewer")
    issue = await create_issue(client, creator_headers, assignedTo=str(assignee.id))

    resp = await client.put(
        f"{ISSUES}/{issue['id']}", headers=assignee_headers, json={"assignedTo": str(other.id)}
    )
    assert resp.status_code == 403


async def test_update_tags_replaces_set(client, login_as):
    _, headers = await login_as("contributor")
    issue = await create_issue(client, headers, tags=["old"])
    resp = await client.put(f"{ISSUES}/{issue['id']}", headers=headers, json={"tags": ["New", "other"]})
    assert resp.json()["data"]["tags"] == ["new", "other"]

    by_old = await client.get(ISSUES, headers=headers, params={"tags": "old"})
    assert by_old.json()["data"] == []


async def test_status_change_emits_extra_event(client, login_as, events):
    _, headers = await login_as("contributor")
    issue = await create_issue(client, headers)
    url = f"{ISSUES}/{issue['id']}"

    events.sent_texts.clear()
    await client.put(url, headers=headers, json={"title": "Only the title changes"})
    assert events.names() == ["issue:updated"]

    events.sent_texts.clear()
    await client.put(url, headers=headers, json={"status": "resolved"})
    assert events.names() == ["issue:updated", "issue:status_changed"]
    _, payload = events.events[1]
    assert payload["oldStatus"] == "open"
    assert payload["newStatus"] == "resolved"
    assert payload["issue"]["id"] == issue["id"]

    events.sent_texts.clear()
    await client.put(url, headers=headers, json={"status": "resolved"})
    assert events.names() == ["issue:updated"]


async def test_delete_permissions(client, login_as, events):
    _, creator_headers = await login_as("contributor")
    assignee, assignee_headers = await login_as("contributor")
    _, admin_headers = await login_as("admin")

    first = await create_issue(client, creator_headers, assignedTo=str(assignee.id))
    second = await create_issue(client, creator_headers)

    denied = await client.delete(f"{ISSUES}/{first['id']}", headers=assignee_headers)
    assert denied.status_code == 403

    events.sent_texts.clear()
    ok = await client.delete(f"{ISSUES}/{first['id']}", headers=creator_headers)
    assert ok.status_code == 200
    assert events.events == [("issue:deleted", {"issueId": first["id"]})]

    by_admin = await client.delete(f"{ISSUES}/{second['id']}", headers=admin_headers)
    assert by_admin.status_code == 200

    gone = await client.get(f"{ISSUES}/{first['id']}", headers=creator_headers)
    assert gone.status_code == 404


async def test_assign_issue(client, login_as, events, create_user):
    creator, creator_headers = await login_as("contributor")
    target, _ = await create_user(role="viewer")
    issue = await create_issue(client, creator_headers)

    listener_for_target = type(events)()
    broadcaster.register(listener_for_target, str(target.id))
    try:
        events.sent_texts.clear()
        resp = await client.patch(
            f"{ISSUES}/{issue['id']}/assign", headers=creator_headers, json={"assignedTo": str(target.id)}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["assignedTo"] == str(target.id)
        assert data["assignee"]["username"] == target.username
        assert events.names() == ["issue:assigned"]
        notes = [d for name, d in listener_for_target.events if name == "notification"]
        assert notes and notes[0]["issueId"] == issue["id"]
    finally:
        broadcaster.unregister(listener_for_target)

    unassign = await client.patch(f"{ISSUES}/{issue['id']}/assign", headers=creator_headers, json={"assignedTo": None})
    assert unassign.json()["data"]["assignedTo"] is None


async def test_assign_requires_contributor_role(client, login_as):
    _, creator_headers = await login_as("contributor")
    viewer, viewer_headers = await login_as("viewer")
    _, stranger_headers = await login_as("contributor")
    _, admin_headers = await login_as("admin")
    issue = await create_issue(client, creator_headers, assignedTo=str(viewer.id))
    url = f"{ISSUES}/{issue['id']}/assign"

    # Viewer is the assignee but lacks the role
    assert (await client.patch(url, headers=viewer_headers, json={"assignedTo": None})).status_code == 403
    # Contributor with no relation to the issue
    assert (await client.patch(url, headers=stranger_headers, json={"assignedTo": None})).status_code == 403
    assert (await client.patch(url, headers=admin_headers, json={"assignedTo": None})).status_code == 200


async def test_assign_to_unknown_user_is_rejected(client, login_as):
    _, headers = await login_as("contributor")
    issue = await create_issue(client, headers)
    resp = await client.patch(
        f"{ISSUES}/{issue['id']}/assign",
        headers=headers,
        json={"assignedTo": "00000000-0000-0000-0000-000000000000"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Assignee not found"


async def test_report_comment_delete_flow(client, events):
    alice_reg = await client.post(
        "/api/v1/auth/register",
        json={"username": "alice", "email": "alice@example.com", "password": "alicepass1", "role": "contributor"},
    )
    assert alice_reg.status_code == 201
    bob_reg = await client.post(
        "/api/v1/auth/register",
        json={"username": "bob", "email": "bob@example.com", "password": "bobpass12", "role": "viewer"},
    )
    assert bob_reg.status_code == 201

    login = await client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "alicepass1"})
    alice = {"Authorization": f"Bearer {login.json()['data']['token']}"}
    bob = {"Authorization": f"Bearer {bob_reg.json()['data']['token']}"}

    events.sent_texts.clear()
    issue = await create_issue(client, alice, title="Build fails on CI", priority="high")
    assert events.names() == ["issue:created"]

    high = await client.get(ISSUES, headers=bob, params={"priority": "high"})
    assert [i["id"] for i in high.json()["data"]] == [issue["id"]]

    comment = await client.post(
        "/api/v1/comments", headers=bob, json={"content": "Same here on main.", "issueId": issue["id"]}
    )
    assert comment.status_code == 201
    assert events.names()[-1] == "comment:added"

    deleted = await client.delete(f"{ISSUES}/{issue['id']}", headers=alice)
    assert deleted.status_code == 200
    assert events.names()[-1] == "issue:deleted"

    gone = await client.get(f"{ISSUES}/{issue['id']}", headers=bob)
    assert gone.status_code == 404
