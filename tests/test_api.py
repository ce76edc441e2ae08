import pytest

from tests.fakes import FakeGithub, FakePull, issue, repository, search_hit, unauthorized


def connect_github(app, user_id, github_accounts, fake=None):
    fake = fake or FakeGithub(
        login="octocat",
        issues=[
            issue(1, "Fix login", "octo/web", labels=["bug"]),
            issue(2, "Write docs", "octo/docs", labels=["documentation"]),
            issue(3, "Crash on save", "octo/web"),
        ],
        requested=[search_hit(200, 2, "octo/web", title="Add cache")],
        pulls={("octo/web", 2): FakePull("alice", requested=["octocat"])},
        repos=[repository("octo/web", 10), repository("octo/docs", 11), repository("octo/empty", 12)],
    )
    github_accounts["stored-token"] = fake
    app.state.db.merge_user(
        user_id,
        github_access_token="stored-token",
        github_username="octocat",
        github_avatar_url="https://avatars.example.com/octocat",
    )
    return fake


def make_admin(app, user_id):
    app.state.db.update_user(user_id, {"is_admin": True})


# Route guard

@pytest.mark.parametrize("path", ["/", "/github", "/admin", "/api/github/issues", "/api/workspace/notes"])
def test_guard_redirects_without_auth_cookie(client, path):
    resp = client.get(path, follow_redirects=False)

    assert resp.status_code == 307
    assert resp.headers["location"] == "/login"


@pytest.mark.parametrize("path", ["/login", "/signup", "/health", "/github-error"])
def test_public_paths_are_reachable(client, path):
    assert client.get(path, follow_redirects=False).status_code == 200


def test_stale_auth_cookie_still_needs_a_session(client):
    client.cookies.set("auth", "true")

    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/", follow_redirects=False)
    assert resp.headers["location"] == "/login"


# Auth

def test_signup_sets_session_cookies(client, signed_up):
    assert signed_up["email"] == "dev@example.com"
    assert signed_up["auth_providers"] == ["password"]
    assert client.cookies.get("auth") == "true"

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == signed_up["id"]


def test_signup_validation_error(client):
    resp = client.post("/api/auth/signup", json={"email": "dev@example.com", "password": "123"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Password should be at least 6 characters"


def test_login_and_logout(client, signed_up):
    client.cookies.clear()

    bad = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "wrong-one"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid email or password"

    good = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "secret123"})
    assert good.status_code == 200
    assert client.get("/api/auth/me").status_code == 200

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me", follow_redirects=False).status_code in (307, 401)


def test_bearer_token_is_accepted(client, signed_up):
    token = client.cookies.get("session")
    client.cookies.delete("session")

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["id"] == signed_up["id"]


# Pages

def test_dashboard_page_renders_for_signed_in_user(client, signed_up):
    resp = client.get("/")

    assert resp.status_code == 200
    assert "Dev" in resp.text
    assert "/api/dashboard/summary" in resp.text


def test_admin_page_for_non_admin(client, signed_up):
    resp = client.get("/admin")

    assert resp.status_code == 403
    assert "Unauthorized" in resp.text


# Workspace

def test_notes_api(client, signed_up):
    created = client.post("/api/workspace/notes", json={"content": "Remember the milk"})
    assert created.status_code == 201
    note_id = created.json()["id"]

    assert client.post("/api/workspace/notes", json={"content": "  "}).status_code == 400

    updated = client.put(f"/api/workspace/notes/{note_id}", json={"content": "Remember the eggs"})
    assert updated.json()["content"] == "Remember the eggs"

    assert [n["id"] for n in client.get("/api/workspace/notes").json()] == [note_id]
    assert client.delete(f"/api/workspace/notes/{note_id}").status_code == 204
    assert client.delete(f"/api/workspace/notes/{note_id}").status_code == 404


def test_goals_api(client, signed_up):
    first = client.post("/api/workspace/goals", json={"text": "Ship it"}).json()
    client.post("/api/workspace/goals", json={"text": "Write tests"})

    toggled = client.post(f"/api/workspace/goals/{first['id']}/toggle").json()
    assert toggled["completed"] is True

    progress = client.get("/api/workspace/goals/progress").json()
    assert progress == {"total": 2, "completed": 1, "percentage": 50}


def test_timer_api(client, signed_up):
    assert client.get("/api/workspace/timer").json()["display"] == "25:00"

    state = client.post("/api/workspace/timer", json={"action": "mode", "mode": "short"}).json()
    assert state["mode"] == "short"
    assert state["remaining_seconds"] == 300

    state = client.post("/api/workspace/timer", json={"action": "start"}).json()
    assert state["is_running"] is True

    assert client.post("/api/workspace/timer", json={"action": "explode"}).status_code == 400


# GitHub

def test_issues_api_with_search_and_filters(client, app, signed_up, github_accounts):
    connect_github(app, signed_up["id"], github_accounts)

    assert len(client.get("/api/github/issues").json()) == 3
    found = client.get("/api/github/issues", params={"search": "docu", "refresh": False}).json()
    assert [i["id"] for i in found] == [2]

    state = client.post("/api/github/filters/toggle", json={"repo_full_name": "octo/web"}).json()
    assert state["selected_repos"] == ["octo/web"]
    assert [i["id"] for i in state["issues"]] == [1, 3]
    assert client.get("/api/github/filters").json() == ["octo/web"]

    state = client.delete("/api/github/filters").json()
    assert len(state["issues"]) == 3


def test_pull_requests_and_reviews_api(client, app, signed_up, github_accounts):
    fake = connect_github(app, signed_up["id"], github_accounts)

    prs = client.get("/api/github/pull-requests").json()
    assert [pr["id"] for pr in prs] == [200]
    assert prs[0]["can_review"] is True
    assert prs[0]["status_text"] == "Open"
    assert prs[0]["review_summary"] == "1 pending reviews"

    rejected = client.post("/api/github/reviews", json={
        "pull_request_id": 200,
        "repository_full_name": "octo/web",
        "pull_request_number": 2,
        "review_type": "REQUEST_CHANGES",
        "comment": "",
    })
    assert rejected.status_code == 200
    assert rejected.json()["success"] is False

    approved = client.post("/api/github/reviews", json={
        "pull_request_id": 200,
        "repository_full_name": "octo/web",
        "pull_request_number": 2,
        "review_type": "APPROVE",
        "comment": "Nice",
    })
    assert approved.json()["success"] is True
    assert fake.pulls[("octo/web", 2)].created_reviews == [("Nice", "APPROVE")]


def test_expired_token_disconnects(client, app, signed_up, github_accounts):
    fake = connect_github(app, signed_up["id"], github_accounts)
    fake.error = unauthorized()

    resp = client.get("/api/github/issues")

    assert resp.status_code == 401
    connection = client.get("/api/github/connection").json()
    assert connection["status"] == "disconnected"
    assert connection["last_error"] == "GitHub token is invalid or expired"


def test_dashboard_summary(client, app, signed_up, github_accounts):
    connect_github(app, signed_up["id"], github_accounts)
    client.post("/api/workspace/notes", json={"content": "note"})

    summary = client.post("/api/dashboard/refresh").json()

    assert summary["github_status"] == "connected"
    assert summary["open_issues"] == 3
    assert summary["open_pull_requests"] == 1
    assert summary["reviews_waiting"] == 1
    assert summary["notes"] == 1
    assert [pr["id"] for pr in client.get("/api/dashboard/reviews").json()] == [200]


# Admin

def test_admin_api_requires_admin(client, signed_up):
    assert client.get("/api/admin/status").json() == {"is_admin": False}
    assert client.get("/api/admin/users").status_code == 403


def test_admin_api(client, app, signed_up):
    make_admin(app, signed_up["id"])
    app.state.db.merge_user("other", email="other@example.com", auth_providers=["password"])

    page = client.get("/api/admin/users").json()
    assert page["total_users"] == 2
    assert {u["id"] for u in page["users"]} == {signed_up["id"], "other"}

    details = client.get("/api/admin/users/other").json()
    assert details["version"] == 1

    resp = client.put("/api/admin/users/other/status", json={"is_active": False, "expected_version": 1})
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    stale = client.put("/api/admin/users/other/admin", json={"is_admin": True, "expected_version": 1})
    assert stale.status_code == 409

    assert client.get("/api/admin/users/missing").status_code == 404
    assert client.delete("/api/admin/users/other").json() == {"status": "deleted", "user_id": "other"}
    assert client.get("/api/admin/users/other").status_code == 404

    overview = client.get("/api/admin/overview").json()
    assert overview["total_users"] == 1
    assert overview["admin_users"] == 1


# Account

def test_account_deletion_requires_confirmation(client, signed_up):
    resp = client.post("/api/account/delete", json={"confirmation": "delete", "password": "secret123"})

    assert resp.status_code == 400
    assert client.get("/api/account").status_code == 200


def test_account_deletion_with_password(client, app, signed_up):
    client.post("/api/workspace/notes", json={"content": "note"})

    wrong = client.post("/api/account/delete", json={"confirmation": "DELETE", "password": "wrong-one"})
    assert wrong.status_code == 401

    resp = client.post("/api/account/delete", json={"confirmation": "DELETE", "password": "secret123"})

    assert resp.json() == {"status": "deleted"}
    assert app.state.db.get_identity(signed_up["id"]) is None
    assert app.state.db.list_notes(signed_up["id"]) == []


def test_repos_api_active_only(client, app, signed_up, github_accounts):
    connect_github(app, signed_up["id"], github_accounts)
    client.post("/api/github/connection/refresh")

    all_repos = client.get("/api/github/repos").json()
    active = client.get("/api/github/repos", params={"active_only": True, "refresh": False}).json()

    assert len(all_repos) == 3
    assert [r["full_name"] for r in active] == ["octo/docs", "octo/web"]
