import pytest

from devdash.exceptions import GitHubAPIError, GitHubAuthError
from devdash.models.dashboard_models import ConnectionStatus
from devdash.models.github_models import ReviewSubmission, ReviewType
from devdash.services.github_connection_service import GitHubConnectionService
from tests.fakes import (
    FakeGithub, FakePull, issue, repository, search_hit, server_error, unauthorized
)

USER_ID = "user-1"


@pytest.fixture
def fake_github(github_accounts):
    fake = FakeGithub(
        login="octocat",
        issues=[
            issue(1, "Fix login", "octo/web", labels=["bug"]),
            issue(2, "Add docs", "octo/docs"),
            issue(3, "Crash on save", "octo/web"),
        ],
        requested=[search_hit(200, 2, "octo/web")],
        pulls={("octo/web", 2): FakePull("alice", requested=["octocat"])},
        repos=[repository("octo/web", 10), repository("octo/docs", 11)],
    )
    github_accounts["stored-token"] = fake
    return fake


@pytest.fixture
def connections(db, github_factory, fake_github):
    db.merge_user(
        USER_ID,
        email="dev@example.com",
        github_access_token="stored-token",
        github_username="octocat",
        github_avatar_url="https://avatars.example.com/octocat",
    )
    return GitHubConnectionService(db, github_factory)


def test_load_reads_stored_connection(connections):
    state = connections.get_state(USER_ID)

    assert state.status == ConnectionStatus.CONNECTED
    assert state.is_connected
    assert state.username == "octocat"
    assert state.repo_filter is None


def test_state_without_token_is_disconnected(db, github_factory):
    db.merge_user("someone", email="someone@example.com")
    state = GitHubConnectionService(db, github_factory).get_state("someone")

    assert state.status == ConnectionStatus.DISCONNECTED
    assert not state.is_connected


@pytest.mark.asyncio
async def test_toggle_filter_narrows_and_double_toggle_restores(db, connections):
    state = await connections.refresh_all(USER_ID)
    assert len(state.issues) == 3

    state = await connections.toggle_repo_filter(USER_ID, "octo/web")
    assert state.selected_repos == ["octo/web"]
    assert [i.id for i in state.issues] == [1, 3]
    assert db.get_user(USER_ID).github_selected_repos == ["octo/web"]

    state = await connections.toggle_repo_filter(USER_ID, "octo/web")
    assert state.selected_repos == []
    assert len(state.issues) == 3
    assert db.get_user(USER_ID).github_selected_repos == []


@pytest.mark.asyncio
async def test_filter_to_repo_without_items_leaves_lists_empty(connections):
    state = await connections.toggle_repo_filter(USER_ID, "octo/empty")

    assert state.issues == []
    assert state.pull_requests == []


@pytest.mark.asyncio
async def test_filters_survive_a_reload(db, github_factory, connections):
    await connections.toggle_repo_filter(USER_ID, "octo/docs")

    fresh = GitHubConnectionService(db, github_factory)
    state = await fresh.refresh_issues(USER_ID)

    assert state.selected_repos == ["octo/docs"]
    assert [i.id for i in state.issues] == [2]


@pytest.mark.asyncio
async def test_clear_filters(connections):
    await connections.toggle_repo_filter(USER_ID, "octo/docs")
    state = await connections.clear_repo_filters(USER_ID)

    assert state.selected_repos == []
    assert len(state.issues) == 3


@pytest.mark.asyncio
async def test_unauthorized_refresh_disconnects(db, connections, fake_github):
    await connections.refresh_all(USER_ID)
    fake_github.error = unauthorized()

    with pytest.raises(GitHubAuthError):
        await connections.refresh_issues(USER_ID)

    state = connections.get_state(USER_ID)
    assert state.status == ConnectionStatus.DISCONNECTED
    assert state.issues == []
    assert state.last_error == "GitHub token is invalid or expired"
    stored = db.get_user(USER_ID)
    assert stored.github_access_token is None
    assert stored.github_username is None


@pytest.mark.asyncio
async def test_issue_failure_does_not_skip_other_refreshes(connections, fake_github):
    fake_github.user.issues_error = server_error()

    with pytest.raises(GitHubAPIError):
        await connections.refresh_all(USER_ID)

    state = connections.get_state(USER_ID)
    assert state.status == ConnectionStatus.CONNECTED
    assert [pr.id for pr in state.pull_requests] == [200]
    assert len(state.repos) == 2
    assert state.last_error == "Server Error"


@pytest.mark.asyncio
async def test_filter_change_during_issue_outage_still_filters_pull_requests(connections, fake_github):
    await connections.refresh_all(USER_ID)
    fake_github.user.issues_error = server_error()

    with pytest.raises(GitHubAPIError):
        await connections.toggle_repo_filter(USER_ID, "octo/docs")

    state = connections.get_state(USER_ID)
    assert state.selected_repos == ["octo/docs"]
    assert state.pull_requests == []


@pytest.mark.asyncio
async def test_refresh_repos_failure_keeps_previous_list(connections, fake_github):
    state = await connections.refresh_repos(USER_ID)
    assert len(state.repos) == 2

    fake_github.error = server_error()
    state = await connections.refresh_repos(USER_ID)

    assert len(state.repos) == 2
    assert state.status == ConnectionStatus.CONNECTED


@pytest.mark.asyncio
async def test_pull_requests_need_a_username(db, github_factory, github_accounts):
    fake = FakeGithub()
    github_accounts["no-name"] = fake
    db.merge_user("anon", github_access_token="no-name")

    state = await GitHubConnectionService(db, github_factory).refresh_pull_requests("anon")

    assert state.pull_requests == []
    assert fake.calls == 0


@pytest.mark.asyncio
async def test_refresh_issues_fills_missing_profile(db, github_factory, github_accounts):
    github_accounts["fresh"] = FakeGithub(login="newbie", issues=[issue(5, "Hello", "newbie/app")])
    db.merge_user("u2", github_access_token="fresh")

    state = await GitHubConnectionService(db, github_factory).refresh_issues("u2")

    assert state.username == "newbie"
    assert db.get_user("u2").github_username == "newbie"


@pytest.mark.asyncio
async def test_request_changes_without_comment_is_rejected_before_network(connections, fake_github):
    result = await connections.submit_review(USER_ID, ReviewSubmission(
        pull_request_id=200,
        repository_full_name="octo/web",
        pull_request_number=2,
        review_type=ReviewType.REQUEST_CHANGES,
        comment="   ",
    ))

    assert result.success is False
    assert result.message == "A comment is required when requesting changes"
    assert fake_github.calls == 0


@pytest.mark.asyncio
async def test_submit_review_refreshes_pull_requests(connections, fake_github):
    result = await connections.submit_review(USER_ID, ReviewSubmission(
        pull_request_id=200,
        repository_full_name="octo/web",
        pull_request_number=2,
        review_type=ReviewType.APPROVE,
    ))

    assert result.success is True
    assert fake_github.pulls[("octo/web", 2)].created_reviews == [("", "APPROVE")]
    assert len(connections.get_state(USER_ID).pull_requests) == 1


@pytest.mark.asyncio
async def test_submit_review_without_token(db, github_factory):
    db.merge_user("offline", email="offline@example.com")
    result = await GitHubConnectionService(db, github_factory).submit_review(
        "offline",
        ReviewSubmission(pull_request_id=1, repository_full_name="octo/web", pull_request_number=1),
    )

    assert result.success is False
    assert result.message == "Not authenticated with GitHub"


@pytest.mark.asyncio
async def test_complete_connection_and_disconnect(db, github_factory, github_accounts):
    github_accounts["new-token"] = FakeGithub(login="octocat", issues=[issue(1, "One", "octo/web")])
    db.merge_user("u3", email="u3@example.com")
    connections = GitHubConnectionService(db, github_factory)

    assert connections.begin_connect("u3").status == ConnectionStatus.CONNECTING
    state = await connections.complete_connection("u3", "new-token")

    assert state.status == ConnectionStatus.CONNECTED
    assert len(state.issues) == 1
    assert db.get_user("u3").github_access_token == "new-token"

    state = connections.disconnect("u3")
    assert state.status == ConnectionStatus.DISCONNECTED
    assert state.issues == []
    assert db.get_user("u3").github_access_token is None


@pytest.mark.asyncio
async def test_pending_reviews_lists_reviewable_pull_requests(connections):
    await connections.refresh_pull_requests(USER_ID)

    pending = connections.pending_reviews(USER_ID)
    assert [pr.id for pr in pending] == [200]
