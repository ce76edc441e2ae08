import pytest

from devdash.exceptions import GitHubAPIError, GitHubAuthError
from devdash.models.github_models import GitHubPullRequest, ReviewSubmission, ReviewType
from devdash.services.github_service import (
    GitHubService, aggregate_reviews, latest_reviews_by_reviewer, parse_repository_url
)
from tests.fakes import (
    BASE_TIME, FakeGithub, FakePull, issue, repository, review, search_hit, server_error, unauthorized
)


def make_service(fake):
    return GitHubService("token", client=fake)


def test_parse_repository_url():
    ref = parse_repository_url("https://api.github.com/repos/octo/widgets")
    assert ref.name == "widgets"
    assert ref.full_name == "octo/widgets"


def test_latest_review_wins_per_reviewer():
    reviews = [
        review("alice", "COMMENTED", minutes=1),
        review("alice", "APPROVED", minutes=5),
        review("alice", "PENDING", minutes=None),
        review(None, "APPROVED", minutes=9),
    ]
    latest = latest_reviews_by_reviewer(reviews)

    assert list(latest) == ["alice"]
    assert latest["alice"].state == "APPROVED"


def test_aggregate_reviews_counts_latest_state_only():
    reviews = [
        review("alice", "CHANGES_REQUESTED", minutes=1),
        review("alice", "APPROVED", minutes=2),
        review("bob", "CHANGES_REQUESTED", minutes=3),
        review("carol", "COMMENTED", minutes=1),
    ]
    counts = aggregate_reviews(reviews, requested_reviewer_count=2)

    assert counts.approved == 1
    assert counts.changes_requested == 1
    assert counts.commented == 1
    assert counts.pending == 2


@pytest.mark.asyncio
async def test_fetch_user_issues_applies_repo_filter():
    fake = FakeGithub(issues=[
        issue(1, "Fix login", "octo/web", labels=["bug"]),
        issue(2, "Add docs", "octo/docs"),
        issue(3, "Crash on save", "octo/web"),
    ])
    service = make_service(fake)

    assert len(await service.fetch_user_issues()) == 3
    assert len(await service.fetch_user_issues([])) == 3

    filtered = await service.fetch_user_issues(["octo/web"])
    assert [i.id for i in filtered] == [1, 3]
    assert all(i.repository.full_name == "octo/web" for i in filtered)
    assert fake.user.issue_queries[0] == {"filter": "assigned", "state": "open", "sort": "updated"}


@pytest.mark.asyncio
async def test_fetch_user_issues_translates_unauthorized():
    service = make_service(FakeGithub(error=unauthorized()))

    with pytest.raises(GitHubAuthError):
        await service.fetch_user_issues()


@pytest.mark.asyncio
async def test_other_errors_are_not_auth_errors():
    service = make_service(FakeGithub(error=server_error()))

    with pytest.raises(GitHubAPIError) as excinfo:
        await service.fetch_user_issues()
    assert not isinstance(excinfo.value, GitHubAuthError)
    assert excinfo.value.status == 500


@pytest.mark.asyncio
async def test_fetch_user_pull_requests_sets_can_review():
    pulls = {
        ("octo/web", 1): FakePull("octocat", requested=["alice"]),
        ("octo/web", 2): FakePull("alice", requested=["octocat", "bob"],
                                  reviews=[review("bob", "APPROVED", minutes=1)]),
        ("octo/api", 3): FakePull("octocat", reviews=[review("octocat", "COMMENTED")]),
    }
    fake = FakeGithub(
        authored=[search_hit(100, 1, "octo/web")],
        requested=[search_hit(200, 2, "octo/web"), search_hit(300, 3, "octo/api")],
        pulls=pulls,
    )
    service = make_service(fake)

    results = {pr.id: pr for pr in await service.fetch_user_pull_requests("octocat")}

    assert set(results) == {100, 200, 300}
    authored = results[100]
    assert authored.can_review is False
    assert authored.reviews.pending == 1

    requested = results[200]
    assert requested.can_review is True
    assert requested.reviews.approved == 1
    assert requested.reviews.pending == 2
    assert requested.review_summary == "1 approved, 2 pending"

    # Own pull request, but a review of ours already exists
    assert results[300].can_review is True
    assert fake.queries == [
        "is:pr is:open author:octocat",
        "is:pr is:open review-requested:octocat",
    ]


@pytest.mark.asyncio
async def test_pull_requests_are_deduplicated_by_id():
    pulls = {("octo/web", 1): FakePull("octocat")}
    fake = FakeGithub(
        authored=[search_hit(100, 1, "octo/web")],
        requested=[search_hit(100, 1, "octo/web")],
        pulls=pulls,
    )

    results = await make_service(fake).fetch_user_pull_requests("octocat")

    assert len(results) == 1
    assert results[0].can_review is False


@pytest.mark.asyncio
async def test_pull_requests_filtered_by_repository():
    pulls = {
        ("octo/web", 1): FakePull("octocat"),
        ("octo/api", 2): FakePull("octocat"),
    }
    fake = FakeGithub(authored=[search_hit(1, 1, "octo/web"), search_hit(2, 2, "octo/api")],
                      pulls=pulls)

    results = await make_service(fake).fetch_user_pull_requests("octocat", ["octo/api"])

    assert [pr.id for pr in results] == [2]


@pytest.mark.asyncio
async def test_review_fetch_failure_keeps_pull_request():
    pulls = {("octo/web", 2): FakePull("alice", requested=["octocat"], reviews_error=server_error())}
    fake = FakeGithub(requested=[search_hit(200, 2, "octo/web")], pulls=pulls)

    results = await make_service(fake).fetch_user_pull_requests("octocat")

    assert len(results) == 1
    assert results[0].can_review is True
    assert results[0].reviews.pending == 1
    assert results[0].reviews.approved == 0


@pytest.mark.asyncio
async def test_review_fetch_unauthorized_propagates():
    pulls = {("octo/web", 2): FakePull("alice", reviews_error=unauthorized())}
    fake = FakeGithub(requested=[search_hit(200, 2, "octo/web")], pulls=pulls)

    with pytest.raises(GitHubAuthError):
        await make_service(fake).fetch_user_pull_requests("octocat")


@pytest.mark.asyncio
async def test_submit_review_success():
    pull = FakePull("alice")
    service = make_service(FakeGithub(pulls={("octo/web", 7): pull}))

    result = await service.submit_pull_request_review(ReviewSubmission(
        pull_request_id=70,
        repository_full_name="octo/web",
        pull_request_number=7,
        review_type=ReviewType.APPROVE,
        comment="LGTM",
    ))

    assert result.success is True
    assert pull.created_reviews == [("LGTM", "APPROVE")]


@pytest.mark.asyncio
async def test_submit_review_failure_is_reported_not_raised():
    pull = FakePull("alice", review_error=server_error())
    service = make_service(FakeGithub(pulls={("octo/web", 7): pull}))

    result = await service.submit_pull_request_review(ReviewSubmission(
        pull_request_id=70,
        repository_full_name="octo/web",
        pull_request_number=7,
        review_type=ReviewType.COMMENT,
        comment="Looks odd",
    ))

    assert result.success is False
    assert result.message == "Server Error"


@pytest.mark.asyncio
async def test_fetch_user_repos_and_profile():
    fake = FakeGithub(login="octocat", user_id=42,
                      repos=[repository("octo/web", 1), repository("octo/api", 2)])
    service = make_service(fake)

    repos = await service.fetch_user_repos()
    profile = await service.get_user_profile()

    assert [r.full_name for r in repos] == ["octo/web", "octo/api"]
    assert repos[0].owner.login == "octo"
    assert profile.id == 42
    assert profile.login == "octocat"


@pytest.mark.parametrize("state,merged,draft,expected", [
    ("open", False, False, "Open"),
    ("open", False, True, "Draft"),
    ("closed", True, False, "Merged"),
    ("closed", False, False, "Closed"),
])
def test_pull_request_status_text(state, merged, draft, expected):
    pr = GitHubPullRequest(
        id=1, number=1, title="PR", html_url="https://github.com/octo/web/pull/1",
        state=state, merged=merged, draft=draft,
        created_at=BASE_TIME, updated_at=BASE_TIME,
        user={"login": "alice", "avatar_url": "https://avatars.example.com/alice"},
        repository={"name": "web", "full_name": "octo/web"},
    )
    assert pr.status_text == expected
    assert pr.review_summary is None
