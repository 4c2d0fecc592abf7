from __future__ import annotations

import json

import anyio
import httpx
import pytest

from pr_reviewer.github.client import GitHubClient
from pr_reviewer.review.models import ReviewComment

PR_JSON = {
    "number": 7,
    "title": "Add feature",
    "body": None,
    "state": "open",
    "html_url": "https://github.com/octo/repo/pull/7",
    "user": {"login": "alice"},
    "head": {"sha": "headsha", "ref": "feature"},
    "base": {"ref": "main"},
}


def _client(handler: httpx.MockTransport) -> tuple[GitHubClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=handler)
    return GitHubClient(api_base_url="https://api.github.com/", token="t", http_client=http_client), http_client


def test_get_pull_request_maps_details() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=PR_JSON)

    client, _ = _client(httpx.MockTransport(handler))
    details = anyio.run(client.get_pull_request, "octo", "repo", 7)

    assert details.title == "Add feature"
    assert details.body == ""
    assert details.author == "alice"
    assert details.head_sha == "headsha"
    assert details.base_branch == "main"
    assert str(requests[0].url) == "https://api.github.com/repos/octo/repo/pulls/7"
    assert requests[0].headers["Authorization"] == "Bearer t"


def test_get_pull_request_diff_requests_diff_media_type() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == "application/vnd.github.diff"
        return httpx.Response(200, text="diff --git a/x.ts b/x.ts\n")

    client, _ = _client(httpx.MockTransport(handler))
    assert anyio.run(client.get_pull_request_diff, "octo", "repo", 7) == "diff --git a/x.ts b/x.ts\n"


def test_post_review_comment_targets_new_file_line() -> None:
    payloads: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/octo/repo/pulls/7/comments"
        payloads.append(json.loads(request.content))
        return httpx.Response(201, json={"id": 1, "path": "src/a.ts", "line": 4})

    client, _ = _client(httpx.MockTransport(handler))
    comment = ReviewComment(path="src/a.ts", line=4, body="fix", severity="high")
    posted = anyio.run(client.post_review_comment, "octo", "repo", 7, "headsha", comment)

    assert posted.id == 1
    assert payloads == [{"body": "fix", "commit_id": "headsha", "path": "src/a.ts", "line": 4, "side": "RIGHT"}]


def test_errors_are_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="Not Found")

    client, _ = _client(httpx.MockTransport(handler))
    with pytest.raises(RuntimeError, match="GitHub API error 404"):
        anyio.run(client.get_pull_request_diff, "octo", "repo", 7)
