"""
GitHub Webhook / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前需要的子集（PR webhook + get PR + create review comment）。
"""

from __future__ import annotations

from pydantic import BaseModel


class GitHubOwner(BaseModel):
    login: str


class GitHubUser(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    name: str
    owner: GitHubOwner
    full_name: str


class GitHubPullRequestHead(BaseModel):
    sha: str
    ref: str


class GitHubPullRequestBase(BaseModel):
    ref: str


class GitHubPullRequest(BaseModel):
    """GET /repos/{owner}/{repo}/pulls/{n} 以及 webhook 中的 pull_request（最小结构）。"""

    number: int
    title: str = ""
    body: str | None = None
    state: str = "open"
    html_url: str = ""
    user: GitHubUser | None = None
    head: GitHubPullRequestHead
    base: GitHubPullRequestBase


class GitHubPullRequestWebhookEvent(BaseModel):
    """
    GitHub `pull_request` webhook event（最小结构）。

    action 不做枚举限制：GitHub 会不断新增 action，未知 action 在路由层忽略即可。
    """

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository


class GitHubReviewComment(BaseModel):
    """POST /pulls/{n}/comments 的返回（只保留定位信息）。"""

    id: int
    path: str
    line: int | None = None
    html_url: str = ""
