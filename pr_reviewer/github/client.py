"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛错（不要吞），便于定位与告警
"""

from __future__ import annotations

import logging

import httpx

from pr_reviewer.github.schemas import GitHubPullRequest
from pr_reviewer.github.schemas import GitHubReviewComment
from pr_reviewer.review.models import PullRequestDetails
from pr_reviewer.review.models import ReviewComment

logger = logging.getLogger(__name__)


class GitHubClient:
    """最小 GitHub API client（PR 详情 + 整份 diff + 行内评论）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _pull_url(self, owner: str, repo: str, pull_number: int) -> str:
        return f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}"

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise RuntimeError(f"GitHub API error {response.status_code}: {response.text}")

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> PullRequestDetails:
        response = await self._http_client.get(self._pull_url(owner, repo, pull_number), headers=self._headers())
        self._raise_for_status(response)
        pr = GitHubPullRequest.model_validate(response.json())
        return PullRequestDetails(
            title=pr.title,
            body=pr.body or "",
            state=pr.state,
            author=pr.user.login if pr.user is not None else "",
            base_branch=pr.base.ref,
            head_branch=pr.head.ref,
            head_sha=pr.head.sha,
            url=pr.html_url,
        )

    async def get_pull_request_diff(self, owner: str, repo: str, pull_number: int) -> str:
        """
        拉取整个 PR 的 unified diff（多文件，`diff --git` 分隔）。

        通过 `Accept: application/vnd.github.diff` 让同一个 endpoint 返回纯文本 diff。
        """
        response = await self._http_client.get(
            self._pull_url(owner, repo, pull_number),
            headers=self._headers(accept="application/vnd.github.diff"),
        )
        self._raise_for_status(response)
        return response.text

    async def post_review_comment(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        comment: ReviewComment,
    ) -> GitHubReviewComment:
        """
        在新文件一侧（RIGHT）的指定行发布行内评论。

        line 是新文件行号，必须落在本次 diff 的范围内，否则 GitHub 返回 422。
        """
        url = f"{self._pull_url(owner, repo, pull_number)}/comments"
        payload = {
            "body": comment.body,
            "commit_id": commit_id,
            "path": comment.path,
            "line": comment.line,
            "side": "RIGHT",
        }
        response = await self._http_client.post(url, headers=self._headers(), json=payload)
        self._raise_for_status(response)
        logger.info(f"Posted comment on {comment.path}:{comment.line}")
        return GitHubReviewComment.model_validate(response.json())
