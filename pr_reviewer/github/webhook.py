"""
GitHub Webhook 接入层。

职责：
- 校验 `X-Hub-Signature-256`（HMAC SHA256；未配置 secret 时跳过）
- 校验 event 类型（只处理 pull_request）
- 解析 payload -> Pydantic schema
- 过滤 action（opened/reopened/synchronize）
- 把 review 放到后台任务执行（GitHub 要求 webhook 快速返回）
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Awaitable, Callable

from fastapi import APIRouter
from fastapi import BackgroundTasks
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from pydantic import ValidationError

from pr_reviewer.config import GitHubConfig
from pr_reviewer.github.schemas import GitHubPullRequestWebhookEvent

GitHubWebhookHandler = Callable[[GitHubPullRequestWebhookEvent], Awaitable[None]]

REVIEWABLE_ACTIONS: tuple[str, ...] = ("opened", "reopened", "synchronize")


def _verify_github_signature(body: bytes, signature_header: str | None, secret: str) -> None:
    if not signature_header or not signature_header.startswith("sha256="):
        raise HTTPException(status_code=401, detail="Invalid signature header")
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature_header):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")


def build_github_webhook_router(config: GitHubConfig, handler: GitHubWebhookHandler) -> APIRouter:
    router = APIRouter()

    @router.post("/github/webhook")
    async def github_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        x_github_event: str = Header(alias="X-GitHub-Event"),
        x_hub_signature_256: str | None = Header(default=None, alias="X-Hub-Signature-256"),
    ) -> dict[str, str]:
        body = await request.body()
        if config.webhook_secret:
            _verify_github_signature(body=body, signature_header=x_hub_signature_256, secret=config.webhook_secret)

        if x_github_event != "pull_request":
            return {"status": "ignored"}

        try:
            payload = json.loads(body.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc
        try:
            event = GitHubPullRequestWebhookEvent.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail="Invalid pull_request payload") from exc

        if event.action not in REVIEWABLE_ACTIONS:
            return {"status": "ignored"}

        background_tasks.add_task(handler, event)
        return {"status": "accepted"}

    return router
