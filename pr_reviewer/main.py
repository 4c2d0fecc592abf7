"""
FastAPI 服务入口。

这里做三件事：
- 加载配置（严格校验环境变量）
- 组装外部依赖（HTTP Client / GitHub + LLM orchestrator / webhook handler）
- 装配路由（health + 手动触发 review + GitHub webhook）

注意：
- 业务流程不写在这里（由 `review/orchestrator.py` 负责）
- `httpx.AsyncClient` 会被复用（避免每个请求新建连接）
"""

from __future__ import annotations

import os
from collections.abc import Mapping

import httpx
from fastapi import FastAPI
from fastapi import HTTPException
from pydantic import BaseModel

from pr_reviewer.config import AppConfig
from pr_reviewer.config import configure_logging
from pr_reviewer.config import load_config_from_env
from pr_reviewer.github.pr_url import parse_pull_request_url
from pr_reviewer.github.webhook import build_github_webhook_router
from pr_reviewer.review.models import PullRequestRef
from pr_reviewer.review.models import ReviewReport
from pr_reviewer.review.orchestrator import ReviewFailedError
from pr_reviewer.review.orchestrator import ReviewOrchestrator
from pr_reviewer.review.orchestrator import build_github_review_orchestrator
from pr_reviewer.review.orchestrator import build_github_webhook_handler
from pr_reviewer.review.orchestrator import run_review


class ReviewRequest(BaseModel):
    owner: str
    repo: str
    pr_number: int
    dry_run: bool = False


class ReviewUrlRequest(BaseModel):
    pr_url: str
    dry_run: bool = False


def build_app_from_parts(config: AppConfig, orchestrator: ReviewOrchestrator) -> FastAPI:
    """在已有 orchestrator 上装配路由（测试里可注入 fake orchestrator）。"""
    app = FastAPI(title="PR Reviewer", version="0.1.0")

    async def _review(pull_request: PullRequestRef, dry_run: bool) -> ReviewReport:
        try:
            return await run_review(orchestrator=orchestrator, pull_request=pull_request, dry_run=dry_run)
        except ReviewFailedError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    @app.post("/review")
    async def review(req: ReviewRequest) -> ReviewReport:
        pull_request = PullRequestRef(owner=req.owner, repo=req.repo, number=req.pr_number)
        return await _review(pull_request=pull_request, dry_run=req.dry_run)

    @app.post("/review-url")
    async def review_url(req: ReviewUrlRequest) -> ReviewReport:
        pull_request = parse_pull_request_url(req.pr_url)
        if pull_request is None:
            raise HTTPException(
                status_code=400,
                detail="Invalid PR URL format. Expected: https://github.com/owner/repo/pull/123",
            )
        return await _review(pull_request=pull_request, dry_run=req.dry_run)

    handler = build_github_webhook_handler(orchestrator=orchestrator)
    app.include_router(build_github_webhook_router(config=config.github, handler=handler))
    return app


def build_app(environ: Mapping[str, str] | None = None) -> FastAPI:
    """创建并返回 FastAPI app（便于测试/复用）。"""

    # 1) 配置：缺失会直接抛错，启动失败（这是期望行为）
    config = load_config_from_env(os.environ if environ is None else environ)
    configure_logging(config.log_level)

    # 2) 可复用的 HTTP client：供 GitHub API 与 LLM 调用使用
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))

    orchestrator = build_github_review_orchestrator(config=config, http_client=http_client)
    return build_app_from_parts(config=config, orchestrator=orchestrator)
