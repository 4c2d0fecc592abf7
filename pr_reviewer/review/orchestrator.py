"""
Review Orchestrator（核心流程编排）。

关键思想：
- **流程由工程代码控制**：FetchDiff -> SplitFiles -> FilterRelevant -> 逐文件 review -> Publish
- **LLM 只负责“找问题”**：行号落点、预算、过滤全部是确定性代码
- **逐文件串行 await**：日志顺序确定，也天然尊重外部 API 的限流

失败语义：
- 拉取 PR / diff 失败：整次 review 失败（`ReviewFailedError`），不产出任何部分结果
- 单个文件分析失败：记为 `FileReviewFailure`，其余文件继续
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import anyio
import httpx

from pr_reviewer.config import AppConfig
from pr_reviewer.config import ReviewSettings
from pr_reviewer.github.client import GitHubClient
from pr_reviewer.github.schemas import GitHubPullRequestWebhookEvent
from pr_reviewer.llm.client import OpenAICompatLLMClient
from pr_reviewer.review.comments import build_review_comments
from pr_reviewer.review.context import build_analysis_context
from pr_reviewer.review.context import filter_relevant_files
from pr_reviewer.review.diff_parser import extract_added_line_numbers
from pr_reviewer.review.diff_parser import split_diff_into_files
from pr_reviewer.review.models import AnalysisContext
from pr_reviewer.review.models import FileAnalysis
from pr_reviewer.review.models import FileChange
from pr_reviewer.review.models import FileReviewFailure
from pr_reviewer.review.models import FileReviewOutcome
from pr_reviewer.review.models import FileReviewSkipped
from pr_reviewer.review.models import FileReviewSuccess
from pr_reviewer.review.models import PullRequestDetails
from pr_reviewer.review.models import PullRequestRef
from pr_reviewer.review.models import ReviewComment
from pr_reviewer.review.models import ReviewReport
from pr_reviewer.review.reviewer import LLMIssueFinder

logger = logging.getLogger(__name__)


class ReviewFailedError(RuntimeError):
    """review 在进入逐文件阶段之前就失败了（例如拉 diff 失败）。"""

    pass


class PullRequestSource(Protocol):
    """diff 来源（GitHub 等托管平台）。"""

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> PullRequestDetails: ...

    async def get_pull_request_diff(self, owner: str, repo: str, pull_number: int) -> str: ...


class IssueFinder(Protocol):
    """对单个文件 patch 找问题（通常是 LLM）。"""

    async def analyze(self, patch: str, context: AnalysisContext) -> FileAnalysis: ...


class CommentSink(Protocol):
    """评论写回目标。"""

    async def post_review_comment(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        comment: ReviewComment,
    ) -> object: ...


@dataclass(frozen=True)
class ReviewOrchestrator:
    """Orchestrator 运行时依赖集合。"""

    source: PullRequestSource
    issue_finder: IssueFinder
    comment_sink: CommentSink
    settings: ReviewSettings


def build_github_review_orchestrator(config: AppConfig, http_client: httpx.AsyncClient) -> ReviewOrchestrator:
    """装配 GitHub（diff 来源 + 评论写回）+ LLM issue finder。"""
    github_client = GitHubClient(
        api_base_url=str(config.github.api_base_url),
        token=config.github.token,
        http_client=http_client,
    )
    llm_client = OpenAICompatLLMClient(
        api_key=config.llm.api_key,
        base_url=str(config.llm.base_url),
        http_client=http_client,
        model=config.llm.model,
    )
    return ReviewOrchestrator(
        source=github_client,
        issue_finder=LLMIssueFinder(llm_client=llm_client),
        comment_sink=github_client,
        settings=config.review,
    )


async def _fetch(orchestrator: ReviewOrchestrator, pull_request: PullRequestRef) -> tuple[PullRequestDetails, str]:
    source = orchestrator.source
    try:
        details = await source.get_pull_request(pull_request.owner, pull_request.repo, pull_request.number)
        logger.info(f"Found PR {pull_request}: {details.title}")
        diff = await source.get_pull_request_diff(pull_request.owner, pull_request.repo, pull_request.number)
    except Exception as exc:
        logger.error(f"Failed to fetch PR {pull_request}: {exc}")
        raise ReviewFailedError(f"Failed to fetch PR {pull_request}: {exc}") from exc
    return details, diff


async def review_file(
    orchestrator: ReviewOrchestrator,
    file_change: FileChange,
    details: PullRequestDetails,
) -> FileReviewOutcome:
    """
    单文件：BuildPatch（已在拆分阶段完成）-> Analyze -> Reconcile -> CollectComments。

    所有异常都收敛为 `FileReviewFailure`，不会中断外层循环。
    """
    filename = file_change.filename
    if not file_change.patch:
        logger.warning(f"Skipping {filename}: diff is empty")
        return FileReviewSkipped(filename=filename, reason="empty diff")
    if len(file_change.patch) > orchestrator.settings.max_diff_size:
        logger.warning(
            f"Skipping {filename}: diff too large ({len(file_change.patch)} > {orchestrator.settings.max_diff_size})"
        )
        return FileReviewSkipped(filename=filename, reason="diff too large")

    try:
        # 先算行号：hunk header 坏掉的文件不值得一次 LLM 调用
        line_mapping = extract_added_line_numbers(file_change.patch)
        context = build_analysis_context(file_change=file_change, details=details)
        analysis = await orchestrator.issue_finder.analyze(file_change.patch, context)
        comments = build_review_comments(file_change=file_change, analysis=analysis, line_mapping=line_mapping)
    except Exception as exc:
        logger.warning(f"Failed to review {filename}: {exc}")
        return FileReviewFailure(filename=filename, reason=str(exc) or type(exc).__name__)

    logger.info(f"Reviewed {filename} ({len(comments)} comments)")
    return FileReviewSuccess(filename=filename, comments=comments, analysis=analysis)


async def run_review(
    orchestrator: ReviewOrchestrator,
    pull_request: PullRequestRef,
    dry_run: bool = False,
) -> ReviewReport:
    """
    跑一次完整 review。

    - dry_run=True：只返回结果，不写回
    - 返回 `ReviewReport`（Published 终态）；致命失败抛 `ReviewFailedError`
    """
    details, diff = await _fetch(orchestrator, pull_request)

    changed_files = split_diff_into_files(diff)
    relevant = filter_relevant_files(changed_files, allowed_extensions=orchestrator.settings.relevant_extensions)
    report = ReviewReport(pull_request=pull_request, details=details, dry_run=dry_run)
    if not relevant:
        logger.warning(f"No relevant files found for review in {pull_request}")
        return report

    cap = orchestrator.settings.max_files_per_review
    selected = relevant[:cap]
    if len(relevant) > cap:
        logger.debug(f"File cap reached: reviewing {cap} of {len(relevant)} relevant files")
    logger.info(f"Found {len(selected)} files to review")

    for file_change in selected:
        outcome = await review_file(orchestrator=orchestrator, file_change=file_change, details=details)
        report.outcomes.append(outcome)
        if isinstance(outcome, FileReviewSuccess):
            report.comments.extend(outcome.comments)

    if dry_run:
        logger.info("Dry run mode - reviews are not posted")
        return report
    if not report.comments:
        logger.info("No reviews to post")
        return report

    await publish_comments(
        orchestrator=orchestrator,
        pull_request=pull_request,
        details=details,
        comments=report.comments,
    )
    report.published = True
    return report


async def publish_comments(
    orchestrator: ReviewOrchestrator,
    pull_request: PullRequestRef,
    details: PullRequestDetails,
    comments: list[ReviewComment],
) -> None:
    """按顺序逐条写回（绑定 PR head commit）。"""
    for comment in comments:
        await orchestrator.comment_sink.post_review_comment(
            pull_request.owner,
            pull_request.repo,
            pull_request.number,
            details.head_sha,
            comment,
        )
    logger.info(f"Posted {len(comments)} comments to {pull_request}")


def build_github_webhook_handler(
    orchestrator: ReviewOrchestrator,
) -> Callable[[GitHubPullRequestWebhookEvent], Awaitable[None]]:
    """
    装配 webhook handler：返回一个 `async def handle(event)` 给 webhook 路由调用。

    - 先等待 `webhook_review_delay_seconds`，让 GitHub 把最新 push 处理完再拉 diff
    - webhook 场景没有调用方可以接收异常：失败只记录日志
    """
    delay = orchestrator.settings.webhook_review_delay_seconds

    async def handle(event: GitHubPullRequestWebhookEvent) -> None:
        pull_request = PullRequestRef(
            owner=event.repository.owner.login,
            repo=event.repository.name,
            number=event.pull_request.number,
        )
        logger.info(f"Processing PR {pull_request} ({event.action})")
        if delay > 0:
            await anyio.sleep(delay)
        try:
            await run_review(orchestrator=orchestrator, pull_request=pull_request)
        except ReviewFailedError as exc:
            logger.error(f"Failed to review PR {pull_request}: {exc}")
        except (RuntimeError, httpx.HTTPError) as exc:
            logger.error(f"Failed to publish review for {pull_request}: {exc}")

    return handle
