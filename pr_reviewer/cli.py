"""
命令行入口。

  pr-reviewer review --url https://github.com/owner/repo/pull/123 [--dry-run]
  pr-reviewer review --owner owner --repo repo --pr 123
  pr-reviewer serve --port 3000
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping, Sequence

import anyio
import httpx
import uvicorn

from pr_reviewer.config import AppConfig
from pr_reviewer.config import configure_logging
from pr_reviewer.config import load_config_from_env
from pr_reviewer.github.pr_url import parse_pull_request_url
from pr_reviewer.review.comments import render_review_report
from pr_reviewer.review.models import PullRequestRef
from pr_reviewer.review.models import ReviewReport
from pr_reviewer.review.orchestrator import ReviewFailedError
from pr_reviewer.review.orchestrator import build_github_review_orchestrator
from pr_reviewer.review.orchestrator import run_review

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pr-reviewer", description="AI-assisted GitHub pull request review")
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Review a pull request")
    review.add_argument("-u", "--url", help="PR URL (e.g. https://github.com/owner/repo/pull/123)")
    review.add_argument("-o", "--owner", help="Repository owner (default: $GITHUB_OWNER)")
    review.add_argument("-r", "--repo", help="Repository name (default: $GITHUB_REPO)")
    review.add_argument("-p", "--pr", type=int, help="PR number (default: $PR_NUMBER)")
    review.add_argument("--dry-run", action="store_true", help="Show review comments without posting to GitHub")

    serve = subparsers.add_parser("serve", help="Run the webhook server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("-p", "--port", type=int, default=3000)
    return parser


def resolve_pull_request(args: argparse.Namespace, environ: Mapping[str, str]) -> PullRequestRef:
    """`--url` 优先；否则用 --owner/--repo/--pr，缺省回落到环境变量。"""
    if args.url:
        parsed = parse_pull_request_url(args.url)
        if parsed is None:
            raise ValueError("Invalid PR URL format. Expected: https://github.com/owner/repo/pull/123")
        return parsed

    owner = args.owner or environ.get("GITHUB_OWNER")
    repo = args.repo or environ.get("GITHUB_REPO")
    number = args.pr if args.pr is not None else environ.get("PR_NUMBER")
    if not owner or not repo or not number:
        raise ValueError("Missing required parameters: owner, repo, and PR number (or --url)")
    try:
        return PullRequestRef(owner=owner, repo=repo, number=int(number))
    except ValueError as exc:
        raise ValueError(f"PR number must be an integer, got: {number!r}") from exc


async def _review(config: AppConfig, pull_request: PullRequestRef, dry_run: bool) -> ReviewReport:
    async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as http_client:
        orchestrator = build_github_review_orchestrator(config=config, http_client=http_client)
        return await run_review(orchestrator=orchestrator, pull_request=pull_request, dry_run=dry_run)


def _run_review_command(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    config = load_config_from_env(environ)
    configure_logging(config.log_level)
    pull_request = resolve_pull_request(args, environ)

    report = anyio.run(_review, config, pull_request, args.dry_run)

    if args.dry_run:
        # 报告里已经包含失败文件的 WARNING 行
        print(render_review_report(report))
    else:
        for failure in report.failures:
            print(f"WARNING: failed to review {failure.filename}: {failure.reason}", file=sys.stderr)
    if report.published:
        print(f"Posted {len(report.comments)} comments to {pull_request}")
    elif not args.dry_run:
        print("No reviews to post")
    return 0


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    env = os.environ if environ is None else environ

    if args.command == "serve":
        uvicorn.run("pr_reviewer.main:build_app", factory=True, host=args.host, port=args.port)
        return 0

    try:
        return _run_review_command(args, env)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ReviewFailedError as exc:
        print(f"PR review failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
