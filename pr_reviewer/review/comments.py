"""
评论落点 + 输出渲染（确定性，不依赖 LLM）。

- `build_review_comments`：把 issue 的 line 对照 LineMapping 落到具体新增行
- `render_review_report`：dry-run 时的纯文本输出
"""

from __future__ import annotations

import logging

from pr_reviewer.review.models import FileAnalysis
from pr_reviewer.review.models import FileChange
from pr_reviewer.review.models import Issue
from pr_reviewer.review.models import ReviewComment
from pr_reviewer.review.models import ReviewReport

logger = logging.getLogger(__name__)

_SEVERITY_EMOJI: dict[str, str] = {
    "high": "🚨",
    "medium": "⚠️",
    "low": "💡",
    "info": "ℹ️",
}

COMMENT_FOOTER = "*Generated by PR Code Review Utility*"


def format_comment(issue: Issue) -> str:
    emoji = _SEVERITY_EMOJI.get(issue.severity, "ℹ️")
    parts: list[str] = [f"{emoji} **{issue.title}**", issue.description]
    if issue.suggestion:
        parts.append(f"**Suggestion:**\n{issue.suggestion}")
    if issue.example:
        parts.append(f"**Example:**\n```{issue.language or 'typescript'}\n{issue.example}\n```")
    parts.append(f"---\n{COMMENT_FOOTER}")
    return "\n\n".join(p for p in parts if p)


def build_review_comments(
    file_change: FileChange,
    analysis: FileAnalysis,
    line_mapping: list[int],
) -> list[ReviewComment]:
    """
    issue -> ReviewComment。

    落点规则（只允许评论新增行）：
    - line 在 LineMapping 中：原样使用
    - 没给 line：挂到第一条新增行；文件没有新增行则丢弃
    - line 不在 LineMapping 中（越界/模型编造）：丢弃并打 warning
    """
    added_lines = set(line_mapping)
    comments: list[ReviewComment] = []
    for issue in analysis.issues:
        line = issue.line
        if line is None:
            if not line_mapping:
                logger.warning(f"Dropping issue without line for {file_change.filename}: no added lines")
                continue
            line = line_mapping[0]
        elif line not in added_lines:
            logger.warning(
                f"Dropping issue '{issue.title}' for {file_change.filename}: line {line} is not an added line"
            )
            continue
        comments.append(
            ReviewComment(
                path=file_change.filename,
                line=line,
                body=format_comment(issue),
                severity=issue.severity,
            )
        )
    return comments


def render_review_report(report: ReviewReport) -> str:
    """dry-run / CLI 输出：按文件列出评论，失败以 warning 形式附在后面。"""
    lines: list[str] = []
    lines.append(f"Code Review Results for {report.pull_request}: {report.details.title}")
    lines.append("")

    for outcome in report.successes:
        lines.append(f"{outcome.filename}")
        lines.append("-" * 50)
        if not outcome.comments:
            lines.append("No issues found.")
        for comment in outcome.comments:
            lines.append(f"Line {comment.line}: {comment.body}")
            lines.append("")
        lines.append("")

    for failure in report.failures:
        lines.append(f"WARNING: failed to review {failure.filename}: {failure.reason}")

    if not report.outcomes:
        lines.append("No relevant files found for review.")

    return "\n".join(lines).rstrip() + "\n"
