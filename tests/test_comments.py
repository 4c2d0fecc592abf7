from __future__ import annotations

from pr_reviewer.review.comments import COMMENT_FOOTER
from pr_reviewer.review.comments import build_review_comments
from pr_reviewer.review.comments import format_comment
from pr_reviewer.review.comments import render_review_report
from pr_reviewer.review.models import FileAnalysis
from pr_reviewer.review.models import FileChange
from pr_reviewer.review.models import FileReviewFailure
from pr_reviewer.review.models import FileReviewSuccess
from pr_reviewer.review.models import Issue
from pr_reviewer.review.models import PullRequestDetails
from pr_reviewer.review.models import PullRequestRef
from pr_reviewer.review.models import ReviewComment
from pr_reviewer.review.models import ReviewReport


def test_format_comment_includes_sections() -> None:
    issue = Issue(
        title="Unsubscribed observable",
        description="The subscription leaks.",
        severity="high",
        suggestion="Use takeUntil.",
        example="obs$.pipe(takeUntil(this.destroy$))",
    )
    body = format_comment(issue)
    assert body.startswith("🚨 **Unsubscribed observable**")
    assert "**Suggestion:**\nUse takeUntil." in body
    assert "```typescript\nobs$.pipe(takeUntil(this.destroy$))\n```" in body
    assert body.endswith(COMMENT_FOOTER)


def test_format_comment_omits_empty_sections() -> None:
    body = format_comment(Issue(title="Note", description="Minor.", severity="low", language="csharp"))
    assert body.startswith("💡 **Note**")
    assert "Suggestion" not in body
    assert "Example" not in body


def test_build_review_comments_keeps_only_added_lines() -> None:
    file_change = FileChange(filename="src/app.ts", patch="@@ -1,3 +1,4 @@\n c\n+a\n c\n+b")
    analysis = FileAnalysis(
        issues=[
            Issue(line=4, title="on added line", severity="medium"),
            Issue(line=3, title="on context line"),
            Issue(line=99, title="out of range"),
            Issue(line=None, title="no line"),
        ]
    )
    comments = build_review_comments(file_change=file_change, analysis=analysis, line_mapping=[2, 4])
    assert [(c.path, c.line, c.severity) for c in comments] == [
        ("src/app.ts", 4, "medium"),
        ("src/app.ts", 2, "info"),
    ]


def test_build_review_comments_without_added_lines_drops_unanchored_issues() -> None:
    file_change = FileChange(filename="gone.ts", patch="@@ -1 +0,0 @@\n-x")
    analysis = FileAnalysis(issues=[Issue(title="no line"), Issue(line=1, title="deleted line")])
    assert build_review_comments(file_change=file_change, analysis=analysis, line_mapping=[]) == []


def test_render_review_report_lists_comments_and_failures() -> None:
    report = ReviewReport(
        pull_request=PullRequestRef(owner="octo", repo="repo", number=7),
        details=PullRequestDetails(title="Add feature", head_sha="abc"),
        outcomes=[
            FileReviewSuccess(
                filename="a.ts",
                comments=[ReviewComment(path="a.ts", line=4, body="fix this")],
                analysis=FileAnalysis(),
            ),
            FileReviewFailure(filename="b.ts", reason="LLM timeout"),
        ],
        dry_run=True,
    )
    text = render_review_report(report)
    assert "octo/repo#7: Add feature" in text
    assert "Line 4: fix this" in text
    assert "WARNING: failed to review b.ts: LLM timeout" in text
