"""
Review 领域模型（Pydantic）。

用途：
- 明确各阶段输入/输出的数据结构（diff 拆分 -> 文件级分析 -> 行内评论）
- 作为 LLM JSON 输出的 schema 校验（issue finder）
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

ChangeStatus = Literal["added", "deleted", "renamed", "modified"]
Severity = Literal["high", "medium", "low", "info"]

_SEVERITIES: tuple[str, ...] = ("high", "medium", "low", "info")


class FileChange(BaseModel):
    """单个文件的变更（从 unified diff 的一个 `diff --git` 段落拆出来）。"""

    filename: str = Field(min_length=1)
    status: ChangeStatus = "modified"
    additions: int = 0
    deletions: int = 0
    patch: str = ""


class PullRequestRef(BaseModel):
    """定位一个 PR：owner/repo#number。"""

    owner: str
    repo: str
    number: int

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


class PullRequestDetails(BaseModel):
    """PR 元信息（给 issue finder 做上下文 + 写回评论时的 commit_id）。"""

    title: str
    body: str = ""
    state: str = "open"
    author: str = ""
    base_branch: str = ""
    head_branch: str = ""
    head_sha: str
    url: str = ""


class Issue(BaseModel):
    """
    模型给出的单条问题。

    宽松校验：模型经常输出大小写不一致或不存在的 severity，统一归一到 info，
    而不是让整份分析校验失败。
    """

    line: int | None = None
    title: str = "Untitled issue"
    description: str = ""
    severity: Severity = "info"
    category: str = "quality"
    suggestion: str | None = None
    example: str | None = None
    language: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in _SEVERITIES:
            return value.strip().lower()
        return "info"

    @field_validator("line", mode="before")
    @classmethod
    def _normalize_line(cls, value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value if value > 0 else None
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip()) or None
        return None


class FileAnalysis(BaseModel):
    """issue finder 对单个文件的输出 schema。"""

    summary: str = ""
    issues: list[Issue] = Field(default_factory=list)
    positives: list[str] = Field(default_factory=list)
    score: int | None = None


class AnalysisContext(BaseModel):
    """发给 issue finder 的文件级上下文。"""

    filename: str
    language: str
    pr_title: str
    pr_description: str = ""
    is_angular_project: bool = False
    is_dotnet_project: bool = False
    complexity: int = 0
    change_types: list[str] = Field(default_factory=list)


class ReviewComment(BaseModel):
    """最终要写回 GitHub 的一条行内评论。"""

    path: str
    line: int
    body: str
    severity: Severity = "info"


class FileReviewSuccess(BaseModel):
    kind: Literal["success"] = "success"
    filename: str
    comments: list[ReviewComment] = Field(default_factory=list)
    analysis: FileAnalysis


class FileReviewFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    filename: str
    reason: str


class FileReviewSkipped(BaseModel):
    kind: Literal["skipped"] = "skipped"
    filename: str
    reason: str


FileReviewOutcome = Annotated[
    Union[FileReviewSuccess, FileReviewFailure, FileReviewSkipped],
    Field(discriminator="kind"),
]


class ReviewReport(BaseModel):
    """一次 PR review 的结果汇总（Published 终态）。"""

    pull_request: PullRequestRef
    details: PullRequestDetails
    outcomes: list[FileReviewOutcome] = Field(default_factory=list)
    comments: list[ReviewComment] = Field(default_factory=list)
    published: bool = False
    dry_run: bool = False

    @property
    def successes(self) -> list[FileReviewSuccess]:
        return [o for o in self.outcomes if isinstance(o, FileReviewSuccess)]

    @property
    def failures(self) -> list[FileReviewFailure]:
        return [o for o in self.outcomes if isinstance(o, FileReviewFailure)]
