"""
Context Builder（非 AI）。

职责：
- 通过扩展名判断文件是否值得 review（显式白名单，纯函数）
- 推断语言 + 框架标记（Angular / .NET），拼成发给 issue finder 的 `AnalysisContext`
"""

from __future__ import annotations

from collections.abc import Iterable

from pr_reviewer.review.models import AnalysisContext
from pr_reviewer.review.models import FileChange
from pr_reviewer.review.models import PullRequestDetails
from pr_reviewer.review.patch_metrics import detect_change_types
from pr_reviewer.review.patch_metrics import estimate_complexity

DEFAULT_RELEVANT_EXTENSIONS: tuple[str, ...] = (
    # Angular / TypeScript
    ".ts",
    ".js",
    ".tsx",
    ".jsx",
    ".html",
    ".scss",
    ".css",
    # .NET
    ".cs",
    ".vb",
    ".fs",
    ".razor",
    ".cshtml",
    # 配置文件
    ".json",
    ".xml",
    ".yml",
    ".yaml",
)

_LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".html": "html",
    ".scss": "scss",
    ".css": "css",
    ".cs": "csharp",
    ".vb": "vb.net",
    ".fs": "fsharp",
    ".razor": "razor",
    ".cshtml": "razor",
    ".json": "json",
    ".xml": "xml",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".py": "python",
    ".go": "go",
    ".java": "java",
    ".rb": "ruby",
    ".php": "php",
    ".rs": "rust",
    ".sql": "sql",
}

_ANGULAR_INDICATORS: tuple[str, ...] = (
    "angular",
    "@angular",
    "ng-",
    "angular.json",
    "package.json",
    "component.ts",
    "service.ts",
    "module.ts",
)

_DOTNET_INDICATORS: tuple[str, ...] = (
    ".net",
    "dotnet",
    "csharp",
    "c#",
    ".cs",
    ".csproj",
    "asp.net",
    "blazor",
    "razor",
    "entity framework",
)


def get_file_extension(filename: str) -> str:
    """最后一个 `.` 之后的部分（带点）；没有点时返回 `.<整个文件名>`，不会命中白名单。"""
    return "." + filename.rsplit(".", 1)[-1]


def infer_language_from_path(path: str) -> str:
    """通过扩展名推断语言，未知返回 `text`。"""
    return _LANGUAGE_BY_EXTENSION.get(get_file_extension(path).lower(), "text")


def is_relevant_file(filename: str, allowed_extensions: Iterable[str] = DEFAULT_RELEVANT_EXTENSIONS) -> bool:
    allowed = {ext.lower() for ext in allowed_extensions}
    return get_file_extension(filename).lower() in allowed


def filter_relevant_files(
    files: list[FileChange],
    allowed_extensions: Iterable[str] = DEFAULT_RELEVANT_EXTENSIONS,
) -> list[FileChange]:
    allowed = tuple(allowed_extensions)
    return [f for f in files if is_relevant_file(f.filename, allowed_extensions=allowed)]


def _pr_text(details: PullRequestDetails) -> str:
    return f"{details.title} {details.body}".lower()


def is_angular_project(details: PullRequestDetails) -> bool:
    content = _pr_text(details)
    return any(indicator in content for indicator in _ANGULAR_INDICATORS)


def is_dotnet_project(details: PullRequestDetails) -> bool:
    content = _pr_text(details)
    return any(indicator in content for indicator in _DOTNET_INDICATORS)


def build_analysis_context(file_change: FileChange, details: PullRequestDetails) -> AnalysisContext:
    """
    为单个文件构造 issue finder 上下文。

    - language：扩展名推断
    - 框架标记：基于 PR 标题/描述的关键字启发式
    - complexity/change_types：patch 的确定性指标
    """
    return AnalysisContext(
        filename=file_change.filename,
        language=infer_language_from_path(file_change.filename),
        pr_title=details.title,
        pr_description=details.body,
        is_angular_project=is_angular_project(details),
        is_dotnet_project=is_dotnet_project(details),
        complexity=estimate_complexity(file_change.patch),
        change_types=detect_change_types(file_change.patch),
    )
