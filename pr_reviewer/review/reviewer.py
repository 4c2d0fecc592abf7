"""
文件级 Issue Finder（LLM 单次调用，不 loop）。

输入：单个文件的 patch + `AnalysisContext`
输出：`FileAnalysis`（summary + issues + positives + score）

注意：
- 模型输出经常夹带 markdown/解释文字：先抽取第一个 JSON 对象做 schema 校验，
  失败再退回到“编号列表”文本解析，尽量不丢掉模型给出的建议
- issue 的 line 约定为**新文件行号**，由 comments 模块对照 LineMapping 再过滤
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from pr_reviewer.llm.client import ChatMessage
from pr_reviewer.llm.client import OpenAICompatLLMClient
from pr_reviewer.review.models import AnalysisContext
from pr_reviewer.review.models import FileAnalysis
from pr_reviewer.review.models import Issue

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_NUMBERED_ITEM_RE = re.compile(r"^\d+\.\s*")

_ANGULAR_GUIDELINES = """
Angular-specific guidelines:
- Follow Angular style guide
- Correct component lifecycle management
- RxJS best practices (avoid memory leaks, proper operator usage)
- TypeScript strict mode compliance
- Proper dependency injection patterns
- Angular security (XSS prevention, CSRF protection)
- Performance (OnPush, lazy loading)
- Accessibility (ARIA, semantic HTML)
"""

_DOTNET_GUIDELINES = """
.NET-specific guidelines:
- C# coding conventions and .NET best practices
- Exception handling and logging
- LINQ performance and readability
- Entity Framework optimization
- Proper memory management and disposal
- Async/await usage
- Security (input validation, auth, authorization)
- Caching and DB query efficiency
"""

_RESPONSE_CONTRACT = """
Response format (JSON):
{
  "summary": "Brief overall assessment of code quality",
  "issues": [
    {
      "line": 10,
      "title": "Short issue title",
      "description": "What is wrong and why",
      "severity": "high|medium|low|info",
      "category": "quality|security|performance|architecture|testing|documentation",
      "suggestion": "What to do to improve",
      "example": "Optional code snippet",
      "language": "typescript|csharp"
    }
  ],
  "positives": ["Short positive observations"],
  "score": 85
}

"line" MUST be the line number in the NEW version of the file and MUST point at an added ("+") line of the diff.
Return only JSON. Be specific, constructive, and clear in feedback. If no issues, return an empty "issues" list.
"""


def _system_prompt(context: AnalysisContext) -> str:
    prompt = (
        f"You are an expert code reviewer specializing in {context.language} development.\n"
        "Your task is to review code diffs and provide constructive, actionable feedback focused on:\n"
        "1. Code Quality: Best practices, readability, maintainability\n"
        "2. Security: Vulnerabilities, anti-patterns, input validation\n"
        "3. Performance: Efficiency issues, optimization opportunities\n"
        "4. Architecture: Design patterns, SOLID principles, clean design\n"
        "5. Testing: Missing/insufficient tests, test structure\n"
        "6. Documentation: Code comments, API docs, clarity\n"
    )
    if context.is_angular_project:
        prompt += _ANGULAR_GUIDELINES
    if context.is_dotnet_project:
        prompt += _DOTNET_GUIDELINES
    return prompt + _RESPONSE_CONTRACT


def _user_prompt(patch: str, context: AnalysisContext) -> str:
    change_types = ", ".join(context.change_types) or "none"
    return (
        "Review the following GitHub Pull Request diff for a single file.\n\n"
        "PR details:\n"
        f"- File: {context.filename}\n"
        f"- Language: {context.language}\n"
        f"- Title: {context.pr_title}\n"
        f"- Description: {context.pr_description}\n"
        f"- Branching complexity: {context.complexity}\n"
        f"- Change types: {change_types}\n\n"
        "Code diff:\n"
        f"```diff\n{patch}\n```\n\n"
        "Be specific about line numbers. Provide actionable suggestions, not generic observations."
    )


def parse_analysis(raw: str) -> FileAnalysis:
    """
    解析模型输出。

    - 优先：抽取第一个 `{...}` 并做 schema 校验
    - 兜底：按编号列表做文本解析（并打 warning，便于排查 prompt 问题）
    """
    match = _JSON_OBJECT_RE.search(raw)
    if match is None:
        logger.warning("LLM analysis contains no JSON object, falling back to text parsing")
        return parse_text_analysis(raw)
    try:
        return FileAnalysis.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning(f"Failed to parse analysis as JSON, using text parsing: {exc}")
        return parse_text_analysis(raw)


def parse_text_analysis(raw: str) -> FileAnalysis:
    """`1. 标题` 开启一条 issue，后续非空行拼到 description。"""
    issues: list[Issue] = []
    title: str | None = None
    description: list[str] = []

    for line in raw.split("\n"):
        stripped = line.strip()
        if _NUMBERED_ITEM_RE.match(stripped):
            if title is not None:
                issues.append(Issue(title=title, description=" ".join(description)))
            title = _NUMBERED_ITEM_RE.sub("", stripped, count=1)
            description = []
        elif title is not None and stripped:
            description.append(stripped)

    if title is not None:
        issues.append(Issue(title=title, description=" ".join(description)))

    return FileAnalysis(summary="Code review completed", issues=issues, positives=[], score=75)


class LLMIssueFinder:
    """基于 OpenAI-compatible LLM 的 issue finder。"""

    def __init__(self, llm_client: OpenAICompatLLMClient) -> None:
        self._llm_client = llm_client

    async def analyze(self, patch: str, context: AnalysisContext) -> FileAnalysis:
        messages = [
            ChatMessage(role="system", content=_system_prompt(context)),
            ChatMessage(role="user", content=_user_prompt(patch=patch, context=context)),
        ]
        raw = await self._llm_client.complete_text(messages=messages)
        analysis = parse_analysis(raw)
        logger.info(f"Analysis for {context.filename}: {len(analysis.issues)} issue(s)")
        return analysis
