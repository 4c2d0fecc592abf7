"""
Patch 粗粒度指标（确定性、不依赖 LLM）。

给 issue finder 的额外上下文：改动的分支复杂度 + 新增代码的大致类型。
"""

from __future__ import annotations

import re

from pr_reviewer.review.patch_lines import LineKind
from pr_reviewer.review.patch_lines import classify_patch_line

_BRANCH_KEYWORD_RE = re.compile(r"\b(if|for|while|switch|catch|function|class)\b")


def estimate_complexity(patch: str) -> int:
    """统计包含分支/结构关键字的 patch 行数。"""
    return sum(1 for line in patch.split("\n") if _BRANCH_KEYWORD_RE.search(line))


def detect_change_types(patch: str) -> list[str]:
    """
    只看新增行，归类为 dependency/structure/test/comment/logic。

    每行只归一类，优先级与列表顺序一致。
    """
    types: set[str] = set()
    for line in patch.split("\n"):
        if classify_patch_line(line) is not LineKind.ADDITION:
            continue
        if "import" in line or "require" in line:
            types.add("dependency")
        elif "function" in line or "class" in line:
            types.add("structure")
        elif "test" in line or "spec" in line:
            types.add("test")
        elif "TODO" in line or "FIXME" in line:
            types.add("comment")
        else:
            types.add("logic")
    return sorted(types)
