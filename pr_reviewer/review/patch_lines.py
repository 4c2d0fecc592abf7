"""
Patch 行模型：hunk header 解码 + 单行分类。

约定：
- 所有“这一行是什么”的判断**只在这里做**；计数（additions/deletions）与行号回填共用同一个分类器，
  避免两边语义分叉（例如一边把 `+++` 算成新增、另一边没算）
- 分类顺序是关键：`+++`/`---` 必须先于 `+`/`-` 判断
"""

from __future__ import annotations

import re
from enum import Enum

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(?P<new_start>\d+)(?:,\d+)? @@")


class LineKind(str, Enum):
    """patch 中一行的类别（封闭集合）。"""

    HUNK_HEADER = "hunk_header"
    ADDITION = "addition"
    DELETION = "deletion"
    FILE_MARKER = "file_marker"
    OTHER = "other"


def decode_hunk_header(line: str) -> int | None:
    """
    解析 `@@ -a[,b] +c[,d] @@...`，返回新文件侧起始行号 c（1-based）。

    不是 hunk header 时返回 None（不是错误，调用方当作普通行处理）。
    """
    match = _HUNK_HEADER_RE.match(line)
    if match is None:
        return None
    return int(match.group("new_start"))


def is_malformed_hunk_header(line: str) -> bool:
    """以 `@@` 开头但不符合 hunk header 语法。"""
    return line.startswith("@@") and decode_hunk_header(line) is None


def classify_patch_line(line: str) -> LineKind:
    if decode_hunk_header(line) is not None:
        return LineKind.HUNK_HEADER
    # `\ No newline at end of file` 同样是结构性标注，不占新文件行号
    if line.startswith("+++") or line.startswith("---") or line.startswith("\\"):
        return LineKind.FILE_MARKER
    if line.startswith("+"):
        return LineKind.ADDITION
    if line.startswith("-"):
        return LineKind.DELETION
    return LineKind.OTHER
