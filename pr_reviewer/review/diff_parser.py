"""
Unified diff 解析（非 AI，必须确定性）。

三步：
- `split_diff_into_files`：整份 PR diff -> 每个文件一个 `FileChange`
- `build_file_patch`：把某个文件的 hunk 行拼回 patch 并统计增删行数
- `extract_added_line_numbers`：逐行走 patch，算出每一行新增代码在新文件中的行号

注意：行号算错，所有行内评论都会贴到错误的代码上；这里宁可抛错也不要“看起来成功”。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from pr_reviewer.review.models import ChangeStatus
from pr_reviewer.review.models import FileChange
from pr_reviewer.review.patch_lines import LineKind
from pr_reviewer.review.patch_lines import classify_patch_line
from pr_reviewer.review.patch_lines import decode_hunk_header
from pr_reviewer.review.patch_lines import is_malformed_hunk_header

logger = logging.getLogger(__name__)

_FILE_SEPARATOR_RE = re.compile(r"^diff --git", re.MULTILINE)
_GIT_HEADER_PATHS_RE = re.compile(r"^\s*a/(?P<old>.+) b/(?P<new>.+)$")


class MalformedHunkHeaderError(ValueError):
    """patch 中出现以 `@@` 开头但无法解析的行（会导致后续行号整体错位）。"""

    pass


def split_diff_into_files(diff: str) -> list[FileChange]:
    """
    按 `diff --git` 拆分整份 diff。

    - 空白段落直接丢弃
    - 解析不出文件名的段落丢弃（不抛错，继续处理其他文件）
    - 没有 hunk 的文件（纯 rename / mode 变更）保留，patch 为空
    """
    files: list[FileChange] = []
    for section in _FILE_SEPARATOR_RE.split(diff):
        if not section.strip():
            continue
        file_change = _parse_file_section(lines=section.split("\n"))
        if file_change is None:
            logger.debug("Dropping diff section without a resolvable filename")
            continue
        files.append(file_change)
    return files


def _parse_file_section(lines: Sequence[str]) -> FileChange | None:
    filename = ""
    status: ChangeStatus = "modified"
    patch_start: int | None = None

    for index, line in enumerate(lines):
        if decode_hunk_header(line) is not None:
            patch_start = index
            break
        if index == 0:
            header = _GIT_HEADER_PATHS_RE.match(line)
            if header is not None:
                filename = header.group("new").rstrip("\r")
            continue
        if line.startswith("new file mode"):
            status = "added"
        elif line.startswith("deleted file mode"):
            status = "deleted"
        elif line.startswith("rename from"):
            status = "renamed"
        elif line.startswith("rename to "):
            filename = line.removeprefix("rename to ").strip()
        elif line.startswith("+++ b/"):
            filename = line.removeprefix("+++ b/").rstrip("\r")

    if not filename:
        return None
    if patch_start is None:
        return FileChange(filename=filename, status=status)

    patch, additions, deletions = build_file_patch(lines=lines[patch_start:])
    return FileChange(
        filename=filename,
        status=status,
        additions=additions,
        deletions=deletions,
        patch=patch,
    )


def build_file_patch(lines: Sequence[str]) -> tuple[str, int, int]:
    """
    把 hunk 行原样拼回 patch，并统计 (additions, deletions)。

    计数只认分类器的 ADDITION/DELETION，`+++`/`---` 等结构行不算。
    """
    additions = 0
    deletions = 0
    for line in lines:
        kind = classify_patch_line(line)
        if kind is LineKind.ADDITION:
            additions += 1
        elif kind is LineKind.DELETION:
            deletions += 1
    return "\n".join(lines), additions, deletions


def extract_added_line_numbers(patch: str, strict: bool = True) -> list[int]:
    """
    计算 patch 中每一行新增代码在新文件中的行号（按出现顺序）。

    - hunk header：行号游标重置为 newStart
    - 新增行：记录当前行号，然后 +1
    - 上下文行：只 +1（新旧文件都有这一行）
    - 删除行 / 文件标记行：不动
    - strict=True 时遇到无法解析的 `@@` 行直接抛 `MalformedHunkHeaderError`
    """
    added: list[int] = []
    current_line = 1
    seen_hunk = False
    for line in patch.split("\n"):
        kind = classify_patch_line(line)
        if kind is LineKind.HUNK_HEADER:
            new_start = decode_hunk_header(line)
            if new_start is None:
                raise MalformedHunkHeaderError(f"Invalid diff hunk header: {line}")
            current_line = new_start
            seen_hunk = True
            continue
        if strict and is_malformed_hunk_header(line):
            raise MalformedHunkHeaderError(f"Invalid diff hunk header: {line}")
        if not seen_hunk:
            continue
        if kind is LineKind.ADDITION:
            added.append(current_line)
            current_line += 1
        elif kind is LineKind.OTHER:
            current_line += 1
    return added
