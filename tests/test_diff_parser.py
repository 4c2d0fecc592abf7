from __future__ import annotations

import pytest

from pr_reviewer.review.diff_parser import MalformedHunkHeaderError
from pr_reviewer.review.diff_parser import build_file_patch
from pr_reviewer.review.diff_parser import extract_added_line_numbers
from pr_reviewer.review.diff_parser import split_diff_into_files
from pr_reviewer.review.patch_lines import LineKind
from pr_reviewer.review.patch_lines import classify_patch_line

PR_DIFF = "\n".join(
    [
        "diff --git a/src/app.ts b/src/app.ts",
        "index 1234567..89abcde 100644",
        "--- a/src/app.ts",
        "+++ b/src/app.ts",
        "@@ -1,3 +1,4 @@",
        " import x from 'x';",
        "+import y from 'y';",
        " const a = 1;",
        "-const b = 2;",
        "+const b = 3;",
        "diff --git a/src/new.ts b/src/new.ts",
        "new file mode 100644",
        "index 0000000..abcdef0",
        "--- /dev/null",
        "+++ b/src/new.ts",
        "@@ -0,0 +1,2 @@",
        "+export const x = 1;",
        "+export const y = 2;",
        "diff --git a/Old.cs b/Renamed.cs",
        "similarity index 100%",
        "rename from Old.cs",
        "rename to Renamed.cs",
        "diff --git a/gone.js b/gone.js",
        "deleted file mode 100644",
        "index abcdef0..0000000",
        "--- a/gone.js",
        "+++ /dev/null",
        "@@ -1,1 +0,0 @@",
        "-console.log(1);",
        "",
    ]
)


def test_extract_changed_line_numbers() -> None:
    diff = "\n".join(
        [
            "@@ -1,3 +1,4 @@",
            " line1",
            "-line2",
            "+line2_new",
            "+line3_new",
            " line4",
        ]
    )
    lines = extract_added_line_numbers(patch=diff)
    assert lines == [2, 3]


def test_extract_added_line_numbers_context_and_deletions() -> None:
    patch = "@@ -1,3 +1,4 @@\n context\n+added1\n context2\n+added2\n-removed\n context3"
    assert extract_added_line_numbers(patch) == [2, 4]


def test_extract_added_line_numbers_resets_per_hunk() -> None:
    patch = "@@ -1,2 +1,2 @@\n context\n+a\n@@ -10,2 +20,2 @@\n context\n+b\n"
    assert extract_added_line_numbers(patch) == [2, 21]


def test_extract_added_line_numbers_without_hunks_is_empty() -> None:
    assert extract_added_line_numbers("") == []
    assert extract_added_line_numbers("+orphan line\n context") == []


def test_extract_added_line_numbers_ignores_no_newline_marker() -> None:
    patch = "\n".join(
        [
            "@@ -1 +1 @@",
            "-old",
            "\\ No newline at end of file",
            "+new",
            "\\ No newline at end of file",
        ]
    )
    assert extract_added_line_numbers(patch) == [1]


def test_extract_added_line_numbers_strict_rejects_malformed_header() -> None:
    patch = "@@ -1,2 +1,2 @@\n ctx\n+a\n@@ bogus @@\n+b"
    with pytest.raises(MalformedHunkHeaderError):
        extract_added_line_numbers(patch)


def test_extract_added_line_numbers_lenient_treats_malformed_header_as_context() -> None:
    patch = "@@ -1,2 +1,2 @@\n ctx\n+a\n@@ bogus @@\n+b"
    assert extract_added_line_numbers(patch, strict=False) == [2, 4]


def test_extract_added_line_numbers_treats_triple_plus_content_as_marker() -> None:
    # `+++i;` 与文件头 `+++` 无法区分：不计数，也不推进行号
    patch = "\n".join(["@@ -1,1 +1,3 @@", " ctx", "+++i;", "+next"])
    assert extract_added_line_numbers(patch) == [2]


@pytest.mark.parametrize(
    "patch",
    [
        "@@ -1,3 +1,4 @@\n a\n+b\n c\n+d",
        "@@ -5,2 +5,3 @@\n-x\n+y\n+z\n w",
        "@@ -0,0 +1,3 @@\n+one\n+two\n+three",
        "@@ -7,3 +7,2 @@\n keep\n-drop\n keep",
    ],
)
def test_mapping_length_matches_addition_count(patch: str) -> None:
    additions = sum(1 for line in patch.split("\n") if classify_patch_line(line) is LineKind.ADDITION)
    assert len(extract_added_line_numbers(patch)) == additions


def test_build_file_patch_never_counts_file_markers() -> None:
    lines = ["@@ -1,2 +1,2 @@", "--- a/x.ts", "+++ b/x.ts", "-old", "+new", " ctx"]
    patch, additions, deletions = build_file_patch(lines)
    assert patch == "\n".join(lines)
    assert additions == 1
    assert deletions == 1


def test_split_diff_into_files_extracts_name_status_and_counts() -> None:
    files = split_diff_into_files(PR_DIFF)
    assert [f.filename for f in files] == ["src/app.ts", "src/new.ts", "Renamed.cs", "gone.js"]
    assert [f.status for f in files] == ["modified", "added", "renamed", "deleted"]

    app, new, renamed, gone = files
    assert (app.additions, app.deletions) == (2, 1)
    assert app.patch.startswith("@@ -1,3 +1,4 @@\n import x from 'x';")
    assert extract_added_line_numbers(app.patch) == [2, 4]

    assert (new.additions, new.deletions) == (2, 0)
    assert extract_added_line_numbers(new.patch) == [1, 2]

    assert (renamed.patch, renamed.additions, renamed.deletions) == ("", 0, 0)
    assert (gone.additions, gone.deletions) == (0, 1)


def test_split_diff_new_file_mode_is_added() -> None:
    diff = "\n".join(
        [
            "diff --git a/a.ts b/a.ts",
            "new file mode 100644",
            "--- /dev/null",
            "+++ b/a.ts",
            "@@ -0,0 +1 @@",
            "+x",
        ]
    )
    (file_change,) = split_diff_into_files(diff)
    assert file_change.status == "added"


def test_split_diff_metadata_only_section_is_kept() -> None:
    diff = "\n".join(
        [
            "diff --git a/script.sh b/script.sh",
            "old mode 100644",
            "new mode 100755",
        ]
    )
    (file_change,) = split_diff_into_files(diff)
    assert file_change.filename == "script.sh"
    assert file_change.patch == ""
    assert (file_change.additions, file_change.deletions) == (0, 0)


def test_split_diff_drops_whitespace_only_section() -> None:
    diff = (
        "diff --git a/a.ts b/a.ts\n@@ -1 +1 @@\n-x\n+y\n"
        "diff --git   \n\n"
        "diff --git a/b.ts b/b.ts\n@@ -1 +1 @@\n-p\n+q\n"
    )
    files = split_diff_into_files(diff)
    assert [f.filename for f in files] == ["a.ts", "b.ts"]


def test_split_diff_drops_section_without_filename() -> None:
    diff = "diff --git garbage\n@@ -1 +1 @@\n+x\ndiff --git a/ok.ts b/ok.ts\n@@ -1 +1 @@\n+y\n"
    files = split_diff_into_files(diff)
    assert [f.filename for f in files] == ["ok.ts"]


def test_split_diff_ignores_status_markers_after_first_hunk() -> None:
    diff = "\n".join(
        [
            "diff --git a/a.ts b/a.ts",
            "@@ -1 +1,2 @@",
            " x",
            "+new file mode 100644",
        ]
    )
    (file_change,) = split_diff_into_files(diff)
    assert file_change.status == "modified"
    assert file_change.additions == 1


def test_split_and_reconcile_are_idempotent() -> None:
    first = split_diff_into_files(PR_DIFF)
    second = split_diff_into_files(PR_DIFF)
    assert [f.model_dump() for f in first] == [f.model_dump() for f in second]
    assert [extract_added_line_numbers(f.patch) for f in first] == [
        extract_added_line_numbers(f.patch) for f in second
    ]
