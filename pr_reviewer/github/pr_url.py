from __future__ import annotations

import re

from pr_reviewer.review.models import PullRequestRef

_PR_URL_RE = re.compile(r"https?://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/pulls?/(?P<number>\d+)")


def parse_pull_request_url(url: str) -> PullRequestRef | None:
    """`https://github.com/<owner>/<repo>/pull/<n>`（也接受 `pulls`）；格式不对返回 None。"""
    match = _PR_URL_RE.search(url.strip())
    if match is None:
        return None
    return PullRequestRef(owner=match.group("owner"), repo=match.group("repo"), number=int(match.group("number")))
