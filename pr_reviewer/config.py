"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验 URL/数值等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import BaseModel, Field, HttpUrl

from pr_reviewer.review.context import DEFAULT_RELEVANT_EXTENSIONS

DEFAULT_LLM_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_GITHUB_API_BASE_URL = "https://api.github.com"


class LLMConfig(BaseModel):
    base_url: HttpUrl
    api_key: str
    model: str


class GitHubConfig(BaseModel):
    api_base_url: HttpUrl
    token: str
    webhook_secret: str | None = None


class ReviewSettings(BaseModel):
    """单次 review 的预算控制（文件数上限 + 单文件 patch 长度上限）。"""

    max_files_per_review: int = Field(default=10, gt=0)
    max_diff_size: int = Field(default=5000, gt=0)
    relevant_extensions: tuple[str, ...] = DEFAULT_RELEVANT_EXTENSIONS
    webhook_review_delay_seconds: float = Field(default=5.0, ge=0)


class AppConfig(BaseModel):
    llm: LLMConfig
    github: GitHubConfig
    review: ReviewSettings = Field(default_factory=ReviewSettings)
    log_level: str = "INFO"


def _get(environ: Mapping[str, str], *keys: str) -> str | None:
    """按顺序取第一个非空值；模板里遗留的 `your_..._here` 占位符视为缺失。"""
    for key in keys:
        value = environ.get(key, "").strip()
        if value and not (value.startswith("your_") and value.endswith("_here")):
            return value
    return None


def _get_positive_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = _get(environ, key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got: {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{key} must be > 0, got: {value}")
    return value


def _get_extensions(environ: Mapping[str, str]) -> tuple[str, ...]:
    raw = _get(environ, "RELEVANT_EXTENSIONS")
    if raw is None:
        return DEFAULT_RELEVANT_EXTENSIONS
    extensions = [e.strip().lower() for e in raw.split(",") if e.strip()]
    return tuple(e if e.startswith(".") else f".{e}" for e in extensions)


def load_review_settings(environ: Mapping[str, str]) -> ReviewSettings:
    delay_raw = _get(environ, "WEBHOOK_REVIEW_DELAY_SECONDS")
    try:
        delay = float(delay_raw) if delay_raw is not None else 5.0
    except ValueError as exc:
        raise ValueError(f"WEBHOOK_REVIEW_DELAY_SECONDS must be a number, got: {delay_raw!r}") from exc
    return ReviewSettings(
        max_files_per_review=_get_positive_int(environ, "MAX_FILES_PER_REVIEW", 10),
        max_diff_size=_get_positive_int(environ, "MAX_DIFF_SIZE", 5000),
        relevant_extensions=_get_extensions(environ),
        webhook_review_delay_seconds=delay,
    )


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：缺失/为空/数值非法则抛 `ValueError`
    """
    llm_api_key = _get(environ, "LLM_API_KEY", "OPENAI_API_KEY")
    github_token = _get(environ, "GITHUB_TOKEN")

    missing: list[str] = []
    if llm_api_key is None:
        missing.append("LLM_API_KEY")
    if github_token is None:
        missing.append("GITHUB_TOKEN")
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    log_level = (_get(environ, "LOG_LEVEL") or "INFO").upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ValueError(f"Unknown LOG_LEVEL: {log_level}")

    # 交给 Pydantic 做类型校验（例如 URL 合法性）
    return AppConfig(
        llm=LLMConfig(
            base_url=_get(environ, "LLM_BASE_URL") or DEFAULT_LLM_BASE_URL,
            api_key=llm_api_key,
            model=_get(environ, "LLM_MODEL", "OPENAI_MODEL") or DEFAULT_LLM_MODEL,
        ),
        github=GitHubConfig(
            api_base_url=_get(environ, "GITHUB_API_BASE_URL") or DEFAULT_GITHUB_API_BASE_URL,
            token=github_token,
            webhook_secret=_get(environ, "GITHUB_WEBHOOK_SECRET"),
        ),
        review=load_review_settings(environ),
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    """入口（CLI / 服务）调用一次；各模块只用 `logging.getLogger(__name__)`。"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
