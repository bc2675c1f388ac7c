from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _normalize_term_list(values: list[str], *, allow_empty: bool) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()

    for item in values:
        term = (item or "").strip()
        if not term:
            continue
        key = term.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(term)

    if not allow_empty and not out:
        raise ValueError("must contain at least one non-empty entry")
    return out


PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]


class HiveConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    username: str | None = None
    username_env: str = "HIVE_USERNAME"
    api_urls: list[str] = Field(
        default_factory=lambda: ["https://api.hive.blog", "https://api.deathwing.me"]
    )
    timeout_seconds: float = Field(15.0, gt=0.0)
    posts_limit: PositiveInt = 100

    @field_validator("username_env")
    @classmethod
    def _username_env_must_be_valid(cls, v: str) -> str:
        name = (v or "").strip()
        if not _ENV_NAME_RE.fullmatch(name):
            raise ValueError("must be a valid environment variable name")
        return name

    @field_validator("api_urls")
    @classmethod
    def _api_urls_must_be_http(cls, v: list[str]) -> list[str]:
        urls = _normalize_term_list(v, allow_empty=False)
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"not an http(s) URL: {url}")
        return urls


class RetrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: PositiveInt = 3
    base_delay_seconds: NonNegativeFloat = 1.0
    max_delay_seconds: NonNegativeFloat = 10.0
    jitter_ratio: float = Field(0.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _cap_must_cover_base(self) -> "RetrySettings":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self


class PortfolioConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    hidden_tag: str = "hidden"
    page_size: PositiveInt = 24
    refresh_thumbnails: bool = True
    refresh_workers: PositiveInt = 4


class ExhibitionsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    title_keywords: list[str] = Field(
        default_factory=lambda: ["exposições", "exhibitions", "exibições"]
    )
    fallback_recent_posts: int = Field(5, ge=0)

    @field_validator("title_keywords")
    @classmethod
    def _normalize_keywords(cls, v: list[str]) -> list[str]:
        return _normalize_term_list(v, allow_empty=False)


class MediaConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ipfs_markers: list[str] = Field(default_factory=lambda: ["ipfs.skatehive.app/ipfs/"])
    proxy_base: str = "https://images.hive.blog/0x0/"

    @field_validator("ipfs_markers")
    @classmethod
    def _normalize_markers(cls, v: list[str]) -> list[str]:
        return _normalize_term_list(v, allow_empty=True)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    hive: HiveConfig = Field(default_factory=HiveConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    portfolio: PortfolioConfig = Field(default_factory=PortfolioConfig)
    exhibitions: ExhibitionsConfig = Field(default_factory=ExhibitionsConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
