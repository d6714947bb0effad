"""Process-wide defaults (environment) and per-request fetch options."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_BODY_SIZE = 15 * 1024 * 1024
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible; fastfeedreader/0.1; +https://pypi.org/project/fastfeedreader/)"
)

MediaProxyMode = Literal["none", "http-only", "all"]


class Settings(BaseSettings):
    """Environment configuration; variables override the field defaults."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    http_client_timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    http_client_max_body_size: int = Field(default=DEFAULT_MAX_BODY_SIZE, gt=0)
    http_client_user_agent: str = DEFAULT_USER_AGENT
    http_client_proxy: str = ""
    media_proxy_mode: MediaProxyMode = Field(
        default="http-only",
        validation_alias=AliasChoices("media_proxy_mode", "proxy_images"),
    )
    # Comma-separated: image, audio, video
    media_proxy_resource_types: str = "image"
    media_proxy_route: str = "/proxy/{encoded_url}"

    @property
    def resource_types(self) -> list[str]:
        return [
            part.strip().lower()
            for part in self.media_proxy_resource_types.split(",")
            if part.strip()
        ]


class FetchConfig(BaseModel):
    """Options for one HTTP request."""

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_body_size: int = Field(default=DEFAULT_MAX_BODY_SIZE, gt=0)
    use_proxy: bool = False
    proxy_url: str = ""
    follow_redirects: bool = True
    allow_self_signed_certificates: bool = False
    username: str = ""
    password: str = ""
    authorization: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    cookie: str = ""
    etag: str = ""
    last_modified: str = ""
    headers: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, **overrides: Any
    ) -> FetchConfig:
        settings = settings or Settings()
        values: dict[str, Any] = {
            "timeout": settings.http_client_timeout,
            "max_body_size": settings.http_client_max_body_size,
            "user_agent": settings.http_client_user_agent,
            "proxy_url": settings.http_client_proxy,
        }
        values.update(overrides)
        return cls(**values)

    def without_redirects(self) -> FetchConfig:
        return self.model_copy(update={"follow_redirects": False})
