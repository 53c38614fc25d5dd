"""Credentials and HTTP settings of the synchronised providers."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

GITHUB_BASE_URL = "https://api.github.com"
MAILGUN_BASE_URL = "https://api.mailgun.net/v3"
DEFAULT_ZULIP_BASE_URL = "https://rust-lang.zulipchat.com/api/v1"

EMAIL_KEY_ENV = "EMAIL_ENCRYPTION_KEY"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    token: str
    resilience: ResilienceConfig


@dataclass(frozen=True, slots=True)
class MailgunConfig:
    api_token: str
    encryption_key: str
    resilience: ResilienceConfig


@dataclass(frozen=True, slots=True)
class ZulipConfig:
    username: str
    api_token: str
    resilience: ResilienceConfig


def get_github_config(*, resilience: ResilienceConfig | None = None) -> GitHubConfig:
    values = require_env_vars(("GITHUB_TOKEN",))
    return GitHubConfig(
        token=values["GITHUB_TOKEN"],
        resilience=resilience
        or ResilienceConfig(
            name="github",
            base_url=GITHUB_BASE_URL,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        ),
    )


def get_mailgun_config(*, resilience: ResilienceConfig | None = None) -> MailgunConfig:
    values = require_env_vars(("MAILGUN_API_TOKEN", EMAIL_KEY_ENV))
    return MailgunConfig(
        api_token=values["MAILGUN_API_TOKEN"],
        encryption_key=values[EMAIL_KEY_ENV],
        resilience=resilience
        or ResilienceConfig(
            name="mailgun",
            base_url=MAILGUN_BASE_URL,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        ),
    )


def get_zulip_config(*, resilience: ResilienceConfig | None = None) -> ZulipConfig:
    values = require_env_vars(("ZULIP_USERNAME", "ZULIP_API_TOKEN"))
    return ZulipConfig(
        username=values["ZULIP_USERNAME"],
        api_token=values["ZULIP_API_TOKEN"],
        resilience=resilience
        or ResilienceConfig(
            name="zulip",
            base_url=optional_env_var("ZULIP_BASE_URL") or DEFAULT_ZULIP_BASE_URL,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        ),
    )


def get_email_key(env: str = EMAIL_KEY_ENV) -> str:
    return require_env_vars((env,))[env]
