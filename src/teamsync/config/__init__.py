"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .providers import (
    EMAIL_KEY_ENV,
    GitHubConfig,
    MailgunConfig,
    ZulipConfig,
    get_email_key,
    get_github_config,
    get_mailgun_config,
    get_zulip_config,
)
from .sync import SyncConfig, default_data_dir, get_sync_config

__all__ = [
    "EMAIL_KEY_ENV",
    "ConfigurationError",
    "GitHubConfig",
    "MailgunConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncConfig",
    "ZulipConfig",
    "configure_logging",
    "default_data_dir",
    "env_float",
    "env_int",
    "get_email_key",
    "get_github_config",
    "get_mailgun_config",
    "get_sync_config",
    "get_zulip_config",
    "optional_env_var",
    "require_env_vars",
]
