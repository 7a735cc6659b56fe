"""
Environment input helpers.
"""

from __future__ import annotations

import os

from tfrget.constants import (
    AUTH_TOKEN_ENV_VAR,
    DEFAULT_REGISTRY_ENV_VAR,
    HOST_TOKEN_ENV_PREFIX,
)


def get_registry_token() -> str | None:
    """
    Return the fallback registry bearer token, or None when unset or empty.
    """
    token = os.environ.get(AUTH_TOKEN_ENV_VAR, "")
    return token or None


def get_default_registry_override() -> str | None:
    """
    Return the registry host override from the environment, if any.
    """
    host = os.environ.get(DEFAULT_REGISTRY_ENV_VAR, "")
    return host or None


def host_token_env_name(hostname: str) -> str:
    """
    Build the per-host token variable name the way Terraform does.

    Dots become underscores and hyphens become double underscores, so
    `app.example-corp.io` maps to `TF_TOKEN_app_example__corp_io`.
    """
    encoded = hostname.lower().replace("-", "__").replace(".", "_")
    return f"{HOST_TOKEN_ENV_PREFIX}{encoded}"


def get_host_token(hostname: str) -> str | None:
    """
    Return the token stored in the per-host environment variable, if any.
    """
    token = os.environ.get(host_token_env_name(hostname), "").strip()
    return token or None
