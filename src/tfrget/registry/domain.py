"""
Registry domain selection.
"""

from typing import Optional

from tfrget.constants import (
    DEFAULT_OPENTOFU_REGISTRY_DOMAIN,
    DEFAULT_REGISTRY_DOMAIN,
    OPENTOFU_IMPL,
)
from tfrget.env_utils import get_default_registry_override

from .interfaces import RegistryOptions


def get_default_registry_domain(options: Optional[RegistryOptions] = None) -> str:
    """
    Return the registry host to query when a source names none.

    The TG_TF_DEFAULT_REGISTRY_HOST environment variable wins when set; otherwise
    the default host of the active dialect is used (the Terraform registry when
    no options are given).

    Parameters:
        options (Optional[RegistryOptions]): Invocation settings carrying the dialect.

    Returns:
        str: The registry hostname.
    """
    override = get_default_registry_override()
    if override:
        return override

    if options is not None and options.terraform_implementation == OPENTOFU_IMPL:
        return DEFAULT_OPENTOFU_REGISTRY_DOMAIN

    return DEFAULT_REGISTRY_DOMAIN


def resolve_registry_domain(
    explicit_host: str, options: Optional[RegistryOptions] = None
) -> str:
    """Return `explicit_host` when non-empty, else the default registry domain."""
    if explicit_host:
        return explicit_host
    return get_default_registry_domain(options)
