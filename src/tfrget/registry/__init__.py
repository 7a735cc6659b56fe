"""
tfrget Registry Subsystem

Resolves tfr:// module sources through the module registry protocol and
hands the resolved source to a fetch engine.

Core Components:
- interfaces: Data structures and collaborator interfaces
- domain: Default registry host selection
- credentials: Host-scoped credential lookup
- http_client: Authenticated registry HTTP access
- discovery: Remote service discovery
- urls: Source parsing and request URL construction
- redirect: Download location lookup
- subdir: Staged subdirectory materialization
- engine: Default content-fetch engine
- getter: The RegistryGetter entry point
"""

from .credentials import CliConfigCredentialsSource, TokenCredentials
from .discovery import get_module_registry_base_path
from .domain import get_default_registry_domain
from .engine import DefaultFetchEngine
from .getter import RegistryGetter
from .http_client import RegistryHttpClient
from .interfaces import (
    CredentialsSource,
    FetchEngine,
    GetterClient,
    HostCredentials,
    ModuleReference,
    RegistryOptions,
    ResolvedSource,
)
from .redirect import get_terraform_get_location, resolve_download_location
from .subdir import materialize_subdir
from .urls import build_request_url, get_download_url_from_location

__all__ = [
    # Interfaces
    "CredentialsSource",
    "FetchEngine",
    "GetterClient",
    "HostCredentials",
    "ModuleReference",
    "RegistryOptions",
    "ResolvedSource",
    # Entry point
    "RegistryGetter",
    # Collaborators
    "CliConfigCredentialsSource",
    "DefaultFetchEngine",
    "RegistryHttpClient",
    "TokenCredentials",
    # Protocol steps
    "build_request_url",
    "get_default_registry_domain",
    "get_download_url_from_location",
    "get_module_registry_base_path",
    "get_terraform_get_location",
    "materialize_subdir",
    "resolve_download_location",
]
