"""
Module registry getter.

Downloads modules addressed with tfr:// URLs:

    tfr://REGISTRY_DOMAIN/MODULE_PATH?version=VERSION

REGISTRY_DOMAIN is the registry host (e.g. registry.terraform.io) and may be
left empty to use the default registry, MODULE_PATH is the module's registry
path (e.g. terraform-aws-modules/vpc/aws) and VERSION the exact version to
download. A '//subdir' suffix on the module path selects a subdirectory of
the module.

The module registry protocol is used to find where the module source really
lives; the source itself is transferred by a FetchEngine.

Private registries are authenticated with host credentials (TF_TOKEN_<host>
or credentials.tfrc.json) or, failing those, with the TG_TF_REGISTRY_TOKEN
bearer token.
"""

from typing import Optional

import requests

from tfrget.exceptions import UnsupportedOperationError
from tfrget.log_utils import logger

from .credentials import CliConfigCredentialsSource
from .discovery import get_module_registry_base_path
from .domain import resolve_registry_domain
from .engine import DefaultFetchEngine
from .http_client import RegistryHttpClient
from .interfaces import (
    CLIENT_MODE_DIR,
    CredentialsSource,
    FetchEngine,
    GetterClient,
    Pathish,
    RegistryOptions,
    ResolvedSource,
)
from .redirect import resolve_download_location
from .subdir import materialize_subdir
from .urls import build_request_url, parse_module_reference


class RegistryGetter:
    """
    Resolves tfr:// sources through the module registry protocol and fetches them.

    Usage:
        getter = RegistryGetter(options=RegistryOptions(terraform_implementation="opentofu"))
        getter.get("/tmp/vpc", "tfr:///terraform-aws-modules/vpc/aws?version=5.0.0")

    Each call is an independent pipeline; nothing is cached between calls.
    """

    def __init__(
        self,
        options: Optional[RegistryOptions] = None,
        engine: Optional[FetchEngine] = None,
        credentials_source: Optional[CredentialsSource] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Parameters:
            options (Optional[RegistryOptions]): Dialect and timeout settings.
            engine (Optional[FetchEngine]): Engine that transfers resolved sources; defaults to DefaultFetchEngine.
            credentials_source (Optional[CredentialsSource]): Host credential lookup; defaults to CliConfigCredentialsSource.
            session (Optional[requests.Session]): HTTP session for registry calls; defaults to the process-wide session.
        """
        self.options = options
        self.engine = engine if engine is not None else DefaultFetchEngine()
        if credentials_source is None:
            credentials_file = options.credentials_file if options else None
            credentials_source = CliConfigCredentialsSource(credentials_file)
        self.credentials_source = credentials_source
        self.session = session
        self.client: Optional[GetterClient] = None

    def set_client(self, client: GetterClient) -> None:
        """Attach the fetch client whose options and timeout govern later calls."""
        self.client = client

    def client_mode(self, _url: str) -> str:
        """Registry modules are always whole directory trees."""
        return CLIENT_MODE_DIR

    def _client_options(self) -> dict:
        return dict(self.client.options) if self.client is not None else {}

    def _request_timeout(self) -> float:
        if self.client is not None and self.client.timeout is not None:
            return self.client.timeout
        if self.options is not None:
            return self.options.request_timeout
        return RegistryOptions().request_timeout

    def _http_client(self) -> RegistryHttpClient:
        return RegistryHttpClient(
            session=self.session,
            credentials_source=self.credentials_source,
            timeout=self._request_timeout(),
        )

    def resolve(self, source_url: str) -> ResolvedSource:
        """
        Resolve a tfr:// source to the URL and subdirectory to fetch.

        Raises:
            MalformedRegistryURLError: If the version query is missing or repeated (before any request is made).
            ServiceDiscoveryError: If the registry's discovery document is unusable.
            RegistryAPIError: If a registry call returns a non-2xx status.
            ModuleDownloadError: If the registry does not return a download location.
            TransportError: If a registry call fails.
        """
        reference = parse_module_reference(
            source_url, self.engine.split_source_and_subdir
        )

        registry_domain = resolve_registry_domain(reference.registry_host, self.options)
        http_client = self._http_client()

        base_path = get_module_registry_base_path(http_client, registry_domain)
        module_url = build_request_url(
            registry_domain, base_path, reference.module_path, reference.version
        )
        download_url = resolve_download_location(http_client, module_url)

        source, embedded_subdir = self.engine.split_source_and_subdir(download_url)
        return ResolvedSource(
            absolute_url=source,
            embedded_subdir=embedded_subdir,
            requested_subdir=reference.requested_subdir,
        )

    def get(self, destination: Pathish, source_url: str) -> None:
        """
        Download the module addressed by `source_url` into `destination`.

        Without any subdirectory the resolved source is fetched straight into
        `destination`. Otherwise the source is staged first and only the
        combined subdirectory (download location subdir, then requested subdir)
        replaces the contents of `destination`.
        """
        resolved = self.resolve(source_url)
        options = self._client_options()

        if not resolved.embedded_subdir and not resolved.requested_subdir:
            logger.info(f"Downloading {source_url} from {resolved.absolute_url}")
            self.engine.fetch(destination, resolved.absolute_url, options)
            return

        logger.info(
            f"Downloading {source_url} from {resolved.absolute_url} (subdir {resolved.subdir})"
        )
        materialize_subdir(
            self.engine, destination, resolved.absolute_url, resolved.subdir, options
        )

    def get_file(self, destination: Pathish, source_url: str) -> None:
        """The registry only serves whole module trees, so single files cannot be fetched."""
        raise UnsupportedOperationError(
            "GetFile is not implemented for the Terraform Registry Getter"
        )
