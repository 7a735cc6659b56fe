"""
Authenticated HTTP access to module registries.

Each call issues exactly one GET. Requests for hosts with stored credentials
are authenticated by those credentials; otherwise the TG_TF_REGISTRY_TOKEN
bearer token is attached when set.
"""

from typing import Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.structures import CaseInsensitiveDict

from tfrget.constants import DEFAULT_REQUEST_TIMEOUT
from tfrget.env_utils import get_registry_token
from tfrget.exceptions import RegistryAPIError, TransportError
from tfrget.log_utils import logger
from tfrget.utils import get_http_session

from .credentials import CliConfigCredentialsSource
from .interfaces import CredentialsSource


class RegistryHttpClient:
    """
    Buffered GET requests with host-scoped or environment token authentication.

    Usage:
        client = RegistryHttpClient(timeout=10)
        body, headers = client.fetch_json("https://registry.terraform.io/.well-known/terraform.json")
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        credentials_source: Optional[CredentialsSource] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Parameters:
            session (Optional[requests.Session]): Session to send through; defaults to the process-wide session.
            credentials_source (Optional[CredentialsSource]): Host credential lookup; defaults to CliConfigCredentialsSource.
            timeout (float): Seconds allowed for each request.
        """
        self.session = session if session is not None else get_http_session()
        self.credentials_source = (
            credentials_source
            if credentials_source is not None
            else CliConfigCredentialsSource()
        )
        self.timeout = timeout

    def apply_host_token(self, request: requests.PreparedRequest) -> None:
        """
        Authenticate `request` for its host.

        Stored host credentials take precedence; the environment bearer token is
        only used when the host has none.
        """
        hostname = urlsplit(request.url or "").hostname or ""
        credentials = self.credentials_source.for_host(hostname) if hostname else None
        if credentials is not None:
            credentials.prepare_request(request)
            return

        token = get_registry_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    def fetch_json(self, url: str) -> Tuple[bytes, CaseInsensitiveDict]:
        """
        GET `url` and return the fully buffered body with the response headers.

        Returns:
            Tuple[bytes, CaseInsensitiveDict]: (body, headers)

        Raises:
            RegistryAPIError: If the status code is outside [200, 300).
            TransportError: For connection, timeout and other request failures.
        """
        prepared = self.session.prepare_request(requests.Request("GET", url))
        self.apply_host_token(prepared)

        settings = self.session.merge_environment_settings(
            prepared.url, {}, None, None, None
        )
        logger.debug(f"Registry request: GET {url}")
        try:
            response = self.session.send(prepared, timeout=self.timeout, **settings)
        except requests.RequestException as e:
            raise TransportError(url, details=str(e)) from e

        try:
            logger.debug(f"Registry response: {response.status_code} for {url}")
            if response.status_code < 200 or response.status_code >= 300:
                raise RegistryAPIError(url, response.status_code)
            try:
                body = response.content
            except requests.RequestException as e:
                raise TransportError(url, details=str(e)) from e
            return body, response.headers
        finally:
            try:
                response.close()
            except (OSError, requests.RequestException) as e:
                logger.warning(f"Error closing response body: {e}")
