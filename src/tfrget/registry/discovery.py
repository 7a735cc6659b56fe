"""
Remote service discovery for module registries.

A registry advertises where its module API lives in a well-known JSON
document, e.g. {"modules.v1": "/v1/modules/"}.
"""

import json
from urllib.parse import urlunsplit

from tfrget.constants import MODULES_SERVICE_KEY, SERVICE_DISCOVERY_PATH
from tfrget.exceptions import ServiceDiscoveryError
from tfrget.log_utils import logger

from .http_client import RegistryHttpClient


def service_discovery_url(domain: str) -> str:
    """Return the URL of the discovery document for `domain`."""
    return urlunsplit(("https", domain, SERVICE_DISCOVERY_PATH, "", ""))


def parse_discovery_document(body: bytes) -> str:
    """
    Extract the modules API base path from a discovery document.

    Returns:
        str: The advertised base path, verbatim (relative or absolute).

    Raises:
        ServiceDiscoveryError: If the body is not a JSON object carrying a string `modules.v1` entry.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        document = json.loads(text)
    except ValueError as e:
        raise ServiceDiscoveryError(
            f"Error parsing response body {text}: {e}"
        ) from e

    if not isinstance(document, dict):
        raise ServiceDiscoveryError(f"Response body {text} is not a JSON object")

    modules_path = document.get(MODULES_SERVICE_KEY)
    if not isinstance(modules_path, str) or not modules_path:
        raise ServiceDiscoveryError(
            f"Response body {text} does not advertise {MODULES_SERVICE_KEY}"
        )
    return modules_path


def get_module_registry_base_path(http_client: RegistryHttpClient, domain: str) -> str:
    """
    Discover where `domain` serves its module registry API.

    Raises:
        ServiceDiscoveryError: If the discovery document is unusable.
        RegistryAPIError: If the document request returns a non-2xx status.
        TransportError: If the request fails.
    """
    body, _headers = http_client.fetch_json(service_discovery_url(domain))
    modules_path = parse_discovery_document(body)
    logger.debug(f"Registry {domain} serves modules at {modules_path}")
    return modules_path
