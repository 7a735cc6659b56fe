"""
Download location lookup for a module version.

The registry answers the download request either with an X-Terraform-Get
header or with a JSON body such as {"location": "git::https://..."}. The
header wins when both are present.
"""

import json

from requests.structures import CaseInsensitiveDict

from tfrget.constants import LOCATION_BODY_KEY, TERRAFORM_GET_HEADER
from tfrget.exceptions import ModuleDownloadError
from tfrget.log_utils import logger

from .http_client import RegistryHttpClient
from .urls import get_download_url_from_location


def extract_location(module_url: str, body: bytes, headers: CaseInsensitiveDict) -> str:
    """
    Pick the raw download location out of a download response.

    Raises:
        ModuleDownloadError: If the header is empty and the body has no usable location.
    """
    terraform_get = headers.get(TERRAFORM_GET_HEADER, "")
    if terraform_get:
        return terraform_get

    text = body.decode("utf-8", errors="replace")
    if text.strip():
        try:
            response_json = json.loads(text)
        except ValueError as e:
            raise ModuleDownloadError(
                module_url, f"Error parsing response body {text}: {e}"
            ) from e
        if isinstance(response_json, dict):
            location = response_json.get(LOCATION_BODY_KEY)
            if isinstance(location, str) and location:
                return location

    raise ModuleDownloadError(
        module_url,
        f"no source URL was returned in header {TERRAFORM_GET_HEADER} "
        f"and in {LOCATION_BODY_KEY} response from download URL",
    )


def get_terraform_get_location(http_client: RegistryHttpClient, module_url: str) -> str:
    """
    Request `module_url` and return the raw download location it advertises.

    Raises:
        ModuleDownloadError: If neither the header nor the body carries a location.
        RegistryAPIError: If the request returns a non-2xx status.
        TransportError: If the request fails.
    """
    body, headers = http_client.fetch_json(module_url)
    return extract_location(module_url, body, headers)


def resolve_download_location(http_client: RegistryHttpClient, module_url: str) -> str:
    """
    Return the fully qualified source URL for a module version.

    Relative locations are resolved against `module_url`.
    """
    location = get_terraform_get_location(http_client, module_url)
    download_url = get_download_url_from_location(module_url, location)
    logger.debug(f"Module download location for {module_url}: {download_url}")
    return download_url
