"""
URL handling for the module registry protocol.

Parses tfr:// sources into module references, builds versioned download
request URLs, and anchors relative download locations to the request URL.
"""

from typing import Callable, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit, urlunsplit

from tfrget.constants import (
    REGISTRY_URL_SCHEME,
    RELATIVE_LOCATION_PREFIXES,
    VERSION_QUERY_KEY,
)
from tfrget.exceptions import MalformedRegistryURLError

from .interfaces import ModuleReference

SubdirSplitter = Callable[[str], Tuple[str, str]]


def parse_module_reference(
    source_url: str, split_subdir: SubdirSplitter
) -> ModuleReference:
    """
    Parse a `tfr://HOST/NAMESPACE/NAME/SYSTEM[//SUBDIR]?version=VERSION` source.

    The host may be empty (`tfr:///...`), in which case the default registry
    domain applies later. No network access happens here.

    Parameters:
        source_url (str): The registry source URL.
        split_subdir (SubdirSplitter): Splits 'path//subdir' into (path, subdir).

    Returns:
        ModuleReference: The parsed reference.

    Raises:
        MalformedRegistryURLError: If the URL cannot be parsed, uses another scheme, or does not carry exactly one version query.
    """
    try:
        parts = urlsplit(source_url)
        host = parts.netloc
    except ValueError as e:
        raise MalformedRegistryURLError(f"could not parse {source_url}: {e}") from e

    if parts.scheme.lower() != REGISTRY_URL_SCHEME:
        raise MalformedRegistryURLError(
            f"unsupported scheme {parts.scheme!r}, expected {REGISTRY_URL_SCHEME}://"
        )

    module_path, module_subdir = split_subdir(parts.path)

    query_values = parse_qs(parts.query, keep_blank_values=True)
    if VERSION_QUERY_KEY not in query_values:
        raise MalformedRegistryURLError("missing version query")
    version_list = query_values[VERSION_QUERY_KEY]
    if len(version_list) != 1:
        raise MalformedRegistryURLError("more than one version query")

    return ModuleReference(
        module_path=module_path,
        version=version_list[0],
        registry_host=host,
        requested_subdir=module_subdir,
    )


def build_request_url(
    registry_domain: str, module_registry_base_path: str, module_path: str, version: str
) -> str:
    """
    Build the URL that answers with a module version's download location.

    A single trailing slash is trimmed from the base path, and a single leading
    and trailing slash from the module path. An absolute base path is returned
    as composed; otherwise the URL is qualified with https and the registry domain.

    Raises:
        MalformedRegistryURLError: If the composed URL cannot be parsed.
    """
    base_path = module_registry_base_path.removesuffix("/")
    module_path = module_path.removesuffix("/").removeprefix("/")

    module_full_path = f"{base_path}/{module_path}/{version}/download"

    try:
        if urlsplit(module_full_path).scheme:
            return module_full_path
    except ValueError as e:
        raise MalformedRegistryURLError(
            f"could not parse module URL {module_full_path}: {e}"
        ) from e

    if not module_full_path.startswith("/"):
        module_full_path = "/" + module_full_path
    return urlunsplit(("https", registry_domain, module_full_path, "", ""))


def is_relative_location(location: str) -> bool:
    """Whether a download location is relative to the URL that returned it."""
    return location.startswith(RELATIVE_LOCATION_PREFIXES)


def get_download_url_from_location(module_url: str, location: str) -> str:
    """
    Anchor a relative download location to the request URL.

    Registries behind reverse proxies may not know their public origin, so
    locations starting with '/', './' or '../' are resolved against the URL
    the client used. Any other location is returned unchanged.

    Raises:
        MalformedRegistryURLError: If the relative location cannot be parsed.
    """
    if not is_relative_location(location):
        return location
    try:
        return urljoin(module_url, location)
    except ValueError as e:
        raise MalformedRegistryURLError(
            f"could not resolve {location} against {module_url}: {e}"
        ) from e
