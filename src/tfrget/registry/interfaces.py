"""
Core Interfaces for the tfrget Registry Subsystem

This module defines the data structures passed through the resolution
pipeline and the narrow interfaces of its external collaborators: the
content-fetch engine and the per-host credential store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import requests

from tfrget.constants import DEFAULT_REQUEST_TIMEOUT, TERRAFORM_IMPL

Pathish = Union[str, Path]

# Download modes understood by fetch clients
CLIENT_MODE_FILE = "file"
CLIENT_MODE_DIR = "dir"


def join_subdirs(*parts: str) -> str:
    """
    Join subdirectory fragments with forward slashes, dropping empty ones.

    '..' components are kept as written so the fetch engine can reject them,
    and a later fragment never replaces an earlier one.

    Returns:
        str: The joined path, or an empty string when every fragment is empty.
    """
    present = [part for part in parts if part]
    if not present:
        return ""
    head, *rest = present
    return "/".join([head.rstrip("/")] + [part.strip("/") for part in rest])


@dataclass
class RegistryOptions:
    """Invocation-wide settings that influence registry resolution."""

    terraform_implementation: str = TERRAFORM_IMPL
    """Which registry dialect is in effect ('terraform' or 'opentofu')"""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    """Timeout in seconds applied to each registry HTTP call"""

    credentials_file: Optional[str] = None
    """Explicit path to a credentials.tfrc.json file"""


@dataclass
class GetterClient:
    """The fetch client a getter is attached to."""

    options: Dict[str, Any] = field(default_factory=dict)
    """Options handed through to every engine fetch"""

    timeout: Optional[float] = None
    """Overrides the registry request timeout when set"""


@dataclass
class ModuleReference:
    """A logical module identifier parsed from a tfr:// source URL."""

    module_path: str
    """Registry path of the module, e.g. 'terraform-aws-modules/vpc/aws'"""

    version: str
    """The single requested version"""

    registry_host: str = ""
    """Explicit registry host; empty means use the default domain"""

    requested_subdir: str = ""
    """Subdirectory requested with the '//subdir' suffix of the source"""


@dataclass
class ResolvedSource:
    """The concrete location a module reference resolved to."""

    absolute_url: str
    """Fully qualified source URL handed to the fetch engine"""

    embedded_subdir: str = ""
    """Subdirectory carried by the registry's download location"""

    requested_subdir: str = ""
    """Subdirectory carried by the original module reference"""

    @property
    def subdir(self) -> str:
        """Combined subdirectory, download location first."""
        return join_subdirs(self.embedded_subdir, self.requested_subdir)


class HostCredentials(ABC):
    """Credentials that know how to authenticate a request for one host."""

    @abstractmethod
    def prepare_request(self, request: requests.PreparedRequest) -> None:
        """
        Authenticate an outgoing request in place.

        Parameters:
            request (requests.PreparedRequest): The request about to be sent.
        """


class CredentialsSource(ABC):
    """Looks up host-scoped credentials."""

    @abstractmethod
    def for_host(self, hostname: str) -> Optional[HostCredentials]:
        """
        Return credentials for the given hostname, or None when none are stored.
        """


class FetchEngine(ABC):
    """
    Abstract base class for content-fetch engines.

    The registry getter only resolves where a module lives; an engine knows
    how to transfer the bytes for a source URL into a directory.
    """

    @abstractmethod
    def fetch(
        self, destination: Pathish, source_url: str, options: Dict[str, Any]
    ) -> None:
        """
        Download the full tree at `source_url` into `destination`.

        Parameters:
            destination (Pathish): Directory to populate.
            source_url (str): Source URL, dispatched on its scheme.
            options (Dict[str, Any]): Client-level options passed through unchanged.
        """

    @abstractmethod
    def split_source_and_subdir(self, raw_url: str) -> Tuple[str, str]:
        """
        Split a 'source//subdir' string into its source and subdirectory.

        Returns:
            Tuple[str, str]: (source, subdir); subdir is empty when absent.
        """

    @abstractmethod
    def resolve_glob_subdir(self, root_dir: Pathish, pattern: str) -> str:
        """
        Resolve a possibly-globbed subdirectory pattern beneath `root_dir`.

        Returns:
            str: The single matching path.
        """
