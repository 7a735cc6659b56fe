"""
Host-scoped credential lookup.

Credentials are read fresh for every request: first from the per-host
TF_TOKEN_<host> environment variable, then from a Terraform-style
credentials.tfrc.json file. Nothing here is cached between calls.
"""

import json
import os
from pathlib import Path
from typing import Optional

import requests

from tfrget.constants import CREDENTIALS_FILE_NAME, TERRAFORM_USER_DIR
from tfrget.env_utils import get_host_token
from tfrget.exceptions import CredentialsError
from tfrget.log_utils import logger

from .interfaces import CredentialsSource, HostCredentials, Pathish


class TokenCredentials(HostCredentials):
    """Bearer-token credentials for a single host."""

    def __init__(self, token: str):
        self.token = token

    def prepare_request(self, request: requests.PreparedRequest) -> None:
        request.headers["Authorization"] = f"Bearer {self.token}"

    def __repr__(self) -> str:
        return "TokenCredentials(token=***)"


def default_credentials_file() -> Path:
    """Return the standard location of the Terraform credentials file."""
    return Path.home() / TERRAFORM_USER_DIR / CREDENTIALS_FILE_NAME


class CliConfigCredentialsSource(CredentialsSource):
    """
    Credentials from TF_TOKEN_<host> environment variables and a credentials file.

    The file uses the JSON layout written by `terraform login`:
    {"credentials": {"<host>": {"token": "<token>"}}}.
    """

    def __init__(self, credentials_file: Optional[Pathish] = None):
        """
        Parameters:
            credentials_file (Optional[Pathish]): File to read; defaults to ~/.terraform.d/credentials.tfrc.json.
        """
        self.credentials_file = (
            Path(credentials_file) if credentials_file else default_credentials_file()
        )

    def for_host(self, hostname: str) -> Optional[HostCredentials]:
        hostname = hostname.lower()
        env_token = get_host_token(hostname)
        if env_token:
            logger.debug(f"Using environment token credentials for {hostname}")
            return TokenCredentials(env_token)

        token = self._load_file_credentials().get(hostname)
        if token:
            logger.debug(f"Using stored credentials for {hostname}")
            return TokenCredentials(token)
        return None

    def _load_file_credentials(self) -> dict:
        """
        Read host tokens from the credentials file.

        Returns:
            dict: Mapping of lower-cased hostname to token; empty when the file does not exist.

        Raises:
            CredentialsError: If the file exists but cannot be read or parsed.
        """
        if not os.path.exists(self.credentials_file):
            return {}

        try:
            with open(self.credentials_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CredentialsError(
                f"Could not read credentials file {self.credentials_file}",
                details=str(e),
            ) from e

        hosts = data.get("credentials") if isinstance(data, dict) else None
        if hosts is None:
            return {}
        if not isinstance(hosts, dict):
            raise CredentialsError(
                f"Invalid credentials file {self.credentials_file}",
                details="'credentials' must be an object",
            )

        tokens = {}
        for host, entry in hosts.items():
            if isinstance(entry, dict) and isinstance(entry.get("token"), str):
                tokens[str(host).lower()] = entry["token"]
            else:
                logger.warning(
                    f"Ignoring malformed credentials entry for {host} in {self.credentials_file}"
                )
        return tokens
