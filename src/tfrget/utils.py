# src/tfrget/utils.py
import importlib.metadata
import threading
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from tfrget.constants import HTTP_POOL_CONNECTIONS, HTTP_POOL_MAXSIZE
from tfrget.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None

_shared_session: Optional[requests.Session] = None
_shared_session_lock = threading.Lock()


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `tfrget/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("tfrget")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"tfrget/{app_version}"

    return _USER_AGENT_CACHE


def create_http_session() -> requests.Session:
    """
    Build a requests Session with a pooled adapter mounted for http and https.

    Retries are disabled: transient failures are surfaced to the caller, which
    owns the retry policy.
    """
    session = requests.Session()
    retry_strategy: Retry = Retry(total=0, read=False)
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=retry_strategy,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = get_user_agent()
    return session


def get_http_session() -> requests.Session:
    """
    Return the process-wide HTTP session, creating it on first use.

    The session's connection pool is shared by every resolution in the process.
    """
    global _shared_session
    with _shared_session_lock:
        if _shared_session is None:
            logger.debug("Creating shared HTTP session")
            _shared_session = create_http_session()
        return _shared_session


def close_http_session() -> None:
    """Close and forget the process-wide HTTP session, if one was created."""
    global _shared_session
    with _shared_session_lock:
        if _shared_session is not None:
            _shared_session.close()
            _shared_session = None
