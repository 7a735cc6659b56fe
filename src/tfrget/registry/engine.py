"""
Default content-fetch engine.

Registry downloads hand their resolved source URL to a fetch engine. This
engine understands local directories (plain paths and file:// URLs), git
repositories (git:: sources, cloned with the git command line) and http(s)
archives (.zip, .tar.gz, .tgz, .tar, or an explicit ?archive= type).
"""

import glob
import os
import shutil
import subprocess
import tarfile
import tempfile
import zipfile
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from tfrget.constants import (
    ARCHIVE_QUERY_KEY,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    TAR_EXTENSIONS,
    ZIP_EXTENSION,
)
from tfrget.exceptions import FetchEngineError
from tfrget.log_utils import logger
from tfrget.utils import get_http_session

from .interfaces import FetchEngine, Pathish


def source_dir_subdir(src: str) -> Tuple[str, str]:
    """
    Split 'source//subdir' into (source, subdir).

    The '//' of a 'scheme://' prefix is not a separator, and a query string
    following the subdir is moved back onto the source.
    """
    stop = len(src)
    query_idx = src.find("?")
    if query_idx > -1:
        stop = query_idx

    offset = 0
    scheme_idx = src.find("://", 0, stop)
    if scheme_idx > -1:
        offset = scheme_idx + 3

    idx = src.find("//", offset, stop)
    if idx == -1:
        return src, ""

    subdir = src[idx + 2 :]
    src = src[:idx]

    query_idx = subdir.find("?")
    if query_idx > -1:
        src += subdir[query_idx:]
        subdir = subdir[:query_idx]

    return src, subdir


def split_forced_getter(src: str) -> Tuple[str, str]:
    """
    Split a forced getter prefix such as 'git::' off a source.

    Returns:
        Tuple[str, str]: (getter name or '', remaining source)
    """
    scheme_idx = src.find("://")
    forced_idx = src.find("::")
    if forced_idx > 0 and (scheme_idx == -1 or forced_idx < scheme_idx):
        return src[:forced_idx], src[forced_idx + 2 :]
    return "", src


def _pop_query_params(url: str, *keys: str) -> Tuple[str, Dict[str, str]]:
    """Remove `keys` from the query of `url`, returning the new URL and the removed values."""
    parts = urlsplit(url)
    kept: List[Tuple[str, str]] = []
    popped: Dict[str, str] = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key in keys:
            popped[key] = value
        else:
            kept.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(kept))), popped


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def safe_extract_path(extract_dir: str, member_name: str) -> str:
    """
    Resolve an archive member path inside `extract_dir`.

    Raises:
        ValueError: If the member would land outside `extract_dir`.
    """
    real_base = os.path.realpath(extract_dir)
    candidate = os.path.realpath(os.path.join(real_base, member_name))
    if not _is_within_base(real_base, candidate):
        raise ValueError(f"archive member escapes extraction directory: {member_name}")
    return candidate


class DefaultFetchEngine(FetchEngine):
    """Fetches local directories, git repositories and http(s) archives."""

    def __init__(self, session: Optional[requests.Session] = None):
        """
        Parameters:
            session (requests.Session): Session for archive downloads; defaults to the process-wide session.
        """
        self.session = session

    def split_source_and_subdir(self, raw_url: str) -> Tuple[str, str]:
        return source_dir_subdir(raw_url)

    def resolve_glob_subdir(self, root_dir: Pathish, pattern: str) -> str:
        """
        Resolve `pattern` to exactly one path inside `root_dir`.

        Wildcards match dot-entries as well. Absolute patterns, '..'
        components and matches whose real path leaves `root_dir` are rejected.
        """
        root_dir = os.fspath(root_dir)
        components = pattern.replace(os.sep, "/").split("/")
        if os.path.isabs(pattern) or pattern.startswith("/") or ".." in components:
            raise FetchEngineError(
                root_dir, f"subdir {pattern!r} escapes the download directory"
            )

        full_pattern = os.path.normpath(os.path.join(root_dir, pattern))
        matches = glob.glob(full_pattern, include_hidden=True)
        if not matches:
            raise FetchEngineError(root_dir, f"subdir {pattern!r} not found")
        if len(matches) > 1:
            raise FetchEngineError(root_dir, f"subdir {pattern!r} matches multiple paths")

        real_root = os.path.realpath(root_dir)
        if not _is_within_base(real_root, os.path.realpath(matches[0])):
            raise FetchEngineError(
                root_dir, f"subdir {pattern!r} escapes the download directory"
            )
        return matches[0]

    def fetch(
        self, destination: Pathish, source_url: str, options: Dict[str, Any]
    ) -> None:
        destination = os.fspath(destination)
        forced, url = split_forced_getter(source_url)
        parts = urlsplit(url)
        scheme = parts.scheme.lower() if "://" in url else ""

        logger.debug(f"Fetching {source_url} into {destination}")
        if forced == "git" or scheme in ("git", "ssh") or parts.path.endswith(".git"):
            self._fetch_git(destination, url, source_url)
        elif forced in ("", "file") and scheme in ("", "file"):
            self._fetch_local(destination, url, source_url)
        elif forced in ("", "http", "https") and scheme in ("http", "https"):
            self._fetch_archive(destination, url, source_url, options)
        else:
            raise FetchEngineError(source_url, "unsupported source type")

    def _fetch_local(self, destination: str, url: str, source_url: str) -> None:
        path = urlsplit(url).path if url.startswith("file://") else url
        if not os.path.isdir(path):
            raise FetchEngineError(source_url, f"source path {path} is not a directory")
        try:
            shutil.copytree(path, destination, symlinks=True, dirs_exist_ok=True)
        except OSError as e:
            raise FetchEngineError(source_url, str(e)) from e

    def _fetch_git(self, destination: str, url: str, source_url: str) -> None:
        url, params = _pop_query_params(url, "ref", "depth")
        ref = params.get("ref", "")
        depth = params.get("depth", "")

        # Values from the registry must never be read as git options
        if url.startswith("-") or ref.startswith("-"):
            raise FetchEngineError(source_url, "git url and ref must not start with '-'")
        if depth and not depth.isdigit():
            raise FetchEngineError(source_url, f"invalid git depth {depth!r}")

        command = ["git", "clone"]
        if depth:
            command += ["--depth", depth]
            if ref:
                command += ["--branch", ref]
        command += ["--", url, destination]

        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
            if ref and not depth:
                subprocess.run(
                    ["git", "checkout", ref, "--"],
                    cwd=destination,
                    check=True,
                    capture_output=True,
                    text=True,
                )
        except FileNotFoundError as e:
            raise FetchEngineError(source_url, "git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise FetchEngineError(source_url, (e.stderr or "").strip() or str(e)) from e

    def _archive_type(self, url: str, explicit: str) -> str:
        if explicit:
            return explicit.lower().lstrip(".")
        path = urlsplit(url).path.lower()
        if path.endswith(ZIP_EXTENSION):
            return "zip"
        for ext in TAR_EXTENSIONS:
            if path.endswith(ext):
                return ext.lstrip(".")
        return ""

    def _fetch_archive(
        self, destination: str, url: str, source_url: str, options: Dict[str, Any]
    ) -> None:
        url, params = _pop_query_params(url, ARCHIVE_QUERY_KEY)
        archive_type = self._archive_type(url, params.get(ARCHIVE_QUERY_KEY, ""))
        if not archive_type:
            raise FetchEngineError(source_url, "http sources must point to an archive")

        session = self.session if self.session is not None else get_http_session()
        timeout = options.get("timeout", DEFAULT_REQUEST_TIMEOUT)

        temp_fd, temp_path = tempfile.mkstemp(prefix="tfrget-", suffix=".archive")
        try:
            with os.fdopen(temp_fd, "wb") as f:
                try:
                    with session.get(url, stream=True, timeout=timeout) as response:
                        response.raise_for_status()
                        for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                            if chunk:
                                f.write(chunk)
                except requests.RequestException as e:
                    raise FetchEngineError(source_url, str(e)) from e

            os.makedirs(destination, exist_ok=True)
            if archive_type == "zip":
                self._extract_zip(temp_path, destination, source_url)
            else:
                self._extract_tar(temp_path, destination, source_url)
        finally:
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.warning(f"Error removing temporary archive {temp_path}: {e}")

    def _extract_zip(self, archive_path: str, destination: str, source_url: str) -> None:
        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                for member in zf.infolist():
                    target = safe_extract_path(destination, member.filename)
                    if member.is_dir():
                        os.makedirs(target, exist_ok=True)
                        continue
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    with zf.open(member) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    mode = (member.external_attr >> 16) & 0o777
                    if mode:
                        os.chmod(target, mode)
        except (zipfile.BadZipFile, ValueError, OSError) as e:
            raise FetchEngineError(source_url, f"could not extract zip archive: {e}") from e

    def _extract_tar(self, archive_path: str, destination: str, source_url: str) -> None:
        try:
            with tarfile.open(archive_path, "r:*") as tf:
                members = tf.getmembers()
                for member in members:
                    safe_extract_path(destination, member.name)
                    if member.issym() or member.islnk():
                        link_base = os.path.dirname(member.name) if member.issym() else ""
                        safe_extract_path(destination, os.path.join(link_base, member.linkname))
                if hasattr(tarfile, "data_filter"):
                    tf.extractall(destination, members=members, filter="data")
                else:
                    tf.extractall(destination, members=members)
        except (tarfile.TarError, ValueError, OSError) as e:
            raise FetchEngineError(source_url, f"could not extract tar archive: {e}") from e
