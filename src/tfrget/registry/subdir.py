"""
Subdirectory materialization.

When only part of a module tree is wanted, the whole source is downloaded
into a private staging area first; the requested subdirectory is then copied
into the destination, which is replaced rather than merged.
"""

import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from tfrget.constants import (
    MANIFEST_FILE_NAME,
    OWNER_WRITE_GLOBAL_READ_EXECUTE_PERMS,
    STAGING_DIR_PREFIX,
)
from tfrget.exceptions import ModuleDownloadError
from tfrget.log_utils import logger

from .files import copy_folder_contents_with_filter
from .interfaces import FetchEngine, Pathish


@contextmanager
def staging_area(prefix: str = STAGING_DIR_PREFIX) -> Iterator[str]:
    """
    Yield a fresh, not-yet-existing path inside a uniquely named temporary directory.

    The temporary directory is removed when the context exits, whatever the
    outcome. Removal failures are logged and never raised.
    """
    temp_dir = tempfile.mkdtemp(prefix=prefix)
    staged_path = os.path.join(temp_dir, "temp")
    logger.debug(f"Created staging area {temp_dir}")
    try:
        yield staged_path
    finally:
        try:
            shutil.rmtree(temp_dir)
        except OSError as e:
            logger.warning(f"Error removing temporary directory {temp_dir}: {e}")


def _remove_manifest(manifest_path: str) -> None:
    try:
        os.remove(manifest_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Error removing manifest file {manifest_path}: {e}")


def materialize_subdir(
    engine: FetchEngine,
    destination: Pathish,
    source_url: str,
    subdir: str,
    options: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Download `source_url` into a staging area and copy `subdir` of it into `destination`.

    `subdir` may use glob patterns; resolving it to more than one path is an
    error raised by the engine. Anything previously in `destination` is removed
    before the copy.

    Raises:
        ModuleDownloadError: If the resolved subdirectory does not exist after download.
        FetchEngineError: For download or glob resolution failures in the engine.
    """
    destination = os.fspath(destination)
    options = options or {}

    with staging_area() as staged_path:
        engine.fetch(staged_path, source_url, options)

        source_path = engine.resolve_glob_subdir(staged_path, subdir)

        try:
            os.stat(source_path)
        except OSError as e:
            details = f"could not stat download path {source_path} (error: {e})"
            raise ModuleDownloadError(source_url, details) from e

        if os.path.lexists(destination):
            if os.path.isdir(destination) and not os.path.islink(destination):
                shutil.rmtree(destination)
            else:
                os.remove(destination)

        os.makedirs(destination, mode=OWNER_WRITE_GLOBAL_READ_EXECUTE_PERMS)
        # makedirs mode is filtered by the umask
        os.chmod(destination, OWNER_WRITE_GLOBAL_READ_EXECUTE_PERMS)

        manifest_path = os.path.join(destination, MANIFEST_FILE_NAME)
        try:
            copy_folder_contents_with_filter(
                source_path, destination, MANIFEST_FILE_NAME, lambda _path: True
            )
        finally:
            _remove_manifest(manifest_path)

    logger.debug(f"Materialized {subdir} of {source_url} into {destination}")
