"""
File Operations for the tfrget Registry Subsystem

This module copies a staged module tree into its final destination while
keeping a manifest of what has been copied.
"""

import json
import os
import shutil
from typing import Callable, List, Optional

from tfrget.log_utils import logger

from .interfaces import Pathish


class FileManifest:
    """
    Line-delimited JSON record of paths copied into a destination directory.

    Each line is {"path": <relative path>, "is_dir": <bool>}. A manifest left
    behind by an interrupted copy is used to remove its stale entries before a
    new copy starts.
    """

    def __init__(self, destination: Pathish, manifest_file: str):
        self.destination = os.fspath(destination)
        self.manifest_file = manifest_file
        self.path = os.path.join(self.destination, manifest_file)
        self._entries: set = set()
        self._handle = None

    def clean(self) -> None:
        """
        Remove every path recorded by a previous manifest, then the manifest itself.

        Only callers of copy_folder_contents_with_filter that copy into an
        existing directory reach this; materialize_subdir always recreates its
        destination, so no earlier manifest survives there.
        """
        if not os.path.exists(self.path):
            return

        with open(self.path, "r", encoding="utf-8") as f:
            records = [json.loads(line) for line in f if line.strip()]

        # Files first, then directories deepest-first
        records.sort(key=lambda r: (r.get("is_dir", False), -len(r["path"])))
        for record in records:
            target = os.path.join(self.destination, record["path"])
            try:
                if record.get("is_dir") and not os.path.islink(target):
                    os.rmdir(target)
                else:
                    os.remove(target)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.debug(f"Could not remove stale manifest entry {target}: {e}")
        os.remove(self.path)

    def create(self) -> None:
        self._handle = open(self.path, "w", encoding="utf-8")

    def contains(self, relative_path: str) -> bool:
        return relative_path in self._entries

    def _add(self, relative_path: str, is_dir: bool) -> None:
        if self._handle is None:
            raise ValueError("manifest has not been created")
        self._handle.write(json.dumps({"path": relative_path, "is_dir": is_dir}) + "\n")
        self._handle.flush()
        self._entries.add(relative_path)

    def add_file(self, relative_path: str) -> None:
        self._add(relative_path, False)

    def add_directory(self, relative_path: str) -> None:
        self._add(relative_path, True)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def copy_folder_contents_with_filter(
    source: Pathish,
    destination: Pathish,
    manifest_file: str,
    filter_func: Optional[Callable[[str], bool]] = None,
) -> List[str]:
    """
    Copy the contents of `source` into `destination`, recording each entry in a manifest.

    Hidden files are copied. Symlinks are recreated as symlinks rather than
    followed. A file named `manifest_file` at the top of `source` is never
    copied, and entries already recorded in the manifest are skipped. The
    manifest file itself is left in `destination`; callers remove it once they
    no longer need it.

    Parameters:
        source (Pathish): Directory whose contents are copied.
        destination (Pathish): Directory to copy into; created if missing.
        manifest_file (str): Name of the manifest file inside `destination`.
        filter_func (Optional[Callable[[str], bool]]): Receives each relative path; returning False skips it (and, for directories, everything below it).

    Returns:
        List[str]: Relative paths that were copied, in copy order.
    """
    source = os.fspath(source)
    destination = os.fspath(destination)
    os.makedirs(destination, exist_ok=True)

    manifest = FileManifest(destination, manifest_file)
    manifest.clean()
    manifest.create()

    copied: List[str] = []
    try:
        for root, dirnames, filenames in os.walk(source):
            rel_root = os.path.relpath(root, source)
            rel_root = "" if rel_root == os.curdir else rel_root

            kept_dirs = []
            for dirname in sorted(dirnames):
                rel_path = os.path.join(rel_root, dirname)
                if filter_func is not None and not filter_func(rel_path):
                    continue
                if manifest.contains(rel_path):
                    continue
                src_path = os.path.join(root, dirname)
                dst_path = os.path.join(destination, rel_path)
                if os.path.islink(src_path):
                    os.symlink(os.readlink(src_path), dst_path)
                    manifest.add_file(rel_path)
                else:
                    os.makedirs(dst_path, exist_ok=True)
                    shutil.copymode(src_path, dst_path)
                    manifest.add_directory(rel_path)
                    kept_dirs.append(dirname)
                copied.append(rel_path)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                rel_path = os.path.join(rel_root, filename)
                if rel_path == manifest_file:
                    continue
                if filter_func is not None and not filter_func(rel_path):
                    continue
                if manifest.contains(rel_path):
                    continue
                src_path = os.path.join(root, filename)
                dst_path = os.path.join(destination, rel_path)
                shutil.copy2(src_path, dst_path, follow_symlinks=False)
                manifest.add_file(rel_path)
                copied.append(rel_path)
    finally:
        manifest.close()

    logger.debug(f"Copied {len(copied)} entries from {source} to {destination}")
    return copied
