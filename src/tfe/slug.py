# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Packing of configuration directories into uploadable archives.

An archive ("slug") is a gzip-compressed tar of the directory tree with
paths relative to the directory root. Version control metadata and
``.terraform`` working directories are left out at any depth, except for
``.terraform/modules`` which remote runs need. A directory that cannot be
listed fails the whole pack.
"""

import io
import logging
import os
import stat
import tarfile
from pathlib import Path

from .errors import MissingDirectoryError, PathNotFoundError, PathUnreadableError

logger = logging.getLogger(__name__)

__all__ = ("pack", "pack_contents")


def _ignored(relative: Path) -> bool:
    parts = relative.parts
    for i, part in enumerate(parts):
        if part == ".git":
            return True
        # a .terraform directory itself is kept so its modules subtree can be added
        if part == ".terraform" and i + 1 < len(parts) and parts[i + 1] != "modules":
            return True
    return False


def _raise(error: OSError) -> None:
    raise error


def pack(src: str | os.PathLike, dst: io.BufferedIOBase | io.BytesIO) -> int:
    """
    Write a gzip-compressed tar of ``src`` into ``dst``.

    Symlinks are stored as links and never followed.

    Returns:
        The number of entries written.
    """
    root = Path(src)
    count = 0
    with tarfile.open(fileobj=dst, mode="w:gz") as archive:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise, followlinks=False):
            current = Path(dirpath)
            rel_dir = current.relative_to(root)

            dirnames[:] = sorted(
                d for d in dirnames if not _ignored(rel_dir / d)
            )
            for name in dirnames:
                archive.add(current / name, arcname=str(rel_dir / name), recursive=False)
                count += 1
            for name in sorted(filenames):
                if _ignored(rel_dir / name):
                    continue
                archive.add(current / name, arcname=str(rel_dir / name), recursive=False)
                count += 1

    logger.debug(f"Packed {count} entries from {root}")
    return count


def pack_contents(path: str | os.PathLike) -> io.BytesIO:
    """
    Validate ``path`` and pack the directory into an in-memory archive.

    Raises:
        PathNotFoundError: If the path does not exist.
        PathUnreadableError: If the path exists but cannot be read.
        MissingDirectoryError: If the path is not a directory.
    """
    body = io.BytesIO()

    try:
        st = os.stat(path)
    except FileNotFoundError as e:
        raise PathNotFoundError(f'failed to find files under the path "{path}": {e}') from e
    except OSError as e:
        raise PathUnreadableError(f'unable to upload files from the path "{path}": {e}') from e

    if not stat.S_ISDIR(st.st_mode):
        raise MissingDirectoryError()

    try:
        pack(path, body)
    except OSError as e:
        raise PathUnreadableError(f'unable to upload files from the path "{path}": {e}') from e

    body.seek(0)
    return body
