"""Walk a filesystem tree and validate every executable file in it."""

from __future__ import annotations

import logging
import os
from typing import Callable, Iterator

from .models import ValidationResult
from .rules import DebugFunc
from .validation import validate_binary

logger = logging.getLogger(__name__)

EXEC_BITS = 0o111


def scan_tree(
    root: str,
    debug: DebugFunc | None = None,
    on_result: Callable[[ValidationResult], None] | None = None,
) -> bool:
    """Validate every executable under *root*; True only if all of them pass.

    Files that fail or error don't stop the walk. A traversal error does,
    and makes the whole scan fail.
    """
    debug = debug or logger.debug
    all_valid = True
    try:
        for path in iter_executables(root):
            result = validate_binary(root, strip_mount_path(root, path), debug)
            if on_result is not None:
                on_result(result)
            if not result.ok:
                all_valid = False
    except OSError as e:
        logger.error("failed to scan %s: %s", root, e)
        return False
    return all_valid


def iter_executables(root: str) -> Iterator[str]:
    """Yield paths of regular files under *root* with an execute bit set."""
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from iter_executables(entry.path)
            continue
        # Cheap: the type comes from the directory listing.
        if not entry.is_file(follow_symlinks=False):
            continue
        # Needs an lstat.
        if entry.stat(follow_symlinks=False).st_mode & EXEC_BITS == 0:
            continue
        yield entry.path


def strip_mount_path(mount_path: str, path: str) -> str:
    """``strip_mount_path("/mnt/x", "/mnt/x/usr/bin/ls") == "/usr/bin/ls"``"""
    if path.startswith(mount_path):
        return path[len(mount_path):]
    return path
