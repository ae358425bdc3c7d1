"""
Lazy traversal of the content tree.

walk_tree yields an Entry for every directory and file below the root instead of
calling back into the caller, so anything that consumes entries (such as the refresh
in lfsmgmt.reconcile) can just as well be fed a plain list of entries in tests.
Problems with individual entries are yielded as entries with an error set, the walk
itself never raises for them.
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterator, NamedTuple


class Entry(NamedTuple):
    path: PurePosixPath  # relative to the root of the walk
    is_dir: bool = False
    size: int | None = None
    error: OSError | None = None


def walk_tree(root: str | Path, subdir: str | None = None) -> Iterator[Entry]:
    """
    Yield all entries below root (or below root/subdir), depth first.

    Directories are yielded before their contents. Symbolic links are not followed.
    """
    root = Path(root)
    start = PurePosixPath(subdir) if subdir else PurePosixPath()
    if subdir:
        try:
            os.stat(root / start)
        except OSError as e:
            yield Entry(start, error=e)
            return
        yield Entry(start, is_dir=True)
    yield from _walk(root, start)


def _walk(root: Path, relative: PurePosixPath) -> Iterator[Entry]:
    try:
        with os.scandir(root / relative) as it:
            children = sorted(it, key=lambda e: e.name)
    except OSError as e:
        yield Entry(relative, is_dir=True, error=e)
        return

    for child in children:
        path = relative / child.name
        try:
            is_dir = child.is_dir(follow_symlinks=False)
            size = None if is_dir else child.stat(follow_symlinks=False).st_size
        except OSError as e:
            yield Entry(path, error=e)
            continue
        if is_dir:
            yield Entry(path, is_dir=True)
            yield from _walk(root, path)
        elif child.is_file(follow_symlinks=False):
            yield Entry(path, size=size)
        else:
            logging.debug(f"Skipping {path}: not a regular file")


def shard_dirs(root: str | Path) -> list[str]:
    """Names of the top level directories of root, i.e. the first shard level."""
    with os.scandir(root) as it:
        return sorted(e.name for e in it if e.is_dir(follow_symlinks=False))


def top_level_files(root: str | Path) -> Iterator[Entry]:
    """Entries for everything in root that is not a directory (none of these are valid objects)."""
    with os.scandir(root) as it:
        children = sorted(it, key=lambda e: e.name)
    for child in children:
        path = PurePosixPath(child.name)
        try:
            if child.is_file(follow_symlinks=False):
                yield Entry(path, size=child.stat(follow_symlinks=False).st_size)
        except OSError as e:
            yield Entry(path, error=e)


def memory_tree(files: dict[str, int]) -> list[Entry]:
    """
    Entries for an in-memory tree given as {relative path: size}, directories included.
    Can be fed to lfsmgmt.reconcile.refresh_objects instead of walking a real directory.
    """
    paths = {PurePosixPath(p): size for p, size in files.items()}
    dirs = {parent for path in paths for parent in path.parents if parent != PurePosixPath()}
    entries = [Entry(d, is_dir=True) for d in dirs] + [Entry(p, size=size) for p, size in paths.items()]
    return sorted(entries, key=lambda e: e.path.parts)
