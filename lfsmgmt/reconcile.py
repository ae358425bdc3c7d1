"""
Rebuild the object metadata from the content tree

A refresh walks every file below the content path, recovers the oid from the file's
location (see lfsmgmt.oid) and upserts the oid and file size into the metadata store.
Objects are immutable once written, so re-deriving everything from disk is always safe:
running a refresh twice over the same tree gives the same records.

Problems with single entries (unreadable directories, files outside the ab/cd/rest
layout, store errors for one object) are logged and counted, but never stop the walk.
The content tree itself is only read, never changed.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from lfsmgmt.fstree import Entry, shard_dirs, top_level_files, walk_tree
from lfsmgmt.oid import MalformedPath, path_to_oid
from lfsmgmt.store import MetaStore, StoreError


@dataclass
class RefreshResult:
    indexed: int = 0  # objects written to the store
    skipped: int = 0  # files that are not valid objects
    errors: int = 0  # unreadable entries and failed store writes
    cancelled: bool = False

    def add(self, other: "RefreshResult") -> None:
        self.indexed += other.indexed
        self.skipped += other.skipped
        self.errors += other.errors
        self.cancelled = self.cancelled or other.cancelled


def refresh_objects(
    store: MetaStore,
    root: str | Path,
    entries: Iterable[Entry] | None = None,
    workers: int = 1,
    cancel: threading.Event | None = None,
) -> RefreshResult:
    """
    Bring the object metadata in store in line with the files below root.

    :param store: The metadata store to write to
    :param root: The content path, only used for walking and logging if entries are given
    :param entries: Entries to process instead of walking root (e.g. an in-memory tree)
    :param workers: If > 1, walk the top level shard directories in this many threads
    :param cancel: Stop early (and return a cancelled result) once this event is set
    """
    logging.info(f"Refreshing object metadata from {root}")
    if entries is not None:
        result = _process(store, root, entries, cancel)
    elif workers > 1:
        result = _parallel_refresh(store, Path(root), workers, cancel)
    else:
        result = _process(store, root, walk_tree(root), cancel)
    logging.info(
        f"Refresh of {root} {'cancelled' if result.cancelled else 'done'}: "
        f"{result.indexed} objects, {result.skipped} skipped, {result.errors} errors"
    )
    return result


def _parallel_refresh(store: MetaStore, root: Path, workers: int, cancel: threading.Event | None) -> RefreshResult:
    try:
        shards = shard_dirs(root)
        loose = list(top_level_files(root))
    except OSError as e:
        logging.error(f"Cannot read content path {root}: {e}")
        return RefreshResult(errors=1)

    result = _process(store, root, loose, cancel)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="refresh") as pool:
        futures = [pool.submit(_process, store, root, walk_tree(root, shard), cancel) for shard in shards]
        for future in futures:
            result.add(future.result())
    return result


def _process(store: MetaStore, root, entries: Iterable[Entry], cancel: threading.Event | None) -> RefreshResult:
    result = RefreshResult()
    for entry in entries:
        if cancel is not None and cancel.is_set():
            result.cancelled = True
            break
        if entry.error is not None:
            logging.warning(f"Cannot read {Path(root) / entry.path}: {entry.error}")
            result.errors += 1
            continue
        if entry.is_dir:
            continue
        size = entry.size or 0
        try:
            oid = path_to_oid(entry.path)
        except MalformedPath as e:
            logging.warning(f"Skipping {entry.path} (size {size}): {e}")
            result.skipped += 1
            continue
        try:
            store.put_object(oid, size)
        except (StoreError, ValueError) as e:
            logging.error(f"Could not store object {oid} (path {entry.path}, size {size}): {e}")
            result.errors += 1
            continue
        result.indexed += 1
    return result

