"""
Mapping between object ids and their location in the content tree.

Objects are stored in a two level fan-out layout, so an object with oid
``abcdef0123`` lives at ``<content_path>/ab/cd/ef0123``. The functions here
only deal with relative paths and never touch the filesystem.
"""

from pathlib import PurePath, PurePosixPath

SHARD_WIDTH = 2
SHARD_LEVELS = 2


class MalformedPath(ValueError):
    """The relative path does not follow the ab/cd/rest layout."""


class MalformedOid(ValueError):
    """The oid is too short to be sharded or contains a path separator."""


def oid_to_path(oid: str) -> PurePosixPath:
    """Return the path of an object relative to the content root."""
    prefix = SHARD_WIDTH * SHARD_LEVELS
    if len(oid) <= prefix:
        raise MalformedOid(f"oid {oid!r} is too short, need more than {prefix} characters")
    if "/" in oid or "\\" in oid:
        raise MalformedOid(f"oid {oid!r} contains a path separator")
    return PurePosixPath(oid[0:2], oid[2:4], oid[4:])


def path_to_oid(relpath: str | PurePath) -> str:
    """
    Recover the oid from a path relative to the content root.

    The path needs exactly two shard directories of two characters followed by
    the file name, e.g. ``ab/cd/ef0123`` gives ``abcdef0123``.
    """
    parts = relpath.parts if isinstance(relpath, PurePath) else PurePosixPath(relpath).parts
    if len(parts) < SHARD_LEVELS + 1:
        raise MalformedPath(f"{relpath} has fewer than {SHARD_LEVELS} shard directories")
    if len(parts) > SHARD_LEVELS + 1:
        raise MalformedPath(f"{relpath} is nested deeper than {SHARD_LEVELS} shard directories")
    for shard in parts[:SHARD_LEVELS]:
        if len(shard) != SHARD_WIDTH:
            raise MalformedPath(f"{relpath}: shard directory {shard!r} should be {SHARD_WIDTH} characters")
    return "".join(parts)
