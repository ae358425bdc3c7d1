import time
from pathlib import Path

from httpx import Response

from lfsmgmt.models import MetaObject, MetaUser
from lfsmgmt.store import StoreError
from lfsmgmt.store.memory import MemoryMetaStore

ADMIN = ("admin", "s3cret")


def write_tree(root: Path, files: dict[str, int]) -> Path:
    """Create files below root from {relative path: size}, filled with that many bytes"""
    for relpath, size in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
    return root


def list_tree(root: Path) -> dict[str, int]:
    return {str(p.relative_to(root).as_posix()): p.stat().st_size for p in root.rglob("*") if p.is_file()}


def objectset(objects: list[MetaObject]) -> set[tuple[str, int]]:
    return {(o.oid, o.size) for o in objects}


def usernames(users: list[MetaUser]) -> list[str]:
    return [u.name for u in users]


def check(response: Response, expected: int, msg: str | None = None):
    assert response.status_code == expected, (
        f"{msg or ''}{': ' if msg else ''}Unexpected status: received {response.status_code} != expected {expected};"
        f" reply: {response.text}"
    )


class FailingStore(MemoryMetaStore):
    """Memory store that refuses to store some oids, and optionally refuses to list anything"""

    def __init__(self, bad_oids: set[str] = frozenset(), broken: bool = False):
        super().__init__()
        self.bad_oids = set(bad_oids)
        self.broken = broken

    def put_object(self, oid: str, size: int) -> MetaObject:
        if self.broken or oid in self.bad_oids:
            raise StoreError(f"disk full while writing {oid}")
        return super().put_object(oid, size)

    def objects(self) -> list[MetaObject]:
        if self.broken:
            raise StoreError("database is gone")
        return super().objects()

    def users(self) -> list[MetaUser]:
        if self.broken:
            raise StoreError("database is gone")
        return super().users()

    def _create_user(self, user: MetaUser) -> None:
        if self.broken:
            raise StoreError("database is gone")
        super()._create_user(user)


class SlowStore(MemoryMetaStore):
    """Memory store that takes its time for every object"""

    def __init__(self, delay: float = 0.05):
        super().__init__()
        self.delay = delay

    def put_object(self, oid: str, size: int) -> MetaObject:
        time.sleep(self.delay)
        return super().put_object(oid, size)
