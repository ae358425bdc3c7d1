import threading

from lfsmgmt.models import MetaObject, MetaUser
from lfsmgmt.store import DuplicateUser, MetaStore, UserNotFound, _check_object


class MemoryMetaStore(MetaStore):
    """Keeps everything in dicts. Thread safe, but nothing survives a restart."""

    def __init__(self):
        self._lock = threading.Lock()
        self._objects: dict[str, MetaObject] = {}
        self._users: dict[str, MetaUser] = {}

    def put_object(self, oid: str, size: int) -> MetaObject:
        obj = _check_object(oid, size)
        with self._lock:
            self._objects[oid] = obj
        return obj

    def get_object(self, oid: str) -> MetaObject | None:
        with self._lock:
            return self._objects.get(oid)

    def objects(self) -> list[MetaObject]:
        with self._lock:
            return [self._objects[oid] for oid in sorted(self._objects)]

    def _create_user(self, user: MetaUser) -> None:
        with self._lock:
            if user.name in self._users:
                raise DuplicateUser(f"User {user.name} already exists")
            self._users[user.name] = user

    def delete_user(self, name: str) -> None:
        with self._lock:
            if name not in self._users:
                raise UserNotFound(f"User {name} does not exist")
            del self._users[name]

    def get_user(self, name: str) -> MetaUser | None:
        with self._lock:
            return self._users.get(name)

    def users(self) -> list[MetaUser]:
        with self._lock:
            return [self._users[name] for name in sorted(self._users)]
