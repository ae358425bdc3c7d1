"""
Metadata store for objects and users

The store is the only thing that owns persisted state. The refresh (lfsmgmt.reconcile)
and the management API only ever go through the MetaStore methods below.

Guarantees every implementation must give:
- put_object is an upsert by oid: the last writer wins, and calls for different oids
  can run concurrently without interfering
- add_user fails with DuplicateUser if the name exists, leaving the existing user as is
- delete_user fails with UserNotFound if the name does not exist
- every persistence problem is raised as a StoreError (or subclass)
"""

from abc import ABC, abstractmethod

from lfsmgmt.auth import check_password, hash_password
from lfsmgmt.config import MetaStoreOptions, Settings
from lfsmgmt.models import MetaObject, MetaUser

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class StoreError(Exception):
    pass


class DuplicateUser(StoreError):
    pass


class UserNotFound(StoreError):
    pass


class MetaStore(ABC):
    @abstractmethod
    def put_object(self, oid: str, size: int) -> MetaObject:
        """Create or overwrite the metadata for this oid"""

    @abstractmethod
    def get_object(self, oid: str) -> MetaObject | None: ...

    @abstractmethod
    def objects(self) -> list[MetaObject]:
        """All objects, sorted by oid"""

    @abstractmethod
    def _create_user(self, user: MetaUser) -> None:
        """Persist a new user, raising DuplicateUser if the name is taken"""

    @abstractmethod
    def delete_user(self, name: str) -> None: ...

    @abstractmethod
    def get_user(self, name: str) -> MetaUser | None: ...

    @abstractmethod
    def users(self) -> list[MetaUser]:
        """All users, sorted by name"""

    def close(self) -> None:
        pass

    def add_user(self, name: str, password: str) -> MetaUser:
        """
        Create a new user with the given password. Only the hash of the password is stored,
        so passwords longer than bcrypt can hash (72 bytes) are refused.
        """
        if not name or not password:
            raise ValueError("User name and password cannot be empty")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
        user = MetaUser(name=name, password=hash_password(password))
        self._create_user(user)
        return user

    def authenticate(self, name: str, password: str) -> bool:
        """Does this user exist and is this the right password?"""
        user = self.get_user(name)
        return user is not None and check_password(password, user.password)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _check_object(oid: str, size: int) -> MetaObject:
    """Validate input for put_object, raising ValueError on an empty oid or negative size"""
    if not oid:
        raise ValueError("oid cannot be empty")
    if size < 0:
        raise ValueError(f"Object size cannot be negative, got {size}")
    return MetaObject(oid=oid, size=size)


def open_store(settings: Settings) -> MetaStore:
    """Open the metadata store configured in settings.meta_store"""
    match settings.meta_store:
        case MetaStoreOptions.memory:
            from lfsmgmt.store.memory import MemoryMetaStore

            return MemoryMetaStore()
        case MetaStoreOptions.sqlite:
            from lfsmgmt.store.sqlite import SqliteMetaStore

            return SqliteMetaStore(settings.meta_db)
        case MetaStoreOptions.elastic:
            from lfsmgmt.store.elastic import ElasticMetaStore

            return ElasticMetaStore.from_settings(settings)
    raise ValueError(f"Unknown metadata store {settings.meta_store}")
