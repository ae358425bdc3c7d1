"""
Metadata store in a local sqlite database (peewee)

There is one database per process: opening a SqliteMetaStore (re)binds the tables below
to its database file.
"""
import logging
from pathlib import Path

from peewee import (
    BigIntegerField,
    CharField,
    DatabaseProxy,
    IntegrityError,
    Model,
    PeeweeException,
    SqliteDatabase,
)

from lfsmgmt.models import MetaObject, MetaUser
from lfsmgmt.store import DuplicateUser, MetaStore, StoreError, UserNotFound, _check_object

db = DatabaseProxy()


class LfsObject(Model):
    oid = CharField(primary_key=True)
    size = BigIntegerField()

    class Meta:
        database = db
        table_name = "objects"


class LfsUser(Model):
    name = CharField(primary_key=True)
    password = CharField()

    class Meta:
        database = db
        table_name = "users"


def _object(row: LfsObject) -> MetaObject:
    return MetaObject(oid=row.oid, size=row.size)


def _user(row: LfsUser) -> MetaUser:
    return MetaUser(name=row.name, password=row.password)


class SqliteMetaStore(MetaStore):
    def __init__(self, path: str | Path):
        logging.debug(f"Opening sqlite metadata store at {path}")
        self.database = SqliteDatabase(
            str(path),
            pragmas={"journal_mode": "wal", "busy_timeout": 5000},
            timeout=5,
        )
        db.initialize(self.database)
        try:
            self.database.create_tables([LfsObject, LfsUser])
        except PeeweeException as e:
            raise StoreError(f"Cannot open metadata database {path}: {e}") from e

    def put_object(self, oid: str, size: int) -> MetaObject:
        obj = _check_object(oid, size)
        try:
            LfsObject.replace(oid=obj.oid, size=obj.size).execute()
        except PeeweeException as e:
            raise StoreError(f"Could not store object {oid}: {e}") from e
        return obj

    def get_object(self, oid: str) -> MetaObject | None:
        try:
            row = LfsObject.get_or_none(LfsObject.oid == oid)
        except PeeweeException as e:
            raise StoreError(str(e)) from e
        return _object(row) if row is not None else None

    def objects(self) -> list[MetaObject]:
        try:
            return [_object(row) for row in LfsObject.select().order_by(LfsObject.oid)]
        except PeeweeException as e:
            raise StoreError(str(e)) from e

    def _create_user(self, user: MetaUser) -> None:
        try:
            with self.database.atomic():
                LfsUser.create(name=user.name, password=user.password)
        except IntegrityError as e:
            raise DuplicateUser(f"User {user.name} already exists") from e
        except PeeweeException as e:
            raise StoreError(f"Could not add user {user.name}: {e}") from e

    def delete_user(self, name: str) -> None:
        try:
            deleted = LfsUser.delete().where(LfsUser.name == name).execute()
        except PeeweeException as e:
            raise StoreError(f"Could not delete user {name}: {e}") from e
        if not deleted:
            raise UserNotFound(f"User {name} does not exist")

    def get_user(self, name: str) -> MetaUser | None:
        try:
            row = LfsUser.get_or_none(LfsUser.name == name)
        except PeeweeException as e:
            raise StoreError(str(e)) from e
        return _user(row) if row is not None else None

    def users(self) -> list[MetaUser]:
        try:
            return [_user(row) for row in LfsUser.select().order_by(LfsUser.name)]
        except PeeweeException as e:
            raise StoreError(str(e)) from e

    def close(self) -> None:
        if not self.database.is_closed():
            self.database.close()
