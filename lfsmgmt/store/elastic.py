"""
Metadata store in elasticsearch

Objects and users are kept in two indices, <system_index>_objects and <system_index>_users,
using the oid and user name as document id. Both indices are created when the store is opened.
"""
import logging

import elasticsearch.helpers
from elasticsearch import ApiError, ConflictError, Elasticsearch, NotFoundError, TransportError

from lfsmgmt.config import Settings
from lfsmgmt.models import MetaObject, MetaUser
from lfsmgmt.store import DuplicateUser, MetaStore, StoreError, UserNotFound, _check_object

OBJECTS_MAPPING = {"oid": {"type": "keyword"}, "size": {"type": "long"}}
USERS_MAPPING = {"name": {"type": "keyword"}, "password": {"type": "keyword", "index": False}}

ElasticErrors = (ApiError, TransportError)


def connect_elastic(settings: Settings) -> Elasticsearch:
    """
    Connect to the elastic server using the given settings
    """
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, password? {'yes' if settings.elastic_password else 'no'} "
    )
    if settings.elastic_password:
        return Elasticsearch(
            settings.elastic_host,
            basic_auth=("elastic", settings.elastic_password),
            verify_certs=bool(settings.elastic_verify_ssl),
        )
    else:
        return Elasticsearch(settings.elastic_host or None)


class ElasticMetaStore(MetaStore):
    def __init__(self, elastic: Elasticsearch, prefix: str):
        self.es = elastic
        self.objects_index = f"{prefix}_objects"
        self.users_index = f"{prefix}_users"
        try:
            self._create_index(self.objects_index, OBJECTS_MAPPING)
            self._create_index(self.users_index, USERS_MAPPING)
        except ElasticErrors as e:
            raise StoreError(f"Cannot set up metadata indices: {e}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "ElasticMetaStore":
        elastic = connect_elastic(settings)
        try:
            alive = elastic.ping()
        except ElasticErrors:
            alive = False
        if not alive:
            raise StoreError(f"Cannot connect to elasticsearch server {settings.elastic_host}")
        return cls(elastic, settings.system_index)

    def _create_index(self, index: str, properties: dict) -> None:
        if not self.es.indices.exists(index=index):
            logging.info(f"Creating metadata index {index}")
            self.es.indices.create(index=index, mappings={"properties": properties})

    def put_object(self, oid: str, size: int) -> MetaObject:
        obj = _check_object(oid, size)
        try:
            self.es.index(index=self.objects_index, id=oid, document=obj.model_dump())
        except ElasticErrors as e:
            raise StoreError(f"Could not store object {oid}: {e}") from e
        return obj

    def get_object(self, oid: str) -> MetaObject | None:
        doc = self._get(self.objects_index, oid)
        return MetaObject.model_validate(doc) if doc is not None else None

    def objects(self) -> list[MetaObject]:
        docs = self._scan(self.objects_index)
        return sorted((MetaObject.model_validate(d) for d in docs), key=lambda o: o.oid)

    def _create_user(self, user: MetaUser) -> None:
        try:
            self.es.create(index=self.users_index, id=user.name, document=user.model_dump(), refresh=True)
        except ConflictError as e:
            raise DuplicateUser(f"User {user.name} already exists") from e
        except ElasticErrors as e:
            raise StoreError(f"Could not add user {user.name}: {e}") from e

    def delete_user(self, name: str) -> None:
        try:
            self.es.delete(index=self.users_index, id=name, refresh=True)
        except NotFoundError as e:
            raise UserNotFound(f"User {name} does not exist") from e
        except ElasticErrors as e:
            raise StoreError(f"Could not delete user {name}: {e}") from e

    def get_user(self, name: str) -> MetaUser | None:
        doc = self._get(self.users_index, name)
        return MetaUser.model_validate(doc) if doc is not None else None

    def users(self) -> list[MetaUser]:
        docs = self._scan(self.users_index)
        return sorted((MetaUser.model_validate(d) for d in docs), key=lambda u: u.name)

    def close(self) -> None:
        self.es.close()

    def _get(self, index: str, id: str) -> dict | None:
        try:
            doc = self.es.options(ignore_status=[404]).get(index=index, id=id)
        except ElasticErrors as e:
            raise StoreError(str(e)) from e
        return doc["_source"] if doc.get("found") else None

    def _scan(self, index: str) -> list[dict]:
        """Get the source of all documents in the index (after a refresh, so recent writes are included)"""
        try:
            self.es.indices.refresh(index=index)
            hits = elasticsearch.helpers.scan(self.es, index=index, query={"query": {"match_all": {}}})
            return [hit["_source"] for hit in hits]
        except ElasticErrors as e:
            raise StoreError(str(e)) from e
