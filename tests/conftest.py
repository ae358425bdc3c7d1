import pytest
from elasticsearch import ApiError, Elasticsearch, TransportError
from fastapi.testclient import TestClient

from lfsmgmt.api import create_app
from lfsmgmt.config import MetaStoreOptions, Settings
from lfsmgmt.store import MetaStore
from lfsmgmt.store.elastic import ElasticMetaStore
from lfsmgmt.store.memory import MemoryMetaStore
from lfsmgmt.store.sqlite import SqliteMetaStore
from tests.tools import ADMIN

LFSMGMT_TESTS_PREFIX = "lfsmgmt_unittest"
ELASTIC_TEST_HOST = "http://localhost:9200"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def _elastic_or_skip() -> Elasticsearch:
    elastic = Elasticsearch(ELASTIC_TEST_HOST, request_timeout=2)
    try:
        alive = elastic.ping()
    except (ApiError, TransportError):
        alive = False
    if not alive:
        pytest.skip(f"No elasticsearch server at {ELASTIC_TEST_HOST}, skipping elastic store tests")
    return elastic


def _drop_test_indices(elastic: Elasticsearch):
    for suffix in ["objects", "users"]:
        elastic.options(ignore_status=[404]).indices.delete(index=f"{LFSMGMT_TESTS_PREFIX}_{suffix}")


@pytest.fixture(params=["memory", "sqlite", "elastic"])
def store(request, tmp_path):
    """A fresh, empty metadata store of every available kind"""
    s: MetaStore
    if request.param == "memory":
        s = MemoryMetaStore()
    elif request.param == "sqlite":
        s = SqliteMetaStore(tmp_path / "meta.db")
    else:
        elastic = _elastic_or_skip()
        _drop_test_indices(elastic)
        s = ElasticMetaStore(elastic, LFSMGMT_TESTS_PREFIX)
    yield s
    if request.param == "elastic":
        _drop_test_indices(s.es)  # type: ignore
    s.close()


@pytest.fixture
def content(tmp_path):
    """An empty content directory"""
    path = tmp_path / "content"
    path.mkdir()
    return path


@pytest.fixture
def settings(content):
    return Settings(
        admin_user=ADMIN[0],
        admin_pass=ADMIN[1],
        content_path=content,
        meta_store=MetaStoreOptions.memory,
    )


@pytest.fixture
def memory_store():
    return MemoryMetaStore()


@pytest.fixture
def client(settings, memory_store):
    app = create_app(settings, memory_store)
    with TestClient(app, follow_redirects=False) as client:
        yield client


@pytest.fixture
def auth():
    return ADMIN
