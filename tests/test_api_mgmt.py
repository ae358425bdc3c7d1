import threading

import pytest
from fastapi.templating import Jinja2Templates
from fastapi.testclient import TestClient

from lfsmgmt.api import create_app
from lfsmgmt.api.mgmt import _cancel_on_disconnect, refresh
from lfsmgmt.config import Settings
from tests.tools import ADMIN, FailingStore, SlowStore, check, objectset, usernames, write_tree

ROUTES = [
    ("get", "/mgmt"),
    ("get", "/mgmt/refresh"),
    ("get", "/mgmt/objects"),
    ("get", "/mgmt/users"),
    ("post", "/mgmt/add"),
    ("post", "/mgmt/del"),
    ("get", "/mgmt/css/mgmt.css"),
]


def _request(client: TestClient, method: str, url: str, **kargs):
    if method == "post":
        return client.post(url, data={"name": "bob", "password": "pw"}, **kargs)
    return client.get(url, **kargs)


@pytest.mark.parametrize("admin_user,admin_pass", [("", ""), ("admin", ""), ("", "s3cret")])
def test_disabled_without_admin(content, memory_store, admin_user, admin_pass):
    """Without admin credentials configured, the management pages do not exist"""
    settings = Settings(admin_user=admin_user, admin_pass=admin_pass, content_path=content)
    client = TestClient(create_app(settings, memory_store), follow_redirects=False)
    for method, url in ROUTES:
        check(_request(client, method, url), 404, f"{method} {url}")
        check(_request(client, method, url, auth=ADMIN), 404, f"{method} {url} with auth")
        check(_request(client, method, url, auth=(admin_user, admin_pass)), 404, f"{method} {url} with own auth")
    assert memory_store.users() == []


def test_requires_auth(client: TestClient, auth):
    for method, url in ROUTES:
        for credentials in [None, ("admin", "wrong"), ("wrong", auth[1])]:
            r = _request(client, method, url, auth=credentials)
            check(r, 401, f"{method} {url} as {credentials}")
            assert r.headers["www-authenticate"].startswith("Basic")
    check(client.get("/mgmt", headers={"Authorization": "Bearer sometoken"}), 401)


def test_index(client: TestClient, auth, settings):
    r = client.get("/mgmt", auth=auth)
    check(r, 200)
    assert r.headers["content-type"].startswith("text/html")
    assert str(settings.content_path) in r.text
    assert settings.admin_pass not in r.text


def test_refresh_and_objects(client: TestClient, auth, content, memory_store):
    write_tree(content, {"ab/cd/ef0123": 10, "12/34/56789a": 20, "README": 4})
    r = client.get("/mgmt/refresh", auth=auth)
    check(r, 200)
    assert r.text == "refreshed"
    assert objectset(memory_store.objects()) == {("abcdef0123", 10), ("123456789a", 20)}

    r = client.get("/mgmt/objects", auth=auth)
    check(r, 200)
    assert "abcdef0123" in r.text
    assert "123456789a" in r.text


def test_refresh_with_errors(content, settings, auth):
    """Store errors during a refresh are logged, the refresh itself still succeeds"""
    write_tree(content, {"ab/cd/ef0123": 10})
    client = TestClient(create_app(settings, FailingStore(broken=True)))
    r = client.get("/mgmt/refresh", auth=auth)
    check(r, 200)
    assert r.text == "refreshed"


def test_list_errors(settings, auth):
    client = TestClient(create_app(settings, FailingStore(broken=True)))
    r = client.get("/mgmt/objects", auth=auth)
    check(r, 200)
    assert r.text == "Error retrieving objects: database is gone"
    r = client.get("/mgmt/users", auth=auth)
    assert r.text == "Error retrieving users: database is gone"


def test_add_user(client: TestClient, auth, memory_store):
    r = client.post("/mgmt/add", data={"name": "bob", "password": "hunter2"}, auth=auth)
    check(r, 302)
    assert r.headers["location"] == "/mgmt/users"
    assert usernames(memory_store.users()) == ["bob"]
    assert memory_store.authenticate("bob", "hunter2")

    r = client.get("/mgmt/users", auth=auth)
    check(r, 200)
    assert "bob" in r.text
    assert "hunter2" not in r.text

    r = client.post("/mgmt/add", data={"name": "bob", "password": "other"}, auth=auth)
    check(r, 200)
    assert r.text.startswith("Error adding user:")
    assert memory_store.authenticate("bob", "hunter2")


@pytest.mark.parametrize("data", [{"name": "", "password": "x"}, {"name": "bob", "password": ""}, {"name": "bob"}, {}])
def test_add_user_invalid(client: TestClient, auth, memory_store, data):
    """Empty names or passwords are refused before they reach the store"""
    r = client.post("/mgmt/add", data=data, auth=auth)
    check(r, 200)
    assert r.text == "Invalid username or password"
    assert memory_store.users() == []


def test_add_user_store_error(settings, auth):
    client = TestClient(create_app(settings, FailingStore(broken=True)), follow_redirects=False)
    r = client.post("/mgmt/add", data={"name": "bob", "password": "pw"}, auth=auth)
    assert r.text == "Error adding user: database is gone"


def test_add_user_long_password(client: TestClient, auth, memory_store):
    r = client.post("/mgmt/add", data={"name": "bob", "password": "x" * 100}, auth=auth)
    check(r, 200)
    assert r.text.startswith("Error adding user:")
    assert memory_store.users() == []


def test_delete_user(client: TestClient, auth, memory_store):
    memory_store.add_user("alice", "pw")
    memory_store.add_user("bob", "pw")
    r = client.post("/mgmt/del", data={"name": "alice"}, auth=auth)
    check(r, 302)
    assert r.headers["location"] == "/mgmt/users"
    assert usernames(memory_store.users()) == ["bob"]

    r = client.post("/mgmt/del", data={"name": "alice"}, auth=auth)
    check(r, 200)
    assert r.text.startswith("Error deleting user:")

    r = client.post("/mgmt/del", data={"name": ""}, auth=auth)
    assert r.text == "Invalid username"
    assert usernames(memory_store.users()) == ["bob"]


def test_css(client: TestClient, auth):
    r = client.get("/mgmt/css/mgmt.css", auth=auth)
    check(r, 200)
    assert r.headers["content-type"].startswith("text/css")
    assert "body" in r.text
    check(client.get("/mgmt/css/missing.css", auth=auth), 404)
    check(client.get("/mgmt/css/..%2F__init__.py", auth=auth), 404)


def test_render_failure(client: TestClient, auth, tmp_path, monkeypatch):
    """A missing template gives a 404"""
    monkeypatch.setattr("lfsmgmt.api.mgmt.templates", Jinja2Templates(directory=tmp_path))
    check(client.get("/mgmt", auth=auth), 404)
    check(client.get("/mgmt/users", auth=auth), 404)


class GoneRequest:
    """Stand-in for a request whose client has already disconnected"""

    def __init__(self):
        self.checked = 0

    async def is_disconnected(self) -> bool:
        self.checked += 1
        return True


@pytest.mark.anyio
async def test_cancel_on_disconnect():
    request = GoneRequest()
    cancel = threading.Event()
    await _cancel_on_disconnect(request, cancel)  # type: ignore
    assert cancel.is_set()
    assert request.checked == 1


@pytest.mark.anyio
async def test_refresh_stops_on_disconnect(settings, content):
    """A refresh stops writing objects once the client is gone"""
    files = {f"ab/cd/{i:04x}": 1 for i in range(40)}
    write_tree(content, files)
    store = SlowStore(delay=0.05)
    assert await refresh(GoneRequest(), settings, store) == "refreshed"  # type: ignore
    assert len(store.objects()) < len(files)
