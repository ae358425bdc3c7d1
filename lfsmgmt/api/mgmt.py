"""API Endpoints for the management pages: objects, users and refreshing the object metadata."""

import logging
import re
import threading
from pathlib import Path
from typing import Annotated

import anyio
from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from lfsmgmt.api.auth import authenticated_admin
from lfsmgmt.config import Settings
from lfsmgmt.reconcile import refresh_objects
from lfsmgmt.store import MetaStore, StoreError

PACKAGE_DIR = Path(__file__).parent.parent
CSS_DIR = PACKAGE_DIR / "css"
CSS_FILE = re.compile(r"^[\w.-]+\.css$")

templates = Jinja2Templates(directory=PACKAGE_DIR / "templates")

app_mgmt = APIRouter(prefix="/mgmt", tags=["management"], dependencies=[Depends(authenticated_admin)])


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> MetaStore:
    return request.app.state.store


def render(request: Request, template: str, **context) -> HTMLResponse:
    """Render a page, turning a missing or broken template into a 404"""
    try:
        return templates.TemplateResponse(request, template, context)
    except TemplateError as e:
        logging.error(f"Could not render {template}: {e}")
        raise HTTPException(status_code=404)


@app_mgmt.get("", response_class=HTMLResponse)
def index(request: Request, settings: Settings = Depends(app_settings)):
    """Show the configuration of this server."""
    config = settings.model_dump(mode="json", exclude={"admin_pass", "elastic_password"})
    return render(request, "config.html", name="index", config=config)


async def _cancel_on_disconnect(request: Request, cancel: threading.Event) -> None:
    while not cancel.is_set():
        if await request.is_disconnected():
            logging.info("Client went away, cancelling refresh")
            cancel.set()
            return
        await anyio.sleep(0.5)


@app_mgmt.get("/refresh", response_class=PlainTextResponse)
async def refresh(
    request: Request, settings: Settings = Depends(app_settings), store: MetaStore = Depends(get_store)
):
    """
    Walk the content path and (re)register every object found there.
    Runs the whole walk before answering. Errors for single files are logged, not returned.
    """
    cancel = threading.Event()
    async with anyio.create_task_group() as tg:
        tg.start_soon(_cancel_on_disconnect, request, cancel)
        await run_in_threadpool(
            refresh_objects, store, settings.content_path, workers=settings.refresh_workers, cancel=cancel
        )
        tg.cancel_scope.cancel()
    return "refreshed"


@app_mgmt.get("/objects", response_class=HTMLResponse)
def objects(request: Request, store: MetaStore = Depends(get_store)):
    """List all registered objects."""
    try:
        objects = store.objects()
    except StoreError as e:
        return PlainTextResponse(f"Error retrieving objects: {e}")
    return render(request, "objects.html", name="objects", objects=objects)


@app_mgmt.get("/users", response_class=HTMLResponse)
def users(request: Request, store: MetaStore = Depends(get_store)):
    """List all users."""
    try:
        users = store.users()
    except StoreError as e:
        return PlainTextResponse(f"Error retrieving users: {e}")
    return render(request, "users.html", name="users", users=users)


@app_mgmt.post("/add")
def add_user(
    name: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    store: MetaStore = Depends(get_store),
):
    """Add a user, then go back to the user list."""
    if not name or not password:
        return PlainTextResponse("Invalid username or password")
    try:
        store.add_user(name, password)
    except (StoreError, ValueError) as e:
        return PlainTextResponse(f"Error adding user: {e}")
    logging.info(f"Added user {name}")
    return RedirectResponse("/mgmt/users", status_code=302)


@app_mgmt.post("/del")
def delete_user(name: Annotated[str, Form()] = "", store: MetaStore = Depends(get_store)):
    """Delete a user, then go back to the user list."""
    if not name:
        return PlainTextResponse("Invalid username")
    try:
        store.delete_user(name)
    except StoreError as e:
        return PlainTextResponse(f"Error deleting user: {e}")
    logging.info(f"Deleted user {name}")
    return RedirectResponse("/mgmt/users", status_code=302)


@app_mgmt.get("/css/{file}")
def css(file: str):
    """Serve one of the bundled stylesheets."""
    path = CSS_DIR / file
    if not CSS_FILE.match(file) or not path.is_file():
        raise HTTPException(status_code=404)
    return FileResponse(path, media_type="text/css")
