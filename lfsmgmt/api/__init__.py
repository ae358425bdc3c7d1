"""LFS object store management API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lfsmgmt.api.mgmt import app_mgmt
from lfsmgmt.config import Settings, get_settings, validate_settings
from lfsmgmt.store import MetaStore, open_store


def create_app(settings: Settings | None = None, store: MetaStore | None = None) -> FastAPI:
    """
    Create the management app.

    Settings and store are fixed for the lifetime of the app. If no store is given,
    the configured store is opened on startup and closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            logging.info(f"Opening {settings.meta_store.value} metadata store...")
            app.state.store = open_store(settings)
        if warning := validate_settings(settings):
            logging.warning(warning)

        yield
        if owns_store:
            app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="lfsmgmt",
        description=__doc__ if __doc__ else "",
        openapi_tags=[
            dict(name="management", description="Management pages for objects and users"),
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.include_router(app_mgmt)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "message": "There was an issue with the data you sent.",
                "fields_invalid": jsonable_encoder(exc.errors()),
            },
        )

    return app
