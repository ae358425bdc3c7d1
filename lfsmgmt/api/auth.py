"""Basic authentication for the management pages."""

import logging
import secrets

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPBasic

from lfsmgmt.config import Settings

basic_scheme = HTTPBasic(realm="mgmt", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Basic realm=mgmt"},
    )


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


async def authenticated_admin(request: Request) -> str:
    """
    Check the basic auth credentials against the configured admin user and password.

    If no admin user or password is configured, the management pages do not exist at all,
    so every request gets a 404 (whatever credentials are given).
    """
    settings: Settings = request.app.state.settings
    if not settings.admin_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

    credentials = await basic_scheme(request)
    if credentials is None:
        raise _unauthorized("Authentication required")

    # Compare both values so a wrong user name takes as long as a wrong password
    user_ok = _matches(credentials.username, settings.admin_user)
    pass_ok = _matches(credentials.password, settings.admin_pass)
    if not (user_ok and pass_ok):
        logging.warning(f"Failed management login for user {credentials.username!r}")
        raise _unauthorized("Invalid username or password")
    return credentials.username
