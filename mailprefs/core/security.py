"""HTTP Basic admin gate for the results pages."""

import secrets
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from mailprefs.core.config import Settings
from mailprefs.core.exceptions import AuthenticationError
from mailprefs.api.deps import get_settings_dep

ADMIN_REALM = "Admin Area"

# auto_error is off so every failure gets the same challenge response.
security_scheme = HTTPBasic(realm=ADMIN_REALM, auto_error=False)


def verify_admin(credentials: Optional[HTTPBasicCredentials], settings: Settings) -> bool:
    """Return True when the supplied credentials match the configured admin."""
    if credentials is None:
        return False
    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.ADMIN_USERNAME.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8")
    )
    return username_ok and password_ok


async def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(security_scheme),
    settings: Settings = Depends(get_settings_dep),
) -> str:
    """Dependency that rejects the request with a Basic challenge unless admin."""
    if not verify_admin(credentials, settings):
        raise AuthenticationError("Admin credentials required", realm=ADMIN_REALM)
    return credentials.username
