"""
Shared FastAPI dependencies.

Responsibility: Settings access, caller address and admin password checks
"""

from typing import Optional
import hmac
import logging

from fastapi import Depends, Header, Request

from constituant.config import Settings, settings
from constituant.services.admin_service import AdminError

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    """Application settings (overridden in tests)"""
    return settings


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the caller address.

    The first hop of X-Forwarded-For wins over the socket peer, since
    the API is deployed behind a reverse proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def verify_admin_password(password: Optional[str], app_settings: Settings) -> None:
    """
    Compare a submitted password with the configured admin secret.

    An empty configured secret disables every admin operation.

    Raises:
        AdminError: unauthorized
    """
    expected = app_settings.app.admin_password
    if not expected or not password:
        raise AdminError.unauthorized()
    if not hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with an invalid password")
        raise AdminError.unauthorized()


async def require_admin(
    x_admin_password: Optional[str] = Header(None, alias="X-Admin-Password"),
    app_settings: Settings = Depends(get_settings),
) -> None:
    """Guard for admin routes authenticated by header"""
    verify_admin_password(x_admin_password, app_settings)
