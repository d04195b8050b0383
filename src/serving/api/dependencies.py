"""
API Dependencies

Request-scoped access to the store, settings and the calling operator.
"""

from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, Request

from src.auth.principal import ApiKeyAuthenticator, Principal
from src.config import Settings
from src.domain.errors import Unauthenticated
from src.store.interfaces import OrderStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> OrderStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Order store not initialized")
    return store


def get_display_timezone(settings: Settings = Depends(get_app_settings)) -> ZoneInfo:
    return ZoneInfo(settings.dashboard.timezone)


def get_principal(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Optional[Principal]:
    """Resolve the operator API key header, if any"""
    authenticator: ApiKeyAuthenticator = request.app.state.authenticator
    return authenticator.authenticate(request.headers.get(settings.security.api_key_header))


def require_principal(principal: Optional[Principal] = Depends(get_principal)) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal
