"""
Operator Principals

The dashboard does not manage sign-in. It only needs to know who, if anyone,
is signed in when a live subscription is requested.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated operator identity"""
    uid: str
    email: Optional[str] = None


class PrincipalProvider(Protocol):
    """Source of the currently signed-in operator"""

    def current_principal(self) -> Optional[Principal]:
        ...


class StaticPrincipalProvider:
    """Provider bound to a single, already-resolved principal (or none)"""

    def __init__(self, principal: Optional[Principal] = None):
        self._principal = principal

    def current_principal(self) -> Optional[Principal]:
        return self._principal


class ApiKeyAuthenticator:
    """
    Resolve operator API keys to principals.

    Example:
        authenticator = ApiKeyAuthenticator({"k-123": "operator-1"})
        principal = authenticator.authenticate(request.headers.get("X-API-Key"))
    """

    def __init__(self, api_keys: Dict[str, str]):
        self._api_keys = dict(api_keys)

    def authenticate(self, api_key: Optional[str]) -> Optional[Principal]:
        """Return the principal owning ``api_key``, or None if unknown"""
        if not api_key:
            return None

        uid = self._api_keys.get(api_key)
        if uid is None:
            logger.warning("Rejected unknown operator API key")
            return None

        return Principal(uid=uid)
