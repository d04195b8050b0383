"""
Authentication Module
"""
from .principal import ApiKeyAuthenticator, Principal, PrincipalProvider, StaticPrincipalProvider

__all__ = [
    "ApiKeyAuthenticator",
    "Principal",
    "PrincipalProvider",
    "StaticPrincipalProvider",
]
