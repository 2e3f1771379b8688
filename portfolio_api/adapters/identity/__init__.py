"""Identity adapters - who is behind a request, per the identity provider."""

from portfolio_api.adapters.identity.base import AbstractIdentityResolver, Identity
from portfolio_api.adapters.identity.jwt_session import JWTSessionResolver

__all__ = [
    "AbstractIdentityResolver",
    "Identity",
    "JWTSessionResolver",
]
