"""Session-token identity resolver.

The identity provider issues a signed JWT, delivered either in the session
cookie or as a bearer token. The token is verified with the provider
secret; its ``sub`` claim is the user id and the remaining claims are
trusted as-is.
"""

from __future__ import annotations

import logging
from typing import Sequence

from jose import JWTError, jwt
from starlette.requests import HTTPConnection

from portfolio_api.adapters.identity.base import AbstractIdentityResolver, Identity
from portfolio_api.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


class JWTSessionResolver(AbstractIdentityResolver):
    """Resolve identities from provider-signed session tokens."""

    def __init__(
        self,
        secret_key: str | None,
        *,
        algorithms: Sequence[str] = ("HS256",),
        cookie_name: str = "__session",
    ) -> None:
        self._secret_key = secret_key
        self._algorithms = list(algorithms)
        self._cookie_name = cookie_name

    def _extract_token(self, connection: HTTPConnection) -> str | None:
        authorization = connection.headers.get("authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return connection.cookies.get(self._cookie_name) or None

    async def resolve(self, connection: HTTPConnection) -> Identity | None:
        token = self._extract_token(connection)
        if token is None:
            return None

        if not self._secret_key:
            # Without a secret no token can be trusted.
            logger.warning("identity.secret_not_configured")
            return None

        try:
            claims = jwt.decode(token, self._secret_key, algorithms=self._algorithms)
        except JWTError as exc:
            raise AuthenticationAppError(
                code="invalid_session_token",
                message="Session token could not be verified",
                details={"hint": type(exc).__name__},
            ) from exc

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationAppError(
                code="invalid_session_token",
                message="Session token has no subject",
            )

        return Identity(user_id=str(user_id), claims=claims)
