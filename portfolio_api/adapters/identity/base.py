"""Identity resolution interface.

Authentication itself belongs to the external identity provider; the
admission middleware only needs to know who (if anyone) is behind a
request and which claims the provider asserted about them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from starlette.requests import HTTPConnection


@dataclass(frozen=True)
class Identity:
    """An authenticated subject and the claims asserted about it."""

    user_id: str
    claims: Mapping[str, Any] = field(default_factory=dict)


class AbstractIdentityResolver(ABC):
    """Interface for resolving the identity behind a request."""

    @abstractmethod
    async def resolve(self, connection: HTTPConnection) -> Identity | None:
        """Return the request's identity, or None when unauthenticated.

        Raises:
            AuthenticationAppError: If credentials are present but invalid.
        """
        raise NotImplementedError
