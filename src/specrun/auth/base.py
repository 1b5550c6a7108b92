"""Abstract base class for request authorizers.

This module defines the two foundational types of the auth subsystem:

- :class:`AuthResult` -- a plain container for the HTTP headers an
  authorizer produces.
- :class:`AuthPlugin` -- the abstract base class every authorization
  strategy extends.

Authorizers are bound to their credentials at construction time, so
:meth:`~AuthPlugin.authenticate` takes no arguments. The transport calls it
once per attempt and merges the returned headers into the outgoing request.

See Also:
    :class:`specrun.auth.es256.ES256TokenAuth` for the JWT implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AuthResult:
    """Container for authentication artifacts to inject into HTTP requests.

    Args:
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).

    Example::

        result = AuthResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}


class AuthPlugin(ABC):
    """Abstract base class for request authorizers.

    Concrete strategies provide:

    1. An :attr:`auth_type` property returning a unique identifier.
    2. An :meth:`authenticate` implementation returning the headers to send.
    """

    @property
    @abstractmethod
    def auth_type(self) -> str:
        """Return the unique auth type identifier, e.g. ``"es256_jwt"``."""
        ...

    @abstractmethod
    def authenticate(self) -> AuthResult:
        """Return auth artifacts for the next request.

        Implementations may cache and reuse credentials between calls.

        Raises:
            AuthError: If credentials are missing or cannot be used.
        """
        ...

    def refresh(self) -> AuthResult:
        """Discard any cached credential and authenticate again.

        The default implementation simply re-authenticates; strategies that
        cache tokens override this to drop the cache first.
        """
        return self.authenticate()

    def validate_config(self) -> list[str]:
        """Return human-readable problems with the bound credentials.

        An empty list means the configuration looks usable. The default
        implementation performs no checks.
        """
        return []
