"""Request authorization for specrun.

- :class:`AuthPlugin` -- abstract base class for authorization strategies.
- :class:`AuthResult` -- headers an authorizer wants added to a request.
- :class:`ES256TokenAuth` -- ES256-signed JWT bearer tokens with caching.

Typical usage::

    from specrun.auth import ES256TokenAuth

    auth = ES256TokenAuth(settings.credentials)
    headers = auth.authenticate().headers
"""

from specrun.auth.base import AuthPlugin, AuthResult
from specrun.auth.es256 import ES256TokenAuth

__all__ = [
    "AuthPlugin",
    "AuthResult",
    "ES256TokenAuth",
]
