"""Settings resolution for one invocation.

specrun never reads configuration files or environment variables itself.
Whatever drives it (a CLI, a test, another service) resolves credentials and
endpoint settings and hands them over as a
:class:`~specrun.models.ResolvedSettings`. This module only fills in defaults
and normalizes the values:

* :func:`resolve_settings` -- build a settings object, explicit values over
  defaults.
* :func:`normalize_base_url` -- ensure the base URL ends with ``/``.
* :func:`api_root_for` -- the root against which absolute OpenAPI paths
  (``/v1/apps``) are resolved.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urljoin

from specrun.exceptions import InvalidArgumentError
from specrun.models import (
    DEFAULT_BASE_URL,
    Credentials,
    PrivateKeySource,
    ResolvedSettings,
    RetryPolicy,
)


def resolve_settings(
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    max_attempts: Optional[int] = None,
    base_delay_seconds: Optional[float] = None,
    issuer_id: Optional[str] = None,
    key_id: Optional[str] = None,
    private_key_pem: Optional[str] = None,
    private_key_path: Optional[str] = None,
) -> ResolvedSettings:
    """Build :class:`ResolvedSettings` from explicit values, falling back to defaults.

    Credentials are only attached when *issuer_id*, *key_id* and one key
    source are all given; a partial set is rejected.

    Raises:
        InvalidArgumentError: If both key sources are given, or credentials
            are only partially specified, or the base URL is not http(s).
    """
    policy: dict[str, Any] = {}
    if max_attempts is not None:
        policy["max_attempts"] = max_attempts
    if base_delay_seconds is not None:
        policy["base_delay_seconds"] = base_delay_seconds

    values: dict[str, Any] = {
        "base_url": normalize_base_url(base_url) if base_url is not None else DEFAULT_BASE_URL,
        "retry_policy": RetryPolicy(**policy),
        "credentials": _credentials(issuer_id, key_id, private_key_pem, private_key_path),
    }
    if timeout_seconds is not None:
        values["timeout_seconds"] = timeout_seconds
    return ResolvedSettings(**values)


def normalize_base_url(base_url: str) -> str:
    """Strip whitespace and guarantee a trailing ``/``.

    Raises:
        InvalidArgumentError: If *base_url* is not an absolute http(s) URL.
    """
    url = base_url.strip()
    if not url.startswith(("http://", "https://")):
        raise InvalidArgumentError(
            f"Invalid base URL: {base_url!r}. Expected an http(s) URL.",
            details={"baseURL": base_url},
        )
    return url if url.endswith("/") else url + "/"


def api_root_for(base_url: str) -> str:
    """Return *base_url* with its last path component removed.

    OpenAPI paths carry their own version prefix, so they are resolved
    against the parent of the versioned base URL.

    Example::

        >>> api_root_for("https://api.appstoreconnect.apple.com/v1/")
        'https://api.appstoreconnect.apple.com/'
    """
    return urljoin(normalize_base_url(base_url), "..")


def _credentials(
    issuer_id: Optional[str],
    key_id: Optional[str],
    private_key_pem: Optional[str],
    private_key_path: Optional[str],
) -> Optional[Credentials]:
    if private_key_pem is not None and private_key_path is not None:
        raise InvalidArgumentError("Provide only one of a private key PEM or a private key path.")

    source: Optional[PrivateKeySource] = None
    if private_key_pem is not None:
        source = PrivateKeySource.pem(private_key_pem)
    elif private_key_path is not None:
        source = PrivateKeySource.file(private_key_path)

    supplied = {"issuerId": issuer_id, "keyId": key_id, "privateKey": source}
    if all(v is None for v in supplied.values()):
        return None
    missing = sorted(name for name, v in supplied.items() if v is None)
    if missing:
        raise InvalidArgumentError(
            f"Incomplete credentials; missing: {', '.join(missing)}.",
            details={"missing": missing},
        )
    return Credentials(issuer_id=issuer_id, key_id=key_id, private_key=source)
