"""Shared test fixtures for specrun.

Provides the JSON:API example document, an indexed view of it, EC key
material for JWT tests, and automatic reset of the global output state.
These fixtures are discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from specrun.models import Credentials, PrivateKeySource
from specrun.output import OutputManager, reset_output, set_output
from specrun.parser.index import SpecIndex
from specrun.parser.schema import SchemaResolver

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_output() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def jsonapi_raw() -> dict[str, Any]:
    """Load the raw JSON:API example document."""
    with open(FIXTURES_DIR / "jsonapi_spec.json") as f:
        return json.load(f)


@pytest.fixture
def spec_index(jsonapi_raw: dict[str, Any]) -> SpecIndex:
    """Indexed view of the example document."""
    return SpecIndex(jsonapi_raw)


@pytest.fixture
def resolver(jsonapi_raw: dict[str, Any]) -> SchemaResolver:
    """Schema resolver bound to the example document."""
    return SchemaResolver(jsonapi_raw)


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    """A throwaway P-256 private key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_private_key_pem(ec_private_key: ec.EllipticCurvePrivateKey) -> str:
    """The throwaway key as PKCS#8 PEM text, like a downloaded ``.p8`` file."""
    return ec_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def credentials(ec_private_key_pem: str) -> Credentials:
    """Credentials with an inline PEM key."""
    return Credentials(
        issuer_id="69a6de70-03db-47e3-e053-5b8c7c11a4d1",
        key_id="2X9R4HXF34",
        private_key=PrivateKeySource.pem(ec_private_key_pem),
    )
