"""Root conftest — shared fixtures."""

import pytest

from graphtxn.observability import configure_logging
from graphtxn.store import DEFAULT_SCHEMA, MemoryGateway
from graphtxn.workflow import ToggleRequest

from tests.helpers import ok

# Logs go to stderr through stdlib logging, never to captured stdout
configure_logging("DEBUG")


@pytest.fixture
async def gateway() -> MemoryGateway:
    gw = MemoryGateway()
    ok(await gw.install_schema(DEFAULT_SCHEMA))
    return gw


@pytest.fixture
def vikram() -> ToggleRequest:
    return ToggleRequest(terms="Vikram Mali", balance=26)
