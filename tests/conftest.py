import os

# Keep test runs from writing an error log into the working tree
os.environ.setdefault("LOG_FILE", "")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from ledger import Ledger
from main import create_app


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}"


@pytest_asyncio.fixture
async def ledger(database_url):
    ledger = Ledger(database_url)
    await ledger.init()
    yield ledger
    await ledger.close()


@pytest.fixture
def client(database_url):
    app = create_app(Ledger(database_url))
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
