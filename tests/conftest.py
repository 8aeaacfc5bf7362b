from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest

TEST_DATA = Path(__file__).parent / "testdata"


@pytest.fixture
def testdata() -> Path:
    """Return the testdata dir for this module"""
    return TEST_DATA


@pytest.fixture
def mock_client() -> Generator[Callable[..., httpx.Client], None, None]:
    """Return a factory for httpx clients answering requests with `handler`"""
    clients = []

    def factory(handler) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
