import pytest_asyncio

from solplan.token_registry import TokenRegistry
from support import empty_token_list, mock_client


@pytest_asyncio.fixture
async def registry():
    """Seeded registry that has already completed one (empty) refresh."""
    client = mock_client(empty_token_list)
    token_registry = TokenRegistry(http_client=client)
    await token_registry.refresh()
    yield token_registry
    await client.aclose()
