import contextlib
from unittest.mock import AsyncMock, MagicMock

import pytest

from arch_search.context.retry import RetryPolicy


@pytest.fixture
def no_delay_policy():
    """Retry policy with the default attempt count and no waiting."""
    return RetryPolicy(max_retries=4, base_delay=0.0, backoff_factor=1.5, max_delay=0.0)


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def session_factory(mock_session):
    """Callable shaped like ``AsyncSessionLocal`` that always yields ``mock_session``."""

    @contextlib.asynccontextmanager
    async def _factory():
        yield mock_session

    return _factory

