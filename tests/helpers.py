"""
Test helpers shared across test modules.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

AUTH_HEADER = {"Authorization": "Bearer test-token-abc"}
T0 = datetime(2026, 2, 14, 12, 0, 0, tzinfo=UTC)


def mock_db_with_rows(rows: list[dict]) -> AsyncMock:
    """Create a mock AsyncSession whose execute returns the given rows."""
    session = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows
    result.rowcount = len(rows)
    session.execute = AsyncMock(return_value=result)
    session.commit = AsyncMock()
    return session


def override_db_factory(mock_session: AsyncMock):
    """Create a dependency override for get_db that yields mock_session."""

    async def _override():
        yield mock_session

    return _override
