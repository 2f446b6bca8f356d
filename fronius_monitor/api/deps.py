"""
FastAPI dependency injection providers.

Provides database sessions, application settings, the shared inverter HTTP
client and bearer authentication for use with FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from collections.abc import AsyncGenerator

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from fronius_monitor.config import AppSettings
from fronius_monitor.db.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    Thin wrapper around get_async_session so tests can override a single
    dependency.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


def get_settings(request: Request) -> AppSettings:
    """Return the settings loaded during application startup."""
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the shared HTTP client used to reach the inverters."""
    return request.app.state.http_client


async def require_client(request: Request) -> str:
    """Authenticate the request via BearerAuth on app.state.

    Args:
        request: The incoming FastAPI request.

    Returns:
        str: The authenticated client name.
    """
    return await request.app.state.auth.verify(request)
