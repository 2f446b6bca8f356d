"""
Health check endpoint for the dashboard API.

GET /health returns {"status": "ok"} with HTTP 200 and requires no
authentication; it is intended for container health checks only. It does
not touch the database or the inverters.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple liveness status."""
    return {"status": "ok"}
