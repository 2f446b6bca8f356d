"""
Bearer token authentication for the dashboard API.

Parses API tokens from the API_TOKENS setting and validates incoming
Authorization: Bearer {token} headers. Uses constant-time comparison via
secrets.compare_digest to prevent timing attacks.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging
import secrets

from fastapi import HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_NAME = "dashboard"


def parse_api_tokens(raw: str) -> dict[str, str]:
    """Parse the API_TOKENS setting into a token-to-client mapping.

    Format: "token1:client1,token2" -- the client name is optional and
    defaults to ``dashboard``. Blank entries are skipped.

    Args:
        raw: The raw comma-separated token list.

    Returns:
        dict[str, str]: Mapping of token -> client name.
    """
    if not raw or not raw.strip():
        return {}

    token_map: dict[str, str] = {}
    for entry in raw.split(","):
        token, _, client = entry.strip().partition(":")
        token = token.strip()
        if not token:
            continue
        token_map[token] = client.strip() or DEFAULT_CLIENT_NAME
    return token_map


def verify_bearer_token(token: str, token_map: dict[str, str]) -> str | None:
    """Validate a bearer token using constant-time comparison.

    Every configured token is compared so the response time does not reveal
    which token matched.

    Args:
        token: The bearer token extracted from the Authorization header.
        token_map: Mapping of valid token -> client name.

    Returns:
        str | None: The client name if the token is valid, None otherwise.
    """
    if not token:
        return None

    matched: str | None = None
    for registered_token, client in token_map.items():
        if secrets.compare_digest(
            token.encode("utf-8"), registered_token.encode("utf-8")
        ):
            matched = client
    return matched


class BearerAuth:
    """FastAPI-compatible Bearer token authentication dependency.

    Attributes:
        token_map: Mapping of valid token -> client name.
        scheme: FastAPI HTTPBearer security scheme.
    """

    def __init__(self, token_map: dict[str, str]) -> None:
        self.token_map = token_map
        self.scheme = HTTPBearer(auto_error=False)

    async def verify(self, request: Request) -> str:
        """Validate the request's Bearer token and return the client name.

        Args:
            request: The incoming FastAPI request.

        Returns:
            str: The client name associated with the token.

        Raises:
            HTTPException: 401 Unauthorized if the token is invalid or missing.
        """
        credentials: HTTPAuthorizationCredentials | None = await self.scheme(request)

        if credentials is None:
            raise HTTPException(
                status_code=401,
                detail="Missing authorization credentials.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        client = verify_bearer_token(credentials.credentials, self.token_map)
        if client is None:
            logger.warning("Rejected request with invalid bearer token")
            raise HTTPException(
                status_code=401,
                detail="Invalid or expired token.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return client
