"""Clients for the DevCycle destination service."""

from .auth import AuthenticationError, fetch_oauth_token
from .devcycle_client import (
    DevCycleClient,
    DevCycleAPIError,
    ConflictError,
    ServerError,
)

__all__ = [
    "AuthenticationError",
    "fetch_oauth_token",
    "DevCycleClient",
    "DevCycleAPIError",
    "ConflictError",
    "ServerError",
]
