"""OAuth client-credentials token exchange for the DevCycle Management API."""

import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://auth.devcycle.com/oauth/token"
DEFAULT_AUDIENCE = "https://api.devcycle.com/"


class AuthenticationError(Exception):
    """A bearer token could not be obtained."""


def fetch_oauth_token(
    client_id: str,
    client_secret: str,
    auth_url: str = DEFAULT_AUTH_URL,
    audience: str = DEFAULT_AUDIENCE,
    timeout: float = 10.0
) -> str:
    """
    Exchange client credentials for a bearer token.

    Raises:
        AuthenticationError: if the request fails or no token is returned
    """
    payload = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
        "audience": audience,
    }

    try:
        response = requests.post(auth_url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise AuthenticationError(f"Failed to request OAuth token: {e}") from e

    if response.status_code != 200:
        raise AuthenticationError(
            f"Unexpected status: {response.status_code}, body: {response.text}"
        )

    try:
        token = response.json().get("access_token")
    except ValueError as e:
        raise AuthenticationError(f"Failed to decode token response: {e}") from e

    if not token:
        raise AuthenticationError("Token response did not contain an access_token")

    logger.info("Obtained DevCycle API token via client credentials")
    return token
