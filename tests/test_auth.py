import json

import pytest
import responses

from flag_migrator.loaders.auth import AuthenticationError, fetch_oauth_token

AUTH_URL = "https://auth.devcycle.test/oauth/token"


@responses.activate
def test_fetch_oauth_token():
    responses.add(responses.POST, AUTH_URL, json={"access_token": "abc123", "token_type": "Bearer"}, status=200)

    token = fetch_oauth_token("client-id", "client-secret", auth_url=AUTH_URL)

    assert token == "abc123"
    body = json.loads(responses.calls[0].request.body)
    assert body == {
        "grant_type": "client_credentials",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "audience": "https://api.devcycle.com/",
    }


@responses.activate
def test_fetch_oauth_token_rejected():
    responses.add(responses.POST, AUTH_URL, json={"error": "access_denied"}, status=401)

    with pytest.raises(AuthenticationError, match="401"):
        fetch_oauth_token("client-id", "wrong", auth_url=AUTH_URL)


@responses.activate
def test_fetch_oauth_token_without_access_token():
    responses.add(responses.POST, AUTH_URL, json={"token_type": "Bearer"}, status=200)

    with pytest.raises(AuthenticationError, match="access_token"):
        fetch_oauth_token("client-id", "client-secret", auth_url=AUTH_URL)
