"""
Tests for PagerDutyClient, new_client and DeadlineHTTPClient.
"""
import json
import time
from datetime import timedelta

import httpx
import pytest
import respx

from pagerduty_client.auth import ApiTokenAuth, ScopedTokenAuth
from pagerduty_client.client import (
    ACCEPT_HEADER,
    ClientConfig,
    DeadlineHTTPClient,
    PagerDutyClient,
    new_client,
)
from pagerduty_client.errors import ApiError
from pagerduty_client.types import AppOauthScopedTokenParams, AuthTokenType

BASE_URL = "https://api.pagerduty.com"


def _mock_client(router: respx.MockRouter, **kwargs) -> PagerDutyClient:
    http_client = httpx.Client(transport=httpx.MockTransport(router.handler))
    return new_client(ClientConfig(base_url=BASE_URL, http_client=http_client, **kwargs))


class TestNewClient:
    """Tests for new_client()."""

    @pytest.mark.parametrize("base_url", ["", "not-a-url", "ftp://api.pagerduty.com", "https://"])
    def test_rejects_invalid_base_url(self, base_url):
        """Should raise ValueError for missing or malformed URLs."""
        with pytest.raises(ValueError):
            new_client(ClientConfig(base_url=base_url, token="abc"))

    def test_uses_api_token_auth(self):
        """Should pick token auth when a token is present."""
        client = new_client(ClientConfig(base_url=BASE_URL, token="abc"))
        assert isinstance(client._auth, ApiTokenAuth)
        client.close()

    def test_no_auth_without_token(self):
        """Should send no Authorization header without credentials."""
        client = new_client(ClientConfig(base_url=BASE_URL))
        assert client._auth is None
        client.close()

    def test_scoped_token_requires_params(self):
        """Should reject the scoped-token type without parameters."""
        config = ClientConfig(
            base_url=BASE_URL,
            api_auth_token_type=AuthTokenType.USE_APP_CREDENTIALS,
        )
        with pytest.raises(ValueError, match="app_oauth_scoped_token_params"):
            new_client(config)

    def test_scoped_token_requires_complete_params(self):
        """Should reject scoped-token parameters missing a secret."""
        config = ClientConfig(
            base_url=BASE_URL,
            api_auth_token_type=AuthTokenType.USE_APP_CREDENTIALS,
            app_oauth_scoped_token_params=AppOauthScopedTokenParams(
                client_id="id", client_secret="", pd_subdomain="acme"
            ),
        )
        with pytest.raises(ValueError):
            new_client(config)

    def test_uses_scoped_token_auth(self):
        """Should pick scoped-token auth for app credentials."""
        config = ClientConfig(
            base_url=BASE_URL,
            token="ignored",
            api_auth_token_type=AuthTokenType.USE_APP_CREDENTIALS,
            app_oauth_scoped_token_params=AppOauthScopedTokenParams(
                client_id="id", client_secret="secret", pd_subdomain="acme"
            ),
        )
        client = new_client(config)
        assert isinstance(client._auth, ScopedTokenAuth)
        client.close()

    def test_keeps_supplied_http_client(self):
        """Should reuse the caller's httpx client."""
        http_client = httpx.Client()
        client = new_client(ClientConfig(base_url=BASE_URL, http_client=http_client))
        assert client.http_client is http_client
        client.close()


class TestRequest:
    """Tests for PagerDutyClient.request()."""

    def test_sends_default_headers(self):
        """Should send accept, content type, user agent and token headers."""
        router = respx.MockRouter()
        route = router.get(f"{BASE_URL}/services").mock(
            return_value=httpx.Response(200, json={"services": []})
        )
        client = _mock_client(router, token="abc", user_agent="tests/1.0")

        assert client.get("/services") == {"services": []}

        headers = route.calls.last.request.headers
        assert headers["Accept"] == ACCEPT_HEADER
        assert headers["Content-Type"] == "application/json"
        assert headers["User-Agent"] == "tests/1.0"
        assert headers["Authorization"] == "Token token=abc"

    def test_posts_json_body(self):
        """Should serialize the JSON body."""
        router = respx.MockRouter()
        route = router.post(f"{BASE_URL}/teams").mock(
            return_value=httpx.Response(201, json={"team": {"id": "P1"}})
        )
        client = _mock_client(router, token="abc")

        result = client.post("/teams", json={"team": {"name": "ops"}})

        assert result == {"team": {"id": "P1"}}
        assert json.loads(route.calls.last.request.content) == {"team": {"name": "ops"}}

    def test_empty_body_returns_none(self):
        """Should return None for 204 responses."""
        router = respx.MockRouter()
        router.delete(f"{BASE_URL}/teams/P1").mock(return_value=httpx.Response(204))
        client = _mock_client(router, token="abc")

        assert client.delete("/teams/P1") is None

    def test_raises_api_error_with_details(self):
        """Should parse the PagerDuty error envelope."""
        router = respx.MockRouter()
        router.get(f"{BASE_URL}/services/missing").mock(
            return_value=httpx.Response(
                404,
                json={"error": {"message": "Not Found", "code": 2100, "errors": ["missing"]}},
            )
        )
        client = _mock_client(router, token="abc")

        with pytest.raises(ApiError) as exc_info:
            client.get("/services/missing")

        error = exc_info.value
        assert error.status_code == 404
        assert error.code == 2100
        assert error.errors == ["missing"]
        assert str(error) == (
            f"GET API call to {BASE_URL}/services/missing failed 404 Not Found. "
            f"Code: 2100, Errors: ['missing'], Message: Not Found"
        )

    def test_api_error_without_envelope(self):
        """Should fall back to the status line for non-JSON errors."""
        router = respx.MockRouter()
        router.get(f"{BASE_URL}/abilities").mock(return_value=httpx.Response(502, text="bad gateway"))
        client = _mock_client(router, token="abc")

        with pytest.raises(ApiError) as exc_info:
            client.get("/abilities")

        assert str(exc_info.value) == f"GET API call to {BASE_URL}/abilities failed 502 Bad Gateway"


class TestValidateAuth:
    """Tests for PagerDutyClient.validate_auth()."""

    def test_calls_abilities_endpoint(self):
        """Should GET /abilities."""
        router = respx.MockRouter()
        route = router.get(f"{BASE_URL}/abilities").mock(
            return_value=httpx.Response(200, json={"abilities": []})
        )
        client = _mock_client(router, token="abc")

        client.validate_auth()

        assert route.call_count == 1

    def test_raises_on_unauthorized(self):
        """Should raise ApiError for 401."""
        router = respx.MockRouter()
        router.get(f"{BASE_URL}/abilities").mock(
            return_value=httpx.Response(401, json={"error": {"message": "Unauthorized", "code": 2006}})
        )
        client = _mock_client(router, token="bad")

        with pytest.raises(ApiError) as exc_info:
            client.validate_auth()

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == 2006


class _SlowStream(httpx.SyncByteStream):
    def __iter__(self):
        for _ in range(3):
            time.sleep(0.05)
            yield b"{}"


class _ChunkedStream(httpx.SyncByteStream):
    def __init__(self, *chunks: bytes):
        self._chunks = chunks

    def __iter__(self):
        yield from self._chunks


class TestDeadlineHTTPClient:
    """Tests for DeadlineHTTPClient."""

    def test_returns_buffered_response(self):
        """Should return a fully read response within the deadline."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        with DeadlineHTTPClient(transport=transport, deadline=5.0) as client:
            response = client.get("https://api.pagerduty.com/abilities")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_raises_when_deadline_exceeded(self):
        """Should abort a slow body with ReadTimeout."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=_SlowStream()))
        with DeadlineHTTPClient(transport=transport, deadline=0.01) as client:
            with pytest.raises(httpx.ReadTimeout, match="overall timeout"):
                client.get("https://api.pagerduty.com/abilities")

    def test_no_deadline_behaves_like_httpx(self):
        """Should defer to httpx when no deadline is set."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=_SlowStream()))
        with DeadlineHTTPClient(transport=transport) as client:
            response = client.get("https://api.pagerduty.com/abilities")

        assert response.content == b"{}{}{}"

    def test_streamed_body_keeps_elapsed(self):
        """Should expose elapsed on a response read chunk by chunk."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, stream=_ChunkedStream(b'{"abilities":', b' ["teams"]}'))
        )
        with DeadlineHTTPClient(transport=transport, deadline=5.0) as client:
            response = client.get("https://api.pagerduty.com/abilities")

        assert response.json() == {"abilities": ["teams"]}
        assert response.elapsed >= timedelta(0)

    def test_buffered_body_keeps_elapsed(self):
        """Should expose elapsed when the transport already read the body."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        with DeadlineHTTPClient(transport=transport, deadline=5.0) as client:
            response = client.get("https://api.pagerduty.com/abilities")

        assert response.elapsed >= timedelta(0)

    def test_streamed_body_keeps_default_encoding(self):
        """Should decode charset-less text with the client's default encoding."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                headers={"Content-Type": "text/plain"},
                stream=_ChunkedStream("café".encode("latin-1")),
            )
        )
        with DeadlineHTTPClient(transport=transport, deadline=5.0, default_encoding="latin-1") as client:
            response = client.get("https://api.pagerduty.com/abilities")

        assert response.text == "café"
