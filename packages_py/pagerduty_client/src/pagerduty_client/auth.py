"""
httpx auth strategies for the PagerDuty REST API.
"""
import logging
import threading
import time
from typing import Generator, Optional

import httpx

from .console import mask_sensitive
from .types import AppOauthScopedTokenParams

logger = logging.getLogger("pagerduty_client.auth")

OAUTH_TOKEN_URL = "https://identity.pagerduty.com/oauth/token"
# Refresh this many seconds before the server-reported expiry
TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


class ApiTokenAuth(httpx.Auth):
    """Authorization: Token token=<api key>."""

    def __init__(self, token: str):
        self._token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Token token={self._token}"
        yield request

    def __repr__(self) -> str:
        return f"ApiTokenAuth(token={mask_sensitive(self._token)!r})"


class ScopedTokenAuth(httpx.Auth):
    """
    Bearer auth using an app scoped OAuth token.

    Tokens come from a client-credentials grant and are cached in memory until
    shortly before they expire. A 401 from the API forces one refresh and a
    single replay of the request.
    """

    requires_response_body = False

    def __init__(
        self,
        params: AppOauthScopedTokenParams,
        token_url: str = OAUTH_TOKEN_URL,
        http_client: Optional[httpx.Client] = None,
    ):
        self._params = params
        self._token_url = token_url
        self._http_client = http_client
        self._lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._expires_at = 0.0

    @property
    def scope(self) -> str:
        account = f"as_account-{self._params.region}.{self._params.pd_subdomain}"
        return " ".join((account,) + tuple(self._params.scopes))

    def _fetch_token(self) -> None:
        logger.debug(
            f"ScopedTokenAuth._fetch_token: requesting token for "
            f"client_id={mask_sensitive(self._params.client_id)}, scope={self.scope!r}"
        )
        data = {
            "grant_type": "client_credentials",
            "client_id": self._params.client_id,
            "client_secret": self._params.client_secret,
            "scope": self.scope,
        }
        if self._http_client is not None:
            response = self._http_client.post(self._token_url, data=data)
        else:
            response = httpx.post(self._token_url, data=data)
        response.raise_for_status()

        payload = response.json()
        self._access_token = payload["access_token"]
        expires_in = float(payload.get("expires_in", 0) or 0)
        self._expires_at = time.monotonic() + max(0.0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        logger.info(
            f"ScopedTokenAuth._fetch_token: obtained token "
            f"{mask_sensitive(self._access_token)} (expires_in={expires_in:.0f}s)"
        )

    def get_token(self, force_refresh: bool = False) -> str:
        with self._lock:
            if force_refresh or not self._access_token or time.monotonic() >= self._expires_at:
                self._fetch_token()
            return self._access_token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.get_token()}"
        response = yield request
        if response.status_code == 401:
            logger.info("ScopedTokenAuth.auth_flow: 401 received, refreshing token")
            request.headers["Authorization"] = f"Bearer {self.get_token(force_refresh=True)}"
            yield request
