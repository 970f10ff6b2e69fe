"""
Minimal PagerDuty REST client on top of httpx.

The client only knows how to authenticate, send JSON requests and surface
API errors. new_client() is the constructor the configuration manager
calls; validate_auth() is the cheap credential check it runs afterwards.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from .auth import ApiTokenAuth, ScopedTokenAuth
from .console import print_json_panel
from .errors import ApiError
from .types import AppOauthScopedTokenParams, AuthTokenType

logger = logging.getLogger("pagerduty_client.client")

DEFAULT_BASE_URL = "https://api.pagerduty.com"
ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"
ABILITIES_PATH = "/abilities"


@dataclass
class ClientConfig:
    """Inputs for new_client()."""

    base_url: str = DEFAULT_BASE_URL
    debug: bool = False
    http_client: Optional[httpx.Client] = None
    token: str = field(default="", repr=False)
    user_agent: str = ""
    app_oauth_scoped_token_params: Optional[AppOauthScopedTokenParams] = None
    api_auth_token_type: Optional[AuthTokenType] = None


class DeadlineHTTPClient(httpx.Client):
    """
    httpx.Client with an overall per-request deadline.

    httpx only bounds individual phases (connect, read, write, pool). The
    deadline covers the whole exchange, from sending the request to the last
    body byte, and raises httpx.ReadTimeout when exceeded. Streaming requests
    are left to the caller.
    """

    def __init__(self, *, deadline: Optional[float] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.deadline = deadline

    def send(self, request: httpx.Request, *, stream: bool = False, **kwargs: Any) -> httpx.Response:
        if stream or self.deadline is None:
            return super().send(request, stream=stream, **kwargs)

        expires_at = time.monotonic() + self.deadline
        response = super().send(request, stream=True, **kwargs)
        if response.is_stream_consumed:
            # Body was already buffered by the transport.
            response.close()
            self._check_deadline(expires_at, request)
            return response

        body = bytearray()
        try:
            for chunk in response.iter_raw():
                self._check_deadline(expires_at, request)
                body.extend(chunk)
            self._check_deadline(expires_at, request)
        finally:
            response.close()

        buffered = httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            content=bytes(body),
            request=response.request,
            extensions=response.extensions,
            history=response.history,
            default_encoding=response.default_encoding,
        )
        buffered.elapsed = response.elapsed
        return buffered

    def _check_deadline(self, expires_at: float, request: httpx.Request) -> None:
        if time.monotonic() > expires_at:
            raise httpx.ReadTimeout(
                f"request exceeded overall timeout of {self.deadline:g}s",
                request=request,
            )


def _validate_base_url(base_url: str) -> None:
    if not base_url:
        raise ValueError("base_url is required")
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid base_url: {base_url}")


def _build_auth(config: ClientConfig, http_client: httpx.Client) -> Optional[httpx.Auth]:
    if config.api_auth_token_type == AuthTokenType.USE_APP_CREDENTIALS:
        params = config.app_oauth_scoped_token_params
        if params is None:
            raise ValueError(
                "app_oauth_scoped_token_params are required for the "
                "use_app_credentials auth token type"
            )
        if not params.client_id or not params.client_secret or not params.pd_subdomain:
            raise ValueError(
                "app_oauth_scoped_token_params require client_id, client_secret and pd_subdomain"
            )
        return ScopedTokenAuth(params, http_client=http_client)
    if config.token:
        return ApiTokenAuth(config.token)
    return None


class PagerDutyClient:
    """Authenticated JSON client for one PagerDuty base URL.

    Safe to share between threads; all state lives in the underlying
    httpx.Client and the auth strategy.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client,
        auth: Optional[httpx.Auth] = None,
    ):
        self._config = config
        self._http = http_client
        self._auth = auth
        self._headers = {
            "Accept": ACCEPT_HEADER,
            "Content-Type": "application/json",
        }
        if config.user_agent:
            self._headers["User-Agent"] = config.user_agent

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def http_client(self) -> httpx.Client:
        return self._http

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        url = self._build_url(path)
        request_headers = {**self._headers, **(headers or {})}

        if self._config.debug:
            logger.debug(f"PagerDutyClient.request: {method} {url} params={params}")
            if json is not None:
                print_json_panel(json, title=f"[bold]Request Body[/bold] ({method} {url})")

        kwargs: Dict[str, Any] = {"params": params, "json": json, "headers": request_headers}
        if self._auth is not None:
            kwargs["auth"] = self._auth
        response = self._http.request(method, url, **kwargs)

        if self._config.debug and response.content:
            print_json_panel(response.text, title=f"[bold]Response Body[/bold] ({response.status_code} {url})")

        if not response.is_success:
            raise self._api_error(method, url, response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.request("DELETE", path, **kwargs)

    def validate_auth(self) -> None:
        """Check the credentials with a cheap call to the abilities endpoint.

        Raises:
            ApiError: The API rejected the request (e.g. 401 Unauthorized).
            httpx.HTTPError: Network failure or timeout.
        """
        self.get(ABILITIES_PATH)

    @staticmethod
    def _api_error(method: str, url: str, response: httpx.Response) -> ApiError:
        code = None
        errors = None
        message = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            code = error.get("code")
            errors = error.get("errors")
            message = error.get("message")
        return ApiError(
            method=method,
            url=url,
            status_code=response.status_code,
            reason=response.reason_phrase or "",
            code=code,
            errors=errors,
            message=message,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PagerDutyClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def new_client(config: ClientConfig) -> PagerDutyClient:
    """
    Create a PagerDutyClient from a ClientConfig.

    Raises:
        ValueError: base_url is missing or malformed, or the scoped-token
            parameters are incomplete for the selected auth token type.
    """
    _validate_base_url(config.base_url)
    http_client = config.http_client if config.http_client is not None else httpx.Client()
    auth = _build_auth(config, http_client)
    logger.debug(
        f"new_client: base_url={config.base_url}, debug={config.debug}, "
        f"auth={type(auth).__name__ if auth else None}"
    )
    return PagerDutyClient(config, http_client, auth)
