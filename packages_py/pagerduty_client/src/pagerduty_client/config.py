"""
Configuration manager for PagerDuty clients.

Holds the provider's raw settings and lazily builds two clients:

- client(): the REST API client, on a tuned transport with a 2 minute
  overall request deadline, with its token checked against /abilities
  unless validation is skipped.
- slack_client(): the user-token client for the app host, on a clone of the
  default transport, with no overall deadline and no validation call.

Each client is built at most once per manager. A failed build leaves its
slot empty so a later call can try again.

Example:
    manager = ConfigurationManager.from_settings(ProviderSettings.from_env())
    client = manager.client()
    client.get("/services")
"""
import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

import httpx

from .client import ClientConfig, DeadlineHTTPClient, PagerDutyClient, new_client
from .console import is_debug_or_higher, mask_sensitive
from .errors import ClientConstructionError, CredentialsError
from .settings import DEFAULT_USER_AGENT, ProviderSettings, normalize_region, resolve_region_urls
from .transport import (
    DEFAULT_TRANSPORT_POLICY,
    PRIMARY_TRANSPORT_POLICY,
    LoggingTransport,
    TransportPolicy,
)
from .types import AppOauthScopedTokenParams, AuthTokenType

logger = logging.getLogger("pagerduty_client.config")

ClientFactory = Callable[[ClientConfig], PagerDutyClient]

SERVICE_NAME = "PagerDuty"
CLIENT_TIMEOUT_SECONDS = 120.0


@dataclass
class ConfigurationManager:
    """Raw provider settings plus one cache slot per client kind.

    A single lock guards both slots, so concurrent client() and
    slack_client() calls serialize against each other, including across the
    credential check.
    """

    api_url: str = "https://api.pagerduty.com"
    api_url_override: str = ""
    app_url: str = "https://app.pagerduty.com"
    token: str = field(default="", repr=False)
    user_token: str = field(default="", repr=False)
    skip_creds_validation: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    insecure_tls: bool = False
    api_token_type: Optional[AuthTokenType] = None
    app_oauth_scoped_token_params: Optional[AppOauthScopedTokenParams] = field(default=None, repr=False)
    service_region: str = ""
    client_factory: ClientFactory = field(default=new_client, repr=False)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)
    _client: Optional[PagerDutyClient] = field(default=None, init=False, repr=False, compare=False)
    _slack_client: Optional[PagerDutyClient] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_settings(
        cls,
        settings: ProviderSettings,
        client_factory: ClientFactory = new_client,
    ) -> "ConfigurationManager":
        """Resolve region URLs and auth token type from provider settings."""
        region = normalize_region(settings.service_region)
        api_url, app_url = resolve_region_urls(region)

        scoped = settings.use_app_oauth_scoped_token
        params = None
        token_type = AuthTokenType.API_TOKEN
        if scoped is not None:
            token_type = AuthTokenType.USE_APP_CREDENTIALS
            params = AppOauthScopedTokenParams(
                client_id=scoped.pd_client_id,
                client_secret=scoped.pd_client_secret,
                pd_subdomain=scoped.pd_subdomain,
                region=region,
                scopes=tuple(scoped.scopes),
            )

        logger.debug(
            f"ConfigurationManager.from_settings: api_url={api_url}, app_url={app_url}, "
            f"override={settings.api_url_override or '<none>'}, token_type={token_type.value}, "
            f"token={mask_sensitive(settings.token)}, user_token={mask_sensitive(settings.user_token)}"
        )
        return cls(
            api_url=api_url,
            api_url_override=settings.api_url_override,
            app_url=app_url,
            token=settings.token,
            user_token=settings.user_token,
            skip_creds_validation=settings.skip_credentials_validation,
            user_agent=settings.user_agent,
            insecure_tls=settings.insecure_tls,
            api_token_type=token_type,
            app_oauth_scoped_token_params=params,
            service_region=region,
            client_factory=client_factory,
        )

    @property
    def effective_api_url(self) -> str:
        return self.api_url_override or self.api_url

    def _policy(self, base: TransportPolicy) -> TransportPolicy:
        if self.insecure_tls:
            return dataclasses.replace(base, insecure_tls=True)
        return base

    def _construct(
        self,
        build_http_client: Callable[[], httpx.Client],
        **config_fields: Any,
    ) -> Tuple[PagerDutyClient, httpx.Client]:
        """Build the httpx client and hand it to the client factory.

        Any failure, from the TLS context to the factory itself, raises
        ClientConstructionError and closes whatever was already opened.
        """
        http_client = None
        try:
            http_client = build_http_client()
            config = ClientConfig(debug=is_debug_or_higher(), http_client=http_client, **config_fields)
            return self.client_factory(config), http_client
        except Exception as e:
            if http_client is not None:
                http_client.close()
            raise ClientConstructionError(str(e)) from e

    def client(self) -> PagerDutyClient:
        """
        Return the REST API client, building it on first use.

        Raises:
            CredentialsError: The token is missing for the api_token auth
                type, or the API rejected it.
            ClientConstructionError: The transport could not be built or the
                client factory rejected the config.
        """
        with self._lock:
            if self._client is not None:
                return self._client

            # Only an explicit api_token type requires a token up front
            if not self.token and self.api_token_type == AuthTokenType.API_TOKEN:
                raise CredentialsError()

            policy = self._policy(PRIMARY_TRANSPORT_POLICY)

            def build_http_client() -> httpx.Client:
                return DeadlineHTTPClient(
                    transport=LoggingTransport(SERVICE_NAME, policy.build_transport()),
                    timeout=policy.client_timeout(CLIENT_TIMEOUT_SECONDS),
                    deadline=CLIENT_TIMEOUT_SECONDS,
                )

            client, http_client = self._construct(
                build_http_client,
                base_url=self.effective_api_url,
                token=self.token,
                user_agent=self.user_agent,
                app_oauth_scoped_token_params=self.app_oauth_scoped_token_params,
                api_auth_token_type=self.api_token_type,
            )

            if not self.skip_creds_validation:
                # A 401 from the abilities endpoint surfaces as a credentials problem
                try:
                    client.validate_auth()
                except Exception as e:
                    http_client.close()
                    raise CredentialsError(str(e)) from e

            self._client = client
            logger.info("PagerDuty client configured")
            return self._client

    def slack_client(self) -> PagerDutyClient:
        """
        Return the user-token client for the app host, building it on first use.

        Raises:
            CredentialsError: The user token is empty.
            ClientConstructionError: The transport could not be built or the
                client factory rejected the config.
        """
        with self._lock:
            if self._slack_client is not None:
                return self._slack_client

            if not self.user_token:
                raise CredentialsError()

            policy = self._policy(DEFAULT_TRANSPORT_POLICY)

            def build_http_client() -> httpx.Client:
                return httpx.Client(
                    transport=LoggingTransport(SERVICE_NAME, policy.build_transport()),
                    timeout=policy.client_timeout(None),
                )

            client, _ = self._construct(
                build_http_client,
                base_url=self.app_url,
                token=self.user_token,
                user_agent=self.user_agent,
            )

            self._slack_client = client
            logger.info("PagerDuty client configured for slack")
            return self._slack_client
