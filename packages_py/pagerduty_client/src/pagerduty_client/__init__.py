"""
pagerduty_client - Lazily-initialized, credential-checked PagerDuty clients.

A ConfigurationManager holds provider settings (tokens, URLs, TLS policy) and
builds two httpx-based clients on demand:

    from pagerduty_client import ConfigurationManager, ProviderSettings

    manager = ConfigurationManager.from_settings(ProviderSettings.from_env())
    client = manager.client()            # REST API, token checked via /abilities
    slack = manager.slack_client()       # user-token client for the app host

Each accessor caches its client for the manager's lifetime; failures raise
CredentialsError or ClientConstructionError and leave the slot empty.

Environment Variables:
    PAGERDUTY_TOKEN, PAGERDUTY_USER_TOKEN, PAGERDUTY_API_URL_OVERRIDE,
    PAGERDUTY_SERVICE_REGION, PAGERDUTY_SKIP_CREDENTIALS_VALIDATION,
    PAGERDUTY_INSECURE_TLS, PAGERDUTY_CLIENT_ID, PAGERDUTY_CLIENT_SECRET,
    PAGERDUTY_SUBDOMAIN: provider settings (see ProviderSettings.from_env)
    PAGERDUTY_LOG / TF_LOG: DEBUG or TRACE enables request/response panels
"""
from .types import AppOauthScopedTokenParams, AuthTokenType
from .errors import (
    INVALID_CREDENTIALS_GUIDANCE,
    ApiError,
    ClientConstructionError,
    CredentialsError,
    PagerDutyError,
)
from .console import is_debug_or_higher, mask_sensitive
from .transport import (
    DEFAULT_TRANSPORT_POLICY,
    PRIMARY_TRANSPORT_POLICY,
    LoggingTransport,
    PolicyHTTPTransport,
    TransportPolicy,
)
from .auth import ApiTokenAuth, ScopedTokenAuth
from .client import ClientConfig, DeadlineHTTPClient, PagerDutyClient, new_client
from .settings import (
    ProviderSettings,
    ScopedTokenSettings,
    load_settings,
    normalize_region,
    resolve_region_urls,
)
from .config import ClientFactory, ConfigurationManager

__all__ = [
    # Types
    "AuthTokenType",
    "AppOauthScopedTokenParams",
    # Errors
    "INVALID_CREDENTIALS_GUIDANCE",
    "PagerDutyError",
    "CredentialsError",
    "ClientConstructionError",
    "ApiError",
    # Logging
    "is_debug_or_higher",
    "mask_sensitive",
    # Transport
    "TransportPolicy",
    "DEFAULT_TRANSPORT_POLICY",
    "PRIMARY_TRANSPORT_POLICY",
    "PolicyHTTPTransport",
    "LoggingTransport",
    # Auth
    "ApiTokenAuth",
    "ScopedTokenAuth",
    # Client
    "ClientConfig",
    "DeadlineHTTPClient",
    "PagerDutyClient",
    "new_client",
    # Settings
    "ProviderSettings",
    "ScopedTokenSettings",
    "load_settings",
    "normalize_region",
    "resolve_region_urls",
    # Manager
    "ClientFactory",
    "ConfigurationManager",
]

__version__ = "0.1.0"
