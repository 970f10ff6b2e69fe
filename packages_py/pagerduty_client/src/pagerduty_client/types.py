"""
Type definitions for pagerduty_client.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class AuthTokenType(Enum):
    """How the primary client authenticates against the REST API."""

    API_TOKEN = "api_token"
    USE_APP_CREDENTIALS = "use_app_credentials"


@dataclass(frozen=True)
class AppOauthScopedTokenParams:
    """Client-credentials parameters for app scoped OAuth tokens.

    Only consulted when the auth token type is USE_APP_CREDENTIALS.
    """

    client_id: str
    client_secret: str = field(repr=False)
    pd_subdomain: str
    region: str = "us"
    scopes: Tuple[str, ...] = ()
