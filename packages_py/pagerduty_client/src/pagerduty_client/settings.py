"""Provider settings loaded from YAML and environment variables.

YAML layout (all keys optional):

    pagerduty:
      token: "..."
      user_token: "..."
      service_region: "eu"
      api_url_override: "https://proxy.example.com"
      skip_credentials_validation: false
      insecure_tls: false
      use_app_oauth_scoped_token:
        pd_client_id: "..."
        pd_client_secret: "..."
        pd_subdomain: "acme"

Values present in the file win; environment variables fill the gaps.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "pagerduty-client-python/0.1.0"

ENV_VARS = {
    "token": "PAGERDUTY_TOKEN",
    "user_token": "PAGERDUTY_USER_TOKEN",
    "api_url_override": "PAGERDUTY_API_URL_OVERRIDE",
    "service_region": "PAGERDUTY_SERVICE_REGION",
    "skip_credentials_validation": "PAGERDUTY_SKIP_CREDENTIALS_VALIDATION",
    "insecure_tls": "PAGERDUTY_INSECURE_TLS",
}

OAUTH_ENV_VARS = {
    "pd_client_id": "PAGERDUTY_CLIENT_ID",
    "pd_client_secret": "PAGERDUTY_CLIENT_SECRET",
    "pd_subdomain": "PAGERDUTY_SUBDOMAIN",
}


class ScopedTokenSettings(BaseModel):
    """App OAuth client credentials."""
    pd_client_id: str
    pd_client_secret: str = Field(repr=False)
    pd_subdomain: str
    scopes: Tuple[str, ...] = ()


class ProviderSettings(BaseModel):
    """Raw provider configuration, before URL resolution."""
    token: str = Field(default="", repr=False)
    user_token: str = Field(default="", repr=False)
    api_url_override: str = ""
    service_region: str = "us"
    skip_credentials_validation: bool = False
    insecure_tls: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    use_app_oauth_scoped_token: Optional[ScopedTokenSettings] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderSettings":
        """Build settings from PAGERDUTY_* environment variables."""
        return cls.model_validate(_env_values(os.environ if environ is None else environ))


def _env_values(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, name in ENV_VARS.items():
        if environ.get(name):
            values[key] = environ[name]

    oauth = {key: environ[name] for key, name in OAUTH_ENV_VARS.items() if environ.get(name)}
    if oauth:
        values["use_app_oauth_scoped_token"] = oauth
    return values


def normalize_region(service_region: Optional[str]) -> str:
    """Lowercase and trim a service region; empty means "us"."""
    return (service_region or "").strip().lower() or "us"


def resolve_region_urls(service_region: str) -> Tuple[str, str]:
    """
    Return (api_url, app_url) for a service region.

    "us" and "" map to the global hosts; any other region is inserted as a
    subdomain, e.g. "eu" -> https://api.eu.pagerduty.com.
    """
    region = normalize_region(service_region)
    prefix = "" if region == "us" else f"{region}."
    return f"https://api.{prefix}pagerduty.com", f"https://app.{prefix}pagerduty.com"


def load_settings(
    path: Union[str, Path],
    environ: Optional[Mapping[str, str]] = None,
) -> ProviderSettings:
    """
    Load the `pagerduty` section of a YAML file.

    Args:
        path: YAML file path
        environ: Environment mapping used for missing keys (default: os.environ)

    Raises:
        FileNotFoundError: The file does not exist
        yaml.YAMLError: The file is not valid YAML
        ValueError: The file or its `pagerduty` section is not a mapping
        pydantic.ValidationError: A value has the wrong type
    """
    file_path = Path(path)
    logger.debug(f"Loading provider settings from: {file_path}")
    raw = yaml.safe_load(file_path.read_text()) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{file_path}: expected a mapping at the top level, got {type(raw).__name__}")
    section = raw.get("pagerduty") or {}
    if not isinstance(section, dict):
        raise ValueError(f"{file_path}: expected a mapping under `pagerduty`, got {type(section).__name__}")

    values = _env_values(os.environ if environ is None else environ)
    values.update(section)
    settings = ProviderSettings.model_validate(values)
    logger.info(
        f"Loaded provider settings from {file_path} "
        f"(service_region={settings.service_region}, "
        f"scoped_token={'yes' if settings.use_app_oauth_scoped_token else 'no'})"
    )
    return settings
