"""
Console and log-verbosity helpers.

Debug output is rendered with Rich panels on stderr so it never mixes with
program output. Sensitive values are masked before they reach any sink.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

# Global console instance
console = Console(stderr=True)

DEBUG_LEVELS = {"DEBUG", "TRACE"}
LOG_LEVEL_ENV_VARS = ("PAGERDUTY_LOG", "TF_LOG")
SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "set-cookie"}


def is_debug_or_higher() -> bool:
    """
    Check whether debug-level logging is enabled.

    True when PAGERDUTY_LOG or TF_LOG is DEBUG/TRACE, or when the
    pagerduty_client logger is enabled for DEBUG.
    """
    for name in LOG_LEVEL_ENV_VARS:
        if os.environ.get(name, "").strip().upper() in DEBUG_LEVELS:
            return True
    return logging.getLogger("pagerduty_client").isEnabledFor(logging.DEBUG)


def mask_sensitive(value: Optional[str], show_chars: int = 4) -> str:
    """
    Mask sensitive values for logging.

    Args:
        value: Value to mask
        show_chars: Number of characters to show before masking

    Returns:
        str: Masked value, "<none>" for empty input
    """
    if not value:
        return "<none>"
    if len(value) <= show_chars:
        return "*" * len(value)
    return value[:show_chars] + "***"


def mask_auth_header(value: Optional[str]) -> str:
    """Mask an Authorization header, keeping the scheme visible."""
    if not value:
        return "<none>"
    scheme, sep, credentials = value.partition(" ")
    if not sep:
        return mask_sensitive(value)
    return f"{scheme} {mask_sensitive(credentials)}"


def mask_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of headers with sensitive values masked."""
    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_auth_header(value)
        else:
            masked[key] = value
    return masked


def print_panel(content: str, title: Optional[str] = None) -> None:
    """Print content in a bordered panel."""
    console.print(Panel(content, title=title, expand=False))


def print_json_panel(data: Any, title: Optional[str] = None) -> None:
    """Print data as syntax-highlighted JSON in a panel."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            data = f"<binary data: {len(data)} bytes>"
    if isinstance(data, str):
        code = data
    else:
        code = json.dumps(data, indent=2, default=str)
    syntax = Syntax(code, "json", theme="monokai")
    console.print(Panel(syntax, title=title, expand=False))
