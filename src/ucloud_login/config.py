"""Endpoint settings and credential source resolution.

This module handles all configuration for ucloud_login:

* **Settings** -- :class:`Settings` holds the SSO, OAuth, role and OCR
  endpoint URLs together with the fixed client constants the ucloud web
  portal uses. Defaults target the production services.
* **Precedence resolution** -- :func:`load_settings` layers explicit
  overrides over ``UCLOUD_LOGIN_*`` environment variables over defaults.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, or an interactive prompt so that the CLI never
  needs a password on its command line.

Nothing is written to disk: tokens and cookies live only as long as the
call that produced them.
"""

from __future__ import annotations

import getpass
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ucloud_login.exceptions import ConfigError

ENV_PREFIX = "UCLOUD_LOGIN_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36 Edg/118.0.2088.61"
)


class Settings(BaseModel):
    """Endpoints and client constants for one login run.

    Every field can be overridden through an environment variable named
    ``UCLOUD_LOGIN_<FIELD>`` (for example ``UCLOUD_LOGIN_TIMEOUT=10``).

    See Also:
        :func:`load_settings`: Build a ``Settings`` with the full
        precedence chain applied.
    """

    login_url: str = Field(
        default="https://auth.bupt.edu.cn/authserver/login",
        description="SSO login page and form target",
    )
    service_url: str = Field(
        default="https://ucloud.bupt.edu.cn",
        description="Service the SSO ticket is issued for",
    )
    captcha_url: str = Field(
        default="https://auth.bupt.edu.cn/authserver/captcha",
        description="Captcha image endpoint",
    )
    token_url: str = Field(
        default="https://apiucloud.bupt.edu.cn/ykt-basics/oauth/token",
        description="OAuth token endpoint",
    )
    roles_url: str = Field(
        default="https://apiucloud.bupt.edu.cn/ykt-basics/userroledomaindept/listByUserId",
        description="Role listing endpoint",
    )
    ocr_url: str = Field(
        default="https://ocr.byrdocs.org/ocr", description="Captcha OCR endpoint"
    )
    client_authorization: str = Field(
        default="Basic cG9ydGFsOnBvcnRhbF9zZWNyZXQ=",
        description="Basic auth header identifying the portal client application",
    )
    tenant_id: str = Field(default="000000")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @property
    def login_page_url(self) -> str:
        """The login page URL including its ``service`` parameter."""
        return f"{self.login_url}?service={self.service_url}"


def _env_overrides() -> dict[str, Any]:
    """Collect ``UCLOUD_LOGIN_*`` variables that name a :class:`Settings` field."""
    overrides: dict[str, Any] = {}
    for name in Settings.model_fields:
        value = os.environ.get(ENV_PREFIX + name.upper())
        if value:
            overrides[name] = value
    return overrides


def load_settings(**overrides: Any) -> Settings:
    """Resolve settings with full precedence chain.

    Precedence (high to low):
        1. Keyword ``overrides`` (``None`` values are ignored)
        2. Environment variables (``UCLOUD_LOGIN_TIMEOUT``, ...)
        3. Defaults

    Returns:
        The validated :class:`Settings`.

    Raises:
        ConfigError: If a value fails validation or names no field.
    """
    unknown = set(overrides) - set(Settings.model_fields)
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    data = _env_overrides()
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str, prompt: str = "Enter credential: ") -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.
        prompt: Text shown when ``source`` is ``"prompt"``.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass(prompt)

    raise ConfigError(f"Unknown credential source format: {source}")
