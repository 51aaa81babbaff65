"""ucloud_login -- log in to the BUPT ucloud platform through the university SSO.

This package automates the browser login: it loads the CAS login page,
solves the captcha when one is shown (through a callback or an OCR
service), submits the credentials, exchanges the SSO ticket for OAuth
tokens and scopes them to one of the user's roles.

Typical usage::

    import asyncio
    from ucloud_login import LoginOptions, RoleName, login

    result = asyncio.run(login("2021210000", "secret", LoginOptions(role=RoleName.STUDENT)))
    print(result.real_name, [r.role_name for r in result.roles])

Modules:
    auth: The login stages and the :class:`LoginFlow` state machine.
    client: Async HTTP client over :mod:`httpx`.
    models: Pydantic models shared across the package.
    config: Endpoint settings and credential sources.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer command-line entry point.
"""

__version__ = "0.3.0"

from ucloud_login.auth import LoginFlow, LoginState, get_user_roles, login, refresh  # noqa: E402
from ucloud_login.exceptions import (  # noqa: E402
    AuthServerError,
    ConfigError,
    ConnectionError_,
    InvalidCredentialsError,
    LoginError,
    NoRoleError,
    OcrError,
    ProtocolError,
    RoleNotFoundError,
)
from ucloud_login.models import (  # noqa: E402
    LoginOptions,
    LoginResult,
    OcrOptions,
    Role,
    RoleName,
    TokenBundle,
)

__all__ = [
    "AuthServerError",
    "ConfigError",
    "ConnectionError_",
    "InvalidCredentialsError",
    "LoginError",
    "LoginFlow",
    "LoginOptions",
    "LoginResult",
    "LoginState",
    "NoRoleError",
    "OcrError",
    "OcrOptions",
    "ProtocolError",
    "Role",
    "RoleName",
    "RoleNotFoundError",
    "TokenBundle",
    "get_user_roles",
    "login",
    "refresh",
]
