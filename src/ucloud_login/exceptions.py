"""Exception hierarchy for ucloud_login.

All exceptions inherit from :class:`LoginError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`ucloud_login.exit_codes`. Library callers catch the specific
subclass they care about; the CLI entry point in :func:`ucloud_login.app.main`
catches ``LoginError`` and exits with the matching code.

Subclass hierarchy::

    LoginError (exit 1)
    +-- ConfigError              (exit 2)
    +-- InvalidCredentialsError  (exit 3)
    +-- RoleNotFoundError        (exit 4)
    +-- NoRoleError              (exit 4)
    +-- AuthServerError          (exit 5)
    +-- ConnectionError_         (exit 6)
    +-- ProtocolError            (exit 7)
    +-- OcrError                 (exit 8)
"""

from __future__ import annotations

from typing import Optional

from ucloud_login.exit_codes import (
    EXIT_CAPTCHA_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_CREDENTIALS,
    EXIT_INVALID_USAGE,
    EXIT_PROTOCOL_ERROR,
    EXIT_ROLE_ERROR,
    EXIT_SERVER_ERROR,
)


class LoginError(Exception):
    """Base exception for all ucloud_login errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`ucloud_login.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ProtocolError(LoginError):
    """Raised when a page or response lacks an expected piece.

    Covers a missing session cookie, execution token, redirect location,
    ticket, or a JSON payload that does not match the expected shape.
    """

    exit_code = EXIT_PROTOCOL_ERROR


class InvalidCredentialsError(LoginError):
    """Raised when the SSO gateway rejects the username or password."""

    exit_code = EXIT_INVALID_CREDENTIALS


class AuthServerError(LoginError):
    """Raised when a backend answers with an unexpected HTTP status.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status returned by the server.
        server_message: Error text extracted from the response, if any.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class ConfigError(LoginError):
    """Raised for configuration problems.

    Examples are a captcha challenge with no resolver configured, an
    invalid environment override, or a credential source that cannot be
    read.
    """

    exit_code = EXIT_INVALID_USAGE


class OcrError(LoginError):
    """Raised when the OCR service returns no usable captcha text."""

    exit_code = EXIT_CAPTCHA_ERROR


class RoleNotFoundError(LoginError):
    """Raised when the requested role is not in the user's role list.

    Args:
        role: The role name that was requested.
    """

    exit_code = EXIT_ROLE_ERROR

    def __init__(self, role: str):
        super().__init__(f"User has no role '{role}'")
        self.role = role


class NoRoleError(LoginError):
    """Raised when the account has no role at all."""

    exit_code = EXIT_ROLE_ERROR


class ConnectionError_(LoginError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
