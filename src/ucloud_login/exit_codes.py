"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~ucloud_login.exceptions.LoginError` subclass.
Shell wrappers can inspect the exit code of ``ucloud-login`` to tell a
wrong password apart from an unreachable server without parsing stderr.

Example::

    $ ucloud-login login 2021210000 --password-source env:BUPT_PASS
    $ echo $?
    3   # EXIT_INVALID_CREDENTIALS -- username or password rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_INVALID_CREDENTIALS = 3
"""The SSO gateway rejected the username or password."""

EXIT_ROLE_ERROR = 4
"""The account has no usable role, or lacks the requested one."""

EXIT_SERVER_ERROR = 5
"""A backend answered with an unexpected HTTP status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_PROTOCOL_ERROR = 7
"""A page or response did not have the expected shape."""

EXIT_CAPTCHA_ERROR = 8
"""The captcha could not be solved."""
