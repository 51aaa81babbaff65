"""The login protocol, one module per stage.

- :mod:`~ucloud_login.auth.session` -- login page bootstrap.
- :mod:`~ucloud_login.auth.captcha` -- callback and OCR captcha resolvers.
- :mod:`~ucloud_login.auth.credentials` -- SSO form submission.
- :mod:`~ucloud_login.auth.tokens` -- ticket and refresh token exchanges.
- :mod:`~ucloud_login.auth.roles` -- role listing and selection.
- :mod:`~ucloud_login.auth.login` -- the :class:`LoginFlow` state machine
  and the public coroutines.

Typical usage::

    from ucloud_login.auth import login

    result = await login(username, password)
"""

from ucloud_login.auth.login import LoginFlow, LoginState, get_user_roles, login, refresh

__all__ = [
    "LoginFlow",
    "LoginState",
    "get_user_roles",
    "login",
    "refresh",
]
