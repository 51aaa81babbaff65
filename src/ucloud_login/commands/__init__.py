"""Built-in CLI commands for ucloud-login.

* :mod:`~ucloud_login.commands.login` -- ``login``, ``refresh`` and
  ``roles``, registered directly on the root app by
  :func:`ucloud_login.app.register_commands`.
"""
