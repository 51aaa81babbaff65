"""HTTP client module for ucloud_login.

Provides :class:`UCloudClient`, the asynchronous client every login stage
sends its requests through, plus the small response helpers in
:mod:`ucloud_login.client.response`.

Example::

    from ucloud_login.client import UCloudClient

    async with UCloudClient() as client:
        resp = await client.get(client.settings.login_page_url)
"""

from ucloud_login.client.async_client import UCloudClient

__all__ = ["UCloudClient"]
