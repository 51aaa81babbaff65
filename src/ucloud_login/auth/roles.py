"""Role listing and selection."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import TypeAdapter, ValidationError

from ucloud_login.client import UCloudClient
from ucloud_login.client.response import ensure_success, json_body
from ucloud_login.exceptions import NoRoleError, ProtocolError, RoleNotFoundError
from ucloud_login.models import Role, RoleName

_ROLES = TypeAdapter(list[Role])


async def get_user_roles(client: UCloudClient, token: str) -> list[Role]:
    """Return the roles of the user owning *token*, in server order.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        token: An access token or refresh token.

    Raises:
        AuthServerError: If the endpoint answers with a non-2xx status.
        ProtocolError: If the envelope has no ``data`` list.
    """
    settings = client.settings
    response = await client.get(
        settings.roles_url,
        headers={
            "Authorization": settings.client_authorization,
            "Blade-Auth": token,
        },
    )
    ensure_success(response, "list user roles")

    envelope = json_body(response, "list user roles")
    data = envelope.get("data") if isinstance(envelope, dict) else None
    if not isinstance(data, list):
        raise ProtocolError("Role listing has no 'data' list")
    try:
        return _ROLES.validate_python(data)
    except ValidationError as exc:
        raise ProtocolError(f"Malformed role listing: {exc}") from exc


def find_role(roles: list[Role], requested: Union[RoleName, str]) -> Role:
    """Return the first role named *requested*.

    Raises:
        RoleNotFoundError: If no role carries that name.
    """
    wanted = RoleName.parse(requested)
    for role in roles:
        if role.role_name == wanted:
            return role
    name = wanted.value if isinstance(wanted, RoleName) else wanted
    raise RoleNotFoundError(name)


def select_role(
    roles: list[Role], requested: Optional[Union[RoleName, str]] = None
) -> Role:
    """Pick the role a login should be scoped to.

    The requested role if given, otherwise the first one listed. An empty
    name counts as not given.

    Raises:
        NoRoleError: If *roles* is empty.
        RoleNotFoundError: If *requested* is not among *roles*.
    """
    if not roles:
        raise NoRoleError("User has no role")
    if not requested:
        return roles[0]
    return find_role(roles, requested)
