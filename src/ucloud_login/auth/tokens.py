"""OAuth token exchanges against the ucloud token endpoint.

Two grants are supported, both answered with a
:class:`~ucloud_login.models.TokenBundle`:

- ``grant_type=third`` trades an SSO ticket for a first token bundle.
- ``grant_type=refresh_token`` trades a refresh token for a new bundle,
  optionally scoped to one of the user's roles through the ``identity``
  parameter.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from ucloud_login.auth.roles import find_role, get_user_roles
from ucloud_login.client import UCloudClient
from ucloud_login.client.response import ensure_success, json_body
from ucloud_login.exceptions import ProtocolError
from ucloud_login.models import Role, RoleName, TokenBundle

logger = logging.getLogger(__name__)


def _token_headers(client: UCloudClient) -> dict[str, str]:
    settings = client.settings
    return {
        "Accept": "application/json, text/plain, */*",
        "Authorization": settings.client_authorization,
        "Tenant-Id": settings.tenant_id,
        "Referer": f"{settings.service_url}/",
    }


def _parse_bundle(response: httpx.Response, action: str) -> TokenBundle:
    ensure_success(response, action)
    data = json_body(response, action)
    try:
        return TokenBundle.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Failed to {action}: malformed token response: {exc}") from exc


async def exchange_ticket(client: UCloudClient, ticket: str) -> TokenBundle:
    """Exchange an SSO ticket for a token bundle.

    Raises:
        AuthServerError: If the token endpoint answers with a non-2xx status.
        ProtocolError: If the answer is not a token bundle.
    """
    response = await client.post(
        client.settings.token_url,
        headers=_token_headers(client),
        data={"ticket": ticket, "grant_type": "third"},
    )
    bundle = _parse_bundle(response, "exchange ticket")
    logger.debug("Ticket exchanged for user %s", bundle.user_id)
    return bundle


async def refresh_token(
    client: UCloudClient,
    refresh_token: str,
    role: Optional[Union[RoleName, str]] = None,
    roles: Optional[list[Role]] = None,
) -> TokenBundle:
    """Exchange a refresh token for a new token bundle.

    When *role* is given, the role's ``id`` is sent as ``identity`` so the
    new token is scoped to that role. An empty name means no scoping. The
    role is looked up in *roles* if the caller already has the list,
    otherwise fetched with the refresh token.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        refresh_token: The refresh token to exchange.
        role: Optional role name to scope the token to.
        roles: Optional, already fetched role list of the user.

    Raises:
        RoleNotFoundError: If *role* is not among the user's roles. No
            token request is sent in that case.
        AuthServerError: If a backend answers with a non-2xx status.
        ProtocolError: If the answer is not a token bundle.
    """
    data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
    if role:
        if roles is None:
            roles = await get_user_roles(client, refresh_token)
        selected = find_role(roles, role)
        data["identity"] = selected.id
        logger.debug("Scoping token to role %s (%s)", selected.role_name, selected.id)

    response = await client.post(
        client.settings.token_url,
        headers=_token_headers(client),
        data=data,
    )
    return _parse_bundle(response, "refresh token")
