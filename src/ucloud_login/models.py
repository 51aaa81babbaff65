"""Canonical Pydantic models shared across all ucloud_login modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Intermediate login state** -- produced by one stage of the login flow
and consumed by the next:
    :class:`SessionContext` and :class:`CaptchaChallenge`.

**Server payloads** -- parsed from the OAuth token service:
    :class:`RoleName`, :class:`Role`, :class:`TokenBundle`, and
    :class:`LoginResult`.

**Caller options** -- how the caller wants the login to behave:
    :class:`OcrOptions` and :class:`LoginOptions`.

Server payload models keep the wire names as aliases (``user_name``,
``roleId``...) and expose snake_case attributes. Ids the server sends as
JSON numbers are kept as strings. All of them are frozen:
once a stage returns a model, nobody mutates it.
"""

from __future__ import annotations

import enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


CaptchaCallback = Callable[[str, str], Union[Awaitable[str], str]]
"""Signature of a human captcha solver: ``(image_url, cookie) -> text``."""


# --- Intermediate login state ---


class SessionContext(BaseModel):
    """Login page session handed from the bootstrap stage to the submitter.

    Both ``cookie`` and ``execution`` must be non-empty; the bootstrap stage
    raises :class:`~ucloud_login.exceptions.ProtocolError` before building
    one otherwise.
    """

    model_config = ConfigDict(frozen=True)

    cookie: str = Field(min_length=1, description="'name=value' session cookie")
    execution: str = Field(min_length=1, description="Hidden CAS form token")
    captcha_text: Optional[str] = None


class CaptchaChallenge(BaseModel):
    """A captcha embedded in the login page."""

    model_config = ConfigDict(frozen=True)

    challenge_id: str
    image_url: str


# --- Server payloads ---


class RoleName(str, enum.Enum):
    """Role names as the ucloud backend spells them."""

    STUDENT = "学生"
    TEACHER = "教师"
    ASSISTANT = "助教"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[RoleName, str]) -> Union[RoleName, str]:
        """Coerce user input to a :class:`RoleName` where possible.

        Accepts a member, its value (``"学生"``) or its English name in any
        case (``"student"``). Unrecognised strings are returned stripped so
        that the role lookup can report them as not found.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        return text


class Role(BaseModel):
    """One identity the user may act as (student, teacher, assistant...)."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    id: str
    role_id: str = Field(alias="roleId")
    role_alias: Optional[str] = Field(default=None, alias="roleAliase")
    role_name: Union[RoleName, str] = Field(
        alias="roleName", union_mode="left_to_right"
    )
    domain_id: Optional[str] = Field(default=None, alias="domainId")
    domain_name: Optional[str] = Field(default=None, alias="domainName")


class TokenBundle(BaseModel):
    """OAuth token response from a ticket or refresh exchange.

    Unknown fields sent by the server are preserved and accessible via
    ``model_extra``. Use ``model_dump(by_alias=True)`` to get the wire
    shape back.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="allow", coerce_numbers_to_str=True
    )

    access_token: str
    refresh_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    tenant_id: Optional[str] = None
    license: Optional[str] = None
    login_id: Optional[str] = Field(default=None, alias="loginId")
    user_id: Optional[str] = None
    student_id: Optional[str] = Field(
        default=None, alias="user_name", description="Student number"
    )
    real_name: Optional[str] = None
    avatar: Optional[str] = None
    dept_id: Optional[str] = None
    client_id: Optional[str] = None
    account: Optional[str] = None
    jti: Optional[str] = None


class LoginResult(TokenBundle):
    """Terminal artifact of a login: the role-scoped tokens plus every role."""

    roles: list[Role] = Field(default_factory=list)

    @classmethod
    def from_parts(cls, bundle: TokenBundle, roles: list[Role]) -> LoginResult:
        data: dict[str, Any] = bundle.model_dump(by_alias=True)
        data["roles"] = list(roles)
        return cls.model_validate(data)


# --- Caller options ---


class OcrOptions(BaseModel):
    """Settings for solving captchas through the OCR service."""

    token: str = Field(min_length=1, description="OCR service token")
    max_retries: int = Field(default=3, ge=1, description="Attempts before giving up")
    retry_delay: float = Field(
        default=1.0, ge=0, description="Seconds to wait between attempts"
    )


class LoginOptions(BaseModel):
    """Optional knobs for :func:`~ucloud_login.auth.login.login`.

    ``on_captcha`` and ``ocr`` are alternative captcha strategies. If the
    login page shows a captcha and neither is set, the login fails with
    :class:`~ucloud_login.exceptions.ConfigError`.

    Example::

        LoginOptions(role=RoleName.TEACHER, ocr=OcrOptions(token="..."))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    role: Optional[Union[RoleName, str]] = Field(
        default=None,
        union_mode="left_to_right",
        description="Role to scope the final token to (default: first role)",
    )
    on_captcha: Optional[CaptchaCallback] = None
    ocr: Optional[OcrOptions] = None
