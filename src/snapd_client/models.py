"""Pydantic models for snapd requests, envelopes and credentials."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import SnapdError

API_PREFIX = "/v2/"

HttpMethod = Literal["GET", "POST", "PUT"]


class Credential(BaseModel):
    """Account identity plus the macaroon used as bearer token."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    email: Optional[str] = None
    macaroon: str

    def authorization_header(self) -> str:
        return f'Macaroon root="{self.macaroon}"'


class RequestDescriptor(BaseModel):
    """A single request to the daemon. Built fresh for every call."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    body: Optional[str] = None
    credential: Optional[Credential] = None
    params: Optional[Dict[str, str]] = None

    @field_validator("path")
    @classmethod
    def _require_api_prefix(cls, value: str) -> str:
        if not value.startswith(API_PREFIX):
            raise ValueError(f"path must start with {API_PREFIX}")
        return value

    @property
    def writes_body(self) -> bool:
        """True when the body is sent on the wire (POST/PUT with a string body)."""
        return self.method in ("POST", "PUT") and isinstance(self.body, str)


class Envelope(BaseModel):
    """Decoded daemon response.

    ``status_code`` is the daemon's own status marker (wire key
    ``status-code``) and is checked by each operation independently of the
    HTTP status.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status_code: Optional[int] = Field(default=None, alias="status-code")
    status: Optional[str] = None
    type: Optional[str] = None
    result: Any = None
    change: Optional[str] = None

    @classmethod
    def from_body(cls, data: Any) -> "Envelope":
        if not isinstance(data, dict):
            raise SnapdError.malformed_response()
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SnapdError.malformed_response() from exc

    def accepts(self, *status_codes: int) -> bool:
        return self.status_code in status_codes


class ModifyOptions(BaseModel):
    """Options recognised by snap modify actions (install, refresh, ...).

    Only these fields are ever forwarded to the daemon.
    """

    model_config = ConfigDict(populate_by_name=True)

    classic: bool = False
    devmode: bool = False
    ignore_validation: bool = Field(default=False, alias="ignore-validation")
    jailmode: bool = False
    channel: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "ModifyOptions":
        """Pick recognised keys out of ``options``.

        Flags count when truthy, strings only when they really are strings.
        Anything else is dropped.
        """

        def flag(*keys: str) -> bool:
            return any(bool(options.get(key)) for key in keys)

        def text(key: str) -> Optional[str]:
            value = options.get(key)
            return value if isinstance(value, str) else None

        return cls(
            classic=flag("classic"),
            devmode=flag("devmode"),
            ignore_validation=flag("ignore-validation", "ignore_validation"),
            jailmode=flag("jailmode"),
            channel=text("channel"),
            version=text("version"),
        )

    def to_body(self, action: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {"action": action}
        for key, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if value is False:
                continue
            body[key] = value
        return body


class SlotRef(BaseModel):
    snap: str
    slot: str


class PlugRef(BaseModel):
    snap: str
    plug: str


__all__ = [
    "API_PREFIX",
    "HttpMethod",
    "Credential",
    "RequestDescriptor",
    "Envelope",
    "ModifyOptions",
    "SlotRef",
    "PlugRef",
]
