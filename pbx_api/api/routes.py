"""HTTP route definitions for the PBX administration API."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

import jwt
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from ..domain.contracts import Caller, CreateUserInput
from ..domain.errors import AuthRequired, Forbidden, ValidationError
from ..domain.service import UserService
from ..security.permissions import PermissionContext
from ..security.tokens import decode_session_token
from .errors import API_PREFIX

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX)

ENDPOINTS = {f"{API_PREFIX}/users": "User management (POST to create)"}
ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class CreateUserRequest(BaseModel):
    """Fields accepted when creating a user, from a JSON or form-encoded body."""

    model_config = ConfigDict(extra="ignore")

    username: str = ""
    password: str = ""
    user_email: str = ""
    group_uuid: str = ""
    group_uuid_name: str = ""
    domain_uuid: str = ""
    user_language: str = ""
    user_time_zone: str = ""
    user_type: str = "user"
    user_enabled: str = "true"
    user_status: str = ""
    contact_organization: str = ""
    contact_name_given: str = ""
    contact_name_family: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value
        return ""

    def missing_fields(self) -> list[str]:
        missing = [
            name
            for name in ("username", "password", "user_email")
            if not getattr(self, name).strip()
        ]
        if not self.group_uuid.strip() and not self.group_uuid_name.strip():
            missing.append("group_uuid")
        return missing

    def to_input(self, caller: Caller) -> CreateUserInput:
        """Apply defaults and return the domain input, or raise for missing fields."""
        missing = self.missing_fields()
        if missing:
            raise ValidationError(
                "Missing required fields",
                kind="missing_fields",
                missing_fields=missing,
            )
        domain_uuid = self.domain_uuid.strip()
        if domain_uuid:
            try:
                uuid.UUID(domain_uuid)
            except ValueError as exc:
                raise ValidationError(
                    "Invalid domain_uuid",
                    kind="invalid_domain",
                    fields=["domain_uuid"],
                ) from exc
        return CreateUserInput(
            username=self.username.strip(),
            password=self.password,
            user_email=self.user_email.strip(),
            group_reference=(self.group_uuid.strip() or self.group_uuid_name.strip()),
            domain_uuid=domain_uuid or caller.domain_uuid,
            user_language=self.user_language.strip(),
            user_time_zone=self.user_time_zone.strip(),
            user_type=self.user_type,
            user_enabled=self.user_enabled,
            user_status=self.user_status,
            contact_organization=self.contact_organization.strip(),
            contact_name_given=self.contact_name_given.strip(),
            contact_name_family=self.contact_name_family.strip(),
        )


class CreateUserResponse(BaseModel):
    """Body returned after a user has been created."""

    status: str = "success"
    message: str = "User created successfully"
    user_uuid: str
    username: str
    user_email: str


class ApiIndexResponse(BaseModel):
    status: str = "success"
    message: str = "PBX Admin API"
    endpoints: dict[str, str]


def get_service(request: Request) -> UserService:
    """Resolve the `UserService` stored on the FastAPI application state."""
    service: UserService = request.app.state.user_service
    return service


def get_caller(authorization: str | None = Header(default=None)) -> Caller:
    """Authenticate the bearer session token."""
    if not authorization:
        raise AuthRequired("Unauthorized - Authentication required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthRequired("Unauthorized - Authentication required")
    try:
        return decode_session_token(token.strip())
    except jwt.PyJWTError as exc:
        logger.info("session token rejected: %s", exc)
        raise AuthRequired("Unauthorized - Authentication required") from exc


def get_permissions(caller: Caller = Depends(get_caller)) -> PermissionContext:
    """Build the request-scoped capability set for the caller."""
    return PermissionContext(caller.permissions)


def require_user_add(permissions: PermissionContext = Depends(get_permissions)) -> PermissionContext:
    if not permissions.exists("user_add"):
        raise Forbidden("Forbidden - Insufficient permissions")
    return permissions


async def read_payload(request: Request) -> dict[str, Any]:
    """Return the body as a mapping, preferring JSON over form fields."""
    body = await request.body()
    try:
        data = json.loads(body)
    except ValueError:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    return data if isinstance(data, dict) else {}


@router.api_route("", methods=ANY_METHOD, response_model=ApiIndexResponse)
def api_index() -> ApiIndexResponse:
    """List the endpoints served under the API prefix."""
    return ApiIndexResponse(endpoints=ENDPOINTS)


@router.post("/users", response_model=CreateUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    caller: Caller = Depends(get_caller),
    permissions: PermissionContext = Depends(require_user_add),
    service: UserService = Depends(get_service),
) -> CreateUserResponse:
    """Create a user, its settings, group membership and optional contact."""
    payload = CreateUserRequest.model_validate(await read_payload(request)).to_input(caller)
    created = await run_in_threadpool(service.create_user, payload, caller, permissions)
    return CreateUserResponse(
        user_uuid=created.user_uuid,
        username=created.username,
        user_email=created.user_email,
    )


@router.get("/users", dependencies=[Depends(require_user_add)])
def list_users_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"status": "error", "message": "Method not allowed. Use POST to create a user."},
        headers={"Allow": "POST"},
    )


@router.api_route(
    "/users",
    methods=["PUT", "PATCH", "DELETE"],
    dependencies=[Depends(require_user_add)],
)
def other_methods_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"status": "error", "message": "Method not allowed"},
        headers={"Allow": "POST"},
    )
