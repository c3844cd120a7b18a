"""User service orchestrating validation, change set assembly and persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from prometheus_client import Counter

from .builder import build_user_changeset
from .contracts import Caller, CreateUserInput, Group, GroupReference
from .errors import (
    ConflictError,
    Forbidden,
    PersistenceError,
    PersistenceFailure,
    QuotaExceeded,
    UserApiError,
    ValidationError,
)
from .records import ChangeSet
from .validation import (
    PasswordPolicy,
    is_valid_email,
    normalize_user_status,
    username_matches_format,
)
from ..domain_settings import DomainSettings, SettingsCache
from ..security.permissions import PermissionContext

logger = logging.getLogger(__name__)

USER_CREATE_TOTAL = Counter(
    "pbx_api_user_create_total",
    "User creation attempts by outcome.",
    ["outcome"],
)

# Capabilities the save needs regardless of what the caller holds.
BASE_TEMPORARY_GRANTS = ("user_setting_add", "user_edit", "user_group_add")
# Granted for the save only when the caller already holds them.
CONDITIONAL_TEMPORARY_GRANTS = ("contact_add", "contact_email_add")


class UserGateway(Protocol):
    """Lookups and persistence the service depends on."""

    def username_exists(self, username: str, domain_uuid: str | None) -> bool: ...

    def count_domain_users(self, domain_uuid: str) -> int: ...

    def find_group(self, group_uuid: str, domain_uuid: str) -> Group | None: ...

    def save(self, changes: ChangeSet, permissions: PermissionContext) -> None: ...


@dataclass(slots=True)
class CreatedUser:
    """Identifiers returned to the client after a successful creation."""

    user_uuid: str
    username: str
    user_email: str


class UserService:
    """User creation workflow backed by a transactional gateway."""

    def __init__(self, repository: UserGateway, settings_cache: SettingsCache) -> None:
        self._repository = repository
        self._settings_cache = settings_cache

    def create_user(
        self,
        payload: CreateUserInput,
        caller: Caller,
        permissions: PermissionContext,
    ) -> CreatedUser:
        """Validate ``payload`` fully, then persist the user and its related rows."""
        try:
            created = self._create_user(payload, caller, permissions)
        except UserApiError as exc:
            USER_CREATE_TOTAL.labels(outcome=exc.kind).inc()
            raise
        USER_CREATE_TOTAL.labels(outcome="created").inc()
        return created

    def _create_user(
        self,
        payload: CreateUserInput,
        caller: Caller,
        permissions: PermissionContext,
    ) -> CreatedUser:
        settings = self._settings_cache.for_domain(payload.domain_uuid)
        self._validate_identity(payload, settings)
        self._check_capacity(payload.domain_uuid, settings)

        password_errors = PasswordPolicy.from_settings(settings).violations(payload.password)
        if password_errors:
            raise ValidationError(
                "Password does not meet requirements",
                kind="password_errors",
                password_errors=password_errors,
            )

        user_status = normalize_user_status(payload.user_status)
        reference = GroupReference.parse(payload.group_reference)
        group = self._resolve_group(reference, payload.domain_uuid, caller)

        user_uuid, changes = build_user_changeset(
            payload,
            caller=caller,
            permissions=permissions,
            group=group,
            reference=reference,
            user_status=user_status,
        )

        grants = BASE_TEMPORARY_GRANTS + tuple(
            capability for capability in CONDITIONAL_TEMPORARY_GRANTS if permissions.exists(capability)
        )
        with permissions.temporary(*grants) as scoped:
            try:
                self._repository.save(changes, scoped)
            except PersistenceError as exc:
                logger.warning(
                    "user save failed for %s in domain %s: %s",
                    payload.username,
                    payload.domain_uuid,
                    exc,
                )
                raise PersistenceFailure("Failed to create user", error=str(exc)) from exc

        self._settings_cache.clear_cache()
        logger.info(
            "user %s (%s) created in domain %s by %s",
            user_uuid,
            payload.username,
            payload.domain_uuid,
            caller.username or caller.user_uuid,
        )
        return CreatedUser(
            user_uuid=user_uuid,
            username=payload.username,
            user_email=payload.user_email,
        )

    def _validate_identity(self, payload: CreateUserInput, settings: DomainSettings) -> None:
        if not is_valid_email(payload.user_email):
            raise ValidationError(
                "Invalid email address format",
                kind="invalid_email",
                fields=["user_email"],
            )

        username_format = settings.get("users", "username_format")
        if not username_matches_format(payload.username, username_format):
            raise ValidationError(
                f"Username format is invalid. Expected format: {username_format}",
                kind="invalid_username_format",
                fields=["username"],
            )

        scope = None if settings.get("users", "unique") == "global" else payload.domain_uuid
        if self._repository.username_exists(payload.username, scope):
            raise ConflictError("Username already exists", fields=["username"])

    def _check_capacity(self, domain_uuid: str, settings: DomainSettings) -> None:
        limit = settings.get("limit", "users")
        if isinstance(limit, str) and limit.strip().isdigit():
            limit = int(limit)
        # zero or non-numeric means unlimited
        if isinstance(limit, bool) or not isinstance(limit, (int, float)) or not limit:
            return
        if self._repository.count_domain_users(domain_uuid) >= limit:
            raise QuotaExceeded(f"Maximum user limit reached: {limit}")

    def _resolve_group(self, reference: GroupReference, domain_uuid: str, caller: Caller) -> Group:
        group = self._repository.find_group(reference.group_uuid, domain_uuid)
        if group is None:
            raise ValidationError(
                "Group not found",
                kind="group_not_found",
                fields=["group_uuid"],
            )
        if group.group_level > caller.group_level:
            raise Forbidden(
                "Insufficient permissions to assign user to this group",
                kind="insufficient_privilege_for_group",
            )
        return group
