"""Database repository for users, groups and settings."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.contracts import Group
from .domain.errors import PersistenceError
from .domain.records import ChangeSet, record_columns
from .domain_settings import SettingRow
from .security.permissions import PermissionContext

logger = logging.getLogger(__name__)

# Capability the caller needs to write each entity kind.
REQUIRED_CAPABILITY: dict[str, str] = {
    "users": "user_edit",
    "user_settings": "user_setting_add",
    "user_groups": "user_group_add",
    "contacts": "contact_add",
    "contact_emails": "contact_email_add",
}


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class UserRepository:
    """Postgres-backed persistence gateway for user creation."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def username_exists(self, username: str, domain_uuid: str | None) -> bool:
        """Return ``True`` if ``username`` is taken globally (``domain_uuid=None``) or in the tenant."""
        query = "SELECT count(*) FROM v_users WHERE username = %s"
        params: list[Any] = [username]
        if domain_uuid is not None:
            query += " AND domain_uuid = %s"
            params.append(domain_uuid)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return bool(row and row[0] > 0)

    def count_domain_users(self, domain_uuid: str) -> int:
        """Count the users that belong to a tenant."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute("SELECT count(*) FROM v_users WHERE domain_uuid = %s", (domain_uuid,))
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def find_group(self, group_uuid: str, domain_uuid: str) -> Group | None:
        """Fetch a group owned by the tenant or shared by all tenants."""
        if not _is_uuid(group_uuid):
            return None
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT group_uuid, group_name, group_level, domain_uuid
                    FROM v_groups
                    WHERE (domain_uuid = %s OR domain_uuid IS NULL)
                    AND group_uuid = %s
                    """,
                    (domain_uuid, group_uuid),
                )
                row = cur.fetchone()
                if not row:
                    return None
        return Group(
            group_uuid=str(row[0]),
            group_name=row[1] or "",
            group_level=int(row[2] or 0),
            domain_uuid=str(row[3]) if row[3] else None,
        )

    def load_settings(self, domain_uuid: str) -> list[SettingRow]:
        """Return enabled default settings followed by the tenant's overrides."""
        rows: list[SettingRow] = []
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT default_setting_category, default_setting_subcategory,
                           default_setting_name, default_setting_value
                    FROM v_default_settings
                    WHERE default_setting_enabled = 'true'
                    """
                )
                rows.extend(SettingRow(*(value or "" for value in row)) for row in cur.fetchall())
                cur.execute(
                    """
                    SELECT domain_setting_category, domain_setting_subcategory,
                           domain_setting_name, domain_setting_value
                    FROM v_domain_settings
                    WHERE domain_uuid = %s AND domain_setting_enabled = 'true'
                    """,
                    (domain_uuid,),
                )
                rows.extend(SettingRow(*(value or "" for value in row)) for row in cur.fetchall())
        return rows

    def save(self, changes: ChangeSet, permissions: PermissionContext) -> None:
        """Insert every record of ``changes`` in one transaction.

        Raises ``PersistenceError`` without writing anything when a required
        capability is missing or the database rejects any insert.
        """
        for kind in changes.kinds():
            capability = REQUIRED_CAPABILITY.get(kind)
            if capability is None:
                raise PersistenceError(f"unsupported entity kind: {kind}")
            if not permissions.exists(capability):
                raise PersistenceError(f"missing capability {capability} to write {kind}")

        try:
            with self._pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        # records reference each other in insertion order, not FK order
                        cur.execute("SET CONSTRAINTS ALL DEFERRED")
                        for record in changes:
                            columns = record_columns(record)
                            statement = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                                sql.Identifier(f"v_{record.kind}"),
                                sql.SQL(", ").join(map(sql.Identifier, columns)),
                                sql.SQL(", ").join(sql.Placeholder() * len(columns)),
                            )
                            cur.execute(statement, list(columns.values()))
        except psycopg.Error as exc:
            raise PersistenceError(str(exc)) from exc
        logger.debug("saved %d records (%s)", len(changes), ", ".join(changes.kinds()))
