"""User account management over the credential store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from claimdesk.errors import NotFoundError, PersistenceError, ValidationError
from claimdesk.models import EMAIL_PATTERN
from claimdesk.security import hash_password, verify_password
from claimdesk.storage import users

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"

_PUBLIC_COLUMNS = [users.c.id, users.c.name, users.c.email, users.c.role, users.c.created_at]


def _serialize_user(row: Any) -> dict[str, Any]:
    user = dict(row._mapping)
    user.pop("password_hash", None)
    created_at = user.get("created_at")
    if isinstance(created_at, datetime):
        user["created_at"] = created_at.isoformat()
    return user


class UserService:
    """CRUD for user accounts plus credential verification."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def list(self, query: str | None = None) -> list[dict[str, Any]]:
        """List users, optionally filtered by name/email/role substring."""
        stmt = select(*_PUBLIC_COLUMNS).order_by(users.c.name, users.c.id)
        if query and query.strip():
            pattern = f"%{query.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(users.c.name).like(pattern),
                    func.lower(users.c.email).like(pattern),
                    func.lower(users.c.role).like(pattern),
                )
            )
        return [_serialize_user(row) for row in self._query(stmt, "list users")]

    def get(self, user_id: int) -> dict[str, Any]:
        rows = self._query(
            select(*_PUBLIC_COLUMNS).where(users.c.id == user_id), f"read user {user_id}"
        )
        if not rows:
            raise NotFoundError(f"User {user_id} not found")
        return _serialize_user(rows[0])

    def create(self, name: str, email: str, password: str, role: str = "User") -> dict[str, Any]:
        """Create a user.

        Raises:
            ValidationError: Missing name/password, malformed or duplicate email
        """
        errors = self._validate(name, email)
        if not password:
            errors["password"] = "Password is required for new users"
        if errors:
            raise ValidationError("; ".join(errors.values()))

        values = {
            "name": name.strip(),
            "email": email.strip().lower(),
            "role": role,
            "password_hash": hash_password(password),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(users.insert().values(values))
                user_id = result.inserted_primary_key[0]
        except IntegrityError as e:
            raise ValidationError(f"A user with email {values['email']} already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create user: {e}") from e

        logger.info(f"Created user {user_id} with role {role}")
        return self.get(user_id)

    def update(
        self,
        user_id: int,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
        role: str | None = None,
    ) -> dict[str, Any]:
        """Update profile fields; the password changes only when non-empty."""
        current = self.get(user_id)
        new_name = current["name"] if name is None else name
        new_email = current["email"] if email is None else email

        errors = self._validate(new_name, new_email)
        if errors:
            raise ValidationError("; ".join(errors.values()))

        values: dict[str, Any] = {"name": new_name.strip(), "email": new_email.strip().lower()}
        if role is not None:
            if current["role"] == ADMIN_ROLE and role != ADMIN_ROLE and self._admin_count() <= 1:
                raise ValidationError("At least one administrator is required")
            values["role"] = role
        if password:
            values["password_hash"] = hash_password(password)

        try:
            with self.engine.begin() as conn:
                conn.execute(users.update().where(users.c.id == user_id).values(values))
        except IntegrityError as e:
            raise ValidationError(f"A user with email {values['email']} already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update user {user_id}: {e}") from e

        return self.get(user_id)

    def delete(self, user_id: int, acting_user_id: int | None = None) -> None:
        """Delete a user.

        Raises:
            ValidationError: An admin deleting their own account, or the
                delete would remove the last administrator
        """
        target = self.get(user_id)
        if target["role"] == ADMIN_ROLE:
            if acting_user_id == user_id:
                raise ValidationError("Administrators cannot delete their own account")
            if self._admin_count() <= 1:
                raise ValidationError("At least one administrator is required")

        try:
            with self.engine.begin() as conn:
                conn.execute(users.delete().where(users.c.id == user_id))
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete user {user_id}: {e}") from e
        logger.info(f"Deleted user {user_id}")

    def authenticate(self, email: str, password: str) -> dict[str, Any] | None:
        """Return the user profile when the credentials match, else None."""
        rows = self._query(
            select(users).where(users.c.email == email.strip().lower()), "look up login"
        )
        if not rows or not verify_password(password, rows[0]._mapping["password_hash"]):
            return None
        return _serialize_user(rows[0])

    def _admin_count(self) -> int:
        rows = self._query(
            select(func.count()).select_from(users).where(users.c.role == ADMIN_ROLE),
            "count administrators",
        )
        return rows[0][0]

    def _query(self, stmt, action: str) -> list:
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to {action}") from e

    @staticmethod
    def _validate(name: str, email: str) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not name or not name.strip():
            errors["name"] = "Name is required"
        if not email or not email.strip():
            errors["email"] = "Email is required"
        elif not EMAIL_PATTERN.match(email.strip()):
            errors["email"] = "Email format is invalid"
        return errors
