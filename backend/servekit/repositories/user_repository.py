"""
Servekit — User Repository
==========================

What:  Query helpers for the `users` table.
Who:   Called by the user controllers with the request's session.
How:   Stateless; every method takes the AsyncSession to use. Writes only
       flush. The surrounding session scope commits or rolls back.

Error translation:
    unique email violation  → ConflictError (409)
    other SQLAlchemy errors → DatabaseError (500, details logged only)
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servekit.exceptions import ConflictError, DatabaseError
from servekit.models.user import User
from servekit.security import get_password_hash

logger = logging.getLogger(__name__)


class UserRepository:

    FILTERABLE_FIELDS = ("id", "email", "name")

    def _conditions(self, filters: Dict[str, Any]) -> list:
        conditions = []
        for field, value in filters.items():
            if field not in self.FILTERABLE_FIELDS:
                raise ValueError(
                    f"Cannot filter users by '{field}'. Allowed: {self.FILTERABLE_FIELDS}"
                )
            if field == "email" and isinstance(value, str):
                value = value.strip().lower()
            conditions.append(getattr(User, field) == value)
        return conditions

    async def find(self, db: AsyncSession, **filters: Any) -> Optional[User]:
        """First user matching every filter, or None."""
        query = select(User).where(*self._conditions(filters)).limit(1)
        try:
            result = await db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error finding user %s: %s", filters, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"filters": {k: str(v) for k, v in filters.items()}},
            )

    async def create(self, db: AsyncSession, data: Dict[str, Any]) -> User:
        """
        Insert a user from validated input (`name`, `email`, `password`).

        Raises:
            ConflictError: The email is already registered
            DatabaseError: Any other database failure
        """
        user = User(
            name=data["name"].strip(),
            email=data["email"].strip().lower(),
            password_hash=get_password_hash(data["password"]),
        )
        db.add(user)
        try:
            # Flush assigns defaults and surfaces constraint violations now
            await db.flush()
        except IntegrityError as e:
            logger.info("Rejected duplicate user email: %s", user.email)
            raise ConflictError(
                message="A user with this email already exists",
                field="email",
                context={"error": str(e.orig)},
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the user. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("User created: %s", user.id)
        return user

    async def list(
        self,
        db: AsyncSession,
        limit: int = 20,
        offset: int = 0,
        **filters: Any,
    ) -> List[User]:
        """Newest users first."""
        query = (
            select(User)
            .where(*self._conditions(filters))
            .order_by(User.created_at.desc(), User.id)
            .limit(limit)
            .offset(offset)
        )
        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def count(self, db: AsyncSession, **filters: Any) -> int:
        query = select(func.count(User.id)).where(*self._conditions(filters))
        try:
            result = await db.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting users: %s", str(e))
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )


user_repository = UserRepository()
