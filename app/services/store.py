"""Persistence store: staged and permanent user tables.

The unique constraints on ``identity`` (both tables) and ``token`` (staged
table) are what make staging atomic under concurrent signups. Integrity
violations are translated into IdentityConflict / TokenCollision; every other
database failure surfaces as PersistenceError.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.errors import IdentityConflict, PersistenceError, TokenCollision
from app.models.user import TempUser, User

logger = logging.getLogger(__name__)


class PersistenceStore(Protocol):
    async def insert_staged(self, identity: str, token: str, data: dict[str, Any]) -> TempUser: ...

    async def find_staged_by_token(self, token: str) -> TempUser | None: ...

    async def find_staged_by_identity(self, identity: str) -> TempUser | None: ...

    async def update_staged_token(self, temp_user_id: uuid.UUID, token: str) -> TempUser | None: ...

    async def delete_staged(self, token: str) -> None: ...

    async def delete_staged_created_before(self, cutoff: datetime) -> int: ...

    async def insert_permanent(self, identity: str, data: dict[str, Any]) -> User: ...

    async def find_permanent(self, identity: str) -> User | None: ...


class SqlPersistenceStore:
    """PersistenceStore over async SQLAlchemy. One short session per operation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_staged(self, identity: str, token: str, data: dict[str, Any]) -> TempUser:
        record = TempUser(
            temp_user_id=uuid.uuid4(),
            identity=identity,
            token=token,
            data=data,
            created_at=datetime.now(UTC),
        )
        try:
            async with self._session_factory() as db:
                db.add(record)
                try:
                    await db.commit()
                except IntegrityError as exc:
                    await db.rollback()
                    await self._classify_staged_violation(db, identity, token, exc)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to stage user") from exc
        return record

    async def _classify_staged_violation(
        self, db: AsyncSession, identity: str, token: str, exc: IntegrityError
    ) -> None:
        """Work out which unique constraint an insert violated, portably across dialects."""
        taken_identity = await db.scalar(
            select(TempUser.temp_user_id).where(TempUser.identity == identity)
        )
        if taken_identity is not None:
            raise IdentityConflict(identity) from exc
        taken_token = await db.scalar(
            select(TempUser.temp_user_id).where(TempUser.token == token)
        )
        if taken_token is not None:
            raise TokenCollision("Generated token already in use") from exc
        raise PersistenceError("Failed to stage user") from exc

    async def find_staged_by_token(self, token: str) -> TempUser | None:
        return await self._scalar(select(TempUser).where(TempUser.token == token))

    async def find_staged_by_identity(self, identity: str) -> TempUser | None:
        return await self._scalar(select(TempUser).where(TempUser.identity == identity))

    async def update_staged_token(self, temp_user_id: uuid.UUID, token: str) -> TempUser | None:
        try:
            async with self._session_factory() as db:
                record = await db.get(TempUser, temp_user_id)
                if record is None:
                    return None
                record.token = token
                try:
                    await db.commit()
                except IntegrityError as exc:
                    await db.rollback()
                    raise TokenCollision("Generated token already in use") from exc
                return record
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to reissue verification token") from exc

    async def delete_staged(self, token: str) -> None:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(TempUser).where(TempUser.token == token))
                await db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to delete staged user") from exc

    async def delete_staged_created_before(self, cutoff: datetime) -> int:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    delete(TempUser).where(TempUser.created_at < cutoff)
                )
                await db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to purge expired staged users") from exc

    async def insert_permanent(self, identity: str, data: dict[str, Any]) -> User:
        user = User(
            user_id=uuid.uuid4(),
            identity=identity,
            data=data,
            created_at=datetime.now(UTC),
        )
        try:
            async with self._session_factory() as db:
                db.add(user)
                try:
                    await db.commit()
                except IntegrityError as exc:
                    await db.rollback()
                    raise IdentityConflict(identity) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to create permanent user") from exc
        return user

    async def find_permanent(self, identity: str) -> User | None:
        return await self._scalar(select(User).where(User.identity == identity))

    async def _scalar(self, stmt: Any) -> Any:
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError("Persistence store query failed") from exc
