"""Staging store: pending signups with a time-to-live.

Expiry is checked here against ``created_at`` on every lookup. Physical
eviction by the sweeper may lag behind, so an expired-but-unswept record is
reported as not found and never handed back to the caller.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from app.config import VerificationOptions
from app.errors import IdentityConflict, PersistenceError, TokenCollision
from app.models.user import TempUser
from app.services.store import PersistenceStore
from app.utils.tokens import generate_token

logger = logging.getLogger(__name__)

# With 48 URL-safe characters a collision is astronomically unlikely; the bound
# only guards against a broken entropy source looping forever.
MAX_TOKEN_ATTEMPTS = 5


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class StagingStore:
    def __init__(self, store: PersistenceStore, options: VerificationOptions) -> None:
        self.store = store
        self.options = options

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.options.expiration_seconds)

    def expires_at(self, record: TempUser) -> datetime:
        return _as_utc(record.created_at) + self.ttl

    def is_expired(self, record: TempUser, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at(record) < now

    async def insert_if_absent(self, identity: str, data: dict[str, Any]) -> TempUser:
        """Stage ``data`` under a fresh token unless ``identity`` is taken.

        Raises IdentityConflict if a live staged record or a permanent user
        already exists for ``identity``. The permanent table is checked again
        after the insert, and the new row is withdrawn if a user appeared. A
        staged record that has logically expired is discarded and the
        identity re-staged.
        """
        if await self.store.find_permanent(identity) is not None:
            raise IdentityConflict(identity)

        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = generate_token(self.options.url_length)
            try:
                record = await self.store.insert_staged(identity, token, data)
            except TokenCollision:
                logger.warning("Token collision while staging %s, regenerating", identity)
            except IdentityConflict:
                existing = await self.store.find_staged_by_identity(identity)
                if existing is not None and not self.is_expired(existing):
                    raise
                if existing is not None:
                    logger.info("Discarding expired staged record for %s", identity)
                    await self.store.delete_staged(existing.token)
            else:
                # A confirmation may have promoted this identity between the
                # permanent check above and the insert; the staged row only
                # becomes free once the permanent row is committed.
                if await self.store.find_permanent(identity) is not None:
                    await self.store.delete_staged(token)
                    raise IdentityConflict(identity)
                return record

        raise PersistenceError(f"Could not stage {identity} after {MAX_TOKEN_ATTEMPTS} attempts")

    async def find_by_token(self, token: str) -> TempUser | None:
        record = await self.store.find_staged_by_token(token)
        if record is None or self.is_expired(record):
            return None
        return record

    async def find_by_identity(self, identity: str) -> TempUser | None:
        record = await self.store.find_staged_by_identity(identity)
        if record is None or self.is_expired(record):
            return None
        return record

    async def delete_by_token(self, token: str) -> None:
        """Delete the staged record holding ``token``. Absent tokens are ignored."""
        await self.store.delete_staged(token)

    async def reissue_token(self, record: TempUser) -> TempUser | None:
        """Replace the record's token so the previously mailed link stops working.

        Returns None if the record disappeared in the meantime (confirmed or
        swept). Storage failures raise PersistenceError.
        """
        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = generate_token(self.options.url_length)
            if token == record.token:
                continue
            try:
                return await self.store.update_staged_token(record.temp_user_id, token)
            except TokenCollision:
                logger.warning("Token collision while reissuing for %s, regenerating", record.identity)

        raise PersistenceError(
            f"Could not reissue token for {record.identity} after {MAX_TOKEN_ATTEMPTS} attempts"
        )

    async def purge_expired(self) -> int:
        cutoff = datetime.now(UTC) - self.ttl
        return await self.store.delete_staged_created_before(cutoff)
