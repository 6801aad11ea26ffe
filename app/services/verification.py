"""Verification service: stage, email, confirm and resend.

Per identity the lifecycle is NONE -> STAGED -> CONFIRMED | EXPIRED, where an
expired identity is free to be staged again.

Promotion inserts the permanent user first and deletes the staged record
second. There is no transaction spanning both steps. If the process dies in
between, both records exist until the token is confirmed again. The
permanent table's unique identity then rejects the second insert. If the
existing user carries exactly the staged data the promotion is treated as
already done and the staged leftover is removed; otherwise confirmation fails.
"""

import asyncio
import logging
from typing import Any

from app.config import VerificationOptions, URL_PLACEHOLDER, settings
from app.database import async_session_factory
from app.errors import ConfigurationError, DeliveryError, IdentityConflict, NoTempModelConfigured
from app.models.user import TempUser, User
from app.schemas.mail import DeliveryInfo
from app.services.email import get_email_sender
from app.services.hashing import BcryptHasher, Hasher
from app.services.mailer import MailDispatcher
from app.services.staging import StagingStore
from app.services.store import SqlPersistenceStore
from app.utils.paths import get_path, pop_path

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(
        self,
        options: VerificationOptions,
        staging: StagingStore | None,
        dispatcher: MailDispatcher,
        hasher: Hasher | None = None,
    ) -> None:
        self.options = options
        self.staging = staging
        self.dispatcher = dispatcher
        self.hasher = hasher
        self._background: set[asyncio.Task[None]] = set()

    def _require_staging(self) -> StagingStore:
        if self.staging is None:
            raise NoTempModelConfigured()
        return self.staging

    def verification_url(self, token: str) -> str:
        return self.options.verification_url.replace(URL_PLACEHOLDER, token)

    async def create_temp_user(self, candidate: dict[str, Any]) -> TempUser | None:
        """Stage ``candidate`` for verification.

        Returns the staged record, or None if the identity is already staged
        or already belongs to a permanent user.
        """
        staging = self._require_staging()

        identity = get_path(candidate, self.options.identity_field)
        if identity is None or identity == "":
            raise ConfigurationError(
                f"Candidate has no value for identity field {self.options.identity_field!r}"
            )
        identity = str(identity)

        record = pop_path(candidate, self.options.token_field)
        password = get_path(record, self.options.password_field)
        if self.hasher is not None and password is not None:
            record = await self.hasher.process(password, record)

        try:
            staged = await staging.insert_if_absent(identity, record)
        except IdentityConflict:
            logger.info("Signup for %s rejected: already staged or confirmed", identity)
            return None

        logger.info("Staged signup for %s", identity)
        return staged

    async def send_verification_email(self, email: str, token: str) -> DeliveryInfo:
        return await self.dispatcher.send(
            email, self.options.verify_mail_options, self.verification_url(token)
        )

    async def send_confirmation_email(self, email: str) -> DeliveryInfo:
        return await self.dispatcher.send(email, self.options.confirm_mail_options)

    async def confirm_temp_user(self, token: str) -> User | None:
        """Promote the staged record holding ``token`` to a permanent user.

        Returns None when the token is unknown or expired. The two cases are
        deliberately indistinguishable to the caller.
        """
        staging = self._require_staging()

        staged = await staging.find_by_token(token)
        if staged is None:
            return None

        data = pop_path(staged.data, self.options.token_field)
        try:
            user = await staging.store.insert_permanent(staged.identity, data)
        except IdentityConflict:
            return await self._resolve_promotion_conflict(staged, data)

        await staging.delete_by_token(token)
        logger.info("Confirmed signup for %s", staged.identity)

        if self.options.send_confirmation_email:
            self._schedule_confirmation_email(staged.identity)
        return user

    async def _resolve_promotion_conflict(self, staged: TempUser, data: dict[str, Any]) -> User | None:
        """Handle a permanent user that already holds the staged identity.

        Identical data means this record was promoted before and only the
        staged delete was lost, so the promotion is finished. Different data
        means the account was created some other way: confirmation fails and
        the staged record is left for the TTL to evict.
        """
        staging = self._require_staging()
        existing = await staging.store.find_permanent(staged.identity)
        if existing is None or existing.data != data:
            logger.warning(
                "Cannot confirm %s: a different permanent user holds this identity", staged.identity
            )
            return None

        await staging.delete_by_token(staged.token)
        logger.info("Identity %s already confirmed, discarded staged record", staged.identity)
        return existing

    async def resend_verification_email(self, email: str) -> bool:
        """Mail a fresh link for a pending signup. The previous link stops working.

        Returns False if nothing is staged for ``email`` (or it expired).
        Failing to reissue raises PersistenceError; failing to send raises
        DeliveryError.
        """
        staging = self._require_staging()

        staged = await staging.find_by_identity(email)
        if staged is None:
            return False

        staged = await staging.reissue_token(staged)
        if staged is None:
            return False

        await self.send_verification_email(email, staged.token)
        logger.info("Reissued verification token for %s", email)
        return True

    def _schedule_confirmation_email(self, email: str) -> None:
        task = asyncio.create_task(self._send_confirmation_in_background(email))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_confirmation_in_background(self, email: str) -> None:
        try:
            await self.send_confirmation_email(email)
        except DeliveryError:
            logger.exception("Confirmation email to %s failed", email)

    async def aclose(self) -> None:
        """Wait for in-flight confirmation emails."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)


def build_verification_service() -> VerificationService:
    options = VerificationOptions.from_settings(settings)
    staging = StagingStore(SqlPersistenceStore(async_session_factory), options)
    hasher = (
        BcryptHasher(options.password_field, rounds=settings.bcrypt_rounds)
        if settings.hash_passwords
        else None
    )
    return VerificationService(options, staging, MailDispatcher(get_email_sender()), hasher)


_service: VerificationService | None = None


def get_verification_service() -> VerificationService:
    global _service
    if _service is None:
        _service = build_verification_service()
    return _service
