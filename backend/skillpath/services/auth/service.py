# skillpath/services/auth/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from skillpath.models.user import User, UserRole
from skillpath.repositories.user import UserRepository
from skillpath.services._shared.base import BaseService
from skillpath.services._shared.errors import ErrorCode, violates
from skillpath.services._shared.ports import PasswordHasher, TokenCache, TokenCodec, TokenPair
from skillpath.services._shared.result import Err, Ok, Result
from skillpath.services.auth.dto import (
    AuthTokenConfig,
    LoginIn,
    LoginOut,
    RegisteredUser,
    RegisterIn,
)
from skillpath.services.auth.values import Email, Password, Username, mask_email
from skillpath.services.sessions.registry import SessionRegistry
from skillpath.services.tokens.metadata import TokenMetadataService

log = logging.getLogger(__name__)


class AuthenticationService(BaseService):
    """
    Credential-based sign-in and self-service registration.

    Login issues an access/refresh pair, stores the refresh token server-side
    (one per user, a new login overwrites it), opens a tracked session and
    records token metadata.
    """

    def __init__(
        self,
        *,
        token_codec: TokenCodec,
        token_cache: TokenCache,
        password_hasher: PasswordHasher,
        sessions: SessionRegistry,
        metadata: TokenMetadataService,
        token_cfg: AuthTokenConfig | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_codec: Adapter signing and reading JWTs.
        :param token_cache: Server-side refresh token store.
        :param password_hasher: One-way hasher for credentials.
        :param sessions: Session registry applying the concurrent-session policy.
        :param metadata: Token audit trail.
        :param token_cfg: Access/Refresh expiry configuration.
        """
        super().__init__()
        self.tokens = token_codec
        self.cache = token_cache
        self.hasher = password_hasher
        self.sessions = sessions
        self.metadata = metadata
        self.cfg = token_cfg or AuthTokenConfig()

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Result[LoginOut]:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Login input.
        :returns: ``Ok(LoginOut)``, or ``Err`` with ``USER_NOT_FOUND``,
            ``ACCOUNT_DISABLED`` or ``INVALID_CREDENTIALS``.
        :raises TokenCacheError: If the refresh token cannot be stored.
        :raises SigningKeyError: If tokens cannot be signed.
        """
        masked = mask_email(dto.email.strip().lower())
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(dto.email)
            if user is None:
                log.info("auth.login_unknown_email %s", masked)
                return Err.of(ErrorCode.USER_NOT_FOUND)
            if not user.is_active:
                log.warning("auth.login_disabled %s", masked, extra={"user_id": user.id})
                return Err.of(ErrorCode.ACCOUNT_DISABLED)
            if not self.hasher.verify(dto.password, user.password_hash):
                log.info("auth.login_bad_password %s", masked, extra={"user_id": user.id})
                return Err.of(ErrorCode.INVALID_CREDENTIALS)

            pair: TokenPair = self.tokens.issue_pair(user)
            # Server state first; a cache outage aborts before last_login_at is committed
            self.cache.put_refresh_token(user.id, pair.refresh.value, self.cfg.refresh_expires)
            user.record_login(self.now_utc())
            out_user = (user.id, user.email, user.username)

        user_id, email, username = out_user
        session = self.sessions.create_session(user_id, pair.refresh.value, dto.client)
        self.metadata.save_token_metadata(pair.access, user_id, dto.client)
        self.metadata.save_token_metadata(pair.refresh, user_id, dto.client)

        log.info("auth.login_ok %s", masked, extra={"user_id": user_id})
        return Ok(
            LoginOut(
                user_id=user_id,
                email=email,
                username=username,
                access_token=pair.access.value,
                refresh_token=pair.refresh.value,
                expires_in=self.cfg.access_seconds,
                refresh_expires_in=self.cfg.refresh_seconds,
                session_id=session.session_id if session else None,
            )
        )

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> Result[RegisteredUser]:
        """
        Create a new account with role ``USER``.

        Validation order: password policy, confirmation, email, username,
        then uniqueness. Uniqueness is pre-checked and enforced again by the
        database constraints, so a concurrent registration that slips past the
        pre-check still surfaces as ``DUPLICATE_EMAIL`` or ``DUPLICATE_USERNAME``.

        :param dto: Registration input.
        :returns: ``Ok(RegisteredUser)`` or ``Err``.
        """
        password = Password.parse(dto.password)
        if not password.ok:
            return password
        if dto.password != dto.confirm_password:
            return Err.of(ErrorCode.PASSWORD_MISMATCH)

        email = Email.parse(dto.email)
        if not email.ok:
            return email
        username = Username.parse(dto.username)
        if not username.ok:
            return username

        log.debug("auth.register_password_strength %s", Password.strength(dto.password).value)

        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email(email.value.value):
                    return Err.of(ErrorCode.DUPLICATE_EMAIL)
                if repo.exists_by_username(username.value.value):
                    return Err.of(ErrorCode.DUPLICATE_USERNAME)

                user = User(
                    email=email.value.value,
                    username=username.value.value,
                    password_hash=self.hasher.hash(password.value.value),
                    role=UserRole.USER,
                    is_active=True,
                    email_verified=False,
                )
                repo.add(user)
                registered = RegisteredUser(
                    user_id=user.id,
                    email=user.email,
                    username=user.username,
                    role=user.role.value,
                )
        except IntegrityError as exc:
            if violates(exc, "uq_users_email", "users.email"):
                log.info("auth.register_race_duplicate_email %s", email.value.masked)
                return Err.of(ErrorCode.DUPLICATE_EMAIL)
            if violates(exc, "uq_users_username", "users.username"):
                return Err.of(ErrorCode.DUPLICATE_USERNAME)
            raise

        log.info("auth.registered %s", email.value.masked, extra={"user_id": registered.user_id})
        return Ok(registered)
