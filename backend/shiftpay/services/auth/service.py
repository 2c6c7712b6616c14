# shiftpay/services/auth/service.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import NoReturn

from sqlalchemy.exc import IntegrityError

from shiftpay.models.user import User
from shiftpay.repositories.user import UserRepository
from shiftpay.services._shared.base import BaseService
from shiftpay.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    TokenRefreshError,
    TokenVerificationError,
    UnauthenticatedError,
    violates,
)
from shiftpay.services._shared.ports import (
    AccessClaims,
    PasswordHasher,
    RefreshTokenStore,
    RotationResult,
    TokenProvider,
)
from shiftpay.services.auth.dto import (
    AuthTokenConfig,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SessionOut,
    SignupIn,
    TokenPairOut,
    UserPublicOut,
)

log = logging.getLogger(__name__)

# Verified against unknown emails so both failure paths cost one hash check
_TIMING_DUMMY_PASSWORD = "timing-equalizer"


class AuthService(BaseService):
    """
    Session lifecycle service (signup / login / refresh / logout / identity).

    Access tokens are stateless JWTs issued through a :class:`TokenProvider`.
    Refresh tokens are opaque values whose server-side record lives in a
    :class:`RefreshTokenStore`; every refresh rotates them atomically.

    Identity is always passed in explicitly (``user_id`` or an access token).
    The service never reads request state.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        refresh_store: RefreshTokenStore,
        password_hasher: PasswordHasher,
        token_cfg: AuthTokenConfig | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/verifying tokens.
        :param refresh_store: Stateful store for refresh tokens (atomic rotation).
        :param password_hasher: Salted adaptive password hasher.
        :param token_cfg: Access/Refresh expiry configuration.
        """
        self.tokens = token_provider
        self.refresh_store = refresh_store
        self.hasher = password_hasher
        self.cfg = token_cfg or AuthTokenConfig(
            access_expires=timedelta(minutes=15),
            refresh_expires=timedelta(days=30),
        )
        self._dummy_hash: str | None = None

    # ------------------------------------------------------------------ #
    # Signup
    # ------------------------------------------------------------------ #

    def signup(self, dto: SignupIn) -> UserPublicOut:
        """
        Create an account.

        :param dto: Signup input.
        :returns: Public view of the new user.
        :raises ConflictError: If the email is already registered.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            if repo.exists_by_email(dto.email):
                raise ConflictError("User", "email already in use")

            try:
                user = repo.add(
                    User(
                        email=dto.email,
                        password_hash=self.hasher.hash(dto.password),
                        display_name=dto.display_name,
                    )
                )
            except IntegrityError as exc:
                # Lost a race against a concurrent signup
                if violates(exc, "uq_users_email"):
                    raise ConflictError("User", "email already in use") from exc
                raise

            out = self._to_public(user)

        log.info("auth.signup user_id=%s", out.id)
        return out

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Authenticate credentials and open a new session.

        :param dto: Login input.
        :returns: The user and a fresh token pair.
        :raises InvalidCredentialsError: For an unknown email or a wrong password.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_email(dto.email)
            if user is None:
                self._equalize_timing(dto.password)
                log.warning("auth.login.failed reason=unknown_email")
                raise InvalidCredentialsError()
            if not self.hasher.verify(dto.password, user.password_hash):
                log.warning("auth.login.failed reason=bad_password user_id=%s", user.id)
                raise InvalidCredentialsError()
            profile = self._to_public(user)

        tokens = self._open_session(profile)
        log.info("auth.login.ok user_id=%s", profile.id)
        return SessionOut(user=profile, tokens=tokens)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> SessionOut:
        """
        Rotate a refresh token and emit a new token pair.

        The old token is consumed by the store's compare-and-delete, so two
        concurrent refreshes with the same token yield exactly one success.

        :param dto: Refresh input.
        :returns: The user and the rotated token pair.
        :raises TokenRefreshError: If the token is missing, unknown, expired or
            was already rotated by a concurrent request.
        :raises NotFoundError: If the owner account no longer exists.
        """
        old_token = dto.refresh_token
        if not old_token:
            self._refresh_failed("missing")

        try:
            record = self.refresh_store.lookup(old_token)
        except NotFoundError:
            self._refresh_failed("unknown")

        now = self.now_utc()
        if record.is_expired(now):
            # The store TTL may lag behind our clock
            self.refresh_store.delete(old_token)
            self._refresh_failed("expired")

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(record.user_id)
            profile = self._to_public(user) if user is not None else None

        if profile is None:
            self.refresh_store.delete_all_for_user(record.user_id)
            log.warning("auth.refresh.failed reason=user_gone user_id=%s", record.user_id)
            raise NotFoundError("User", record.user_id)

        new_refresh = self.tokens.issue_refresh_token()
        access = self._issue_access(profile)

        result = self.refresh_store.rotate(
            old_token, new_refresh, self.cfg.refresh_ttl_seconds, now
        )
        if result is not RotationResult.OK:
            self._refresh_failed(result.name.lower(), user_id=profile.id)

        log.info("auth.refresh.ok user_id=%s", profile.id)
        return SessionOut(user=profile, tokens=self._pair(access, new_refresh))

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the presented refresh token, if any.

        Idempotent: absent or unknown tokens are not an error. Access tokens
        stay valid until they expire.
        """
        if not dto.refresh_token:
            log.info("auth.logout revoked=False")
            return
        revoked = self.refresh_store.delete(dto.refresh_token)
        log.info("auth.logout revoked=%s", revoked)

    def logout_all(self, user_id: str) -> int:
        """
        Revoke every refresh token of ``user_id`` ("sign out everywhere").

        :returns: Number of sessions revoked.
        """
        count = self.refresh_store.delete_all_for_user(user_id)
        log.info("auth.logout_all user_id=%s revoked=%s", user_id, count)
        return count

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def authenticate(self, access_token: str | None) -> AccessClaims:
        """
        Resolve the identity carried by an access token.

        :param access_token: Encoded access JWT, ``None`` if the client sent none.
        :returns: Verified claims.
        :raises UnauthenticatedError: If the token is missing or fails verification.
        """
        if not access_token:
            raise UnauthenticatedError()
        try:
            return self.tokens.verify_access_token(access_token)
        except TokenVerificationError as exc:
            log.info("auth.token.rejected kind=%s", exc.kind)
            raise

    def current_user(self, user_id: str) -> UserPublicOut:
        """
        Return the current profile of ``user_id``.

        :raises NotFoundError: If the user was deleted after the token was issued.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return self._to_public(user)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _open_session(self, profile: UserPublicOut) -> TokenPairOut:
        """Persist a refresh token, then sign the access token.

        If signing fails the refresh token is removed again so no half-open
        session is left behind.
        """
        refresh = self.tokens.issue_refresh_token()
        self.refresh_store.store(refresh, profile.id, self.cfg.refresh_ttl_seconds)
        try:
            access = self._issue_access(profile)
        except Exception:
            self.refresh_store.delete(refresh)
            raise
        return self._pair(access, refresh)

    def _issue_access(self, profile: UserPublicOut) -> str:
        return self.tokens.issue_access_token(
            user_id=profile.id,
            email=profile.email,
            display_name=profile.display_name,
            expires_delta=self.cfg.access_expires,
        )

    def _pair(self, access: str, refresh: str) -> TokenPairOut:
        return TokenPairOut(
            access_token=access,
            refresh_token=refresh,
            access_expires_in=self.cfg.access_ttl_seconds,
            refresh_expires_in=self.cfg.refresh_ttl_seconds,
        )

    def _equalize_timing(self, password: str) -> None:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash(_TIMING_DUMMY_PASSWORD)
        self.hasher.verify(password, self._dummy_hash)

    @staticmethod
    def _refresh_failed(reason: str, *, user_id: str | None = None) -> NoReturn:
        log.warning("auth.refresh.failed reason=%s user_id=%s", reason, user_id)
        raise TokenRefreshError(reason)

    @staticmethod
    def _to_public(user: User) -> UserPublicOut:
        return UserPublicOut(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            created_at=user.created_at,
        )
