from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import replace
from datetime import timedelta
from typing import Any, Dict, Optional

from todu.constants import DELETE_ACCOUNT_CONFIRMATION, PASSWORD_RESET_TTL_MINUTES
from todu.domain.accounts.ports import (
    AvatarStorage,
    GoogleIdentityVerifier,
    PasswordHasher,
    TokenIssuer,
    UserRepository,
)
from todu.domain.accounts.rules import (
    avatar_extension,
    normalize_email,
    validate_new_password,
    validate_signup,
)
from todu.domain.common.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from todu.domain.common.ports import Clock, IdGenerator, Mailer
from todu.domain.lists.ports import ListRepository
from todu.domain.lists.service import ListService
from todu.domain.tasks.ports import TaskRepository
from todu.email_templates import render_password_reset
from todu.models import AuthResult, User, UserPreferences

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."
THEMES = ("light", "dark", "system")


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_uploaded_avatar(avatar_url: Optional[str]) -> bool:
    return bool(avatar_url) and not avatar_url.startswith("http")


class AccountService:
    """
    Sign-up, sign-in and profile management. Passwords are only ever
    handled through the PasswordHasher port.
    """

    def __init__(
        self,
        users: UserRepository,
        lists: ListRepository,
        list_service: ListService,
        tasks: TaskRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        google: Optional[GoogleIdentityVerifier],
        avatars: AvatarStorage,
        mailer: Mailer,
        clock: Clock,
        ids: IdGenerator,
        client_url: str,
    ) -> None:
        self._users = users
        self._lists = lists
        self._list_service = list_service
        self._tasks = tasks
        self._hasher = hasher
        self._tokens = tokens
        self._google = google
        self._avatars = avatars
        self._mailer = mailer
        self._clock = clock
        self._ids = ids
        self._client_url = client_url

    def _issue(self, user: User, message: str) -> AuthResult:
        return AuthResult(token=self._tokens.issue(user.id, user.email), user=user, message=message)

    async def _new_user(
        self,
        name: str,
        email: str,
        password_hash: Optional[str] = None,
        google_id: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        now = self._clock.now()
        user = User(
            id=self._ids.new_id(),
            name=name,
            email=email,
            password_hash=password_hash,
            google_id=google_id,
            avatar_url=avatar_url,
            preferences=UserPreferences(),
            created_at=now,
            updated_at=now,
        )
        await self._users.insert(user)
        await self._list_service.create_starter_lists(user.id)
        logger.info("User created: user_id=%s", user.id)
        return user

    async def signup(self, name: str, email: str, password: str) -> AuthResult:
        validate_signup(name, email, password)
        email = normalize_email(email)
        if await self._users.get_by_email(email):
            raise ConflictError("User with this email already exists")
        user = await self._new_user(name.strip(), email, password_hash=self._hasher.hash(password))
        return self._issue(user, "Account created successfully")

    async def login(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationError("Please provide email and password")
        user = await self._users.get_by_email(normalize_email(email))
        if not user:
            raise AuthenticationError("Invalid email or password")
        if not user.password_hash:
            raise ValidationError("This account uses Google Sign-In. Please log in with Google.")
        if not self._hasher.verify(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return self._issue(user, "Login successful")

    async def google_verify(self, credential: str) -> AuthResult:
        if not credential:
            raise ValidationError("Missing Google credential")
        if self._google is None:
            raise ServiceError("Server is not configured for Google OAuth")

        identity = await self._google.verify(credential)
        email = normalize_email(identity.email)
        user = await self._users.get_by_google_id_or_email(identity.google_id, email)
        if user is None:
            user = await self._new_user(
                identity.name or email or "Google User",
                email,
                google_id=identity.google_id,
                avatar_url=identity.picture,
            )
        elif not user.google_id:
            user = replace(
                user,
                google_id=identity.google_id,
                avatar_url=user.avatar_url or identity.picture,
                updated_at=self._clock.now(),
            )
            await self._users.save(user)
        return self._issue(user, "Login successful")

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user."""
        claims = self._tokens.decode(token)
        user = await self._users.get(claims.user_id)
        if not user:
            raise AuthenticationError("Invalid token")
        return user

    async def me(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> User:
        user = await self.me(user_id)
        fields: Dict[str, Any] = {}

        name = (changes.get("name") or "").strip()
        if name:
            if len(name) > 100:
                raise ValidationError("Name must be between 1 and 100 characters")
            fields["name"] = name

        if "avatar_url" in changes:
            if is_uploaded_avatar(user.avatar_url):
                await self._avatars.delete(user.avatar_url)
            fields["avatar_url"] = changes.get("avatar_url") or None

        email = normalize_email(changes.get("email"))
        if email and email != user.email:
            if await self._users.get_by_email(email):
                raise ConflictError("Email already in use")
            fields["email"] = email

        prefs = changes.get("preferences") or {}
        if prefs:
            theme = prefs.get("theme") or user.preferences.theme
            if theme not in THEMES:
                raise ValidationError("Theme must be one of: light, dark, system")
            fields["preferences"] = UserPreferences(
                theme=theme,
                timezone=prefs.get("timezone") or user.preferences.timezone,
                language=prefs.get("language") or user.preferences.language,
            )

        updated = replace(user, **fields, updated_at=self._clock.now())
        await self._users.save(updated)
        return updated

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Please provide both current and new password")
        validate_new_password(new_password)
        user = await self.me(user_id)
        if not user.password_hash:
            raise ValidationError("Cannot change password for OAuth-only accounts")
        if not self._hasher.verify(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        await self._users.save(
            replace(user, password_hash=self._hasher.hash(new_password), updated_at=self._clock.now())
        )

    async def forgot_password(self, email: str) -> str:
        if not email:
            raise ValidationError("Please provide your email address")
        user = await self._users.get_by_email(normalize_email(email))
        if not user or not user.password_hash:
            return FORGOT_PASSWORD_MESSAGE

        token = secrets.token_hex(20)
        now = self._clock.now()
        pending = replace(
            user,
            reset_password_token=hash_reset_token(token),
            reset_password_expire=now + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES),
        )
        await self._users.save(pending)

        rendered = render_password_reset(user, f"{self._client_url}/reset-password/{token}")
        try:
            await self._mailer.send(user.email, rendered.subject, rendered.text, rendered.html)
        except Exception as e:
            logger.error(f"Password reset email failed: user_id={user.id}, error={e}", exc_info=True)
            await self._users.save(replace(pending, reset_password_token=None, reset_password_expire=None))
            raise ServiceError("Failed to send password reset email. Please try again later.")
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, token: str, password: str) -> AuthResult:
        validate_new_password(password)
        now = self._clock.now()
        user = await self._users.get_by_reset_token(hash_reset_token(token), now)
        if not user:
            raise ValidationError("Invalid or expired reset token. Please request a new one.")
        user = replace(
            user,
            password_hash=self._hasher.hash(password),
            reset_password_token=None,
            reset_password_expire=None,
            updated_at=now,
        )
        await self._users.save(user)
        return self._issue(user, "Password reset successful. You are now logged in.")

    async def upload_avatar(
        self, user_id: str, filename: Optional[str], content_type: Optional[str], data: bytes
    ) -> User:
        ext = avatar_extension(filename, content_type, len(data))
        user = await self.me(user_id)
        if is_uploaded_avatar(user.avatar_url):
            await self._avatars.delete(user.avatar_url)
        avatar_url = await self._avatars.save(user.id, ext, data)
        updated = replace(user, avatar_url=avatar_url, updated_at=self._clock.now())
        await self._users.save(updated)
        return updated

    async def delete_account(self, user_id: str, password: Optional[str], confirm_delete: Optional[str]) -> None:
        if confirm_delete != DELETE_ACCOUNT_CONFIRMATION:
            raise ValidationError(f'Please type "{DELETE_ACCOUNT_CONFIRMATION}" to confirm')
        user = await self.me(user_id)
        if user.password_hash:
            if not password:
                raise ValidationError("Please provide your password to confirm account deletion")
            if not self._hasher.verify(password, user.password_hash):
                raise AuthenticationError("Incorrect password")

        tasks = await self._tasks.delete_for_user(user.id)
        lists = await self._lists.delete_for_user(user.id)
        if is_uploaded_avatar(user.avatar_url):
            await self._avatars.delete(user.avatar_url)
        await self._users.delete(user.id)
        logger.info("Account deleted: user_id=%s, tasks=%s, lists=%s", user.id, tasks, lists)
