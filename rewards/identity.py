"""Signup, login and the bearer-token gate in front of every user operation."""

import hashlib
import secrets
from datetime import timedelta
from typing import Callable, Optional
from uuid import uuid4

from .errors import ConflictError, InternalError, NotFoundError, UnauthenticatedError, ValidationError
from .ledger import credit, utcnow
from .logging_config import get_logger
from .models import (
    AuthResult,
    EntrySource,
    LedgerDocument,
    PublicUser,
    ReferralStatus,
    Session,
    User,
)
from .settings import Settings, settings as default_settings
from .storage import LedgerStore

logger = get_logger(__name__)

REFERRAL_CODE_LENGTH = 6
# No 0/O, 1/I/L so codes survive being read aloud
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
MAX_GENERATION_ATTEMPTS = 20


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def generate_token() -> str:
    return secrets.token_urlsafe(24)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _unique(generate: Callable[[], object], taken: set, key: Callable = lambda v: v) -> object:
    for _ in range(MAX_GENERATION_ATTEMPTS):
        value = generate()
        if key(value) not in taken:
            return value
    raise InternalError("Could not allocate a unique identifier")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class IdentityService:
    def __init__(self, store: LedgerStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def signup(self, name: Optional[str], email: Optional[str], referral_code: Optional[str] = None) -> AuthResult:
        name, email, referral_code = _clean(name), _clean(email), _clean(referral_code)
        if not name or not email:
            raise ValidationError("Name and email required")

        with self.store.transaction() as document:
            if document.find_user_by_email(email):
                raise ConflictError("Email already registered")

            # A new code must not collide with the code it was referred by
            taken_codes = {u.referral_code for u in document.users}
            if referral_code:
                taken_codes.add(referral_code)

            user = User(
                id=_unique(uuid4, {u.id for u in document.users}),
                name=name,
                email=email,
                referral_code=_unique(generate_referral_code, taken_codes),
                referred_by=referral_code,
                created_at=utcnow(),
            )
            document.users.append(user)

            if referral_code:
                self._apply_referral(document, user, referral_code)

            token = self._open_session(document, user)

        logger.info("user_signed_up", user_id=str(user.id), referral_status=user.referral_status.value)
        return AuthResult(token=token, user=PublicUser.model_validate(user))

    def login(self, email: Optional[str]) -> AuthResult:
        email = _clean(email)
        if not email:
            raise ValidationError("Email required")

        with self.store.transaction() as document:
            user = document.find_user_by_email(email)
            if not user:
                raise NotFoundError("User not found")
            token = self._open_session(document, user)

        logger.info("user_logged_in", user_id=str(user.id))
        return AuthResult(token=token, user=PublicUser.model_validate(user))

    def logout(self, token: Optional[str]) -> None:
        user = self.authenticate(token)
        token_hash = hash_token(token)
        with self.store.transaction() as document:
            document.sessions = [s for s in document.sessions if s.token_hash != token_hash]
        logger.info("user_logged_out", user_id=str(user.id))

    def authenticate(self, token: Optional[str]) -> User:
        if not token:
            raise UnauthenticatedError("Missing token")

        document = self.store.snapshot()
        session = document.find_session(hash_token(token))
        if session is None or session.expires_at <= utcnow():
            raise UnauthenticatedError("Invalid token")

        user = document.find_user(session.user_id)
        if user is None:
            raise UnauthenticatedError("Invalid token")
        return user

    def _apply_referral(self, document: LedgerDocument, user: User, referral_code: str) -> None:
        referrer = document.find_user_by_referral_code(referral_code)
        if referrer is None or referrer.id == user.id:
            user.referral_status = ReferralStatus.UNRESOLVED
            logger.info("referral_unresolved", user_id=str(user.id), referral_code=referral_code)
            return

        user.referral_status = ReferralStatus.RESOLVED
        user.referrer_id = referrer.id
        bonus = self.settings.referral_bonus
        credit(
            document,
            referrer,
            EntrySource.REFERRAL_BONUS,
            bonus,
            idempotency_key=f"referral:{user.id}",
            description=f"Referral bonus for {user.name}",
            metadata={"referred_user_id": str(user.id), "referral_code": referral_code},
            currency=self.settings.currency,
        )
        logger.info(
            "referral_bonus_credited",
            referrer_id=str(referrer.id),
            referred_user_id=str(user.id),
            amount=str(bonus),
        )

    def _open_session(self, document: LedgerDocument, user: User) -> str:
        now = utcnow()
        token = _unique(generate_token, {s.token_hash for s in document.sessions}, key=hash_token)

        # Expired sessions are dropped whenever a new one is opened
        document.sessions = [s for s in document.sessions if s.expires_at > now]
        document.sessions.append(Session(
            token_hash=hash_token(token),
            user_id=user.id,
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.session_ttl_hours),
        ))
        return token
