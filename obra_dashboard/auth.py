"""
Email/password authentication and the session provider.

The credential service only verifies identities; the session provider owns
the current session and notifies subscribers when it changes. Nothing in the
data layer reads the session.
"""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

import structlog
from passlib.context import CryptContext

from obra_dashboard.config import config

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

LOGIN_ERROR_MESSAGE = "Error al iniciar sesión"
LOGOUT_ERROR_MESSAGE = "Error al cerrar sesión"
INVALID_CREDENTIALS_MESSAGE = "Correo o contraseña incorrectos"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class AuthError(Exception):
    """Sign-in or sign-out failed; the message is shown to the user."""


@dataclass(frozen=True)
class Session:
    uid: str
    email: str


class CredentialService(Protocol):
    def sign_in(self, email: str, password: str) -> Session: ...

    def sign_out(self, session: Session) -> None: ...


# =============================================================================
# LOCAL CREDENTIALS
# =============================================================================

class LocalCredentialService:
    """
    Users kept in a JSON file with argon2 hashes::

        {"users": [{"uid": "...", "email": "...", "password_hash": "..."}]}
    """

    def __init__(self, users_path: Optional[Path] = None):
        self.users_path = Path(users_path) if users_path else config.users_path

    def _load(self) -> List[Dict[str, str]]:
        if not self.users_path.exists():
            return []
        try:
            payload = json.loads(self.users_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AuthError(f"No se pudo leer el archivo de usuarios: {exc}") from exc
        return list(payload.get("users", []))

    def _save(self, users: List[Dict[str, str]]) -> None:
        self.users_path.parent.mkdir(parents=True, exist_ok=True)
        self.users_path.write_text(json.dumps({"users": users}, indent=2), encoding="utf-8")

    def find(self, email: str) -> Optional[Dict[str, str]]:
        email = email.strip().lower()
        for user in self._load():
            if user.get("email", "").lower() == email:
                return user
        return None

    def add_user(self, email: str, password: str) -> Session:
        """Create a user, or reset the password of an existing one."""
        email = email.strip().lower()
        if not email or not password:
            raise AuthError("Correo y contraseña son obligatorios")

        users = self._load()
        for user in users:
            if user.get("email", "").lower() == email:
                user["password_hash"] = hash_password(password)
                self._save(users)
                return Session(uid=user["uid"], email=email)

        uid = uuid.uuid4().hex
        users.append({"uid": uid, "email": email, "password_hash": hash_password(password)})
        self._save(users)
        return Session(uid=uid, email=email)

    def sign_in(self, email: str, password: str) -> Session:
        user = self.find(email)
        if user is None:
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)
        try:
            if not verify_password(password, user.get("password_hash") or ""):
                raise AuthError(INVALID_CREDENTIALS_MESSAGE)
            return Session(uid=user["uid"], email=user["email"])
        except (KeyError, TypeError, ValueError) as exc:
            # Unknown hash format or incomplete record in the users file
            logger.warning("user_record_invalid", email=user.get("email"), error=repr(exc))
            raise AuthError(INVALID_CREDENTIALS_MESSAGE) from exc

    def sign_out(self, session: Session) -> None:
        # Local sessions hold no server-side state
        return None


# =============================================================================
# SESSION PROVIDER
# =============================================================================

SessionListener = Callable[[Optional[Session]], None]


class SessionProvider:
    """
    Current session plus subscribe/notify.

    ``on_session_change`` calls the listener right away with the current
    session (or None), then again after every login/logout.
    """

    def __init__(self, credentials: CredentialService):
        self.credentials = credentials
        self._session: Optional[Session] = None
        self._listeners: List[SessionListener] = []
        self.error: Optional[str] = None

    @property
    def current(self) -> Optional[Session]:
        return self._session

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._session)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._session)

    def login(self, email: str, password: str) -> Session:
        self.error = None
        try:
            session = self.credentials.sign_in(email, password)
        except AuthError as exc:
            self.error = str(exc) or LOGIN_ERROR_MESSAGE
            logger.warning("login_failed", email=email)
            raise AuthError(self.error) from exc

        self._session = session
        logger.info("login_succeeded", uid=session.uid)
        self._notify()
        return session

    def logout(self) -> None:
        self.error = None
        if self._session is None:
            return
        try:
            self.credentials.sign_out(self._session)
        except AuthError as exc:
            self.error = str(exc) or LOGOUT_ERROR_MESSAGE
            logger.warning("logout_failed", uid=self._session.uid)
            raise AuthError(self.error) from exc

        logger.info("logout", uid=self._session.uid)
        self._session = None
        self._notify()
