"""
Local accounts: registration, login and the single active session.

The session is one record (``{"userId": ...}``) under the session key;
when the key is absent nobody is logged in. ``login()`` uses the same
"Invalid credentials" error for an unknown username and for a wrong
password.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError as SchemaError

from ..errors import AuthError, ConflictError, ValidationError
from ..models import Session, User
from ..storage import Store, storage_keys
from .passwords import BcryptHasher


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AccountService:
    def __init__(self, store: Store, hasher=None, prefix: str = "medtextdb"):
        self.store = store
        self.hasher = hasher if hasher is not None else BcryptHasher()
        keys = storage_keys(prefix)
        self.users_key = keys["users"]
        self.session_key = keys["session"]

    # -- users ----------------------------------------------------------

    def list_users(self) -> List[User]:
        raw = self.store.read(self.users_key, [])
        if not isinstance(raw, list):
            return []
        users = []
        for entry in raw:
            try:
                users.append(User.model_validate(entry))
            except SchemaError as exc:
                logger.warning("Skipping malformed user record: %s", exc)
        return users

    def save_users(self, users: List[User]) -> None:
        self.store.write(self.users_key, [u.to_record() for u in users])

    def find_user(self, username: str) -> Optional[User]:
        wanted = (username or "").strip().lower()
        return next((u for u in self.list_users() if u.username.lower() == wanted), None)

    # -- session --------------------------------------------------------

    def get_session(self) -> Optional[Session]:
        raw = self.store.read(self.session_key, None)
        if not raw:
            return None
        try:
            return Session.model_validate(raw)
        except SchemaError:
            logger.warning("Ignoring malformed session record")
            return None

    def set_session(self, session: Optional[Session]) -> None:
        if session:
            self.store.write(self.session_key, session.to_record())
        else:
            self.store.remove(self.session_key)

    # -- transitions ----------------------------------------------------

    def register(self, username: str, password: str, display_name: str) -> User:
        """Create an account and log it in.

        Raises ``ValidationError`` when a field is blank and
        ``ConflictError`` when the username is taken (ignoring case).
        """
        username = (username or "").strip()
        display_name = (display_name or "").strip()
        if not username or not (password or "").strip() or not display_name:
            raise ValidationError("All fields are required")
        users = self.list_users()
        if any(u.username.lower() == username.lower() for u in users):
            raise ConflictError("Username already exists")
        user = User(
            id=self.store.generate_id(),
            username=username,
            display_name=display_name,
            password_hash=self.hasher.hash(password),
        )
        self.save_users([user] + users)
        self.set_session(Session(user_id=user.id))
        logger.info("Registered user %s", user.username)
        return user

    def login(self, username: str, password: str) -> User:
        if not (username or "").strip() or not (password or "").strip():
            raise ValidationError("Username and password required")
        user = self.find_user(username)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.warning("Failed login for %r", username)
            raise AuthError(INVALID_CREDENTIALS)
        needs_rehash = getattr(self.hasher, "needs_rehash", None)
        if needs_rehash is not None and needs_rehash(user.password_hash):
            user = self._rehash(user, password)
        self.set_session(Session(user_id=user.id))
        return user

    def _rehash(self, user: User, password: str) -> User:
        upgraded = user.model_copy(update={"password_hash": self.hasher.hash(password)})
        self.save_users([upgraded if u.id == user.id else u for u in self.list_users()])
        logger.info("Upgraded password digest for %s to %s", user.username, self.hasher.scheme)
        return upgraded

    def logout(self) -> None:
        self.set_session(None)

    def current_user(self) -> Optional[User]:
        session = self.get_session()
        if session is None:
            return None
        return next((u for u in self.list_users() if u.id == session.user_id), None)
