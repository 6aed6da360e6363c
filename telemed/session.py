"""
session.py
==========
Explicit authentication session for the dashboard client.

Instead of a user stored in some global place, callers create an
AuthSession and hand it to the ApiClient. It only changes through
``login`` and ``logout``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class NotAuthenticated(Exception):
    """Raised when an action needs a logged-in session."""


@dataclass(frozen=True)
class SessionUser:
    name: str
    email: str = ""
    user_type: Optional[str] = None  # "doctor", "patient" or None

    @classmethod
    def from_record(cls, user) -> "SessionUser":
        """Build from a User record returned by the API."""
        if user.is_doctor:
            user_type = "doctor"
        elif user.is_patient:
            user_type = "patient"
        else:
            user_type = None
        return cls(name=user.full_name or user.username, email=user.email, user_type=user_type)


class AuthSession:
    """Holds the signed-in user and access token, if any."""

    def __init__(self):
        self.user: Optional[SessionUser] = None
        self.token: Optional[str] = None
        self.expires_at: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        if self.user is None or self.token is None:
            return False
        return self.expires_at is None or self.expires_at > time.time()

    def login(self, user: SessionUser, token: str, expires_at: Optional[int] = None):
        self.user = user
        self.token = token
        self.expires_at = expires_at
        logger.info("Signed in as %s", user.name)

    def logout(self):
        if self.user is not None:
            logger.info("Signed out %s", self.user.name)
        self.user = None
        self.token = None
        self.expires_at = None

    def require_user(self) -> SessionUser:
        if not self.is_authenticated:
            raise NotAuthenticated("login required")
        return self.user

    def auth_headers(self) -> Dict[str, str]:
        if not self.is_authenticated:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def __repr__(self):
        who = self.user.name if self.user else None
        return f"<AuthSession user={who!r} authenticated={self.is_authenticated}>"
