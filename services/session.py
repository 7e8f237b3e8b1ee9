# services/session.py
import logging
from typing import Optional

from models.user import User

logger = logging.getLogger(__name__)


class Session:
    """The signed-in user of one provider instance.

    Written once per login and read-only until ``clear`` (logout) or the next
    login replaces it.
    """

    def __init__(self):
        self.user: Optional[User] = None
        self.token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def start(self, user: User, token: str = None):
        logger.info(f"Session started for user {user.id} ({user.role})")
        self.user = user
        self.token = token

    def clear(self):
        if self.user is not None:
            logger.info(f"Session cleared for user {self.user.id}")
        self.user = None
        self.token = None
