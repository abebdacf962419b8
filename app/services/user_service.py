from typing import Iterable, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from app.core.security import PasswordEncoder
from app.models.user import User

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing resource owners of the password grant."""

    def __init__(self, db: Session, password_encoder: PasswordEncoder):
        self.db = db
        self.password_encoder = password_encoder

    def create_user(
        self,
        username: str,
        password: str,
        authorities: Optional[Iterable[str]] = None,
        enabled: bool = True,
    ) -> User:
        """Create a user with a bcrypt-hashed password."""
        if self.get_user_by_username(username) is not None:
            raise ValueError(f"User with username '{username}' already exists")

        user = User(
            username=username,
            password_hash=self.password_encoder.encode(password),
            authorities=",".join(authorities or []),
            enabled=enabled,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            self.db.rollback()
            raise ValueError(f"User with username '{username}' already exists")

        logger.info(f"Created user: {username}")
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def set_enabled(self, username: str, enabled: bool) -> Optional[User]:
        user = self.get_user_by_username(username)
        if not user:
            return None
        user.enabled = enabled
        self.db.commit()
        self.db.refresh(user)
        return user
