import time

from authlib.integrations.sqla_oauth2 import OAuth2TokenMixin
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import Base


class OAuth2Token(Base, OAuth2TokenMixin):
    """Issued access token together with the refresh token it can be renewed with."""

    __tablename__ = "oauth2_token"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    # Signed JWTs outgrow the mixin's 255 characters
    access_token = Column(String(1024), unique=True, nullable=False)

    # Epoch seconds; carried over unchanged when the access token is refreshed
    refresh_token_expires_at = Column(Integer, nullable=True)

    user = relationship("User")

    def get_expires_at(self) -> int:
        return self.issued_at + self.expires_in

    def is_refresh_token_expired(self) -> bool:
        if not self.refresh_token_expires_at:
            return False
        return self.refresh_token_expires_at <= time.time()

    def __repr__(self):
        return f"<OAuth2Token(id={self.id}, client_id='{self.client_id}', user_id={self.user_id})>"
