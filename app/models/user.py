from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class User(Base):
    """Resource owner that can obtain tokens through the password grant."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    authorities = Column(String(1024), default="", nullable=False)  # Comma-separated
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def authority_list(self):
        return [a.strip() for a in (self.authorities or "").split(",") if a.strip()]

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
