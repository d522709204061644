# teamboard/models/refresh_token.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from teamboard.core.base import Base


class RefreshToken(Base):
    """
    The session record: at most one per user.

    Issuing a new refresh token (login) overwrites ``token``/``expires_at`` on the
    existing row; the unique index on ``user_id`` backs that up at the DB level.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # The signed refresh token currently considered valid for this user
    token = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # Absolute expiration for this refresh token
    expires_at = Column(DateTime(timezone=True), nullable=False)

    revoked = Column(Boolean, nullable=False, default=False, server_default="false")
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_reason = Column(String(50), nullable=True)

    # Activity metadata for the sessions view
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    last_activity = Column(DateTime(timezone=True), nullable=True)
    activity_count = Column(Integer, nullable=False, default=1, server_default="1")

    user = relationship("User", back_populates="refresh_tokens")
