"""
RefreshToken model: one row per outstanding refresh token.
Fields:
- token (primary key) - the literal signed refresh token
- user_id (String(36)) - FK to users.id
- expires_at - same instant as the token's exp claim, naive UTC
- created_at

A row existing is what makes a refresh token redeemable. Rows are removed
when the token is rotated or by the expiry sweeper; they are never updated.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from models.base_model import Base, TimestampMixin


class RefreshToken(TimestampMixin, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(1024), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} expires_at={self.expires_at}>"
