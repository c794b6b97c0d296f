"""
AccessToken model: short-lived token authorizing individual requests.
Every access token belongs to exactly one refresh token (refresh_token_id);
deleting the refresh token deletes its access tokens.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class AccessToken(BaseModel, Base):
    __tablename__ = "access_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token_id = Column(
        String(36),
        ForeignKey("refresh_tokens.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_agent = Column(String(512), nullable=True)
    token_string = Column(Text, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<AccessToken id={self.id} refresh_token_id={self.refresh_token_id}>"
