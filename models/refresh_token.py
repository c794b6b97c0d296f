"""
RefreshToken model: long-lived token used only to obtain a new token pair.
Fields:
- user_id (String(36)) - FK to users.id
- user_agent - client that requested the pair
- token_string - the signed token, unique across both token tables
- expires_at, created_at

Access tokens point here through refresh_token_id; there is deliberately no
relationship() back to them, the children are found by query.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_agent = Column(String(512), nullable=True)
    token_string = Column(Text, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<RefreshToken id={self.id} user_id={self.user_id}>"
