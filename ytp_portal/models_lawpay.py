"""
LawPay Integration Model
Stores the merchant connection created by the OAuth2 callback.
Tokens are Fernet-encrypted at rest.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .database import Base
from .models import generate_id


class LawPayConnection(Base):
    __tablename__ = "lawpay_connections"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Merchant details from gateway credentials
    merchant_public_key = Column(String(255), nullable=False)
    merchant_name = Column(String(255), nullable=True)
    scope = Column(String(255), nullable=True)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=False)

    revoked_at = Column(DateTime, nullable=True)  # null while the connection is live

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="lawpay_connections")
