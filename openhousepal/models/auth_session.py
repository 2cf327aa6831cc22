from sqlalchemy import Column, Integer, String, BigInteger, DateTime, func
from openhousepal.core.database import Base


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, unique=True, index=True)  # Telegram user id
    access_token = Column(String, nullable=False)  # Bearer token from /auth/login
    email = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False)
