import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from openhousepal.core.config import TOKEN_TTL_HOURS
from openhousepal.models.auth_session import AuthSession

logger = logging.getLogger(__name__)


def get_token(db: Session, user_id: int) -> Optional[str]:
    """Returns the stored bearer token, or None if missing/expired"""
    session = db.query(AuthSession).filter(AuthSession.user_id == user_id).first()
    if not session:
        return None

    if session.expires_at <= datetime.now():
        # Expired tokens are removed like an expired cookie
        db.delete(session)
        db.commit()
        logger.info(f"⌛ Token expired for user {user_id}")
        return None

    return session.access_token


def save_token(db: Session, user_id: int, token: str, email: str = None) -> AuthSession:
    session = db.query(AuthSession).filter(AuthSession.user_id == user_id).first()
    if not session:
        session = AuthSession(user_id=user_id)
        db.add(session)

    session.access_token = token
    session.email = email
    session.expires_at = datetime.now() + timedelta(hours=TOKEN_TTL_HOURS)

    db.commit()
    return session


def clear_token(db: Session, user_id: int) -> bool:
    deleted = db.query(AuthSession).filter(AuthSession.user_id == user_id).delete()
    db.commit()
    return bool(deleted)
