from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from openhousepal.core.database import Base
from openhousepal.core.token_store import clear_token, get_token, save_token
from openhousepal.models.auth_session import AuthSession


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


def test_save_and_read_token(db):
    save_token(db, 100, "first", "agent@example.com")
    save_token(db, 100, "second")

    assert get_token(db, 100) == "second"
    assert db.query(AuthSession).count() == 1
    assert get_token(db, 200) is None


def test_expired_token_is_removed(db):
    session = save_token(db, 100, "old")
    session.expires_at = datetime.now() - timedelta(minutes=1)
    db.commit()

    assert get_token(db, 100) is None
    assert db.query(AuthSession).count() == 0


def test_clear_token(db):
    save_token(db, 100, "token")

    assert clear_token(db, 100) is True
    assert clear_token(db, 100) is False
    assert get_token(db, 100) is None
