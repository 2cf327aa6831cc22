from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from openhousepal.core.config import DATABASE_URL

# Only the auth tokens live here; showcase data is always refetched from the backend
engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

