"""
Database connection and session management.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from db.models import Base
import os

# Database file path (relative to project root, stored in db folder)
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///db/frantic_five.db')

# Create engine
engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_database(bind=None):
    """Initialize database tables."""
    Base.metadata.create_all(bind or engine)
