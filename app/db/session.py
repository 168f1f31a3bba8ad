# app/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings

# SQLite requires special connect args for multi-thread access.
connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

# Engine sync: setup de tests y scripts; la app usa session_async
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

Base = declarative_base()
