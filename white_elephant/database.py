# white_elephant/database.py
# Создаёт SQLAlchemy engine, фабрику сессий и базовый класс моделей.
# Совместим с PostgreSQL (Railway) и SQLite.

import os
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Базовый класс моделей
Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Railway иногда даёт postgres://, а SQLAlchemy требует postgresql://"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def make_engine(url: str | None = None, echo: bool = False):
    """Создаёт движок по url или DATABASE_URL.

    SQLite в памяти только по явному url="sqlite:///:memory:".
    """
    url = url or os.environ.get("DATABASE_URL")

    if not url or url.strip() == "":
        raise RuntimeError("DATABASE_URL is not set in environment variables")

    url = normalize_database_url(url)

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # одно соединение на все сессии, иначе каждая увидит пустую БД
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo
    )


def make_session_factory(engine):
    """Фабрика сессий, которую получает EntityStore."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine):
    """Создаёт таблицы, если их нет."""
    # модели должны быть зарегистрированы в Base до create_all
    from white_elephant import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/checked successfully")
    except Exception as e:
        logger.exception("Error creating database tables: %s", e)
        raise
