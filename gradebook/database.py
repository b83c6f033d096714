"""Database helpers for the gradebook."""

from __future__ import annotations

import contextlib
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Database:
    """Database wrapper that hides SQLAlchemy boilerplate."""

    def __init__(self, url: str, echo: bool = False) -> None:
        options: dict = {"echo": echo}
        if url.startswith("sqlite") and (url.endswith(":memory:") or url == "sqlite://"):
            # one shared connection, otherwise every thread gets its own empty database
            options.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        elif url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
        self.url = url
        self._engine: Engine = create_engine(url, **options)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        from . import models  # noqa: F401

        Base.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextlib.contextmanager
    def session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
