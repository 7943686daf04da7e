import threading
from collections.abc import Iterator
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pilllog.core.config import settings


class Base(DeclarativeBase):
    pass


def _engine_options(url: str) -> dict[str, Any]:
    """Connection options for the configured backend."""
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    # An in-memory database lives inside one connection, so every session
    # has to share it.
    if ":memory:" in url or url.rstrip("/").endswith(":"):
        options["poolclass"] = StaticPool
    return options


def build_engine(url: str) -> Engine:
    return create_engine(url, **_engine_options(url))


class SerializedSession(Session):
    """
    Session for engines where every session shares one DBAPI connection.

    A session holds the write lock from its first flush until its transaction
    ends, and rollbacks and closes take the same lock. One session therefore
    never rolls back rows another session has flushed but not yet committed.
    """

    def __init__(self, *args: Any, write_lock: threading.Lock, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._write_lock = write_lock
        self._holds_write_lock = False

    def flush(self, objects: Any = None) -> None:
        self._acquire_write_lock()
        super().flush(objects)

    def commit(self) -> None:
        self._acquire_write_lock()
        try:
            super().commit()
        finally:
            self._release_write_lock()

    def rollback(self) -> None:
        self._acquire_write_lock()
        try:
            super().rollback()
        finally:
            self._release_write_lock()

    def close(self) -> None:
        self._acquire_write_lock()
        try:
            super().close()
        finally:
            self._release_write_lock()

    def _acquire_write_lock(self) -> None:
        if not self._holds_write_lock:
            self._write_lock.acquire()
            self._holds_write_lock = True

    def _release_write_lock(self) -> None:
        if self._holds_write_lock:
            self._holds_write_lock = False
            self._write_lock.release()


def build_sessionmaker(bind: Engine) -> sessionmaker:
    options: dict[str, Any] = {"bind": bind, "autoflush": False, "expire_on_commit": False}
    if isinstance(bind.pool, StaticPool):
        return sessionmaker(class_=SerializedSession, write_lock=threading.Lock(), **options)
    return sessionmaker(**options)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = build_sessionmaker(engine)


def init_db(bind: Engine = engine) -> None:
    """Create all tables known to the model registry."""
    # Model modules register themselves on Base.metadata when imported.
    from pilllog.domains.medications import models as _medications  # noqa: F401
    from pilllog.domains.symptoms import models as _symptoms  # noqa: F401
    from pilllog.domains.uploads import models as _uploads  # noqa: F401
    from pilllog.domains.users import models as _users  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
