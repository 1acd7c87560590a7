import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.shopgate.core.config import settings


@dataclass
class DbClock:
    """Wall time spent inside cursor executes during one request."""

    elapsed_ms: float = 0.0


_current_clock: ContextVar[DbClock | None] = ContextVar("shopgate_db_clock", default=None)


@contextmanager
def track_db_time():
    clock = DbClock()
    token = _current_clock.set(clock)
    try:
        yield clock
    finally:
        _current_clock.reset(token)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # TestClient and the threadpool share one SQLite connection across threads.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_options(settings.DATABASE_URL))


@event.listens_for(engine, "before_cursor_execute")
def _start_query_clock(conn, cursor, statement, parameters, context, executemany):
    if _current_clock.get() is not None:
        conn.info.setdefault("shopgate_query_started", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def _stop_query_clock(conn, cursor, statement, parameters, context, executemany):
    clock = _current_clock.get()
    started = conn.info.get("shopgate_query_started")
    if clock is None or not started:
        return
    clock.elapsed_ms += (time.perf_counter() - started.pop()) * 1000


# expire_on_commit stays on: services re-read rows after a UnitOfWork commits.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
