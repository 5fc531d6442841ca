from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping

from sqlalchemy import Table, create_engine
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.debug, "future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        # Polling clients hit the API every couple of seconds; keep a warm pool.
        options["pool_size"] = 10
        options["max_overflow"] = 20
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Context manager for short-lived database sessions outside of request scope."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


_INSERT_BATCH = 300


def insert_ignore(db: Session, table: Table, rows: Iterable[Mapping[str, Any]]) -> int:
    """Insert rows, silently skipping any that violate a unique constraint.

    Used for ledgers where a duplicate means "already recorded" (read receipts,
    presence rows), so racing writers converge instead of failing. Returns the
    number of rows actually inserted.
    """

    values = [dict(row) for row in rows]
    if not values:
        return 0

    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        insert = sqlite.insert
    elif dialect == "postgresql":
        insert = postgresql.insert
    elif dialect in ("mysql", "mariadb"):
        insert = mysql.insert
    else:  # pragma: no cover - other backends are not deployed
        raise NotImplementedError(f"insert_ignore is not supported on {dialect}")

    inserted = 0
    # One multi-row VALUES statement per batch; its rowcount excludes skipped rows.
    for start in range(0, len(values), _INSERT_BATCH):
        stmt = insert(table).values(values[start : start + _INSERT_BATCH])
        if dialect in ("mysql", "mariadb"):
            stmt = stmt.prefix_with("IGNORE")
        else:
            stmt = stmt.on_conflict_do_nothing()
        inserted += db.execute(stmt).rowcount
    return inserted
