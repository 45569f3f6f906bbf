from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from imagevariants.config import DB_URL


def enforce_foreign_keys(eng: Engine) -> Engine:
    """SQLite ignores FOREIGN KEY clauses unless each connection opts in.

    Without this an original could be deleted out from under its variants.
    """
    if eng.dialect.name == "sqlite":
        @event.listens_for(eng, "connect")
        def _sqlite_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return eng


connect_opts = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine       = enforce_foreign_keys(create_engine(DB_URL, connect_args=connect_opts))

SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
Base         = declarative_base()
