from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from models import Base

# Bound to an engine by init_db() at startup
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine; SQLite gets WAL mode and a busy timeout."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if url != "sqlite://" and ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

        return engine

    return create_engine(url, pool_pre_ping=True, **kwargs)


def init_db(url: str) -> Engine:
    """Create the engine for url, bind SessionLocal to it and create tables."""
    engine = build_engine(url)
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)
    return engine


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
