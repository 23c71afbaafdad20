import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_DATABASE_URL = "postgresql://localhost/timebill"

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()

DATABASE_URL = ""
engine = None
_configured_database_url = None


def _get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _engine_options(database_url: str) -> dict:
    options = {"echo": os.getenv("SQL_ECHO", "").lower() in {"1", "true", "yes"}}

    if make_url(database_url).drivername.startswith("sqlite"):
        # TestClient runs handlers on a worker thread
        options["connect_args"] = {"check_same_thread": False}
        return options

    options["pool_pre_ping"] = True
    options["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    return options


def configure_database() -> None:
    """Bind SessionLocal to DATABASE_URL; rebinding only when the URL changed."""
    global DATABASE_URL, engine, _configured_database_url

    database_url = _get_database_url()

    if engine is not None and _configured_database_url == database_url:
        return

    if engine is not None:
        engine.dispose()

    engine = create_engine(database_url, **_engine_options(database_url))
    SessionLocal.configure(bind=engine)
    DATABASE_URL = database_url
    _configured_database_url = database_url


configure_database()


def get_db():
    configure_database()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
