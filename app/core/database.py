from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import get_settings

Base = declarative_base()

# Singleton para el engine y session factory
_engine = None
_session_factory = None


def get_database_url() -> str:
    return get_settings().database_url


def _prepare_sqlite_dir(database_url: str) -> None:
    """Crea el directorio del fichero SQLite si no existe."""
    from pathlib import Path

    path = database_url.replace("sqlite:///", "", 1)
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def get_engine():
    """Obtiene el engine de base de datos (singleton)."""
    global _engine

    if _engine is None:
        database_url = get_database_url()

        connect_args = {}
        if database_url.startswith("sqlite"):
            _prepare_sqlite_dir(database_url)
            connect_args = {
                "check_same_thread": False,
                "timeout": 30,
            }

        _engine = create_engine(
            database_url,
            echo=False,
            connect_args=connect_args,
            pool_pre_ping=True,
        )

        if database_url.startswith("sqlite"):
            event.listen(_engine, "connect", set_sqlite_pragma)

    return _engine


def set_sqlite_pragma(dbapi_conn, connection_record):
    """WAL + claves foráneas activas en cada conexión SQLite."""
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        result = cursor.fetchone()
        if result and result[0].upper() != "WAL":
            cursor.execute("PRAGMA journal_mode=DELETE")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
    finally:
        cursor.close()


def get_session_factory():
    """Obtiene el session factory (singleton)."""
    global _session_factory

    if _session_factory is None:
        engine = get_engine()
        _session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    return _session_factory


def reset_engine() -> None:
    """Descarta engine y factory (tests, cambio de DATABASE_URL)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session():
    """
    Context manager para obtener una sesión de base de datos.
    Garantiza commit/rollback y cierre correcto.
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =========================================================
# FASTAPI DEPENDENCY
# =========================================================

def get_db():
    """
    Dependency para FastAPI.
    Proporciona una sesión por request.

    NO hace commit automático: cada servicio confirma su propia escritura.
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
