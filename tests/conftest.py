"""Fixtures pytest: BD SQLite en memoria, cliente HTTP y usuarios de prueba."""
import base64
import os
import tempfile

# La configuración se lee al importar app.*: el entorno de tests va primero
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "clave-de-pruebas-acm"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="acm_storage_")
os.environ["LOGS_DIR"] = tempfile.mkdtemp(prefix="acm_logs_")
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base, get_db, set_sqlite_pragma  # noqa: E402
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.usuario import Usuario  # noqa: E402
from app.services.storage_service import StorageService, get_storage  # noqa: E402

PASSWORD = "Clave123"

PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

DATOS_REPORTE = {
    "zona": "Norte",
    "distrito": "Tarqui",
    "circuito": "N1",
    "direccion": "Av. 9 de Octubre y Malecón",
    "horario_jornada": "07:00 - 15:00",
    "hora_reporte": "10:30",
    "fecha": "2024-05-10",
    "novedad": "Venta ambulante no autorizada en la vereda",
}


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Sesión DB en memoria para tests."""
    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()


@pytest.fixture
def storage(tmp_path):
    return StorageService(root=tmp_path / "storage", public_url="/storage")


@pytest.fixture
def client(db_session, storage):
    """TestClient sin eventos de arranque: la BD la prepara el fixture."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


# =========================================================
# USUARIOS
# =========================================================

def crear_usuario(db, email, cedula, nombre="AGENTE DE PRUEBA", rol="acm", activo=True):
    usuario = Usuario(
        email=email,
        password_hash=hash_password(PASSWORD),
        nombre_completo=nombre,
        cedula=cedula,
        rol=rol,
        cuenta_activa=activo,
    )
    db.add(usuario)
    db.commit()
    db.refresh(usuario)
    return usuario


def auth_headers(usuario):
    token, _ = create_access_token(usuario)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def usuario_acm(db_session):
    return crear_usuario(db_session, "acm1@seguraep.gob.ec", "0912345678", "JUAN PÉREZ")


@pytest.fixture
def otro_acm(db_session):
    return crear_usuario(db_session, "acm2@seguraep.gob.ec", "0923456789", "MARÍA LÓPEZ")


@pytest.fixture
def admin(db_session):
    return crear_usuario(db_session, "admin@seguraep.gob.ec", "0900000001", "ADMIN ACM", rol="admin")


@pytest.fixture
def headers_acm(usuario_acm):
    return auth_headers(usuario_acm)


@pytest.fixture
def headers_otro(otro_acm):
    return auth_headers(otro_acm)


@pytest.fixture
def headers_admin(admin):
    return auth_headers(admin)


# =========================================================
# REPORTES
# =========================================================

@pytest.fixture
def crear_reporte(client):
    """Factory: POST /reportes y devuelve `data` de la respuesta."""

    def _crear(headers=None, imagenes=None, **cambios):
        datos = {**DATOS_REPORTE, **cambios}
        files = [("imagenes", img) for img in imagenes or []]
        response = client.post("/reportes", data=datos, files=files or None, headers=headers or {})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _crear


@pytest.fixture
def nuevo_usuario(db_session):
    """Factory: usuario adicional en la BD de la prueba."""

    def _nuevo(email, cedula, **kwargs):
        return crear_usuario(db_session, email, cedula, **kwargs)

    return _nuevo


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def png():
    return PNG_1X1


@pytest.fixture
def datos_reporte():
    return dict(DATOS_REPORTE)
