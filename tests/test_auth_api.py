"""
Tests de los endpoints /auth: registro, login, refresco y cierre de sesión.
"""
import pytest

from app.core.exceptions import EmailDuplicadoException
from app.models.usuario import Usuario
from app.schemas import RegistroRequest
from app.services.usuario_service import UsuarioService

REGISTRO = {
    "email": "nuevo@seguraep.gob.ec",
    "password": "Clave123",
    "nombre_completo": "Carlos Andrade",
    "cedula": "0945678901",
    "telefono": "0991234567",
}


def _login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


# =========================================================
# REGISTRO
# =========================================================

@pytest.mark.smoke
def test_registro_crea_cuenta_y_sesion(client):
    """Test: Registro correcto devuelve usuario + sesión con rol por defecto."""
    resp = client.post("/auth/register", json=REGISTRO)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    usuario = body["data"]["usuario"]
    assert usuario["nombre_completo"] == "CARLOS ANDRADE"
    assert usuario["rol"] == "acm"
    assert usuario["cuenta_activa"] is True
    assert "password_hash" not in usuario
    assert body["data"]["session"]["access_token"]
    assert body["data"]["session"]["refresh_token"]


def test_registro_ignora_rol_de_la_peticion(client):
    resp = client.post("/auth/register", json={**REGISTRO, "rol": "admin"})

    assert resp.status_code == 201
    assert resp.json()["data"]["usuario"]["rol"] == "acm"


def test_registro_email_duplicado(client, usuario_acm):
    """Test: Email ya registrado (sin distinguir mayúsculas) → 409 campo email."""
    resp = client.post("/auth/register", json={**REGISTRO, "email": "ACM1@seguraep.gob.ec"})

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["campo"] == "email"


def test_registro_cedula_duplicada_informa_titular(client, usuario_acm, db_session):
    """Test: Cédula ya registrada → 409 campo cedula con el titular."""
    resp = client.post("/auth/register", json={**REGISTRO, "cedula": "0912345678"})

    assert resp.status_code == 409
    body = resp.json()
    assert body["campo"] == "cedula"
    assert body["usuario_existente"] == {
        "nombre": "JUAN PÉREZ",
        "email": "acm1@seguraep.gob.ec",
    }
    assert db_session.query(Usuario).count() == 1


def test_registro_concurrente_choca_con_restriccion_unica(db_session, usuario_acm, monkeypatch):
    """Test: Si otro registro gana la carrera, la BD rechaza el email y no se crea fila."""
    email_disponible_original = UsuarioService.email_disponible
    llamadas = []

    def disponible_solo_la_primera_vez(self, email):
        llamadas.append(email)
        if len(llamadas) == 1:
            return True
        return email_disponible_original(self, email)

    monkeypatch.setattr(UsuarioService, "email_disponible", disponible_solo_la_primera_vez)
    datos = RegistroRequest(**{**REGISTRO, "email": "acm1@seguraep.gob.ec"})

    with pytest.raises(EmailDuplicadoException) as exc:
        UsuarioService(db_session).registrar(datos)

    assert exc.value.http_status == 409
    assert exc.value.campo == "email"
    assert len(llamadas) == 2
    assert db_session.query(Usuario).count() == 1


def test_registro_datos_invalidos(client):
    resp = client.post("/auth/register", json={**REGISTRO, "cedula": "123"})

    assert resp.status_code == 400
    assert "cedula" in resp.json()["errores"]


def test_disponibilidad_email_y_cedula(client, usuario_acm):
    libre = client.get("/usuarios/verificar-email", params={"email": "libre@seguraep.gob.ec"})
    ocupado = client.get("/usuarios/verificar-cedula", params={"cedula": "0912345678"})

    assert libre.json()["data"]["disponible"] is True
    assert ocupado.json()["data"]["disponible"] is False


# =========================================================
# LOGIN
# =========================================================

def test_login_correcto(client, usuario_acm, password):
    resp = _login(client, "acm1@seguraep.gob.ec", password)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["usuario"]["id"] == usuario_acm.id
    assert data["session"]["token_type"] == "bearer"


def test_login_credenciales_invalidas(client, usuario_acm):
    resp = _login(client, "acm1@seguraep.gob.ec", "Incorrecta1")

    assert resp.status_code == 401
    assert resp.json()["message"] == "Credenciales inválidas"


def test_login_faltan_datos(client):
    resp = client.post("/auth/login", json={"email": "acm1@seguraep.gob.ec"})

    assert resp.status_code == 400


def test_login_cuenta_inactiva(client, nuevo_usuario, password):
    nuevo_usuario("baja@seguraep.gob.ec", "0956789012", activo=False)

    resp = _login(client, "baja@seguraep.gob.ec", password)

    assert resp.status_code == 401


# =========================================================
# SESIÓN
# =========================================================

def test_perfil_requiere_token(client):
    resp = client.get("/auth/profile")

    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_token_invalido_es_401(client):
    resp = client.get("/auth/profile", headers={"Authorization": "Bearer basura"})

    assert resp.status_code == 401


def test_refresh_token_emite_nueva_sesion(client, usuario_acm, password):
    sesion = _login(client, "acm1@seguraep.gob.ec", password).json()["data"]["session"]

    resp = client.post("/auth/refresh-token", json={"refresh_token": sesion["refresh_token"]})

    assert resp.status_code == 200
    nueva = resp.json()["data"]["session"]
    perfil = client.get(
        "/auth/profile", headers={"Authorization": f"Bearer {nueva['access_token']}"}
    )
    assert perfil.status_code == 200


def test_refresh_con_access_token_falla(client, usuario_acm, password):
    sesion = _login(client, "acm1@seguraep.gob.ec", password).json()["data"]["session"]

    resp = client.post("/auth/refresh-token", json={"refresh_token": sesion["access_token"]})

    assert resp.status_code == 401


def test_logout_invalida_tokens(client, usuario_acm, password):
    sesion = _login(client, "acm1@seguraep.gob.ec", password).json()["data"]["session"]
    headers = {"Authorization": f"Bearer {sesion['access_token']}"}

    assert client.post("/auth/logout", headers=headers).status_code == 200

    assert client.get("/auth/profile", headers=headers).status_code == 401
    refresh = client.post("/auth/refresh-token", json={"refresh_token": sesion["refresh_token"]})
    assert refresh.status_code == 401


def test_actualizar_perfil_ignora_campos_protegidos(client, headers_acm):
    resp = client.put(
        "/auth/profile",
        json={"telefono": "0987654321", "rol": "admin", "email": "otro@seguraep.gob.ec"},
        headers=headers_acm,
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["telefono"] == "0987654321"
    assert data["rol"] == "acm"
    assert data["email"] == "acm1@seguraep.gob.ec"


def test_cambiar_contrasena(client, headers_acm, password):
    resp = client.post(
        "/auth/change-password",
        json={
            "contrasena_actual": password,
            "nueva_contrasena": "Nueva456",
            "confirmar_contrasena": "Nueva456",
        },
        headers=headers_acm,
    )

    assert resp.status_code == 200
    # La sesión anterior queda cerrada
    assert client.get("/auth/profile", headers=headers_acm).status_code == 401
    assert _login(client, "acm1@seguraep.gob.ec", "Nueva456").status_code == 200


def test_cambiar_contrasena_actual_incorrecta(client, headers_acm):
    resp = client.post(
        "/auth/change-password",
        json={
            "contrasena_actual": "NoEsLaMia1",
            "nueva_contrasena": "Nueva456",
            "confirmar_contrasena": "Nueva456",
        },
        headers=headers_acm,
    )

    assert resp.status_code == 400
    assert "contrasena_actual" in resp.json()["errores"]


def test_solicitar_reactivacion(client, nuevo_usuario):
    nuevo_usuario("baja@seguraep.gob.ec", "0956789012", activo=False)

    resp = client.post("/auth/solicitar-reactivacion", json={"email": "baja@seguraep.gob.ec"})

    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "baja@seguraep.gob.ec"


def test_solicitar_reactivacion_cuenta_activa(client, usuario_acm):
    resp = client.post("/auth/solicitar-reactivacion", json={"email": "acm1@seguraep.gob.ec"})

    assert resp.status_code == 400


def test_verificar_sesion(client, headers_acm, usuario_acm):
    data = client.get("/auth/verify-session", headers=headers_acm).json()["data"]

    assert data["valid"] is True
    assert data["usuario"]["id"] == usuario_acm.id


def test_recuperar_contrasena(client, usuario_acm, headers_acm):
    resp = client.post(
        "/auth/recuperar-contrasena",
        json={
            "email": "acm1@seguraep.gob.ec",
            "nueva_contrasena": "Otra789",
            "confirmar_contrasena": "Otra789",
        },
    )

    assert resp.status_code == 200
    assert client.get("/auth/profile", headers=headers_acm).status_code == 401
    assert _login(client, "acm1@seguraep.gob.ec", "Otra789").status_code == 200


def test_recuperar_contrasena_email_desconocido(client):
    resp = client.post(
        "/auth/recuperar-contrasena",
        json={
            "email": "nadie@seguraep.gob.ec",
            "nueva_contrasena": "Otra789",
            "confirmar_contrasena": "Otra789",
        },
    )

    assert resp.status_code == 404
