"""
Tests del cliente HTTP del frontend (AcmApiClient) con la red simulada.
"""
import threading
from unittest.mock import MagicMock

import pytest
from requests.exceptions import ConnectionError

from app.ui.api_client import (
    AcmApiClient,
    ConflictoError,
    ErrorDeRed,
    NoAutorizadoError,
    PermisoDenegadoError,
    SesionCliente,
    SesionExpiradaError,
    ValidacionAPIError,
)
from app.ui.estado import estadisticas_vacias
from app.ui.validacion import MENSAJE_CREDENCIALES

BASE_URL = "http://api.test"

REPORTE = {
    "zona": "Norte",
    "distrito": "Tarqui",
    "circuito": "N1",
    "direccion": "Av. 9 de Octubre y Malecón",
    "horario_jornada": "07:00 - 15:00",
    "hora_reporte": "10:30",
    "fecha": "2024-05-10",
    "novedad": "Venta ambulante no autorizada en la vereda",
}


def _resp(status, body=None, content=b""):
    response = MagicMock()
    response.status_code = status
    if body is None:
        response.json.side_effect = ValueError("sin JSON")
    else:
        response.json.return_value = body
    response.content = content
    response.text = content.decode("utf-8", "ignore")
    return response


def _sesion(refresh_token="refresh-1"):
    return SesionCliente(access_token="token-1", refresh_token=refresh_token, expires_at=0,
                         usuario={"id": "u1"})


def _cliente(respuestas=None, sesion=None, **kwargs):
    cliente = AcmApiClient(base_url=BASE_URL, sesion=sesion, **kwargs)
    cliente.session.request = MagicMock(side_effect=list(respuestas or []))
    return cliente


def _llamada(cliente, indice):
    """(method, url, headers) de la llamada `indice`."""
    llamada = cliente.session.request.call_args_list[indice]
    return llamada.args[0], llamada.args[1], llamada.kwargs["headers"]


# =========================================================
# CABECERAS Y ERRORES
# =========================================================

def test_envia_bearer_con_sesion():
    cliente = _cliente([_resp(200, {"success": True, "data": {"id": "u1"}})], sesion=_sesion())

    assert cliente.perfil() == {"id": "u1"}
    method, url, headers = _llamada(cliente, 0)
    assert (method, url) == ("GET", f"{BASE_URL}/auth/profile")
    assert headers["Authorization"] == "Bearer token-1"


def test_sin_sesion_no_envia_authorization():
    cliente = _cliente([_resp(200, {"success": True, "data": {"disponible": True}})])

    assert cliente.verificar_email("libre@seguraep.gob.ec") is True
    assert "Authorization" not in _llamada(cliente, 0)[2]


def test_mapeo_403():
    cliente = _cliente([_resp(403, {"success": False, "message": "Sin permisos"})], sesion=_sesion())

    with pytest.raises(PermisoDenegadoError) as exc:
        cliente.listar_usuarios()
    assert exc.value.mensaje == "Sin permisos"


def test_error_de_red():
    cliente = _cliente([ConnectionError("caído")], sesion=_sesion())

    with pytest.raises(ErrorDeRed):
        cliente.mis_reportes()


def test_health_check_devuelve_cuerpo_en_503():
    cuerpo = {"success": False, "status": "degraded", "database": "error"}
    cliente = _cliente([_resp(503, cuerpo)])

    assert cliente.health_check() == cuerpo


# =========================================================
# REFRESCO DE SESIÓN
# =========================================================

def test_refresco_fallido_expira_sesion():
    """401 → un único refresco; si falla, SesionExpiradaError y sesión limpia."""
    sesion = _sesion()
    cliente = _cliente([_resp(401, {"success": False}), _resp(401, {"success": False})], sesion=sesion)

    with pytest.raises(SesionExpiradaError) as exc:
        cliente.mis_reportes()

    assert exc.value.redirect == "/login"
    assert cliente.session.request.call_count == 2
    assert _llamada(cliente, 1)[1] == f"{BASE_URL}/auth/refresh-token"
    assert not sesion.activa


def test_refresco_exitoso_repite_peticion():
    nueva_sesion = {
        "session": {"access_token": "token-2", "refresh_token": "refresh-2", "expires_at": 1}
    }
    cliente = _cliente(
        [
            _resp(401, {"success": False}),
            _resp(200, {"success": True, "data": nueva_sesion}),
            _resp(200, {"success": True, "data": [{"id": "r1"}]}),
        ],
        sesion=_sesion(),
    )

    assert cliente.mis_reportes() == [{"id": "r1"}]
    assert _llamada(cliente, 2)[2]["Authorization"] == "Bearer token-2"
    assert cliente.sesion.refresh_token == "refresh-2"
    # El usuario guardado no se pierde al refrescar
    assert cliente.sesion.usuario == {"id": "u1"}


def test_segundo_401_tras_refresco_expira():
    nueva_sesion = {"session": {"access_token": "token-2", "refresh_token": "refresh-2"}}
    cliente = _cliente(
        [
            _resp(401, {"success": False}),
            _resp(200, {"success": True, "data": nueva_sesion}),
            _resp(401, {"success": False}),
        ],
        sesion=_sesion(),
    )

    with pytest.raises(SesionExpiradaError):
        cliente.perfil()
    assert cliente.session.request.call_count == 3


def test_sin_refresh_token_expira_sin_reintentar():
    cliente = _cliente([_resp(401, {"success": False})], sesion=_sesion(refresh_token=None))

    with pytest.raises(SesionExpiradaError):
        cliente.perfil()
    assert cliente.session.request.call_count == 1


# =========================================================
# AUTENTICACIÓN
# =========================================================

def test_login_guarda_sesion():
    datos = {
        "usuario": {"id": "u1", "rol": "acm"},
        "session": {"access_token": "a", "refresh_token": "r", "expires_at": 1},
    }
    cliente = _cliente([_resp(200, {"success": True, "data": datos})])

    assert cliente.login("acm1@seguraep.gob.ec", "Clave123") == {"id": "u1", "rol": "acm"}
    assert cliente.sesion.access_token == "a"


def test_login_traduce_credenciales_invalidas():
    cliente = _cliente([_resp(401, {"success": False, "message": "Credenciales inválidas"})])

    with pytest.raises(NoAutorizadoError) as exc:
        cliente.login("acm1@seguraep.gob.ec", "Mala123")
    assert exc.value.mensaje == MENSAJE_CREDENCIALES


def test_login_formulario_incompleto_no_llama():
    cliente = _cliente([])

    with pytest.raises(ValidacionAPIError) as exc:
        cliente.login("", "")
    assert set(exc.value.errores) == {"email", "password"}
    cliente.session.request.assert_not_called()


def test_registro_conflicto_de_cedula():
    cuerpo = {
        "success": False,
        "message": "La cédula ya está registrada",
        "campo": "cedula",
        "usuario_existente": {"nombre": "JUAN PÉREZ", "email": "acm1@seguraep.gob.ec"},
    }
    cliente = _cliente([_resp(409, cuerpo)])
    datos = {
        "email": "nuevo@seguraep.gob.ec",
        "password": "Clave123",
        "confirmar_password": "Clave123",
        "nombre_completo": "Carlos Andrade",
        "cedula": "0912345678",
    }

    with pytest.raises(ConflictoError) as exc:
        cliente.registrar(datos)

    assert exc.value.campo == "cedula"
    assert exc.value.usuario_existente["nombre"] == "JUAN PÉREZ"
    enviado = cliente.session.request.call_args.kwargs["json"]
    assert "confirmar_password" not in enviado


def test_logout_limpia_aunque_falle():
    sesion = _sesion()
    cliente = _cliente([ConnectionError("caído")], sesion=sesion)

    cliente.logout()

    assert not sesion.activa


# =========================================================
# REPORTES
# =========================================================

def test_crear_reporte_invalido_no_llama_a_la_api():
    cliente = _cliente([], sesion=_sesion())

    with pytest.raises(ValidacionAPIError) as exc:
        cliente.crear_reporte({**REPORTE, "zona": "", "novedad": "corta"})

    assert exc.value.errores["zona"] == "La zona es requerida"
    assert "novedad" in exc.value.errores
    cliente.session.request.assert_not_called()


def test_crear_reporte_multipart():
    cliente = _cliente([_resp(201, {"success": True, "data": {"id": "r1"}})])

    resultado = cliente.crear_reporte(
        REPORTE,
        imagenes=[("foto.png", b"png", "image/png")],
        leyes_normas=[{"ley_norma_id": "l1"}],
    )

    assert resultado == {"id": "r1"}
    kwargs = cliente.session.request.call_args.kwargs
    assert kwargs["data"]["leyes_normas"] == '[{"ley_norma_id": "l1"}]'
    assert kwargs["files"] == [("imagenes", ("foto.png", b"png", "image/png"))]


def test_crear_reporte_reintento_anonimo_habilitado():
    cliente = _cliente(
        [_resp(401, {"success": False}), _resp(201, {"success": True, "data": {"id": "r1"}})],
        sesion=_sesion(),
        permitir_reintento_anonimo=True,
    )

    assert cliente.crear_reporte(REPORTE) == {"id": "r1"}
    assert "Authorization" in _llamada(cliente, 0)[2]
    assert "Authorization" not in _llamada(cliente, 1)[2]


def test_crear_reporte_sin_reintento_anonimo_expira():
    cliente = _cliente(
        [_resp(401, {"success": False}), _resp(401, {"success": False})],
        sesion=_sesion(),
        permitir_reintento_anonimo=False,
    )

    with pytest.raises(SesionExpiradaError):
        cliente.crear_reporte(REPORTE)
    assert _llamada(cliente, 1)[1] == f"{BASE_URL}/auth/refresh-token"


def test_estadisticas_ceros_si_falla_la_red():
    cliente = _cliente([ConnectionError("caído")], sesion=_sesion())

    assert cliente.obtener_estadisticas() == estadisticas_vacias()


def test_descarga_publica_sin_token():
    cliente = _cliente([_resp(200, content=b"%PDF-1.4")], sesion=_sesion())

    assert cliente.descargar_reporte("r1", "pdf", publico=True) == b"%PDF-1.4"
    _, url, headers = _llamada(cliente, 0)
    assert url == f"{BASE_URL}/reportes/r1/descargar-pdf-publico"
    assert "Authorization" not in headers


# =========================================================
# PANEL
# =========================================================

def test_dashboard_espera_todas_las_partes():
    """Un fallo en el perfil no impide mostrar reportes y estadísticas."""
    lock = threading.Lock()
    reportes = [{"id": f"r{i}"} for i in range(7)]

    def responder(method, url, **kwargs):
        with lock:
            if url.endswith("/auth/profile"):
                return _resp(500, {"success": False, "message": "Error interno"})
            if url.endswith("/reportes/mis-reportes"):
                return _resp(200, {"success": True, "data": reportes})
            raise ConnectionError("caído")

    cliente = AcmApiClient(base_url=BASE_URL, sesion=_sesion())
    cliente.session.request = MagicMock(side_effect=responder)

    estado = cliente.cargar_dashboard()

    assert estado.perfil is None
    assert estado.errores == {"perfil": "Error interno"}
    assert [r["id"] for r in estado.reportes_recientes] == ["r0", "r1", "r2", "r3", "r4"]
    assert estado.estadisticas == estadisticas_vacias()
    assert not estado.cargando
    assert not estado.completo
