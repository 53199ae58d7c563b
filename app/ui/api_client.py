"""
Cliente API para conectar Streamlit con el backend FastAPI.

Este módulo centraliza todas las llamadas HTTP del cliente web.

Incluye:
- Cabecera Authorization en cada petición con sesión
- Un único refresco de sesión por petición fallida con 401; si no se
  puede refrescar, SesionExpiradaError con redirect a /login
- Excepciones específicas por código HTTP
- Validación de formularios antes de llamar a la API
- Estadísticas que nunca fallan (ceros si algo va mal)
- Carga del panel en paralelo sin que una parte tumbe a las demás
"""
import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.exceptions import ConnectionError, Timeout

from app.core.config import get_settings
from app.core.logger import get_logger
from app.ui.estado import DashboardState, estadisticas_vacias
from app.ui.validacion import (
    LoginForm,
    RegistroForm,
    mensaje_error_autenticacion,
    validar_formulario,
    validar_reporte,
)

logger = get_logger()

MENSAJE_ERROR_RED = "Error de conexión. Verifica tu conexión e intenta nuevamente."
MENSAJE_SESION_EXPIRADA = "Sesión expirada, por favor inicia sesión nuevamente"
RUTA_LOGIN = "/login"

# (nombre, contenido, content_type)
ArchivoImagen = Tuple[str, bytes, str]


# =========================================================
# EXCEPCIONES PERSONALIZADAS
# =========================================================


class AcmAPIError(Exception):
    """Error base para todas las excepciones de la API."""

    def __init__(self, mensaje: str, status_code: Optional[int] = None, datos: Optional[dict] = None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        self.status_code = status_code
        self.datos = datos or {}


class ValidacionAPIError(AcmAPIError):
    """Datos inválidos (400 del servidor o validación local)."""

    def __init__(self, mensaje: str, errores: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(mensaje, **kwargs)
        self.errores = errores or {}


class NoAutorizadoError(AcmAPIError):
    """401."""

    pass


class SesionExpiradaError(NoAutorizadoError):
    """La sesión no se pudo refrescar: la UI debe ir a `redirect`."""

    def __init__(self, mensaje: str = MENSAJE_SESION_EXPIRADA, redirect: str = RUTA_LOGIN):
        super().__init__(mensaje, status_code=401)
        self.redirect = redirect


class PermisoDenegadoError(AcmAPIError):
    """403."""

    pass


class RecursoNoEncontradoError(AcmAPIError):
    """404."""

    pass


class ConflictoError(AcmAPIError):
    """409: email o cédula ya registrados."""

    def __init__(self, mensaje: str, campo: Optional[str] = None,
                 usuario_existente: Optional[dict] = None, **kwargs):
        super().__init__(mensaje, **kwargs)
        self.campo = campo
        self.usuario_existente = usuario_existente


class ErrorDeRed(AcmAPIError):
    """Sin conexión o timeout."""

    def __init__(self, mensaje: str = MENSAJE_ERROR_RED):
        super().__init__(mensaje)


class ServerError(AcmAPIError):
    """Error interno del servidor (5xx)."""

    pass


# =========================================================
# SESIÓN
# =========================================================


@dataclass
class SesionCliente:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    usuario: Optional[Dict[str, Any]] = None

    @property
    def activa(self) -> bool:
        return bool(self.access_token)

    def actualizar(self, datos: Dict[str, Any]) -> None:
        """Guarda {usuario, session} tal como lo devuelven login/register/refresh."""
        session = datos.get("session") or {}
        self.access_token = session.get("access_token")
        self.refresh_token = session.get("refresh_token")
        self.expires_at = session.get("expires_at")
        if datos.get("usuario") is not None:
            self.usuario = datos["usuario"]

    def limpiar(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.usuario = None


class AcmApiClient:
    """Cliente para interactuar con la API del Sistema de Reportes ACM."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        sesion: Optional[SesionCliente] = None,
        timeout: Optional[float] = 30,
        permitir_reintento_anonimo: Optional[bool] = None,
    ):
        """
        Inicializa el cliente API.

        Args:
            base_url: URL base del servidor FastAPI (API_BASE_URL por defecto)
            sesion: Sesión compartida (p. ej. guardada en st.session_state)
            timeout: Timeout por petición en segundos
            permitir_reintento_anonimo: Reintentar sin token la creación de
                reportes tras un 401 (PERMITIR_REINTENTO_ANONIMO por defecto)
        """
        config = get_settings()
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.sesion = sesion or SesionCliente()
        self.timeout = timeout
        if permitir_reintento_anonimo is None:
            permitir_reintento_anonimo = config.permitir_reintento_anonimo
        self.permitir_reintento_anonimo = permitir_reintento_anonimo
        self.session = requests.Session()

    # =========================================
    # NÚCLEO HTTP
    # =========================================

    def _enviar(self, method: str, ruta: str, con_token: bool, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if con_token and self.sesion.access_token:
            headers["Authorization"] = f"Bearer {self.sesion.access_token}"
        try:
            return self.session.request(
                method, f"{self.base_url}{ruta}", headers=headers, timeout=self.timeout, **kwargs
            )
        except (ConnectionError, Timeout) as e:
            logger.warning("Error de red", action="api_request", ruta=ruta, error=str(e))
            raise ErrorDeRed()

    def _request(
        self,
        method: str,
        ruta: str,
        autenticado: bool = True,
        refrescar: bool = True,
        **kwargs,
    ) -> requests.Response:
        """
        Envía la petición y traduce los errores.

        Con token y respuesta 401: refresca la sesión UNA vez y repite la
        petición. Si el refresco falla o el reintento vuelve a dar 401, se
        limpia la sesión y se lanza SesionExpiradaError.
        """
        con_token = autenticado and self.sesion.activa
        response = self._enviar(method, ruta, con_token, **kwargs)

        if response.status_code == 401 and con_token:
            if not refrescar:
                raise self._error(response)
            self._refrescar_sesion()
            response = self._enviar(method, ruta, True, **kwargs)
            if response.status_code == 401:
                self._expirar()

        if response.status_code >= 400:
            raise self._error(response)
        return response

    def _refrescar_sesion(self) -> None:
        if not self.sesion.refresh_token:
            self._expirar()
        try:
            response = self._enviar(
                "POST",
                "/auth/refresh-token",
                False,
                json={"refresh_token": self.sesion.refresh_token},
            )
        except ErrorDeRed:
            self._expirar()
        if response.status_code != 200:
            self._expirar()

        self.sesion.actualizar(self._cuerpo(response).get("data") or {})
        logger.info("Sesión refrescada", action="token_refresh")

    def _expirar(self) -> None:
        self.sesion.limpiar()
        logger.warning("Sesión expirada", action="session_expired")
        raise SesionExpiradaError()

    @staticmethod
    def _cuerpo(response: requests.Response) -> Dict[str, Any]:
        try:
            cuerpo = response.json()
        except ValueError:
            return {}
        return cuerpo if isinstance(cuerpo, dict) else {}

    def _datos(self, response: requests.Response) -> Any:
        return self._cuerpo(response).get("data")

    def _error(self, response: requests.Response) -> AcmAPIError:
        status = response.status_code
        cuerpo = self._cuerpo(response)
        mensaje = cuerpo.get("message") or f"Error HTTP {status}"

        if status == 400:
            return ValidacionAPIError(
                mensaje, errores=cuerpo.get("errores"), status_code=status, datos=cuerpo
            )
        if status == 401:
            return NoAutorizadoError(mensaje, status_code=status, datos=cuerpo)
        if status == 403:
            return PermisoDenegadoError(mensaje, status_code=status, datos=cuerpo)
        if status == 404:
            return RecursoNoEncontradoError(mensaje, status_code=status, datos=cuerpo)
        if status == 409:
            return ConflictoError(
                mensaje,
                campo=cuerpo.get("campo"),
                usuario_existente=cuerpo.get("usuario_existente"),
                status_code=status,
                datos=cuerpo,
            )
        if status >= 500:
            return ServerError(mensaje, status_code=status, datos=cuerpo)
        return AcmAPIError(mensaje, status_code=status, datos=cuerpo)

    # =========================================
    # HEALTH CHECK
    # =========================================

    def health_check(self) -> Dict[str, Any]:
        """Estado del servidor (no lanza en 503: devuelve el cuerpo)."""
        response = self._enviar("GET", "/health", False)
        return self._cuerpo(response)

    # =========================================
    # AUTENTICACIÓN
    # =========================================

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Inicia sesión y guarda los tokens.

        Returns:
            Usuario autenticado

        Raises:
            ValidacionAPIError: formulario incompleto (sin llamar a la API)
            NoAutorizadoError: con el mensaje ya traducido para el usuario
        """
        errores = validar_formulario(LoginForm, {"email": email, "password": password})
        if errores:
            raise ValidacionAPIError("Revisa los campos del formulario", errores=errores)

        try:
            response = self._request(
                "POST", "/auth/login", autenticado=False,
                json={"email": email.strip(), "password": password},
            )
        except NoAutorizadoError as e:
            raise NoAutorizadoError(
                mensaje_error_autenticacion(e.mensaje), status_code=401, datos=e.datos
            )

        datos = self._datos(response)
        self.sesion.actualizar(datos)
        return datos["usuario"]

    def registrar(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        """Registra y deja la sesión iniciada. 409 → ConflictoError con `campo`."""
        errores = validar_formulario(RegistroForm, datos)
        if errores:
            raise ValidacionAPIError("Revisa los campos del formulario", errores=errores)

        payload = RegistroForm.model_validate(datos).payload()
        response = self._request("POST", "/auth/register", autenticado=False, json=payload)
        resultado = self._datos(response)
        self.sesion.actualizar(resultado)
        return resultado["usuario"]

    def logout(self) -> None:
        try:
            if self.sesion.activa:
                self._request("POST", "/auth/logout", refrescar=False)
        except AcmAPIError as e:
            logger.warning("Logout sin confirmar por el servidor", action="logout", error=e.mensaje)
        finally:
            self.sesion.limpiar()

    def verificar_sesion(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/auth/verify-session"))

    def perfil(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/auth/profile"))

    def actualizar_perfil(self, cambios: Dict[str, Any]) -> Dict[str, Any]:
        datos = self._datos(self._request("PUT", "/auth/profile", json=cambios))
        self.sesion.usuario = datos
        return datos

    def cambiar_contrasena(self, actual: str, nueva: str, confirmacion: str) -> None:
        """El servidor cierra todas las sesiones: hay que volver a iniciar sesión."""
        self._request(
            "POST",
            "/auth/change-password",
            json={
                "contrasena_actual": actual,
                "nueva_contrasena": nueva,
                "confirmar_contrasena": confirmacion,
            },
        )
        self.sesion.limpiar()

    def recuperar_contrasena(self, email: str, nueva: str, confirmacion: str) -> None:
        self._request(
            "POST",
            "/auth/recuperar-contrasena",
            autenticado=False,
            json={"email": email, "nueva_contrasena": nueva, "confirmar_contrasena": confirmacion},
        )

    def solicitar_reactivacion(self, email: str) -> Dict[str, Any]:
        response = self._request(
            "POST", "/auth/solicitar-reactivacion", autenticado=False, json={"email": email}
        )
        return self._datos(response)

    # =========================================
    # USUARIOS
    # =========================================

    def verificar_email(self, email: str) -> bool:
        response = self._request(
            "GET", "/usuarios/verificar-email", autenticado=False, params={"email": email}
        )
        return bool(self._datos(response)["disponible"])

    def verificar_cedula(self, cedula: str) -> bool:
        response = self._request(
            "GET", "/usuarios/verificar-cedula", autenticado=False, params={"cedula": cedula}
        )
        return bool(self._datos(response)["disponible"])

    def listar_usuarios(self) -> List[Dict[str, Any]]:
        return self._datos(self._request("GET", "/usuarios"))

    def buscar_usuarios(self, **filtros) -> List[Dict[str, Any]]:
        params = {k: v for k, v in filtros.items() if v not in (None, "")}
        return self._datos(self._request("GET", "/usuarios/buscar", params=params))

    def estadisticas_usuarios(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/usuarios/estadisticas"))

    def obtener_usuario(self, usuario_id: str) -> Dict[str, Any]:
        return self._datos(self._request("GET", f"/usuarios/{usuario_id}"))

    def actualizar_usuario(self, usuario_id: str, cambios: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(self._request("PUT", f"/usuarios/{usuario_id}", json=cambios))

    def desactivar_usuario(self, usuario_id: str) -> Dict[str, Any]:
        return self._datos(self._request("PUT", f"/usuarios/{usuario_id}/desactivar"))

    def reactivar_usuario(self, usuario_id: str) -> Dict[str, Any]:
        return self._datos(self._request("PUT", f"/usuarios/{usuario_id}/reactivar"))

    def cambiar_rol(self, usuario_id: str, rol: str) -> Dict[str, Any]:
        return self._datos(
            self._request("PUT", f"/usuarios/{usuario_id}/cambiar-rol", json={"rol": rol})
        )

    def reportes_de_usuario(self, usuario_id: str) -> Dict[str, Any]:
        return self._cuerpo(self._request("GET", f"/usuarios/{usuario_id}/reportes"))

    def reporte_actividad(self, usuario_id: str) -> Dict[str, Any]:
        return self._datos(self._request("GET", f"/usuarios/{usuario_id}/reporte-actividad"))

    # =========================================
    # REPORTES
    # =========================================

    def zonas_guayaquil(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/zonas-guayaquil", autenticado=False))

    def crear_reporte(
        self,
        datos: Dict[str, Any],
        imagenes: Optional[List[ArchivoImagen]] = None,
        leyes_normas: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Crea un reporte (con o sin sesión).

        El formulario se valida aquí primero: si hay errores se lanza
        ValidacionAPIError sin tocar la red.

        Raises:
            ValidacionAPIError: errores por campo (locales o del servidor)
            SesionExpiradaError: token rechazado y sin reintento anónimo
        """
        errores = validar_reporte(datos)
        if errores:
            raise ValidacionAPIError("Revisa los campos del formulario", errores=errores)

        formulario = {
            campo: str(valor) for campo, valor in datos.items() if valor not in (None, "")
        }
        if leyes_normas:
            formulario["leyes_normas"] = json.dumps(leyes_normas)
        archivos = [
            ("imagenes", (nombre, contenido, content_type))
            for nombre, contenido, content_type in imagenes or []
        ]
        kwargs = {"data": formulario, "files": archivos or None}

        if self.sesion.activa and self.permitir_reintento_anonimo:
            try:
                response = self._request("POST", "/reportes", refrescar=False, **kwargs)
            except NoAutorizadoError:
                logger.warning(
                    "Token rechazado, reintentando como usuario público",
                    action="reporte_create_retry_anonimo",
                )
                response = self._request("POST", "/reportes", autenticado=False, **kwargs)
        else:
            response = self._request("POST", "/reportes", **kwargs)

        return self._datos(response)

    def obtener_reporte(self, reporte_id: str, publico: bool = False) -> Dict[str, Any]:
        if publico:
            return self._datos(
                self._request("GET", f"/reportes/{reporte_id}/publico", autenticado=False)
            )
        return self._datos(self._request("GET", f"/reportes/{reporte_id}"))

    def actualizar_reporte(
        self,
        reporte_id: str,
        cambios: Dict[str, Any],
        nuevas_imagenes: Optional[List[ArchivoImagen]] = None,
    ) -> Dict[str, Any]:
        formulario = {campo: str(valor) for campo, valor in cambios.items() if valor is not None}
        archivos = [
            ("nuevas_imagenes", (nombre, contenido, content_type))
            for nombre, contenido, content_type in nuevas_imagenes or []
        ]
        response = self._request(
            "PUT", f"/reportes/{reporte_id}", data=formulario, files=archivos or None
        )
        return self._datos(response)

    def eliminar_reporte(self, reporte_id: str) -> None:
        self._request("DELETE", f"/reportes/{reporte_id}")

    def actualizar_coordenadas(self, reporte_id: str, latitud: float, longitud: float) -> Dict[str, Any]:
        response = self._request(
            "POST",
            f"/reportes/{reporte_id}/coordenadas",
            json={"latitud": latitud, "longitud": longitud},
        )
        return self._datos(response)

    def mis_reportes(self) -> List[Dict[str, Any]]:
        return self._datos(self._request("GET", "/reportes/mis-reportes"))

    def buscar_reportes(self, **filtros) -> Dict[str, Any]:
        """Devuelve el sobre completo: data + total."""
        params = {k: v for k, v in filtros.items() if v not in (None, "")}
        return self._cuerpo(self._request("GET", "/reportes/buscar", params=params))

    def buscar_reportes_publico(self, limit: int = 50, offset: int = 0, **filtros) -> Dict[str, Any]:
        """Sobre completo: data, total, pagina_actual, total_paginas."""
        params = {k: v for k, v in filtros.items() if v not in (None, "")}
        params.update({"limit": limit, "offset": offset})
        return self._cuerpo(
            self._request("GET", "/reportes/buscar-publico", autenticado=False, params=params)
        )

    def reportes_cercanos(self, latitud: float, longitud: float, radio_km: float = 5) -> Dict[str, Any]:
        params = {"latitud": latitud, "longitud": longitud, "radio_km": radio_km}
        return self._cuerpo(self._request("GET", "/reportes/ubicacion/cercanos", params=params))

    def obtener_estadisticas(self) -> Dict[str, Any]:
        """
        Estadísticas del panel. Nunca lanza: ante cualquier fallo (red
        incluida) devuelve ceros.
        """
        try:
            datos = self._datos(self._request("GET", "/reportes/estadisticas"))
        except AcmAPIError as e:
            logger.warning(
                "Estadísticas no disponibles", action="estadisticas_fallback", error=e.mensaje
            )
            return estadisticas_vacias()
        return datos or estadisticas_vacias()

    def estadisticas_publicas(self) -> Dict[str, Any]:
        return self._datos(
            self._request("GET", "/reportes/estadisticas-publicas", autenticado=False)
        )

    # =========================================
    # LEYES DE UN REPORTE
    # =========================================

    def leyes_de_reporte(self, reporte_id: str, publico: bool = False) -> List[Dict[str, Any]]:
        if publico:
            response = self._request(
                "POST", f"/reportes/{reporte_id}/leyes-publico", autenticado=False
            )
        else:
            response = self._request("GET", f"/reportes/{reporte_id}/leyes-normas")
        return self._datos(response)

    def asociar_leyes(self, reporte_id: str, leyes: List[Dict[str, Any]]) -> Dict[str, Any]:
        response = self._request(
            "POST", f"/reportes/{reporte_id}/leyes-normas", json={"leyes": leyes}
        )
        return self._datos(response)

    def desasociar_ley(self, reporte_id: str, ley_norma_id: str) -> None:
        self._request("DELETE", f"/reportes/{reporte_id}/leyes-normas/{ley_norma_id}")

    # =========================================
    # DESCARGAS
    # =========================================

    def descargar_reporte(self, reporte_id: str, formato: str = "pdf", publico: bool = False) -> bytes:
        """
        Documento del reporte generado por el servidor.

        Args:
            formato: "pdf" o "word"
        """
        sufijo = "-publico" if publico else ""
        response = self._request(
            "GET",
            f"/reportes/{reporte_id}/descargar-{formato}{sufijo}",
            autenticado=not publico,
        )
        return response.content

    def vista_impresion(self, reporte_id: str, publico: bool = False) -> str:
        ruta = f"/reportes/{reporte_id}/imprimir-publico" if publico else f"/reportes/{reporte_id}/imprimir"
        return self._request("GET", ruta, autenticado=not publico).text

    # =========================================
    # LEYES Y NORMAS
    # =========================================

    def listar_leyes(self, publico: bool = False) -> List[Dict[str, Any]]:
        if publico:
            return self._datos(self._request("GET", "/leyes-normas/publico", autenticado=False))
        return self._datos(self._request("GET", "/leyes-normas"))

    def categorias_leyes(self, publico: bool = False) -> List[str]:
        if publico:
            return self._datos(
                self._request("GET", "/leyes-normas/categorias/publico", autenticado=False)
            )
        return self._datos(self._request("GET", "/leyes-normas/categorias"))

    def leyes_por_categoria(self, categoria: str) -> List[Dict[str, Any]]:
        return self._datos(self._request("GET", f"/leyes-normas/categoria/{categoria}"))

    def buscar_leyes(self, termino: str) -> List[Dict[str, Any]]:
        return self._datos(
            self._request("GET", "/leyes-normas/buscar", params={"termino": termino})
        )

    def estructura_leyes(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/leyes-normas/estructura-completa"))

    def leyes_mas_utilizadas(self, limite: int = 10) -> List[Dict[str, Any]]:
        return self._datos(
            self._request("GET", "/leyes-normas/mas-utilizadas", params={"limite": limite})
        )

    def obtener_ley(self, ley_norma_id: str) -> Dict[str, Any]:
        return self._datos(self._request("GET", f"/leyes-normas/{ley_norma_id}"))

    def articulos_de_ley(self, ley_norma_id: str) -> List[Dict[str, Any]]:
        return self._datos(self._request("GET", f"/leyes-normas/{ley_norma_id}/articulos"))

    def crear_ley(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(self._request("POST", "/leyes-normas", json=datos))

    def actualizar_ley(self, ley_norma_id: str, cambios: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(self._request("PUT", f"/leyes-normas/{ley_norma_id}", json=cambios))

    def eliminar_ley(self, ley_norma_id: str) -> None:
        self._request("DELETE", f"/leyes-normas/{ley_norma_id}")

    def agregar_articulo(self, ley_norma_id: str, datos: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(
            self._request("POST", f"/leyes-normas/{ley_norma_id}/articulos", json=datos)
        )

    def actualizar_articulo(self, articulo_id: str, cambios: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(
            self._request("PUT", f"/leyes-normas/articulos/{articulo_id}", json=cambios)
        )

    def eliminar_articulo(self, articulo_id: str) -> None:
        self._request("DELETE", f"/leyes-normas/articulos/{articulo_id}")

    # =========================================
    # HOJAS DE VIDA
    # =========================================

    def guardar_hoja_vida(self, datos: Dict[str, Any]) -> Dict[str, Any]:
        return self._datos(self._request("POST", "/hojas-vida", json=datos))

    def mi_hoja_vida(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/hojas-vida/mi-hoja-vida"))

    def plantilla_hoja_vida(self) -> Dict[str, Any]:
        return self._datos(self._request("GET", "/hojas-vida/generar-plantilla"))

    def hojas_vida(self) -> List[Dict[str, Any]]:
        return self._datos(self._request("GET", "/hojas-vida/todas"))

    def buscar_hojas_vida(self, nombre: Optional[str] = None, cedula: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {k: v for k, v in {"nombre": nombre, "cedula": cedula}.items() if v}
        return self._datos(self._request("GET", "/hojas-vida/buscar", params=params))

    def hoja_vida_usuario(self, usuario_id: str) -> Dict[str, Any]:
        return self._datos(self._request("GET", f"/hojas-vida/usuario/{usuario_id}"))

    def eliminar_hoja_vida(self, usuario_id: str) -> None:
        self._request("DELETE", f"/hojas-vida/usuario/{usuario_id}")

    def descargar_hoja_vida(self, usuario_id: str, formato: str = "pdf") -> bytes:
        return self._request(
            "GET", f"/hojas-vida/usuario/{usuario_id}/descargar-{formato}"
        ).content

    def exportar_hoja_vida(self, usuario_id: str, formatos: Optional[List[str]] = None) -> Dict[str, Any]:
        response = self._request(
            "POST",
            f"/hojas-vida/usuario/{usuario_id}/exportar",
            json={"formatos": formatos or ["pdf", "word"]},
        )
        return self._datos(response)

    # =========================================
    # PANEL PRINCIPAL
    # =========================================

    def cargar_dashboard(self, limite_recientes: int = 5) -> DashboardState:
        """
        Perfil, reportes recientes y estadísticas en paralelo.

        Se esperan las tres partes aunque alguna falle; los fallos quedan en
        `estado.errores`. Una sesión expirada sí se propaga (hay que volver
        al login).
        """
        estado = DashboardState(cargando=True)
        tareas = {
            "perfil": self.perfil,
            "reportes": self.mis_reportes,
            "estadisticas": self.obtener_estadisticas,
        }
        with ThreadPoolExecutor(max_workers=len(tareas)) as pool:
            futuros = {nombre: pool.submit(funcion) for nombre, funcion in tareas.items()}

        expirada = None
        for nombre, futuro in futuros.items():
            try:
                resultado = futuro.result()
            except SesionExpiradaError as e:
                expirada = e
                estado.errores[nombre] = e.mensaje
                continue
            except AcmAPIError as e:
                estado.errores[nombre] = e.mensaje
                continue

            if nombre == "perfil":
                estado.perfil = resultado
            elif nombre == "reportes":
                estado.reportes_recientes = (resultado or [])[:limite_recientes]
            else:
                estado.estadisticas = resultado

        estado.cargando = False
        if expirada is not None:
            raise expirada
        return estado
