"""
Comprobaciones de disponibilidad con debounce (registro).

Cada tecla reprograma la comprobación: solo se consulta la API cuando el
valor lleva `intervalo` segundos sin cambiar.
"""
import threading
from typing import Any, Callable, Optional

from app.core.logger import get_logger
from app.ui.api_client import AcmAPIError
from app.ui.estado import RegistroState

logger = get_logger()

INTERVALO_DEFECTO = 0.5


class Debouncer:
    """Ejecuta `funcion(valor)` tras `intervalo` s sin llamadas nuevas."""

    def __init__(self, funcion: Callable[[Any], Any], intervalo: float = INTERVALO_DEFECTO):
        self.funcion = funcion
        self.intervalo = intervalo
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generacion = 0

    def llamar(self, valor: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generacion += 1
            self._timer = threading.Timer(
                self.intervalo, self._disparar, args=(valor, self._generacion)
            )
            self._timer.daemon = True
            self._timer.start()

    def _disparar(self, valor: Any, generacion: int) -> None:
        with self._lock:
            # Otra llamada llegó mientras el timer vencía
            if generacion != self._generacion:
                return
            self._timer = None
        self.funcion(valor)

    def cancelar(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generacion += 1

    @property
    def pendiente(self) -> bool:
        return self._timer is not None


class VerificadorDisponibilidad:
    """
    Conecta los campos email/cédula del registro con la API.

    - email: se comprueba solo si tiene más de 3 caracteres y contiene "@"
    - cédula: se comprueba solo con 10 caracteres
    Un resultado que llega tarde (el campo ya cambió) se descarta.
    """

    def __init__(self, cliente, estado: RegistroState, intervalo: float = INTERVALO_DEFECTO):
        self.cliente = cliente
        self.estado = estado
        self._email = Debouncer(self._comprobar_email, intervalo)
        self._cedula = Debouncer(self._comprobar_cedula, intervalo)

    # =========================================================
    # ENTRADA
    # =========================================================

    def email_cambiado(self, email: str) -> None:
        email = (email or "").strip()
        self.estado.email = email
        self.estado.email_disponible = None
        if len(email) > 3 and "@" in email:
            self.estado.verificando_email = True
            self._email.llamar(email)
        else:
            self.estado.verificando_email = False
            self._email.cancelar()

    def cedula_cambiada(self, cedula: str) -> None:
        cedula = (cedula or "").strip()
        self.estado.cedula = cedula
        self.estado.cedula_disponible = None
        if len(cedula) == 10:
            self.estado.verificando_cedula = True
            self._cedula.llamar(cedula)
        else:
            self.estado.verificando_cedula = False
            self._cedula.cancelar()

    def cancelar(self) -> None:
        self._email.cancelar()
        self._cedula.cancelar()
        self.estado.verificando_email = False
        self.estado.verificando_cedula = False

    # =========================================================
    # COMPROBACIONES
    # =========================================================

    def _comprobar_email(self, email: str) -> None:
        disponible = self._consultar(self.cliente.verificar_email, email, "email")
        if email == self.estado.email:
            self.estado.email_disponible = disponible
            self.estado.verificando_email = False

    def _comprobar_cedula(self, cedula: str) -> None:
        disponible = self._consultar(self.cliente.verificar_cedula, cedula, "cedula")
        if cedula == self.estado.cedula:
            self.estado.cedula_disponible = disponible
            self.estado.verificando_cedula = False

    @staticmethod
    def _consultar(funcion: Callable[[str], bool], valor: str, campo: str) -> Optional[bool]:
        try:
            return funcion(valor)
        except AcmAPIError as e:
            logger.warning(
                "No se pudo comprobar la disponibilidad",
                action="verificar_disponibilidad",
                campo=campo,
                error=str(e),
            )
            return None
