"""
Estado explícito por vista del cliente web.

Streamlit re-ejecuta el script en cada interacción; estos contenedores se
guardan en st.session_state y son lo único que sobrevive entre ejecuciones.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def estadisticas_vacias() -> Dict[str, Any]:
    return {"total": 0, "por_zona": {}, "por_estado": {}}


@dataclass
class DashboardState:
    """
    Resultado de cargar el panel principal.

    Cada parte se resuelve por separado: si una falla, las demás se muestran
    igual y el error queda en `errores[parte]`.
    """

    perfil: Optional[Dict[str, Any]] = None
    reportes_recientes: List[Dict[str, Any]] = field(default_factory=list)
    estadisticas: Dict[str, Any] = field(default_factory=estadisticas_vacias)
    errores: Dict[str, str] = field(default_factory=dict)
    cargando: bool = False

    @property
    def completo(self) -> bool:
        return not self.cargando and not self.errores


@dataclass
class BusquedaState:
    filtros: Dict[str, Any] = field(default_factory=dict)
    resultados: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    cargando: bool = False
    error: Optional[str] = None

    def aplicar(self, resultados: List[Dict[str, Any]], total: Optional[int] = None) -> None:
        self.resultados = resultados
        self.total = len(resultados) if total is None else total
        self.cargando = False
        self.error = None

    def fallar(self, mensaje: str) -> None:
        self.resultados = []
        self.total = 0
        self.cargando = False
        self.error = mensaje

    def limpiar(self) -> None:
        self.filtros = {}
        self.resultados = []
        self.total = 0
        self.error = None


@dataclass
class RegistroState:
    """
    Disponibilidad de email/cédula en el formulario de registro.

    None = desconocida (sin comprobar o comprobación fallida). El envío se
    bloquea mientras una comprobación está en curso o dio False. El servidor
    vuelve a verificar al registrar, esto solo es un aviso temprano.
    """

    email: str = ""
    cedula: str = ""
    email_disponible: Optional[bool] = None
    cedula_disponible: Optional[bool] = None
    verificando_email: bool = False
    verificando_cedula: bool = False

    @property
    def puede_enviar(self) -> bool:
        if self.verificando_email or self.verificando_cedula:
            return False
        return self.email_disponible is not False and self.cedula_disponible is not False

    @property
    def mensajes(self) -> Dict[str, str]:
        mensajes = {}
        if self.email_disponible is False:
            mensajes["email"] = "Este email ya está registrado"
        if self.cedula_disponible is False:
            mensajes["cedula"] = "Esta cédula ya está registrada"
        return mensajes
