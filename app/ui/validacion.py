"""
Validación de formularios en el cliente.

Reglas más estrictas que las del servidor para dar respuesta inmediata
al usuario. Si un formulario no pasa, el cliente NO llama a la API.

Cada validador devuelve {campo: mensaje}; vacío si todo es correcto.
"""
import re
from typing import Any, Dict, Optional, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

_SOLO_DIGITOS = re.compile(r"^\d+$")


# =========================================================
# HELPERS
# =========================================================

def _a_texto(valor: Any) -> str:
    return "" if valor is None else str(valor)


def _validar_email(valor: str) -> str:
    if not valor:
        raise ValueError("El email es requerido")
    try:
        validate_email(valor, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Email inválido")
    return valor


def validar_formulario(modelo: Type[BaseModel], datos: Dict[str, Any]) -> Dict[str, str]:
    """Valida `datos` contra `modelo` y devuelve el primer error de cada campo."""
    try:
        modelo.model_validate(datos)
    except ValidationError as e:
        errores: Dict[str, str] = {}
        for error in e.errors():
            campo = str(error["loc"][0]) if error.get("loc") else "formulario"
            causa = (error.get("ctx") or {}).get("error")
            mensaje = str(causa) if error["type"] == "value_error" and causa else error["msg"]
            errores.setdefault(campo, mensaje)
        return errores
    return {}


# =========================================================
# REPORTE
# =========================================================

MENSAJES_REQUERIDOS = {
    "zona": "La zona es requerida",
    "distrito": "El distrito es requerido",
    "circuito": "El circuito es requerido",
    "direccion": "La dirección es requerida",
    "horario_jornada": "El horario de jornada es requerido",
    "hora_reporte": "La hora del reporte es requerida",
    "fecha": "La fecha es requerida",
}

MIN_NOVEDAD = 10


class ReporteForm(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=True)

    zona: str = ""
    distrito: str = ""
    circuito: str = ""
    direccion: str = ""
    horario_jornada: str = ""
    hora_reporte: str = ""
    fecha: str = ""
    novedad: str = ""
    reporta: Optional[str] = None
    tipo_reporte: Optional[str] = None
    latitud: Optional[float] = None
    longitud: Optional[float] = None

    @field_validator(*MENSAJES_REQUERIDOS, "novedad", mode="before")
    @classmethod
    def _texto(cls, v):
        return _a_texto(v)

    @field_validator(*MENSAJES_REQUERIDOS)
    @classmethod
    def _requerido(cls, v: str, info) -> str:
        if not v:
            raise ValueError(MENSAJES_REQUERIDOS[info.field_name])
        return v

    @field_validator("novedad")
    @classmethod
    def _novedad(cls, v: str) -> str:
        if len(v) < MIN_NOVEDAD:
            raise ValueError(
                f"La descripción de la novedad debe tener al menos {MIN_NOVEDAD} caracteres"
            )
        return v

    @field_validator("latitud")
    @classmethod
    def _latitud(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and abs(v) > 90:
            raise ValueError("Latitud fuera de rango")
        return v

    @field_validator("longitud")
    @classmethod
    def _longitud(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and abs(v) > 180:
            raise ValueError("Longitud fuera de rango")
        return v


# =========================================================
# REGISTRO Y LOGIN
# =========================================================

class RegistroForm(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=True)

    email: str = ""
    password: str = ""
    confirmar_password: str = ""
    nombre_completo: str = ""
    cedula: str = ""
    telefono: Optional[str] = None
    fecha_ingreso: Optional[str] = None
    cargo: Optional[str] = None
    anio_graduacion: Optional[str] = None

    @field_validator("email", "password", "confirmar_password", "nombre_completo", "cedula", mode="before")
    @classmethod
    def _texto(cls, v):
        return _a_texto(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _validar_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("La contraseña debe tener al menos 6 caracteres")
        if not re.search(r"[A-Z]", v):
            raise ValueError("La contraseña debe contener al menos una mayúscula")
        if not re.search(r"\d", v):
            raise ValueError("La contraseña debe contener al menos un número")
        return v

    @field_validator("confirmar_password")
    @classmethod
    def _confirmacion(cls, v: str, info) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Las contraseñas no coinciden")
        return v

    @field_validator("nombre_completo")
    @classmethod
    def _nombre(cls, v: str) -> str:
        if not v:
            raise ValueError("El nombre completo es requerido")
        return v

    @field_validator("cedula")
    @classmethod
    def _cedula(cls, v: str) -> str:
        if len(v) != 10 or not _SOLO_DIGITOS.match(v):
            raise ValueError("La cédula debe tener 10 dígitos")
        return v

    @field_validator("telefono")
    @classmethod
    def _telefono(cls, v: Optional[str]) -> Optional[str]:
        if v and not _SOLO_DIGITOS.match(v):
            raise ValueError("El teléfono solo puede contener números")
        return v or None

    @field_validator("anio_graduacion")
    @classmethod
    def _anio(cls, v: Optional[str]) -> Optional[str]:
        if v and (len(v) != 4 or not _SOLO_DIGITOS.match(v)):
            raise ValueError("El año de graduación debe tener 4 dígitos")
        return v or None

    def payload(self) -> Dict[str, Any]:
        """Cuerpo de POST /auth/register (sin la confirmación)."""
        return self.model_dump(exclude={"confirmar_password"}, exclude_none=True)


class LoginForm(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=True)

    email: str = ""
    password: str = ""

    @field_validator("email", "password", mode="before")
    @classmethod
    def _texto(cls, v):
        return _a_texto(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _validar_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("La contraseña es requerida")
        return v


def validar_reporte(datos: Dict[str, Any]) -> Dict[str, str]:
    return validar_formulario(ReporteForm, datos)


def validar_registro(datos: Dict[str, Any]) -> Dict[str, str]:
    return validar_formulario(RegistroForm, datos)


def validar_login(datos: Dict[str, Any]) -> Dict[str, str]:
    return validar_formulario(LoginForm, datos)


# =========================================================
# MENSAJES DE AUTENTICACIÓN
# =========================================================

MENSAJE_CREDENCIALES = "Credenciales inválidas. Por favor verifica tu email y contraseña."
MENSAJE_EMAIL_NO_CONFIRMADO = "Por favor confirma tu email antes de iniciar sesión."
MENSAJE_LOGIN_GENERICO = "Error al iniciar sesión. Por favor intenta nuevamente."

_MENSAJES_AUTENTICACION = {
    "invalid login credentials": MENSAJE_CREDENCIALES,
    "credenciales inválidas": MENSAJE_CREDENCIALES,
    "email not confirmed": MENSAJE_EMAIL_NO_CONFIRMADO,
}


def mensaje_error_autenticacion(mensaje: Optional[str]) -> str:
    """Traduce el error crudo de login a un mensaje para el usuario."""
    clave = (mensaje or "").strip().lower()
    return _MENSAJES_AUTENTICACION.get(clave, MENSAJE_LOGIN_GENERICO)
