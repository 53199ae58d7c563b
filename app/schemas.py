"""
Modelos Pydantic de entrada/salida de la API.

Los validadores de formulario del cliente (app.ui.validacion) aplican
reglas más estrictas encima de estos; aquí solo lo que el servidor exige.
"""
from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field


# =========================================================
# AUTENTICACIÓN
# =========================================================

class RegistroRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    nombre_completo: str = Field(..., min_length=1)
    cedula: str = Field(..., pattern=r"^\d{10}$")
    telefono: Optional[str] = Field(None, pattern=r"^\d*$")
    fecha_ingreso: Optional[str] = None
    cargo: Optional[str] = None
    anio_graduacion: Optional[str] = Field(None, pattern=r"^(\d{4})?$")


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None


class CambioContrasenaRequest(BaseModel):
    contrasena_actual: Optional[str] = None
    nueva_contrasena: Optional[str] = None
    confirmar_contrasena: Optional[str] = None


class RecuperarContrasenaRequest(BaseModel):
    email: Optional[str] = None
    nueva_contrasena: Optional[str] = None
    confirmar_contrasena: Optional[str] = None


class ReactivacionRequest(BaseModel):
    email: Optional[str] = None


class CambioRolRequest(BaseModel):
    rol: str


# =========================================================
# REPORTES
# =========================================================

EstadoReporte = Literal["pendiente", "completado", "revisado", "archivado"]


class FiltrosReporte(BaseModel):
    """Filtros de búsqueda; los ausentes no se aplican."""

    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None
    zona: Optional[str] = None
    distrito: Optional[str] = None
    circuito: Optional[str] = None
    estado: Optional[EstadoReporte] = None
    usuario_id: Optional[str] = None


class CoordenadasRequest(BaseModel):
    latitud: Optional[Union[str, float]] = None
    longitud: Optional[Union[str, float]] = None


class AsociacionLeyRequest(BaseModel):
    ley_norma_id: str
    articulo_id: Optional[str] = None


class AsociacionLeyesRequest(BaseModel):
    leyes: List[AsociacionLeyRequest] = Field(default_factory=list)


# =========================================================
# LEYES / NORMAS
# =========================================================

class LeyNormaCreate(BaseModel):
    nombre: str = Field(..., min_length=1)
    categoria: str = Field(..., min_length=1)
    descripcion: Optional[str] = None


class LeyNormaUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=1)
    categoria: Optional[str] = Field(None, min_length=1)
    descripcion: Optional[str] = None


class ArticuloCreate(BaseModel):
    numero_articulo: str = Field(..., min_length=1)
    contenido: Optional[str] = None
    descripcion_corta: Optional[str] = None


class ArticuloUpdate(BaseModel):
    numero_articulo: Optional[str] = Field(None, min_length=1)
    contenido: Optional[str] = None
    descripcion_corta: Optional[str] = None


# =========================================================
# HOJAS DE VIDA
# =========================================================

class ExportarHojaVidaRequest(BaseModel):
    formatos: List[Literal["pdf", "word", "json"]] = Field(default_factory=lambda: ["pdf", "word"])
