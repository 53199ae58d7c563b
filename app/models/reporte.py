"""
Reporte ACM y sus imágenes adjuntas.

Tablas: reportes_acm, imagenes_reportes
"""
from __future__ import annotations

import time
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

ESTADOS_REPORTE = ("pendiente", "completado", "revisado", "archivado")

# Campos cuyo cambio obliga a regenerar los documentos del reporte
CAMPOS_DOCUMENTO = ("novedad", "zona", "distrito", "circuito", "direccion")


def generar_reporte_id() -> str:
    """REP-{epoch en ms}-{8 hex en mayúsculas}."""
    return f"REP-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


class Reporte(Base):
    """
    Reporte de novedad de un encargado de cuadra.

    Guarda una foto del autor (nombre y cédula) en el momento del envío,
    de modo que cambios posteriores del perfil no alteran reportes ya
    emitidos. usuario_id es NULL en reportes anónimos.
    """

    __tablename__ = "reportes_acm"
    __table_args__ = (
        CheckConstraint(
            "estado IN ('pendiente', 'completado', 'revisado', 'archivado')",
            name="ck_reportes_estado",
        ),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generar_reporte_id)
    usuario_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True, index=True
    )

    nombre_completo: Mapped[str] = mapped_column(String(255), nullable=False)
    cedula: Mapped[str] = mapped_column(String(10), nullable=False)

    zona: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    distrito: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    circuito: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    direccion: Mapped[str] = mapped_column(String(255), nullable=False)
    latitud: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitud: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    horario_jornada: Mapped[str] = mapped_column(String(50), nullable=False)
    hora_reporte: Mapped[str] = mapped_column(String(10), nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    novedad: Mapped[str] = mapped_column(Text, nullable=False)
    reporta: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tipo_reporte: Mapped[str] = mapped_column(
        String(50), nullable=False, default="encargado_cuadra"
    )
    estado: Mapped[str] = mapped_column(String(20), nullable=False, default="pendiente")

    url_documento_word: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    url_documento_pdf: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    imagenes: Mapped[List["ImagenReporte"]] = relationship(
        "ImagenReporte",
        back_populates="reporte",
        order_by="ImagenReporte.orden",
        cascade="all, delete-orphan",
    )
    leyes: Mapped[List["ReporteLeyNorma"]] = relationship(
        "ReporteLeyNorma",
        back_populates="reporte",
        cascade="all, delete-orphan",
    )
    usuario = relationship("Usuario", lazy="joined")

    @property
    def tiene_coordenadas(self) -> bool:
        return self.latitud is not None and self.longitud is not None

    @property
    def coordenadas(self) -> Optional[str]:
        """Formato WKT usado por el cliente: POINT(lng lat)."""
        if not self.tiene_coordenadas:
            return None
        return f"POINT({self.longitud} {self.latitud})"

    def __repr__(self):
        return f"<Reporte(id={self.id}, zona={self.zona}, estado={self.estado})>"


class ImagenReporte(Base):
    """Imagen adjunta. `orden` es 1-based y único dentro del reporte."""

    __tablename__ = "imagenes_reportes"
    __table_args__ = (
        UniqueConstraint("reporte_id", "orden", name="uq_imagen_reporte_orden"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reporte_id: Mapped[str] = mapped_column(
        String(40), ForeignKey("reportes_acm.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url_storage: Mapped[str] = mapped_column(String(500), nullable=False)
    ruta_storage: Mapped[str] = mapped_column(String(500), nullable=False)
    nombre_archivo: Mapped[str] = mapped_column(String(255), nullable=False)
    orden: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    reporte: Mapped[Reporte] = relationship("Reporte", back_populates="imagenes")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url_storage": self.url_storage,
            "nombre_archivo": self.nombre_archivo,
            "orden": self.orden,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
