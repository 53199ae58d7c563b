"""
Hoja de vida (CV estructurado), una por usuario.

Tabla: hojas_vida
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

SECCIONES_HOJA_VIDA = (
    "datos_personales",
    "formacion_academica",
    "experiencia_laboral",
    "cursos_capacitaciones",
    "habilidades",
    "referencias",
    "informacion_adicional",
)


class HojaVida(Base):
    __tablename__ = "hojas_vida"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    usuario_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    datos_personales: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    formacion_academica: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    experiencia_laboral: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    cursos_capacitaciones: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    habilidades: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    referencias: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    informacion_adicional: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    usuario = relationship("Usuario", lazy="joined")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "usuario_id": self.usuario_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        for seccion in SECCIONES_HOJA_VIDA:
            data[seccion] = getattr(self, seccion)
        if self.usuario is not None:
            data["usuario"] = {
                "nombre_completo": self.usuario.nombre_completo,
                "cedula": self.usuario.cedula,
                "email": self.usuario.email,
                "telefono": self.usuario.telefono,
                "rol": self.usuario.rol,
                "fecha_ingreso": self.usuario.fecha_ingreso,
                "cargo": self.usuario.cargo,
                "anio_graduacion": self.usuario.anio_graduacion,
            }
        return data
