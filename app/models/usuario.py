"""
Modelo de Usuario (agentes ACM y administradores).

Tablas: usuarios, tokens_reactivacion
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

ROLES_USUARIO = ("acm", "jefe_patrulla", "supervisor", "admin")


class Usuario(Base):
    """
    Usuario del sistema.

    Único por email y por cédula. El rol condiciona las comprobaciones
    de autorización del servidor.
    """

    __tablename__ = "usuarios"
    __table_args__ = (
        CheckConstraint(
            "rol IN ('acm', 'jefe_patrulla', 'supervisor', 'admin')", name="ck_usuarios_rol"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    nombre_completo: Mapped[str] = mapped_column(String(255), nullable=False)
    cedula: Mapped[str] = mapped_column(String(10), unique=True, nullable=False, index=True)
    rol: Mapped[str] = mapped_column(String(32), nullable=False, default="acm")

    telefono: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fecha_ingreso: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    cargo: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    anio_graduacion: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    direccion: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    fecha_nacimiento: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    lugar_nacimiento: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    estado_civil: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    cuenta_activa: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Se incrementa en logout / cambio de contraseña: invalida tokens emitidos
    sesion_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    ultimo_acceso: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def es_admin(self) -> bool:
        return self.rol == "admin"

    def to_dict(self) -> Dict[str, Any]:
        """Representación pública (nunca incluye el hash)."""
        return {
            "id": self.id,
            "email": self.email,
            "nombre_completo": self.nombre_completo,
            "cedula": self.cedula,
            "rol": self.rol,
            "telefono": self.telefono,
            "fecha_ingreso": self.fecha_ingreso,
            "cargo": self.cargo,
            "anio_graduacion": self.anio_graduacion,
            "direccion": self.direccion,
            "fecha_nacimiento": self.fecha_nacimiento,
            "lugar_nacimiento": self.lugar_nacimiento,
            "estado_civil": self.estado_civil,
            "cuenta_activa": self.cuenta_activa,
            "ultimo_acceso": self.ultimo_acceso.isoformat() if self.ultimo_acceso else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Usuario(id={self.id}, email={self.email}, rol={self.rol})>"


class TokenReactivacion(Base):
    """Solicitud de reactivación de una cuenta inactiva (válida 24 h)."""

    __tablename__ = "tokens_reactivacion"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    usuario_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    expira_en: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    usado: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
