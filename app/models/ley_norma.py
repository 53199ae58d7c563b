"""
Catálogo de leyes/normas, sus artículos y la asociación con reportes.

Tablas: leyes_normas, leyes_normas_articulos, reportes_leyes_normas
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class LeyNorma(Base):
    """Ley, código u ordenanza aplicable a un reporte."""

    __tablename__ = "leyes_normas"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    categoria: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    articulos: Mapped[List["ArticuloLeyNorma"]] = relationship(
        "ArticuloLeyNorma",
        back_populates="ley_norma",
        order_by="ArticuloLeyNorma.numero_articulo",
        cascade="all, delete-orphan",
    )

    def to_dict(self, con_articulos: bool = False) -> dict:
        data = {
            "id": self.id,
            "nombre": self.nombre,
            "categoria": self.categoria,
            "descripcion": self.descripcion,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if con_articulos:
            data["articulos"] = [a.to_dict() for a in self.articulos]
        return data


class ArticuloLeyNorma(Base):
    __tablename__ = "leyes_normas_articulos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    ley_norma_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leyes_normas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    numero_articulo: Mapped[str] = mapped_column(String(30), nullable=False)
    contenido: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    descripcion_corta: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    ley_norma: Mapped[LeyNorma] = relationship("LeyNorma", back_populates="articulos")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ley_norma_id": self.ley_norma_id,
            "numero_articulo": self.numero_articulo,
            "contenido": self.contenido,
            "descripcion_corta": self.descripcion_corta,
        }


class ReporteLeyNorma(Base):
    """
    Etiqueta "norma aplicable" de un reporte.

    Referencia siempre una ley existente; el artículo es opcional y, si
    está, pertenece a esa ley (lo comprueba ley_norma_service).
    """

    __tablename__ = "reportes_leyes_normas"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reporte_id: Mapped[str] = mapped_column(
        String(40), ForeignKey("reportes_acm.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ley_norma_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leyes_normas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    articulo_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("leyes_normas_articulos.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    reporte = relationship("Reporte", back_populates="leyes")
    ley_norma: Mapped[LeyNorma] = relationship("LeyNorma", lazy="joined")
    articulo: Mapped[Optional[ArticuloLeyNorma]] = relationship("ArticuloLeyNorma", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ley_norma": {
                "id": self.ley_norma.id,
                "nombre": self.ley_norma.nombre,
                "categoria": self.ley_norma.categoria,
                "descripcion": self.ley_norma.descripcion,
            },
            "articulo": (
                {
                    "id": self.articulo.id,
                    "numero_articulo": self.articulo.numero_articulo,
                    "descripcion_corta": self.articulo.descripcion_corta,
                }
                if self.articulo
                else None
            ),
        }
