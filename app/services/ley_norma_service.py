"""
Servicio del catálogo de leyes/normas y de su asociación con reportes.
"""
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_

from app.core.exceptions import (
    LeyNormaNoEncontradaException,
    RecursoNoEncontradoException,
    ValidacionException,
)
from app.models.ley_norma import ArticuloLeyNorma, LeyNorma, ReporteLeyNorma
from app.schemas import ArticuloCreate, ArticuloUpdate, LeyNormaCreate, LeyNormaUpdate
from app.services.base import BaseService

LONGITUD_MINIMA_BUSQUEDA = 3


def validar_uuid(valor: str, campo: str = "id") -> str:
    """400 si el identificador no tiene formato UUID."""
    try:
        uuid.UUID(str(valor))
    except ValueError:
        raise ValidacionException("ID de ley/norma inválido", errores={campo: "Formato UUID inválido"})
    return valor


class LeyNormaService(BaseService):
    """Catálogo de solo-lectura para agentes y CRUD para administradores."""

    # =========================================================
    # CONSULTAS
    # =========================================================

    def listar(self) -> List[Dict[str, Any]]:
        """Todas las leyes con `cantidad_articulos`."""
        conteos = dict(
            self.db.query(ArticuloLeyNorma.ley_norma_id, func.count(ArticuloLeyNorma.id))
            .group_by(ArticuloLeyNorma.ley_norma_id)
            .all()
        )
        leyes = self.db.query(LeyNorma).order_by(LeyNorma.categoria, LeyNorma.nombre).all()
        resultado = []
        for ley in leyes:
            data = ley.to_dict()
            data["cantidad_articulos"] = conteos.get(ley.id, 0)
            resultado.append(data)
        return resultado

    def por_categoria(self, categoria: str) -> List[Dict[str, Any]]:
        leyes = (
            self.db.query(LeyNorma)
            .filter(LeyNorma.categoria == categoria)
            .order_by(LeyNorma.nombre)
            .all()
        )
        return [ley.to_dict() for ley in leyes]

    def obtener(self, ley_norma_id: str) -> LeyNorma:
        validar_uuid(ley_norma_id)
        ley = self.db.query(LeyNorma).filter(LeyNorma.id == ley_norma_id).first()
        if ley is None:
            raise LeyNormaNoEncontradaException(ley_norma_id)
        return ley

    def buscar(self, termino: Optional[str]) -> List[Dict[str, Any]]:
        termino = (termino or "").strip()
        if len(termino) < LONGITUD_MINIMA_BUSQUEDA:
            raise ValidacionException(
                f"El término de búsqueda debe tener al menos {LONGITUD_MINIMA_BUSQUEDA} caracteres",
                errores={"termino": "Mínimo 3 caracteres"},
            )
        patron = f"%{termino}%"
        leyes = (
            self.db.query(LeyNorma)
            .filter(or_(LeyNorma.nombre.ilike(patron), LeyNorma.descripcion.ilike(patron)))
            .order_by(LeyNorma.nombre)
            .all()
        )
        return [ley.to_dict() for ley in leyes]

    def categorias(self) -> List[str]:
        filas = self.db.query(LeyNorma.categoria).distinct().order_by(LeyNorma.categoria).all()
        return [categoria for (categoria,) in filas]

    def articulos(self, ley_norma_id: str) -> List[Dict[str, Any]]:
        ley = self.obtener(ley_norma_id)
        return [a.to_dict() for a in ley.articulos]

    def estructura_completa(self) -> Dict[str, List[Dict[str, Any]]]:
        """Leyes agrupadas por categoría, con artículos (formulario de reporte)."""
        estructura: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for ley in self.db.query(LeyNorma).order_by(LeyNorma.nombre).all():
            estructura[ley.categoria].append(
                {
                    "id": ley.id,
                    "nombre": ley.nombre,
                    "descripcion": ley.descripcion or "",
                    "articulos": [a.to_dict() for a in ley.articulos],
                }
            )
        return dict(estructura)

    def mas_utilizadas(self, limite: int = 10) -> List[Dict[str, Any]]:
        filas = (
            self.db.query(
                LeyNorma.id,
                LeyNorma.nombre,
                LeyNorma.categoria,
                func.count(ReporteLeyNorma.id).label("usos"),
            )
            .join(ReporteLeyNorma, ReporteLeyNorma.ley_norma_id == LeyNorma.id)
            .group_by(LeyNorma.id, LeyNorma.nombre, LeyNorma.categoria)
            .order_by(func.count(ReporteLeyNorma.id).desc(), LeyNorma.nombre)
            .limit(max(1, limite))
            .all()
        )
        return [
            {"ley_norma_id": id_, "nombre": nombre, "categoria": categoria, "count": usos}
            for id_, nombre, categoria, usos in filas
        ]

    # =========================================================
    # CRUD (ADMIN)
    # =========================================================

    def crear(self, datos: LeyNormaCreate) -> Dict[str, Any]:
        ley = LeyNorma(nombre=datos.nombre.strip(), categoria=datos.categoria.strip(),
                       descripcion=datos.descripcion)
        self.db.add(ley)
        self.db.commit()
        self.db.refresh(ley)
        self._log_info("Ley/norma creada", action="ley_norma_create", ley_norma_id=ley.id)
        return ley.to_dict()

    def actualizar(self, ley_norma_id: str, datos: LeyNormaUpdate) -> Dict[str, Any]:
        ley = self.obtener(ley_norma_id)
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(ley, campo, valor)
        self.db.commit()
        self.db.refresh(ley)
        self._log_info("Ley/norma actualizada", action="ley_norma_update", ley_norma_id=ley.id)
        return ley.to_dict()

    def eliminar(self, ley_norma_id: str) -> None:
        ley = self.obtener(ley_norma_id)
        self.db.query(ReporteLeyNorma).filter(
            ReporteLeyNorma.ley_norma_id == ley.id
        ).delete(synchronize_session=False)
        self.db.delete(ley)
        self.db.commit()
        self._log_info("Ley/norma eliminada", action="ley_norma_delete", ley_norma_id=ley_norma_id)

    def agregar_articulo(self, ley_norma_id: str, datos: ArticuloCreate) -> Dict[str, Any]:
        ley = self.obtener(ley_norma_id)
        articulo = ArticuloLeyNorma(
            ley_norma_id=ley.id,
            numero_articulo=datos.numero_articulo.strip(),
            contenido=datos.contenido,
            descripcion_corta=datos.descripcion_corta,
        )
        self.db.add(articulo)
        self.db.commit()
        self.db.refresh(articulo)
        return articulo.to_dict()

    def actualizar_articulo(self, articulo_id: str, datos: ArticuloUpdate) -> Dict[str, Any]:
        articulo = self._obtener_articulo(articulo_id)
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(articulo, campo, valor)
        self.db.commit()
        self.db.refresh(articulo)
        return articulo.to_dict()

    def eliminar_articulo(self, articulo_id: str) -> None:
        articulo = self._obtener_articulo(articulo_id)
        self.db.query(ReporteLeyNorma).filter(
            ReporteLeyNorma.articulo_id == articulo.id
        ).update({"articulo_id": None}, synchronize_session=False)
        self.db.delete(articulo)
        self.db.commit()

    # =========================================================
    # ASOCIACIÓN CON REPORTES
    # =========================================================

    def leyes_de_reporte(self, reporte_id: str) -> List[Dict[str, Any]]:
        asociaciones = (
            self.db.query(ReporteLeyNorma)
            .filter(ReporteLeyNorma.reporte_id == reporte_id)
            .order_by(ReporteLeyNorma.created_at)
            .all()
        )
        return [a.to_dict() for a in asociaciones]

    def asociacion_valida(self, ley_norma_id: str, articulo_id: Optional[str]) -> bool:
        """La ley existe y, si hay artículo, pertenece a esa ley."""
        ley = self.db.query(LeyNorma.id).filter(LeyNorma.id == ley_norma_id).first()
        if ley is None:
            return False
        if articulo_id:
            articulo = (
                self.db.query(ArticuloLeyNorma.id)
                .filter(
                    ArticuloLeyNorma.id == articulo_id,
                    ArticuloLeyNorma.ley_norma_id == ley_norma_id,
                )
                .first()
            )
            return articulo is not None
        return True

    def agregar_asociaciones(self, reporte_id: str, leyes: List[Dict[str, Any]]) -> int:
        """
        Añade asociaciones válidas a la sesión (sin commit).

        Las que no pasan asociacion_valida se descartan y se registran.
        Las repetidas (misma ley y artículo) no se duplican.

        Returns:
            Número de asociaciones nuevas
        """
        existentes = {
            (a.ley_norma_id, a.articulo_id)
            for a in self.db.query(ReporteLeyNorma).filter(ReporteLeyNorma.reporte_id == reporte_id)
        }
        nuevas = 0
        for item in leyes:
            ley_id = item.get("ley_norma_id")
            articulo_id = item.get("articulo_id") or None
            if not ley_id or not self.asociacion_valida(ley_id, articulo_id):
                self._log_warning("Asociación de ley descartada", reporte_id=reporte_id,
                                  action="ley_norma_associate_skip", ley_norma_id=ley_id,
                                  articulo_id=articulo_id)
                continue
            if (ley_id, articulo_id) in existentes:
                continue
            self.db.add(ReporteLeyNorma(reporte_id=reporte_id, ley_norma_id=ley_id,
                                        articulo_id=articulo_id))
            existentes.add((ley_id, articulo_id))
            nuevas += 1
        return nuevas

    def desasociar(self, reporte_id: str, ley_norma_id: str, articulo_id: Optional[str] = None) -> int:
        query = self.db.query(ReporteLeyNorma).filter(
            ReporteLeyNorma.reporte_id == reporte_id,
            ReporteLeyNorma.ley_norma_id == ley_norma_id,
        )
        if articulo_id:
            query = query.filter(ReporteLeyNorma.articulo_id == articulo_id)
        eliminadas = query.delete(synchronize_session=False)
        self.db.commit()
        if not eliminadas:
            raise RecursoNoEncontradoException("Asociación no encontrada")
        self._log_info("Ley desasociada", reporte_id=reporte_id, action="ley_norma_dissociate",
                       ley_norma_id=ley_norma_id)
        return eliminadas

    # =========================================================
    # HELPERS
    # =========================================================

    def _obtener_articulo(self, articulo_id: str) -> ArticuloLeyNorma:
        articulo = self.db.query(ArticuloLeyNorma).filter(ArticuloLeyNorma.id == articulo_id).first()
        if articulo is None:
            raise RecursoNoEncontradoException("Artículo no encontrado")
        return articulo
