"""
Servicio de reportes ACM.

Una sola operación de lectura, búsqueda, exportación y estadísticas sirve a
las rutas privadas y públicas: el AuthContext de la petición decide el
alcance (qué reportes) y la proyección (qué campos).
"""
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query

from app.core.config import get_settings
from app.core.exceptions import (
    DocumentGenerationException,
    PermisoDenegadoException,
    ReporteNoEncontradoException,
    StorageException,
    ValidacionException,
)
from app.core.security import AuthContext
from app.models.reporte import (
    CAMPOS_DOCUMENTO,
    ESTADOS_REPORTE,
    ImagenReporte,
    Reporte,
    generar_reporte_id,
)
from app.models.usuario import Usuario
from app.reports.html import generar_reporte_html
from app.reports.pdf import generar_reporte_docx, generar_reporte_pdf
from app.schemas import FiltrosReporte
from app.services.base import BaseService
from app.services.ley_norma_service import LeyNormaService
from app.services.storage_service import StorageService

CAMPOS_REQUERIDOS = (
    "zona",
    "distrito",
    "circuito",
    "direccion",
    "horario_jornada",
    "hora_reporte",
    "fecha",
    "novedad",
)

CAMPOS_EDITABLES = set(CAMPOS_REQUERIDOS) | {"reporta", "estado", "tipo_reporte",
                                              "latitud", "longitud"}

LIMITE_PUBLICO_DEFECTO = 50
LIMITE_PUBLICO_MAXIMO = 100
RADIO_CERCANOS_KM = 5.0
RADIO_TIERRA_KM = 6371.0

ESTADISTICAS_VACIAS = {"total": 0, "por_zona": {}, "por_estado": {}, "por_distrito": {}, "por_mes": {}}

EXTENSIONES_DOCUMENTO = {"pdf": "pdf", "word": "docx"}
MEDIA_TYPES = {
    "pdf": "application/pdf",
    "word": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

ZONAS_GUAYAQUIL: Dict[str, Dict[str, List[str]]] = {
    "Norte": {
        "distritos": ["Tarqui", "Ximena", "Febres Cordero"],
        "circuitos": [f"N{i}" for i in range(1, 9)],
    },
    "Sur": {
        "distritos": ["Urdaneta", "Letamendi", "García Moreno"],
        "circuitos": [f"S{i}" for i in range(1, 9)],
    },
    "Centro": {
        "distritos": ["Rocafuerte", "Bolívar", "Sucre", "9 de Octubre"],
        "circuitos": [f"C{i}" for i in range(1, 9)],
    },
    "Oeste": {
        "distritos": ["Ayacucho", "Olmedo", "Roca"],
        "circuitos": [f"O{i}" for i in range(1, 9)],
    },
    "Este": {
        "distritos": ["Carbo", "Chongón"],
        "circuitos": [f"E{i}" for i in range(1, 7)],
    },
}


@dataclass
class ImagenSubida:
    """Imagen recibida en la petición, ya leída en memoria."""

    nombre: str
    content_type: str
    contenido: bytes


@dataclass
class DocumentoGenerado:
    contenido: bytes
    nombre_archivo: str
    media_type: str


def distancia_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distancia haversine en kilómetros."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * RADIO_TIERRA_KM * math.asin(math.sqrt(a))


def parsear_coordenadas(latitud: Any, longitud: Any) -> Tuple[float, float]:
    """
    Convierte y valida un par latitud/longitud.

    Raises:
        ValidacionException: ausentes, no numéricas o fuera de rango
    """
    if latitud in (None, "") or longitud in (None, ""):
        raise ValidacionException("Latitud y longitud son requeridas")
    try:
        lat, lng = float(latitud), float(longitud)
    except (TypeError, ValueError):
        raise ValidacionException("Latitud y longitud deben ser números válidos")
    if math.isnan(lat) or math.isnan(lng):
        raise ValidacionException("Latitud y longitud deben ser números válidos")

    errores = {}
    if not -90 <= lat <= 90:
        errores["latitud"] = "Debe estar entre -90 y 90"
    if not -180 <= lng <= 180:
        errores["longitud"] = "Debe estar entre -180 y 180"
    if errores:
        raise ValidacionException("Coordenadas fuera de rango", errores=errores)
    return lat, lng


def _parsear_fecha(valor: Any) -> date:
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor).strip()[:10])
    except ValueError:
        raise ValidacionException("Fecha inválida", errores={"fecha": "Formato esperado YYYY-MM-DD"})


class ReporteService(BaseService):
    """Reportes, imágenes, documentos y estadísticas."""

    def __init__(self, db, storage: Optional[StorageService] = None, logger=None):
        super().__init__(db, logger)
        self.storage = storage or StorageService()
        self.leyes = LeyNormaService(db, self.logger)

    # =========================================================
    # PROYECCIONES
    # =========================================================

    def proyectar(self, reporte: Reporte, ctx: AuthContext) -> Dict[str, Any]:
        return self._proyeccion(reporte, publica=ctx.es_publico)

    @staticmethod
    def _proyeccion(reporte: Reporte, publica: bool) -> Dict[str, Any]:
        """
        Proyección completa (sesión iniciada) o pública.

        La pública omite usuario_id, cedula, URLs de documentos y version,
        y del autor solo expone nombre y rol.
        """
        data = {
            "id": reporte.id,
            "nombre_completo": reporte.nombre_completo,
            "zona": reporte.zona,
            "distrito": reporte.distrito,
            "circuito": reporte.circuito,
            "direccion": reporte.direccion,
            "latitud": reporte.latitud,
            "longitud": reporte.longitud,
            "coordenadas": reporte.coordenadas,
            "horario_jornada": reporte.horario_jornada,
            "hora_reporte": reporte.hora_reporte,
            "fecha": reporte.fecha.isoformat(),
            "novedad": reporte.novedad,
            "reporta": reporte.reporta,
            "tipo_reporte": reporte.tipo_reporte,
            "estado": reporte.estado,
            "created_at": reporte.created_at.isoformat(),
            "updated_at": reporte.updated_at.isoformat() if reporte.updated_at else None,
            "imagenes": [img.to_dict() for img in sorted(reporte.imagenes, key=lambda i: i.orden)],
            "leyes_normas": [a.to_dict() for a in reporte.leyes],
        }
        autor = reporte.usuario

        if publica:
            data["usuario"] = (
                {"nombre_completo": autor.nombre_completo, "rol": autor.rol} if autor else None
            )
            return data

        data.update(
            {
                "usuario_id": reporte.usuario_id,
                "cedula": reporte.cedula,
                "url_documento_word": reporte.url_documento_word,
                "url_documento_pdf": reporte.url_documento_pdf,
                "version": reporte.version,
                "usuario": (
                    {
                        "id": autor.id,
                        "nombre_completo": autor.nombre_completo,
                        "email": autor.email,
                        "rol": autor.rol,
                    }
                    if autor
                    else None
                ),
            }
        )
        return data

    # =========================================================
    # CREACIÓN
    # =========================================================

    def crear(
        self,
        datos: Dict[str, Any],
        imagenes: List[ImagenSubida],
        leyes_normas: List[Dict[str, Any]],
        ctx: AuthContext,
    ) -> Dict[str, Any]:
        """
        Crea un reporte con sus imágenes, leyes y documentos.

        Con sesión, el autor se toma de la fila del usuario; sin ella, el
        reporte queda anónimo ("Usuario Público").

        Raises:
            ValidacionException: campos faltantes o imágenes inválidas (400)
            StorageException: fallo al guardar imágenes (500, sin reporte)
        """
        self._validar_requeridos(datos)
        self._validar_imagenes(imagenes)
        fecha = _parsear_fecha(datos["fecha"])

        latitud = longitud = None
        if datos.get("latitud") not in (None, "") or datos.get("longitud") not in (None, ""):
            latitud, longitud = parsear_coordenadas(datos.get("latitud"), datos.get("longitud"))

        if ctx.es_publico:
            usuario_id, nombre, cedula = None, ctx.nombre_completo, ctx.cedula
        else:
            usuario = self.db.query(Usuario).filter(Usuario.id == ctx.usuario_id).one()
            usuario_id, nombre, cedula = usuario.id, usuario.nombre_completo, usuario.cedula

        reporte = Reporte(
            id=generar_reporte_id(),
            usuario_id=usuario_id,
            nombre_completo=nombre,
            cedula=cedula,
            zona=str(datos["zona"]).strip(),
            distrito=str(datos["distrito"]).strip(),
            circuito=str(datos["circuito"]).strip(),
            direccion=str(datos["direccion"]).strip(),
            latitud=latitud,
            longitud=longitud,
            horario_jornada=str(datos["horario_jornada"]).strip(),
            hora_reporte=str(datos["hora_reporte"]).strip(),
            fecha=fecha,
            novedad=str(datos["novedad"]).strip(),
            reporta=(datos.get("reporta") or "").strip() or (
                f"ACM {nombre}" if usuario_id else None
            ),
            tipo_reporte=datos.get("tipo_reporte") or "encargado_cuadra",
            estado="pendiente",
        )

        rutas_subidas: List[str] = []
        try:
            self.db.add(reporte)
            self.db.flush()

            for indice, imagen in enumerate(imagenes):
                ruta = self.storage.ruta_imagen_reporte(reporte.id, imagen.nombre)
                url = self.storage.subir(ruta, imagen.contenido)
                rutas_subidas.append(ruta)
                self.db.add(
                    ImagenReporte(
                        reporte_id=reporte.id,
                        url_storage=url,
                        ruta_storage=ruta,
                        nombre_archivo=imagen.nombre,
                        orden=indice + 1,
                    )
                )

            if leyes_normas:
                self.leyes.agregar_asociaciones(reporte.id, leyes_normas)

            self.db.commit()
        except Exception as e:
            for ruta in rutas_subidas:
                self._eliminar_archivo(ruta, reporte.id)
            raise self._handle_exception(e, "crear_reporte", reporte_id=reporte.id)

        self.db.refresh(reporte)
        self._guardar_documentos(reporte)

        self._log_info(
            "Reporte creado",
            reporte_id=reporte.id,
            action="reporte_create",
            usuario_id=usuario_id,
            imagenes=len(imagenes),
            anonimo=usuario_id is None,
        )
        return self.proyectar(reporte, ctx)

    # =========================================================
    # LECTURA Y BÚSQUEDA
    # =========================================================

    def obtener_reporte(self, reporte_id: str, ctx: AuthContext) -> Dict[str, Any]:
        return self.proyectar(self._obtener_autorizado(reporte_id, ctx), ctx)

    def buscar_reportes(
        self,
        filtros: FiltrosReporte,
        ctx: AuthContext,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Búsqueda con semántica AND; los filtros ausentes no se aplican.

        Un usuario no admin queda siempre limitado a sus propios reportes
        (el filtro usuario_id solo lo respeta un admin).

        Returns:
            {"reportes", "total"} y, si hay limit, paginación
        """
        if filtros.fecha_desde and filtros.fecha_hasta and filtros.fecha_desde > filtros.fecha_hasta:
            raise ValidacionException(
                "Rango de fechas inválido",
                errores={"fecha_hasta": "Debe ser posterior a fecha_desde"},
            )

        query = self._aplicar_filtros(self._query_alcance(ctx, filtros.usuario_id), filtros)
        query = query.order_by(Reporte.created_at.desc(), Reporte.id.desc())
        total = query.count()

        resultado: Dict[str, Any] = {"total": total}
        if limit is not None:
            limit = max(1, min(limit, LIMITE_PUBLICO_MAXIMO))
            offset = max(0, offset)
            query = query.offset(offset).limit(limit)
            resultado["pagina_actual"] = offset // limit + 1
            resultado["total_paginas"] = math.ceil(total / limit) if total else 0

        resultado["reportes"] = [self.proyectar(r, ctx) for r in query.all()]
        return resultado

    def mis_reportes(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        reportes = (
            self.db.query(Reporte)
            .filter(Reporte.usuario_id == ctx.usuario_id)
            .order_by(Reporte.created_at.desc())
            .all()
        )
        return [self.proyectar(r, ctx) for r in reportes]

    def cercanos(
        self,
        latitud: Any,
        longitud: Any,
        ctx: AuthContext,
        radio_km: Any = RADIO_CERCANOS_KM,
    ) -> Dict[str, Any]:
        lat, lng = parsear_coordenadas(latitud, longitud)
        try:
            radio = float(radio_km)
        except (TypeError, ValueError):
            raise ValidacionException("radio_km debe ser un número válido")
        if radio <= 0:
            raise ValidacionException("radio_km debe ser mayor que 0")

        query = self._query_alcance(ctx).filter(
            Reporte.latitud.isnot(None), Reporte.longitud.isnot(None)
        )
        encontrados = []
        for reporte in query.all():
            distancia = distancia_km(lat, lng, reporte.latitud, reporte.longitud)
            if distancia <= radio:
                data = self.proyectar(reporte, ctx)
                data["distancia_km"] = round(distancia, 3)
                encontrados.append(data)
        encontrados.sort(key=lambda r: r["distancia_km"])
        return {"reportes": encontrados, "total": len(encontrados), "radio_km": radio}

    # =========================================================
    # MODIFICACIÓN
    # =========================================================

    def actualizar(
        self,
        reporte_id: str,
        cambios: Dict[str, Any],
        ctx: AuthContext,
        nuevas_imagenes: Optional[List[ImagenSubida]] = None,
    ) -> Dict[str, Any]:
        """
        Admin o autor. id, usuario_id, created_at y version no se tocan.

        Si cambia algún campo de CAMPOS_DOCUMENTO se regeneran los
        documentos y se incrementa version.
        """
        reporte = self._obtener_gestionable(reporte_id, ctx)
        nuevas_imagenes = nuevas_imagenes or []

        cambios = {k: v for k, v in cambios.items() if k in CAMPOS_EDITABLES and v is not None}
        if "estado" in cambios and cambios["estado"] not in ESTADOS_REPORTE:
            raise ValidacionException(
                f"Estado inválido. Estados permitidos: {', '.join(ESTADOS_REPORTE)}",
                errores={"estado": "Estado inválido"},
            )
        for campo in CAMPOS_REQUERIDOS:
            if campo in cambios and not str(cambios[campo]).strip():
                raise ValidacionException(
                    "Campos requeridos faltantes", errores={campo: "Campo requerido"}
                )
        if "fecha" in cambios:
            cambios["fecha"] = _parsear_fecha(cambios["fecha"])
        if "latitud" in cambios or "longitud" in cambios:
            cambios["latitud"], cambios["longitud"] = parsear_coordenadas(
                cambios.get("latitud", reporte.latitud), cambios.get("longitud", reporte.longitud)
            )

        total_imagenes = len(reporte.imagenes) + len(nuevas_imagenes)
        if total_imagenes > get_settings().max_imagenes_reporte:
            raise ValidacionException(
                f"Máximo {get_settings().max_imagenes_reporte} imágenes por reporte",
                errores={"imagenes": "Demasiadas imágenes"},
            )
        self._validar_imagenes(nuevas_imagenes)

        regenerar = any(
            campo in cambios and cambios[campo] != getattr(reporte, campo)
            for campo in CAMPOS_DOCUMENTO
        )

        rutas_subidas: List[str] = []
        try:
            for campo, valor in cambios.items():
                setattr(reporte, campo, valor.strip() if isinstance(valor, str) else valor)

            siguiente_orden = max((i.orden for i in reporte.imagenes), default=0) + 1
            for indice, imagen in enumerate(nuevas_imagenes):
                ruta = self.storage.ruta_imagen_reporte(reporte.id, imagen.nombre)
                url = self.storage.subir(ruta, imagen.contenido)
                rutas_subidas.append(ruta)
                reporte.imagenes.append(
                    ImagenReporte(
                        url_storage=url,
                        ruta_storage=ruta,
                        nombre_archivo=imagen.nombre,
                        orden=siguiente_orden + indice,
                    )
                )

            if regenerar:
                reporte.version += 1
            reporte.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception as e:
            for ruta in rutas_subidas:
                self._eliminar_archivo(ruta, reporte_id)
            raise self._handle_exception(e, "actualizar_reporte", reporte_id=reporte_id)

        self.db.refresh(reporte)
        if regenerar or nuevas_imagenes:
            self._guardar_documentos(reporte)

        self._log_info(
            "Reporte actualizado",
            reporte_id=reporte_id,
            action="reporte_update",
            campos=sorted(cambios),
            nuevas_imagenes=len(nuevas_imagenes),
            version=reporte.version,
        )
        return self.proyectar(reporte, ctx)

    def actualizar_coordenadas(
        self, reporte_id: str, latitud: Any, longitud: Any, ctx: AuthContext
    ) -> Dict[str, Any]:
        lat, lng = parsear_coordenadas(latitud, longitud)
        reporte = self._obtener_gestionable(reporte_id, ctx)
        reporte.latitud = lat
        reporte.longitud = lng
        reporte.updated_at = datetime.utcnow()
        self.db.commit()
        self._log_info("Coordenadas actualizadas", reporte_id=reporte_id,
                       action="reporte_coordinates")
        return {"id": reporte.id, "latitud": lat, "longitud": lng,
                "coordenadas": reporte.coordenadas}

    def eliminar(self, reporte_id: str, ctx: AuthContext) -> None:
        """Solo admin. Borra imágenes, documentos y asociaciones."""
        if not ctx.es_admin:
            raise PermisoDenegadoException("Solo un administrador puede eliminar reportes")
        reporte = self._obtener(reporte_id)

        rutas = [img.ruta_storage for img in reporte.imagenes]
        urls_documentos = [reporte.url_documento_pdf, reporte.url_documento_word]

        try:
            self.db.delete(reporte)
            self.db.commit()
        except Exception as e:
            raise self._handle_exception(e, "eliminar_reporte", reporte_id=reporte_id)

        for ruta in rutas:
            self._eliminar_archivo(ruta, reporte_id)
        for url in urls_documentos:
            ruta = self.storage.ruta_desde_url(url) if url else None
            if ruta:
                self._eliminar_archivo(ruta, reporte_id)

        self._log_info("Reporte eliminado", reporte_id=reporte_id, action="reporte_delete",
                       por=ctx.usuario_id)

    # =========================================================
    # LEYES DEL REPORTE
    # =========================================================

    def leyes_del_reporte(self, reporte_id: str, ctx: AuthContext) -> List[Dict[str, Any]]:
        self._obtener_autorizado(reporte_id, ctx)
        return self.leyes.leyes_de_reporte(reporte_id)

    def asociar_leyes(
        self, reporte_id: str, leyes: List[Dict[str, Any]], ctx: AuthContext
    ) -> Dict[str, Any]:
        """Asociación posterior a la creación (admin o autor). Las inválidas se omiten."""
        self._obtener_gestionable(reporte_id, ctx)
        nuevas = self.leyes.agregar_asociaciones(reporte_id, leyes)
        self.db.commit()
        self._log_info("Leyes asociadas", reporte_id=reporte_id, action="reporte_laws_associate",
                       nuevas=nuevas)
        return {"reporte_id": reporte_id, "nuevas": nuevas,
                "leyes": self.leyes.leyes_de_reporte(reporte_id)}

    def desasociar_ley(
        self, reporte_id: str, ley_norma_id: str, ctx: AuthContext,
        articulo_id: Optional[str] = None,
    ) -> None:
        self._obtener_gestionable(reporte_id, ctx)
        self.leyes.desasociar(reporte_id, ley_norma_id, articulo_id)

    # =========================================================
    # DOCUMENTOS
    # =========================================================

    def generar_documento(self, reporte_id: str, formato: str, ctx: AuthContext) -> DocumentoGenerado:
        """
        Genera el PDF o Word del reporte con los datos vigentes.

        Raises:
            ReporteNoEncontradoException / PermisoDenegadoException
            DocumentGenerationException: fallo del generador (500)
        """
        if formato not in EXTENSIONES_DOCUMENTO:
            raise ValidacionException(f"Formato no soportado: {formato}")
        reporte = self._obtener_autorizado(reporte_id, ctx)
        try:
            contenido = self._renderizar(reporte, formato, publica=ctx.es_publico)
        except Exception as e:
            self._log_error("Error generando documento", error=e, reporte_id=reporte_id,
                            action="reporte_document_error", formato=formato)
            raise DocumentGenerationException(formato, original_error=e)

        nombre = f"reporte-{reporte.id}-{date.today().isoformat()}.{EXTENSIONES_DOCUMENTO[formato]}"
        self._log_info("Documento generado", reporte_id=reporte_id, action="reporte_document",
                       formato=formato, bytes=len(contenido), publico=ctx.es_publico)
        return DocumentoGenerado(contenido, nombre, MEDIA_TYPES[formato])

    def vista_impresion(self, reporte_id: str, ctx: AuthContext) -> str:
        reporte = self._obtener_autorizado(reporte_id, ctx)
        return generar_reporte_html(self.proyectar(reporte, ctx))

    # =========================================================
    # ESTADÍSTICAS
    # =========================================================

    def estadisticas(self, ctx: AuthContext) -> Dict[str, Any]:
        """
        Totales por zona, estado, distrito y mes.

        Ante un fallo de base de datos devuelve los contadores a cero y lo
        deja registrado: el panel nunca se rompe por las estadísticas.
        """
        try:
            reportes = self._query_alcance(ctx).with_entities(
                Reporte.zona, Reporte.estado, Reporte.distrito, Reporte.fecha
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._log_warning("Estadísticas no disponibles", action="estadisticas_fallback",
                              error=str(e))
            return {k: (dict(v) if isinstance(v, dict) else v) for k, v in ESTADISTICAS_VACIAS.items()}

        return {
            "total": len(reportes),
            "por_zona": dict(Counter(r.zona for r in reportes)),
            "por_estado": dict(Counter(r.estado for r in reportes)),
            "por_distrito": dict(Counter(r.distrito for r in reportes)),
            "por_mes": dict(sorted(Counter(r.fecha.strftime("%Y-%m") for r in reportes).items())),
        }

    def estadisticas_publicas(self) -> Dict[str, Any]:
        ctx = AuthContext.publico()
        reportes = self.db.query(Reporte).order_by(Reporte.created_at.desc()).all()
        hace_una_semana = datetime.utcnow() - timedelta(days=7)
        por_estado = Counter(r.estado for r in reportes)
        return {
            "total": len(reportes),
            "por_zona": dict(Counter(r.zona for r in reportes)),
            "por_estado": dict(por_estado),
            "completados": por_estado.get("completado", 0),
            "pendientes": por_estado.get("pendiente", 0),
            "revisados": por_estado.get("revisado", 0),
            "archivados": por_estado.get("archivado", 0),
            "ultima_semana": sum(1 for r in reportes if r.created_at >= hace_una_semana),
            "por_mes": dict(sorted(Counter(r.fecha.strftime("%Y-%m") for r in reportes).items())),
            "recientes": [self.proyectar(r, ctx) for r in reportes[:5]],
        }

    # =========================================================
    # HELPERS
    # =========================================================

    def _obtener(self, reporte_id: str) -> Reporte:
        reporte = self.db.query(Reporte).filter(Reporte.id == reporte_id).first()
        if reporte is None:
            raise ReporteNoEncontradoException(reporte_id)
        return reporte

    def _obtener_autorizado(self, reporte_id: str, ctx: AuthContext) -> Reporte:
        """
        Público: cualquier reporte. Con sesión: admin cualquiera; el resto
        sus propios reportes o los anónimos.
        """
        reporte = self._obtener(reporte_id)
        if ctx.es_publico or ctx.es_admin:
            return reporte
        if reporte.usuario_id is None or reporte.usuario_id == ctx.usuario_id:
            return reporte
        self._log_warning("Acceso denegado a reporte", reporte_id=reporte_id,
                          action="reporte_access_denied", usuario_id=ctx.usuario_id)
        raise PermisoDenegadoException("No tiene permisos para ver este reporte")

    def _obtener_gestionable(self, reporte_id: str, ctx: AuthContext) -> Reporte:
        reporte = self._obtener(reporte_id)
        if not ctx.puede_gestionar(reporte.usuario_id):
            raise PermisoDenegadoException("No tiene permisos para modificar este reporte")
        return reporte

    def _query_alcance(self, ctx: AuthContext, usuario_id: Optional[str] = None) -> Query:
        query = self.db.query(Reporte)
        if ctx.es_admin:
            if usuario_id:
                query = query.filter(Reporte.usuario_id == usuario_id)
        elif not ctx.es_publico:
            query = query.filter(Reporte.usuario_id == ctx.usuario_id)
        return query

    @staticmethod
    def _aplicar_filtros(query: Query, filtros: FiltrosReporte) -> Query:
        if filtros.fecha_desde:
            query = query.filter(Reporte.fecha >= filtros.fecha_desde)
        if filtros.fecha_hasta:
            query = query.filter(Reporte.fecha <= filtros.fecha_hasta)
        if filtros.zona:
            query = query.filter(Reporte.zona == filtros.zona)
        if filtros.distrito:
            query = query.filter(Reporte.distrito == filtros.distrito)
        if filtros.circuito:
            query = query.filter(Reporte.circuito == filtros.circuito)
        if filtros.estado:
            query = query.filter(Reporte.estado == filtros.estado)
        return query

    @staticmethod
    def _validar_requeridos(datos: Dict[str, Any]) -> None:
        errores = {
            campo: "Campo requerido"
            for campo in CAMPOS_REQUERIDOS
            if datos.get(campo) is None or not str(datos.get(campo)).strip()
        }
        if errores:
            raise ValidacionException("Campos requeridos faltantes", errores=errores)

    @staticmethod
    def _validar_imagenes(imagenes: List[ImagenSubida]) -> None:
        config = get_settings()
        if len(imagenes) > config.max_imagenes_reporte:
            raise ValidacionException(
                f"Máximo {config.max_imagenes_reporte} imágenes por reporte",
                errores={"imagenes": "Demasiadas imágenes"},
            )
        for imagen in imagenes:
            if not (imagen.content_type or "").startswith("image/"):
                raise ValidacionException(
                    "Solo se permiten archivos de imagen",
                    errores={"imagenes": f"{imagen.nombre} no es una imagen"},
                )
            if len(imagen.contenido) > config.max_tamano_imagen_bytes:
                raise ValidacionException(
                    f"Cada imagen debe pesar como máximo {config.max_tamano_imagen_mb} MB",
                    errores={"imagenes": f"{imagen.nombre} supera el tamaño máximo"},
                )

    def _renderizar(self, reporte: Reporte, formato: str, publica: bool = False) -> bytes:
        data = self._proyeccion(reporte, publica)
        if formato == "pdf":
            imagenes = [
                (img.nombre_archivo, self.storage.ruta_local(img.ruta_storage))
                for img in sorted(reporte.imagenes, key=lambda i: i.orden)
            ]
            return generar_reporte_pdf(data, imagenes)
        if formato == "word":
            return generar_reporte_docx(data)
        raise ValueError(f"Formato no soportado: {formato}")

    def _guardar_documentos(self, reporte: Reporte) -> None:
        """Genera y guarda Word y PDF. Un fallo se registra y no se propaga."""
        for formato, columna in (("word", "url_documento_word"), ("pdf", "url_documento_pdf")):
            try:
                contenido = self._renderizar(reporte, formato)
                ruta = self.storage.ruta_documento_reporte(reporte.id, EXTENSIONES_DOCUMENTO[formato])
                setattr(reporte, columna, self.storage.subir(ruta, contenido))
            except Exception as e:
                self._log_error("Documento no generado", error=e, reporte_id=reporte.id,
                                action="reporte_document_error", formato=formato)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._log_error("URLs de documentos no guardadas", error=e, reporte_id=reporte.id,
                            action="reporte_document_error")

    def _eliminar_archivo(self, ruta: str, reporte_id: str) -> None:
        try:
            self.storage.eliminar(ruta)
        except StorageException as e:
            self._log_warning("Archivo no eliminado", reporte_id=reporte_id,
                              action="storage_cleanup_failed", ruta=ruta, error=str(e))
