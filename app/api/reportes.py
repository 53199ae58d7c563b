"""
ENDPOINTS DE REPORTES.

Cada operación existe una sola vez en ReporteService y recibe el
AuthContext de la petición. Las rutas `-publico` fuerzan el contexto
público aunque llegue un token, de modo que siempre devuelven la
proyección pública.
"""
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.api.respuestas import respuesta_archivo, respuesta_ok
from app.core.database import get_db
from app.core.exceptions import ValidacionException
from app.core.security import AuthContext, get_auth_context, require_admin, require_auth
from app.schemas import AsociacionLeyesRequest, CoordenadasRequest, FiltrosReporte
from app.services.reporte_service import (
    LIMITE_PUBLICO_DEFECTO,
    RADIO_CERCANOS_KM,
    ZONAS_GUAYAQUIL,
    ImagenSubida,
    ReporteService,
)
from app.services.storage_service import StorageService, get_storage

router = APIRouter(
    tags=["reportes"],
)


def _servicio(db: Session, storage: StorageService) -> ReporteService:
    return ReporteService(db, storage=storage)


async def _leer_imagenes(archivos: Optional[List[UploadFile]]) -> List[ImagenSubida]:
    imagenes = []
    for archivo in archivos or []:
        if not archivo.filename:
            continue
        imagenes.append(
            ImagenSubida(
                nombre=archivo.filename,
                content_type=archivo.content_type or "",
                contenido=await archivo.read(),
            )
        )
    return imagenes


def _parsear_leyes(valor: Optional[str]) -> List[Dict[str, Any]]:
    """
    `leyes_normas` llega como texto JSON en el formulario multipart:
    lista de {ley_norma_id, articulo_id?} o lista de ids.
    """
    if not valor:
        return []
    try:
        datos = json.loads(valor)
    except json.JSONDecodeError:
        raise ValidacionException(
            "leyes_normas debe ser un JSON válido",
            errores={"leyes_normas": "JSON inválido"},
        )
    if not isinstance(datos, list):
        raise ValidacionException(
            "leyes_normas debe ser una lista", errores={"leyes_normas": "Se esperaba una lista"}
        )
    leyes = []
    for item in datos:
        if isinstance(item, str):
            leyes.append({"ley_norma_id": item})
        elif isinstance(item, dict):
            leyes.append(item)
    return leyes


# =========================================================
# CATÁLOGO DE ZONAS
# =========================================================

@router.get("/zonas-guayaquil")
def zonas_guayaquil():
    return respuesta_ok(ZONAS_GUAYAQUIL)


# =========================================================
# CREACIÓN
# =========================================================

@router.post("/reportes", status_code=201)
async def crear_reporte(
    zona: Optional[str] = Form(None),
    distrito: Optional[str] = Form(None),
    circuito: Optional[str] = Form(None),
    direccion: Optional[str] = Form(None),
    horario_jornada: Optional[str] = Form(None),
    hora_reporte: Optional[str] = Form(None),
    fecha: Optional[str] = Form(None),
    novedad: Optional[str] = Form(None),
    reporta: Optional[str] = Form(None),
    tipo_reporte: Optional[str] = Form(None),
    latitud: Optional[str] = Form(None),
    longitud: Optional[str] = Form(None),
    leyes_normas: Optional[str] = Form(None),
    imagenes: Optional[List[UploadFile]] = File(None),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """
    Crea un reporte (multipart/form-data).

    Sin token el reporte queda anónimo; con token, el autor es el usuario
    de la sesión. Devuelve 400 con `errores` si faltan campos requeridos.
    """
    datos = {
        "zona": zona,
        "distrito": distrito,
        "circuito": circuito,
        "direccion": direccion,
        "horario_jornada": horario_jornada,
        "hora_reporte": hora_reporte,
        "fecha": fecha,
        "novedad": novedad,
        "reporta": reporta,
        "tipo_reporte": tipo_reporte,
        "latitud": latitud,
        "longitud": longitud,
    }
    reporte = _servicio(db, storage).crear(
        datos,
        await _leer_imagenes(imagenes),
        _parsear_leyes(leyes_normas),
        ctx,
    )
    return respuesta_ok(reporte, "Reporte creado exitosamente")


# =========================================================
# BÚSQUEDA Y ESTADÍSTICAS
# =========================================================

@router.get("/reportes/mis-reportes")
def mis_reportes(
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    reportes = _servicio(db, storage).mis_reportes(ctx)
    return respuesta_ok(reportes, total=len(reportes))


@router.get("/reportes/buscar")
def buscar_reportes(
    filtros: FiltrosReporte = Depends(),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Filtros opcionales con semántica AND. No admin: solo reportes propios."""
    resultado = _servicio(db, storage).buscar_reportes(filtros, ctx)
    return respuesta_ok(resultado["reportes"], total=resultado["total"])


@router.get("/reportes/buscar-publico")
def buscar_reportes_publico(
    filtros: FiltrosReporte = Depends(),
    limit: int = Query(LIMITE_PUBLICO_DEFECTO),
    offset: int = Query(0),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    filtros.usuario_id = None
    resultado = _servicio(db, storage).buscar_reportes(
        filtros, AuthContext.publico(), limit=limit, offset=offset
    )
    return respuesta_ok(
        resultado["reportes"],
        total=resultado["total"],
        pagina_actual=resultado["pagina_actual"],
        total_paginas=resultado["total_paginas"],
    )


@router.get("/reportes/estadisticas")
def estadisticas(
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return respuesta_ok(_servicio(db, storage).estadisticas(ctx))


@router.get("/reportes/estadisticas-publicas")
def estadisticas_publicas(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return respuesta_ok(_servicio(db, storage).estadisticas_publicas())


@router.get("/reportes/ubicacion/cercanos")
def reportes_cercanos(
    latitud: Optional[str] = None,
    longitud: Optional[str] = None,
    radio_km: Optional[str] = Query(str(RADIO_CERCANOS_KM)),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    resultado = _servicio(db, storage).cercanos(latitud, longitud, ctx, radio_km)
    return respuesta_ok(
        resultado["reportes"], total=resultado["total"], radio_km=resultado["radio_km"]
    )


# =========================================================
# LECTURA, MODIFICACIÓN Y BORRADO
# =========================================================

@router.get("/reportes/{reporte_id}")
def obtener_reporte(
    reporte_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return respuesta_ok(_servicio(db, storage).obtener_reporte(reporte_id, ctx))


@router.get("/reportes/{reporte_id}/publico")
def obtener_reporte_publico(
    reporte_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return respuesta_ok(_servicio(db, storage).obtener_reporte(reporte_id, AuthContext.publico()))


@router.put("/reportes/{reporte_id}")
async def actualizar_reporte(
    reporte_id: str,
    zona: Optional[str] = Form(None),
    distrito: Optional[str] = Form(None),
    circuito: Optional[str] = Form(None),
    direccion: Optional[str] = Form(None),
    horario_jornada: Optional[str] = Form(None),
    hora_reporte: Optional[str] = Form(None),
    fecha: Optional[str] = Form(None),
    novedad: Optional[str] = Form(None),
    reporta: Optional[str] = Form(None),
    estado: Optional[str] = Form(None),
    latitud: Optional[str] = Form(None),
    longitud: Optional[str] = Form(None),
    nuevas_imagenes: Optional[List[UploadFile]] = File(None),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """
    Admin o autor (multipart/form-data). Solo se aplican los campos
    enviados; `nuevas_imagenes` se añaden al final.
    """
    cambios = {
        "zona": zona,
        "distrito": distrito,
        "circuito": circuito,
        "direccion": direccion,
        "horario_jornada": horario_jornada,
        "hora_reporte": hora_reporte,
        "fecha": fecha,
        "novedad": novedad,
        "reporta": reporta,
        "estado": estado,
        "latitud": latitud,
        "longitud": longitud,
    }
    reporte = _servicio(db, storage).actualizar(
        reporte_id, cambios, ctx, await _leer_imagenes(nuevas_imagenes)
    )
    return respuesta_ok(reporte, "Reporte actualizado exitosamente")


@router.delete("/reportes/{reporte_id}")
def eliminar_reporte(
    reporte_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    _servicio(db, storage).eliminar(reporte_id, ctx)
    return respuesta_ok(None, "Reporte eliminado exitosamente")


@router.post("/reportes/{reporte_id}/coordenadas")
def actualizar_coordenadas(
    reporte_id: str,
    payload: CoordenadasRequest,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    data = _servicio(db, storage).actualizar_coordenadas(
        reporte_id, payload.latitud, payload.longitud, ctx
    )
    return respuesta_ok(data, "Coordenadas actualizadas exitosamente")


# =========================================================
# LEYES DEL REPORTE
# =========================================================

@router.post("/reportes/{reporte_id}/leyes-publico")
def leyes_reporte_publico(
    reporte_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Solo lectura: las leyes ya asociadas al reporte."""
    leyes = _servicio(db, storage).leyes_del_reporte(reporte_id, AuthContext.publico())
    return respuesta_ok(leyes, "Leyes obtenidas (modo lectura pública)")


@router.get("/reportes/{reporte_id}/leyes-normas")
def leyes_reporte(
    reporte_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return respuesta_ok(_servicio(db, storage).leyes_del_reporte(reporte_id, ctx))


@router.post("/reportes/{reporte_id}/leyes-normas")
def asociar_leyes(
    reporte_id: str,
    payload: AsociacionLeyesRequest,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    leyes = [item.model_dump() for item in payload.leyes]
    data = _servicio(db, storage).asociar_leyes(reporte_id, leyes, ctx)
    return respuesta_ok(data, "Leyes asociadas exitosamente")


@router.delete("/reportes/{reporte_id}/leyes-normas/{ley_norma_id}")
def desasociar_ley(
    reporte_id: str,
    ley_norma_id: str,
    articulo_id: Optional[str] = None,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    _servicio(db, storage).desasociar_ley(reporte_id, ley_norma_id, ctx, articulo_id)
    return respuesta_ok(None, "Ley desasociada exitosamente")


# =========================================================
# DESCARGAS E IMPRESIÓN
# =========================================================

def _descargar(reporte_id: str, formato: str, ctx: AuthContext, db: Session, storage: StorageService):
    documento = _servicio(db, storage).generar_documento(reporte_id, formato, ctx)
    return respuesta_archivo(documento.contenido, documento.nombre_archivo, documento.media_type)


@router.get("/reportes/{reporte_id}/descargar-pdf")
def descargar_pdf(
    reporte_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return _descargar(reporte_id, "pdf", ctx, db, storage)


@router.get("/reportes/{reporte_id}/descargar-word")
def descargar_word(
    reporte_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return _descargar(reporte_id, "word", ctx, db, storage)


@router.get("/reportes/{reporte_id}/descargar-pdf-publico")
def descargar_pdf_publico(
    reporte_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return _descargar(reporte_id, "pdf", AuthContext.publico(), db, storage)


@router.get("/reportes/{reporte_id}/descargar-word-publico")
def descargar_word_publico(
    reporte_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return _descargar(reporte_id, "word", AuthContext.publico(), db, storage)


@router.get("/reportes/{reporte_id}/imprimir", response_class=HTMLResponse)
def imprimir_reporte(
    reporte_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return HTMLResponse(_servicio(db, storage).vista_impresion(reporte_id, ctx))


@router.get("/reportes/{reporte_id}/imprimir-publico", response_class=HTMLResponse)
def imprimir_reporte_publico(
    reporte_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    return HTMLResponse(_servicio(db, storage).vista_impresion(reporte_id, AuthContext.publico()))
