"""
ENDPOINTS DE HOJAS DE VIDA.

Cada usuario gestiona la suya; los administradores pueden consultar,
buscar y exportar cualquiera.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.api.respuestas import respuesta_archivo, respuesta_ok
from app.core.database import get_db
from app.core.security import AuthContext, require_admin, require_auth
from app.schemas import ExportarHojaVidaRequest
from app.services.hoja_vida_service import HojaVidaService
from app.services.reporte_service import MEDIA_TYPES

router = APIRouter(
    prefix="/hojas-vida",
    tags=["hojas-vida"],
)


@router.post("")
def guardar_hoja_vida(
    datos: Dict[str, Any] = Body(...),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Crea o reemplaza la hoja de vida propia. Los valores vacíos se descartan."""
    data = HojaVidaService(db).guardar(datos, ctx)
    return respuesta_ok(data, "Hoja de vida guardada exitosamente")


@router.get("/mi-hoja-vida")
def mi_hoja_vida(ctx: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return respuesta_ok(HojaVidaService(db).mi_hoja_vida(ctx))


@router.get("/generar-plantilla")
def generar_plantilla(ctx: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return respuesta_ok(HojaVidaService(db).generar_plantilla(ctx))


@router.get("/todas")
def todas(ctx: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    hojas = HojaVidaService(db).todas()
    return respuesta_ok(hojas, total=len(hojas))


@router.get("/buscar")
def buscar(
    nombre: Optional[str] = None,
    cedula: Optional[str] = None,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    hojas = HojaVidaService(db).buscar(nombre, cedula)
    return respuesta_ok(hojas, total=len(hojas))


@router.get("/usuario/{usuario_id}")
def obtener_hoja_vida(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return respuesta_ok(HojaVidaService(db).obtener(usuario_id, ctx))


@router.delete("/usuario/{usuario_id}")
def eliminar_hoja_vida(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    HojaVidaService(db).eliminar(usuario_id, ctx)
    return respuesta_ok(None, "Hoja de vida eliminada exitosamente")


@router.get("/usuario/{usuario_id}/descargar-pdf")
def descargar_pdf(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    documento = HojaVidaService(db).documento(usuario_id, "pdf", ctx)
    return respuesta_archivo(documento["contenido"], documento["nombre_archivo"], MEDIA_TYPES["pdf"])


@router.get("/usuario/{usuario_id}/descargar-word")
def descargar_word(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    documento = HojaVidaService(db).documento(usuario_id, "word", ctx)
    return respuesta_archivo(documento["contenido"], documento["nombre_archivo"], MEDIA_TYPES["word"])


@router.post("/usuario/{usuario_id}/exportar")
def exportar(
    usuario_id: str,
    payload: Optional[ExportarHojaVidaRequest] = Body(None),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Archivos en base64 (pdf, word) y/o JSON."""
    formatos = payload.formatos if payload else ["pdf", "word"]
    return respuesta_ok(HojaVidaService(db).exportar(usuario_id, formatos, ctx))
