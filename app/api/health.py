"""
ENDPOINT DE SALUD.

Comprueba la base de datos y el almacenamiento de archivos. 503 si la
base de datos no responde.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.logger import get_logger
from app.services.storage_service import StorageService, get_storage

logger = get_logger()

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db), storage: StorageService = Depends(get_storage)):
    estado_db = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check: base de datos no disponible", action="health_db", error=e)
        estado_db = "error"

    estado_storage = "ok" if storage.disponible() else "error"
    if estado_storage == "error":
        logger.warning("Health check: almacenamiento no disponible", action="health_storage")

    cuerpo = {
        "success": estado_db == "ok",
        "backend": "ok",
        "database": estado_db,
        "storage": estado_storage,
        "timestamp": datetime.utcnow().isoformat(),
        "service": get_settings().app_name,
    }
    return JSONResponse(cuerpo, status_code=200 if estado_db == "ok" else 503)
