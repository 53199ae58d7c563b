"""
Envoltorio común de las respuestas JSON.

    {"success": true, "message": "...", "data": ..., **extras}

Los errores los construyen los exception handlers de app.main con la
misma forma y success=false.
"""
from io import BytesIO
from typing import Any, Dict, Optional

from fastapi.responses import StreamingResponse


def respuesta_ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    respuesta: Dict[str, Any] = {"success": True}
    if message:
        respuesta["message"] = message
    respuesta["data"] = data
    respuesta.update(extra)
    return respuesta


def respuesta_error(message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "message": message, **extra}


def respuesta_archivo(contenido: bytes, nombre_archivo: str, media_type: str) -> StreamingResponse:
    """Descarga binaria con Content-Disposition: attachment."""
    return StreamingResponse(
        BytesIO(contenido),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{nombre_archivo}"'},
    )
