"""
Almacenamiento de archivos (imágenes de reportes y documentos generados).

Bucket en disco local bajo `settings.storage_dir`, servido por la API
en `settings.storage_public_url`. Las rutas son relativas al bucket:

    reportes/{reporte_id}/{timestamp}-{nombre}
    documentos/reportes/{reporte_id}/reporte-{reporte_id}.docx|pdf
"""
import re
import time
from pathlib import Path
from typing import Optional

from app.core.config import get_settings
from app.core.exceptions import StorageException
from app.core.logger import get_logger

logger = get_logger()

_NOMBRE_INVALIDO = re.compile(r"[^A-Za-z0-9._-]+")


def limpiar_nombre_archivo(nombre: Optional[str]) -> str:
    """Nombre seguro para disco: sin rutas ni caracteres especiales."""
    base = Path(nombre or "archivo").name
    limpio = _NOMBRE_INVALIDO.sub("_", base).strip("._")
    return limpio or "archivo"


class StorageService:
    """Bucket de archivos en disco."""

    def __init__(self, root: Optional[Path] = None, public_url: Optional[str] = None):
        config = get_settings()
        self.root = Path(root or config.storage_dir).resolve()
        self.public_url = (public_url or config.storage_public_url).rstrip("/")

    # =========================================================
    # RUTAS
    # =========================================================

    def _resolver(self, ruta: str) -> Path:
        destino = (self.root / ruta).resolve()
        if self.root != destino and self.root not in destino.parents:
            raise StorageException(
                "Ruta de almacenamiento inválida", details={"ruta": ruta}
            )
        return destino

    def url_publica(self, ruta: str) -> str:
        return f"{self.public_url}/{ruta}"

    def ruta_desde_url(self, url: str) -> Optional[str]:
        """Inverso de url_publica (None si la URL no es de este bucket)."""
        prefijo = f"{self.public_url}/"
        if url and url.startswith(prefijo):
            return url[len(prefijo):]
        return None

    def ruta_imagen_reporte(self, reporte_id: str, nombre_archivo: str) -> str:
        """Ruta libre: dos imágenes con el mismo nombre en el mismo ms no se pisan."""
        nombre = limpiar_nombre_archivo(nombre_archivo)
        marca = int(time.time() * 1000)
        ruta = f"reportes/{reporte_id}/{marca}-{nombre}"
        while self._resolver(ruta).exists():
            marca += 1
            ruta = f"reportes/{reporte_id}/{marca}-{nombre}"
        return ruta

    @staticmethod
    def ruta_documento_reporte(reporte_id: str, extension: str) -> str:
        return f"documentos/reportes/{reporte_id}/reporte-{reporte_id}.{extension}"

    # =========================================================
    # OPERACIONES
    # =========================================================

    def subir(self, ruta: str, contenido: bytes) -> str:
        """
        Escribe un archivo (sobrescribe si existe).

        Returns:
            URL pública del archivo

        Raises:
            StorageException: si el disco falla
        """
        destino = self._resolver(ruta)
        try:
            destino.parent.mkdir(parents=True, exist_ok=True)
            destino.write_bytes(contenido)
        except OSError as e:
            logger.error("Error subiendo archivo", action="storage_upload", ruta=ruta, error=e)
            raise StorageException(original_error=e)

        logger.info("Archivo subido", action="storage_upload", ruta=ruta, bytes=len(contenido))
        return self.url_publica(ruta)

    def leer(self, ruta: str) -> Optional[bytes]:
        destino = self._resolver(ruta)
        if not destino.is_file():
            return None
        return destino.read_bytes()

    def ruta_local(self, ruta: str) -> Optional[Path]:
        destino = self._resolver(ruta)
        return destino if destino.is_file() else None

    def eliminar(self, ruta: str) -> bool:
        """Borra un archivo. Devuelve False si no existía."""
        destino = self._resolver(ruta)
        if not destino.exists():
            return False
        try:
            destino.unlink()
        except OSError as e:
            logger.error("Error eliminando archivo", action="storage_delete", ruta=ruta, error=e)
            raise StorageException("Error al eliminar archivos", original_error=e)
        return True

    def eliminar_url(self, url: Optional[str]) -> bool:
        ruta = self.ruta_desde_url(url) if url else None
        return self.eliminar(ruta) if ruta else False

    def disponible(self) -> bool:
        """Health check: el bucket existe y admite escritura."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            prueba = self.root / ".health"
            prueba.write_bytes(b"ok")
            prueba.unlink()
            return True
        except OSError:
            return False


def get_storage() -> StorageService:
    """Dependency / factory: lee la configuración vigente en cada llamada."""
    return StorageService()
