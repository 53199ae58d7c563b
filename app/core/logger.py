"""
Sistema de logging estructurado para el Sistema de Reportes ACM.

Formato JSON, una línea por evento, pensado para auditar quién creó,
modificó o exportó cada reporte.
"""
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


class StructuredLogger:
    """
    Logger estructurado con formato JSON.

    Cada log incluye:
    - timestamp ISO8601
    - level (INFO/WARNING/ERROR)
    - reporte_id (si aplica)
    - action (tipo de acción)
    - message
    - extra_data (opcional)
    """

    def __init__(self, name: str, log_file: Optional[Path] = None, level: int = logging.INFO):
        """
        Inicializa el logger estructurado.

        Args:
            name: Nombre del logger (ej: "acm.reportes")
            log_file: Ruta al archivo de log (opcional)
            level: Nivel mínimo a emitir
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.handlers = []
        self.logger.propagate = False

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(JsonFormatter())
        self.logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(JsonFormatter())
            self.logger.addHandler(file_handler)

    def info(
        self, message: str, reporte_id: Optional[str] = None, action: Optional[str] = None, **extra
    ):
        """Log nivel INFO."""
        self._log(logging.INFO, message, reporte_id, action, extra)

    def warning(
        self, message: str, reporte_id: Optional[str] = None, action: Optional[str] = None, **extra
    ):
        """Log nivel WARNING."""
        self._log(logging.WARNING, message, reporte_id, action, extra)

    def error(
        self,
        message: str,
        reporte_id: Optional[str] = None,
        action: Optional[str] = None,
        error: Optional[Exception] = None,
        **extra,
    ):
        """Log nivel ERROR."""
        if error:
            extra["error_type"] = type(error).__name__
            extra["error_message"] = str(error)
        self._log(logging.ERROR, message, reporte_id, action, extra)

    def _log(
        self,
        level: int,
        message: str,
        reporte_id: Optional[str],
        action: Optional[str],
        extra: dict[str, Any],
    ):
        log_data = {"reporte_id": reporte_id, "action": action, **extra}

        # Filtrar None values
        log_data = {k: v for k, v in log_data.items() if v is not None}

        self.logger.log(level, message, extra={"data": log_data})


class JsonFormatter(logging.Formatter):
    """Formatter que convierte logs a JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if hasattr(record, "data"):
            log_obj.update(record.data)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False, default=str)


# Logger global para la aplicación
_default_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "acm.reportes", log_file: Optional[Path] = None) -> StructuredLogger:
    """
    Obtiene o crea el logger estructurado global.

    Args:
        name: Nombre del logger
        log_file: Ruta al archivo de log

    Returns:
        Logger estructurado
    """
    global _default_logger

    if _default_logger is None:
        from app.core.config import get_settings

        config = get_settings()
        if log_file is None:
            log_file = config.logs_dir / "acm_reportes.log"

        _default_logger = StructuredLogger(
            name, log_file, level=getattr(logging, config.log_level, logging.INFO)
        )

    return _default_logger


# Atajos para uso directo
logger = get_logger()


def log_info(message: str, reporte_id: Optional[str] = None, action: Optional[str] = None, **extra):
    """Atajo para log INFO."""
    logger.info(message, reporte_id=reporte_id, action=action, **extra)


def log_warning(message: str, reporte_id: Optional[str] = None, action: Optional[str] = None, **extra):
    """Atajo para log WARNING."""
    logger.warning(message, reporte_id=reporte_id, action=action, **extra)


def log_error(
    message: str,
    reporte_id: Optional[str] = None,
    action: Optional[str] = None,
    error: Optional[Exception] = None,
    **extra,
):
    """Atajo para log ERROR."""
    logger.error(message, reporte_id=reporte_id, action=action, error=error, **extra)
