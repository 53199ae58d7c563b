"""
Servicio base para toda la aplicación.

Proporciona funcionalidad común a todos los servicios:
- Logging estructurado
- Manejo de excepciones (rollback + wrap en AcmException)
- Acceso a base de datos
"""
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AcmException, DatabaseException
from app.core.logger import StructuredLogger, get_logger


class BaseService:
    """
    Clase base para todos los servicios.

    Los servicios encapsulan la lógica de negocio; los routers solo
    traducen HTTP <-> llamadas de servicio.
    """

    def __init__(
        self,
        db: Session,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Args:
            db: Sesión de base de datos
            logger: Logger estructurado (opcional)
        """
        self.db = db
        self.logger = logger or get_logger()

    def _log_info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def _log_warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def _log_error(self, message: str, error: Optional[Exception] = None, **kwargs):
        self.logger.error(message, error=error, **kwargs)

    def _handle_exception(
        self,
        error: Exception,
        context: str,
        reporte_id: Optional[str] = None
    ) -> AcmException:
        """
        Maneja una excepción de manera consistente.

        Deshace la transacción en curso. Las AcmException se devuelven tal
        cual; el resto se envuelve en DatabaseException.

        Args:
            error: Excepción original
            context: Contexto donde ocurrió
            reporte_id: ID del reporte (si aplica)

        Returns:
            AcmException lista para relanzar
        """
        self.db.rollback()

        if isinstance(error, AcmException):
            if error.http_status >= 500:
                self._log_error(f"Error in {context}", error=error, reporte_id=reporte_id)
            return error

        self._log_error(
            f"Unexpected error in {context}",
            error=error,
            reporte_id=reporte_id,
        )
        return DatabaseException(
            f"Error interno en {context}",
            details={"context": context},
            original_error=error,
        )
