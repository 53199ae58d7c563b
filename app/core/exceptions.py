"""
Sistema de excepciones estandarizado para el Sistema de Reportes ACM.

Todas las excepciones del sistema heredan de AcmException y siguen
un formato consistente con:
- Código de error único
- Mensaje descriptivo (en español, se muestra al usuario)
- Detalles adicionales (dict)
- Severity level
- Código HTTP con el que la API lo devuelve

Los handlers de app.main traducen estas excepciones al sobre
{success: false, message, ...} sin que los endpoints tengan que hacerlo.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(str, Enum):
    """Niveles de severidad para errores."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AcmException(Exception):
    """
    Excepción base del sistema de reportes.

    Todas las excepciones custom deben heredar de esta clase.
    """

    http_status: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        original_error: Optional[Exception] = None,
        http_status: Optional[int] = None,
    ):
        """
        Inicializa una excepción del sistema.

        Args:
            code: Código único del error (ej: "REPORTE_NOT_FOUND")
            message: Mensaje descriptivo para humanos
            details: Detalles adicionales; se copian al cuerpo de la respuesta
            severity: Nivel de severidad
            original_error: Excepción original si es un wrap
            http_status: Código HTTP (por defecto el de la clase)
        """
        self.code = code
        self.message = message
        self.details = details or {}
        self.severity = severity
        self.original_error = original_error
        if http_status is not None:
            self.http_status = http_status

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario (para logging).

        Returns:
            Dict con información de la excepción
        """
        result = {
            "error_code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }

        if self.original_error:
            result["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error),
            }

        return result

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base


# =========================================================
# EXCEPCIONES DE BASE DE DATOS
# =========================================================

class DatabaseException(AcmException):
    """Error relacionado con base de datos."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            code="DATABASE_ERROR",
            message=message,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class RecursoNoEncontradoException(AcmException):
    """Recurso inexistente (404)."""

    http_status = 404

    def __init__(self, message: str, code: str = "NOT_FOUND", **kwargs):
        super().__init__(
            code=code,
            message=message,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


class ReporteNoEncontradoException(RecursoNoEncontradoException):
    def __init__(self, reporte_id: str, **kwargs):
        super().__init__(
            message="Reporte no encontrado",
            code="REPORTE_NOT_FOUND",
            details={"reporte_id": reporte_id},
            **kwargs
        )


class UsuarioNoEncontradoException(RecursoNoEncontradoException):
    def __init__(self, usuario_id: Optional[str] = None, **kwargs):
        super().__init__(
            message="Usuario no encontrado",
            code="USUARIO_NOT_FOUND",
            details={"usuario_id": usuario_id} if usuario_id else None,
            **kwargs
        )


class LeyNormaNoEncontradaException(RecursoNoEncontradoException):
    def __init__(self, ley_norma_id: str, **kwargs):
        super().__init__(
            message="Ley/norma no encontrada",
            code="LEY_NORMA_NOT_FOUND",
            details={"ley_norma_id": ley_norma_id},
            **kwargs
        )


class HojaVidaNoEncontradaException(RecursoNoEncontradoException):
    def __init__(self, usuario_id: str, **kwargs):
        super().__init__(
            message="Hoja de vida no encontrada",
            code="HOJA_VIDA_NOT_FOUND",
            details={"usuario_id": usuario_id},
            **kwargs
        )


# =========================================================
# EXCEPCIONES DE VALIDACIÓN Y CONFLICTO
# =========================================================

class ValidacionException(AcmException):
    """
    Datos de entrada inválidos (400).

    `errores` es un dict campo -> mensaje, se devuelve tal cual al cliente.
    """

    http_status = 400

    def __init__(self, message: str, errores: Optional[Dict[str, str]] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if errores:
            details["errores"] = errores
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details=details,
            severity=ErrorSeverity.LOW,
            **kwargs
        )
        self.errores = errores or {}


class ConflictoException(AcmException):
    """Conflicto de unicidad (409)."""

    http_status = 409

    def __init__(self, message: str, campo: str, **kwargs):
        details = kwargs.pop("details", None) or {}
        details["campo"] = campo
        super().__init__(
            code="CONFLICT",
            message=message,
            details=details,
            severity=ErrorSeverity.LOW,
            **kwargs
        )
        self.campo = campo


class EmailDuplicadoException(ConflictoException):
    def __init__(self, email: str, **kwargs):
        super().__init__(
            message="El email ya está registrado",
            campo="email",
            **kwargs
        )
        self.code = "EMAIL_DUPLICADO"


class CedulaDuplicadaException(ConflictoException):
    def __init__(self, cedula: str, usuario_existente: Optional[Dict[str, Any]] = None, **kwargs):
        details = {"usuario_existente": usuario_existente} if usuario_existente else None
        super().__init__(
            message="La cédula ya está registrada",
            campo="cedula",
            details=details,
            **kwargs
        )
        self.code = "CEDULA_DUPLICADA"


# =========================================================
# EXCEPCIONES DE AUTENTICACIÓN / AUTORIZACIÓN
# =========================================================

class AutenticacionException(AcmException):
    """Error de autenticación (401)."""

    http_status = 401

    def __init__(self, message: str, code: str = "AUTH_ERROR", **kwargs):
        super().__init__(
            code=code,
            message=message,
            severity=ErrorSeverity.MEDIUM,
            **kwargs
        )


class CredencialesInvalidasException(AutenticacionException):
    def __init__(self, **kwargs):
        super().__init__("Credenciales inválidas", code="INVALID_CREDENTIALS", **kwargs)


class CuentaInactivaException(AutenticacionException):
    def __init__(self, **kwargs):
        super().__init__(
            "Cuenta inactiva. Contacte al administrador.", code="ACCOUNT_INACTIVE", **kwargs
        )


class TokenExpiredException(AutenticacionException):
    """Token JWT expirado."""

    def __init__(self, **kwargs):
        super().__init__(
            "Sesión expirada, por favor inicia sesión nuevamente", code="TOKEN_EXPIRED", **kwargs
        )


class InvalidTokenException(AutenticacionException):
    """Token JWT inválido (firma, tipo o versión de sesión)."""

    def __init__(self, reason: str = "Token inválido", **kwargs):
        super().__init__(
            "Token inválido o expirado",
            code="INVALID_TOKEN",
            details={"reason": reason},
            **kwargs
        )


class PermisoDenegadoException(AcmException):
    """Usuario autenticado sin permiso sobre el recurso (403)."""

    http_status = 403

    def __init__(self, message: str = "No tiene permisos para realizar esta acción", **kwargs):
        super().__init__(
            code="FORBIDDEN",
            message=message,
            severity=ErrorSeverity.MEDIUM,
            **kwargs
        )


# =========================================================
# EXCEPCIONES DE ALMACENAMIENTO Y DOCUMENTOS
# =========================================================

class StorageException(AcmException):
    """Fallo al escribir/leer en el almacenamiento de archivos."""

    def __init__(self, message: str = "Error al guardar los archivos", **kwargs):
        super().__init__(
            code="STORAGE_ERROR",
            message=message,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class DocumentGenerationException(AcmException):
    """Fallo generando un PDF o Word."""

    def __init__(self, formato: str, **kwargs):
        super().__init__(
            code="DOCUMENT_GENERATION_ERROR",
            message=f"Error al generar el documento {formato.upper()}",
            details={"formato": formato},
            severity=ErrorSeverity.HIGH,
            **kwargs
        )
