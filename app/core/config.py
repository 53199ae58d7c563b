"""
Sistema de configuración con Pydantic Settings.

Este módulo centraliza toda la configuración del sistema de reportes ACM:
- Validación automática de tipos
- Valores por defecto seguros
- Separación por entornos (dev/staging/prod)

La configuración se lee al arrancar. No hay recarga en caliente.
"""
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuración global del Sistema de Reportes ACM.

    Todas las variables se pueden sobrescribir con variables de entorno.
    """

    # =========================================================
    # ENTORNO Y DEPLOYMENT
    # =========================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development", env="ENVIRONMENT", description="Entorno de ejecución"
    )

    debug: bool = Field(
        default=False, env="DEBUG", description="Modo debug (solo para development)"
    )

    app_name: str = Field(default="Sistema de Reportes ACM", env="APP_NAME")

    app_version: str = Field(default="1.0.0", env="APP_VERSION")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8501"],
        env="CORS_ORIGINS",
        description="Orígenes permitidos para el cliente web",
    )

    # =========================================================
    # DATABASE
    # =========================================================

    database_url: str = Field(
        default="sqlite:///./runtime/db/acm_reportes.db",
        env="DATABASE_URL",
        description="URL de conexión a base de datos",
    )

    # =========================================================
    # ALMACENAMIENTO DE ARCHIVOS
    # =========================================================

    storage_dir: Path = Field(
        default=Path("runtime/storage"),
        env="STORAGE_DIR",
        description="Directorio raíz del bucket de archivos",
    )

    storage_public_url: str = Field(
        default="/storage",
        env="STORAGE_PUBLIC_URL",
        description="Prefijo público con el que se sirven los archivos",
    )

    max_imagenes_reporte: int = Field(
        default=10, env="MAX_IMAGENES_REPORTE", ge=0, le=50
    )

    max_tamano_imagen_mb: int = Field(
        default=5, env="MAX_TAMANO_IMAGEN_MB", ge=1, le=50
    )

    # =========================================================
    # SEGURIDAD
    # =========================================================

    jwt_secret_key: str = Field(
        default="change_this_secret_key_in_production",
        env="JWT_SECRET_KEY",
        description="Clave secreta para JWT",
    )

    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")

    jwt_access_token_expire_minutes: int = Field(
        default=60, env="JWT_ACCESS_TOKEN_EXPIRE_MINUTES", ge=1, le=1440
    )

    jwt_refresh_token_expire_days: int = Field(
        default=7, env="JWT_REFRESH_TOKEN_EXPIRE_DAYS", ge=1, le=90
    )

    reactivacion_token_horas: int = Field(
        default=24, env="REACTIVACION_TOKEN_HORAS", ge=1
    )

    rol_registro_por_defecto: Literal["acm", "jefe_patrulla", "supervisor"] = Field(
        default="acm",
        env="ROL_REGISTRO_POR_DEFECTO",
        description="Rol asignado a las cuentas creadas por auto-registro",
    )

    admin_email: Optional[str] = Field(default=None, env="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(default=None, env="ADMIN_PASSWORD")
    admin_cedula: str = Field(default="0900000000", env="ADMIN_CEDULA", pattern=r"^\d{10}$")
    admin_nombre: str = Field(default="ADMINISTRADOR DEL SISTEMA", env="ADMIN_NOMBRE")

    rate_limit_enabled: bool = Field(
        default=True, env="RATE_LIMIT_ENABLED", description="Habilitar rate limiting"
    )

    rate_limit_per_minute: int = Field(
        default=120,
        env="RATE_LIMIT_PER_MINUTE",
        ge=1,
        le=10000,
        description="Requests máximos por minuto",
    )

    # =========================================================
    # CLIENTE WEB
    # =========================================================

    api_base_url: str = Field(
        default="http://localhost:8000", env="API_BASE_URL"
    )

    permitir_reintento_anonimo: bool = Field(
        default=False,
        env="PERMITIR_REINTENTO_ANONIMO",
        description="Reintentar la creación de reportes sin token tras un 401",
    )

    # =========================================================
    # OBSERVABILIDAD
    # =========================================================

    logs_dir: Path = Field(
        default=Path("runtime/logs"), env="LOGS_DIR", description="Directorio de logs"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", env="LOG_LEVEL")

    # =========================================================
    # VALIDACIONES CUSTOM
    # =========================================================

    @validator("database_url")
    def validate_database_url(cls, v):
        """Valida formato de URL de base de datos."""
        if not v.startswith(("sqlite:///", "postgresql://", "postgresql+psycopg2://")):
            raise ValueError(
                "database_url debe empezar con sqlite:///, postgresql:// o postgresql+psycopg2://"
            )
        return v

    @validator("jwt_secret_key")
    def validate_jwt_secret(cls, v, values):
        """Valida que JWT secret no sea el default en producción."""
        if (
            values.get("environment") == "production"
            and v == "change_this_secret_key_in_production"
        ):
            raise ValueError("JWT_SECRET_KEY debe ser cambiada en producción")
        return v

    @validator("debug")
    def validate_debug(cls, v, values):
        """Debug debe estar deshabilitado en producción."""
        if values.get("environment") == "production" and v:
            raise ValueError("DEBUG debe estar deshabilitado en producción")
        return v

    @validator("storage_dir", "logs_dir")
    def validate_directories(cls, v):
        """Convierte strings a Path si es necesario."""
        if isinstance(v, str):
            return Path(v)
        return v

    # =========================================================
    # PROPIEDADES COMPUTADAS
    # =========================================================

    @property
    def is_production(self) -> bool:
        """Verifica si está en producción."""
        return self.environment == "production"

    @property
    def uses_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")

    @property
    def max_tamano_imagen_bytes(self) -> int:
        return self.max_tamano_imagen_mb * 1024 * 1024

    # =========================================================
    # CONFIGURACIÓN DE PYDANTIC
    # =========================================================

    # Variables extra en `.env` (ej: las que solo usa la UI) se ignoran.
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )


# =========================================================
# INSTANCIA GLOBAL (SINGLETON)
# =========================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Obtiene la instancia global de configuración (singleton).

    Returns:
        Settings: Configuración global validada
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


# Atajo para importación
settings = get_settings()


# =========================================================
# HELPERS
# =========================================================


def reload_settings() -> Settings:
    """
    Recarga la configuración (útil para tests).

    Returns:
        Settings: Nueva instancia de configuración
    """
    global _settings, settings
    _settings = None
    settings = get_settings()
    return settings


def print_config() -> None:
    """Imprime configuración actual (sin secrets)."""
    config = get_settings()

    print("\n" + "=" * 60)
    print("SISTEMA DE REPORTES ACM - CONFIGURACIÓN")
    print("=" * 60)
    print(f"Environment:     {config.environment}")
    print(f"Debug:           {config.debug}")
    print(f"Version:         {config.app_version}")
    print(f"Database:        {config.database_url.split('/')[-1]}")
    print(f"Storage:         {config.storage_dir}")
    print(f"Rate Limiting:   {config.rate_limit_enabled}")
    print(f"Rol registro:    {config.rol_registro_por_defecto}")
    print(f"Log Level:       {config.log_level}")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    print_config()
