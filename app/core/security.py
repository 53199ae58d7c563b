"""
Sistema de seguridad del Sistema de Reportes ACM.

Incluye:
- Hash de contraseñas (bcrypt)
- Emisión y validación de tokens JWT (acceso + refresco)
- Contexto de autorización (AuthContext) para endpoints públicos y privados
- Rate limiting
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.exceptions import (
    AutenticacionException,
    CuentaInactivaException,
    InvalidTokenException,
    PermisoDenegadoException,
    TokenExpiredException,
)
from app.core.logger import get_logger
from app.models.usuario import Usuario

logger = get_logger()


# =========================================================
# CONFIGURACIÓN DE SEGURIDAD
# =========================================================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer opcional: los endpoints públicos también lo reciben
security = HTTPBearer(auto_error=False)


# =========================================================
# ROLES
# =========================================================


class UserRole(str, Enum):
    """Roles de usuario. PUBLICO es el rol del contexto sin sesión."""

    ACM = "acm"
    JEFE_PATRULLA = "jefe_patrulla"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    PUBLICO = "publico"


# Autor registrado en los reportes enviados sin sesión
NOMBRE_USUARIO_PUBLICO = "Usuario Público"
CEDULA_USUARIO_PUBLICO = "0000000000"


@dataclass(frozen=True)
class AuthContext:
    """
    Contexto de autorización de una petición.

    Es el único parámetro que distingue la ruta pública de la privada en
    lectura, búsqueda, exportación y estadísticas de reportes.
    """

    usuario_id: Optional[str] = None
    rol: str = UserRole.PUBLICO.value
    nombre_completo: str = NOMBRE_USUARIO_PUBLICO
    cedula: str = CEDULA_USUARIO_PUBLICO

    @classmethod
    def publico(cls) -> "AuthContext":
        return cls()

    @classmethod
    def desde_usuario(cls, usuario: Usuario) -> "AuthContext":
        return cls(
            usuario_id=usuario.id,
            rol=usuario.rol,
            nombre_completo=usuario.nombre_completo,
            cedula=usuario.cedula,
        )

    @property
    def es_publico(self) -> bool:
        return self.usuario_id is None

    @property
    def es_admin(self) -> bool:
        return self.rol == UserRole.ADMIN.value

    def puede_gestionar(self, propietario_id: Optional[str]) -> bool:
        """Admin, o el propio dueño del recurso."""
        return self.es_admin or (
            not self.es_publico and propietario_id is not None and propietario_id == self.usuario_id
        )


# =========================================================
# GESTIÓN DE PASSWORDS
# =========================================================


def hash_password(password: str) -> str:
    """
    Hashea un password.

    Args:
        password: Password en texto plano

    Returns:
        Hash del password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica un password contra su hash.

    Args:
        plain_password: Password en texto plano
        hashed_password: Hash del password

    Returns:
        True si coincide
    """
    return pwd_context.verify(plain_password, hashed_password)


# =========================================================
# JWT - CREACIÓN Y VALIDACIÓN
# =========================================================


def _create_token(usuario: Usuario, token_type: str, expires_delta: timedelta) -> tuple[str, datetime]:
    config = get_settings()
    now = datetime.utcnow()
    expire = now + expires_delta

    to_encode = {
        "sub": usuario.id,
        "rol": usuario.rol,
        "type": token_type,
        "ver": usuario.sesion_version,
        "iat": now,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, config.jwt_secret_key, algorithm=config.jwt_algorithm)
    return encoded_jwt, expire


def create_access_token(
    usuario: Usuario, expires_delta: Optional[timedelta] = None
) -> tuple[str, datetime]:
    """
    Crea un token JWT de acceso.

    Args:
        usuario: Usuario autenticado
        expires_delta: Tiempo de expiración custom

    Returns:
        (token, fecha de expiración)
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().jwt_access_token_expire_minutes)
    token, expire = _create_token(usuario, "access", expires_delta)

    logger.info(
        "Access token created",
        action="token_create",
        user_id=usuario.id,
        role=usuario.rol,
        expires_at=expire.isoformat(),
    )
    return token, expire


def create_refresh_token(
    usuario: Usuario, expires_delta: Optional[timedelta] = None
) -> tuple[str, datetime]:
    if expires_delta is None:
        expires_delta = timedelta(days=get_settings().jwt_refresh_token_expire_days)
    return _create_token(usuario, "refresh", expires_delta)


def create_session(usuario: Usuario) -> dict[str, Any]:
    """Par de tokens con el formato que espera el cliente."""
    access_token, expires_at = create_access_token(usuario)
    refresh_token, _ = create_refresh_token(usuario)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_at": int(expires_at.timestamp()),
    }


def decode_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decodifica y valida un token JWT.

    Args:
        token: Token JWT
        expected_type: "access" o "refresh"

    Returns:
        Payload del token

    Raises:
        InvalidTokenException: Si el token es inválido o de otro tipo
        TokenExpiredException: Si el token expiró
    """
    config = get_settings()
    try:
        payload = jwt.decode(token, config.jwt_secret_key, algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token", action="token_expired")
        raise TokenExpiredException()
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", action="token_invalid", error=str(e))
        raise InvalidTokenException(reason=str(e))

    if payload.get("type") != expected_type:
        raise InvalidTokenException(reason=f"Se esperaba un token de tipo {expected_type}")
    if not payload.get("sub"):
        raise InvalidTokenException(reason="Falta sub")

    return payload


def resolve_usuario(db: Session, token: str, expected_type: str = "access") -> Usuario:
    """
    Obtiene el usuario dueño de un token vigente.

    Raises:
        InvalidTokenException: usuario inexistente o sesión cerrada
        CuentaInactivaException: cuenta desactivada
    """
    payload = decode_token(token, expected_type)
    usuario = db.query(Usuario).filter(Usuario.id == payload["sub"]).first()

    if usuario is None:
        raise InvalidTokenException(reason="Usuario no encontrado")
    if payload.get("ver") != usuario.sesion_version:
        raise InvalidTokenException(reason="Sesión cerrada")
    if not usuario.cuenta_activa:
        raise CuentaInactivaException()

    return usuario


# =========================================================
# DEPENDENCIES PARA FASTAPI
# =========================================================


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Contexto de la petición.

    Sin cabecera Authorization → contexto público.
    Con token inválido o expirado → 401 (no se degrada a público).
    """
    if credentials is None or not credentials.credentials:
        return AuthContext.publico()

    usuario = resolve_usuario(db, credentials.credentials)
    return AuthContext.desde_usuario(usuario)


async def require_auth(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Exige sesión iniciada."""
    if ctx.es_publico:
        raise AutenticacionException("Token de acceso requerido", code="AUTH_REQUIRED")
    return ctx


async def require_admin(ctx: AuthContext = Depends(require_auth)) -> AuthContext:
    """Exige rol admin."""
    if not ctx.es_admin:
        logger.warning(
            "Insufficient role",
            action="role_denied",
            user_id=ctx.usuario_id,
            user_role=ctx.rol,
            required_role=UserRole.ADMIN.value,
        )
        raise PermisoDenegadoException("Se requiere rol de administrador")
    return ctx


async def get_current_usuario(
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> Usuario:
    """Fila completa del usuario autenticado (perfil, cambio de contraseña...)."""
    return db.query(Usuario).filter(Usuario.id == ctx.usuario_id).one()


# =========================================================
# RATE LIMITING
# =========================================================


def get_rate_limit_key(request: Request) -> str:
    """
    Genera key para rate limiting: usuario si hay token válido, si no IP.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            payload = decode_token(auth_header[7:])
            return f"user:{payload['sub']}"
        except AutenticacionException:
            pass

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.rate_limit_enabled,
)
