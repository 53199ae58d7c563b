"""
Servicio de usuarios: registro, sesiones, perfil y administración.

La unicidad de email y cédula se comprueba aquí antes de insertar y la
garantiza además la restricción UNIQUE de la tabla: una carrera entre dos
registros simultáneos acaba en IntegrityError, que se traduce al mismo
409 que la comprobación previa.
"""
import secrets
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.exceptions import (
    CedulaDuplicadaException,
    CredencialesInvalidasException,
    CuentaInactivaException,
    EmailDuplicadoException,
    PermisoDenegadoException,
    TokenExpiredException,
    AutenticacionException,
    UsuarioNoEncontradoException,
    ValidacionException,
)
from app.core.security import (
    AuthContext,
    create_session,
    hash_password,
    resolve_usuario,
    verify_password,
)
from app.models.reporte import Reporte
from app.models.usuario import ROLES_USUARIO, TokenReactivacion, Usuario
from app.schemas import RegistroRequest
from app.services.base import BaseService

# Campos que nunca se cambian desde el perfil
CAMPOS_PROTEGIDOS_PERFIL = {"id", "email", "cedula", "rol", "password", "password_hash",
                            "cuenta_activa", "sesion_version", "created_at"}

# Lo único que un no-admin puede tocar vía PUT /usuarios/{id}
CAMPOS_EDITABLES_PROPIOS = {"telefono", "direccion", "fecha_nacimiento",
                            "lugar_nacimiento", "estado_civil"}

CAMPOS_PERFIL = {"nombre_completo", "telefono", "fecha_ingreso", "cargo", "anio_graduacion",
                 "direccion", "fecha_nacimiento", "lugar_nacimiento", "estado_civil"}

LONGITUD_MINIMA_PASSWORD = 6


def normalizar_email(email: str) -> str:
    return email.strip().lower()


class UsuarioService(BaseService):
    """Usuarios y sesiones."""

    # =========================================================
    # DISPONIBILIDAD
    # =========================================================

    def email_disponible(self, email: str) -> bool:
        """True si ningún usuario tiene ese email (sin distinguir mayúsculas)."""
        existe = (
            self.db.query(Usuario.id)
            .filter(func.lower(Usuario.email) == normalizar_email(email))
            .first()
        )
        return existe is None

    def cedula_disponible(self, cedula: str) -> bool:
        existe = self.db.query(Usuario.id).filter(Usuario.cedula == cedula.strip()).first()
        return existe is None

    # =========================================================
    # REGISTRO Y SESIÓN
    # =========================================================

    def registrar(self, datos: RegistroRequest) -> Dict[str, Any]:
        """
        Crea una cuenta nueva.

        El rol nunca viene de la petición: se asigna el configurado en
        ROL_REGISTRO_POR_DEFECTO.

        Raises:
            EmailDuplicadoException: email ya registrado (campo="email")
            CedulaDuplicadaException: cédula ya registrada (campo="cedula")
        """
        email = normalizar_email(datos.email)
        cedula = datos.cedula.strip()

        if not self.email_disponible(email):
            self._log_info("Registro rechazado: email duplicado", action="usuario_register_conflict",
                           campo="email")
            raise EmailDuplicadoException(email)

        existente = self.db.query(Usuario).filter(Usuario.cedula == cedula).first()
        if existente is not None:
            self._log_info("Registro rechazado: cédula duplicada", action="usuario_register_conflict",
                           campo="cedula")
            raise CedulaDuplicadaException(
                cedula,
                usuario_existente={
                    "nombre": existente.nombre_completo,
                    "email": existente.email,
                },
            )

        usuario = Usuario(
            email=email,
            password_hash=hash_password(datos.password),
            nombre_completo=datos.nombre_completo.strip().upper(),
            cedula=cedula,
            rol=get_settings().rol_registro_por_defecto,
            telefono=datos.telefono or None,
            fecha_ingreso=datos.fecha_ingreso or None,
            cargo=datos.cargo or None,
            anio_graduacion=datos.anio_graduacion or None,
            cuenta_activa=True,
        )
        self.db.add(usuario)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            self._log_warning("Registro concurrente duplicado", action="usuario_register_race",
                              error=str(e.orig))
            if not self.email_disponible(email):
                raise EmailDuplicadoException(email)
            raise CedulaDuplicadaException(cedula)
        self.db.refresh(usuario)

        self._log_info("Usuario registrado", action="usuario_register", usuario_id=usuario.id,
                       rol=usuario.rol)
        return {"usuario": usuario.to_dict(), "session": create_session(usuario)}

    def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Raises:
            ValidacionException: faltan datos (400)
            CredencialesInvalidasException: 401
            CuentaInactivaException: 401
        """
        if not email or not password:
            raise ValidacionException("Email y contraseña son requeridos")

        usuario = (
            self.db.query(Usuario)
            .filter(func.lower(Usuario.email) == normalizar_email(email))
            .first()
        )
        if usuario is None or not verify_password(password, usuario.password_hash):
            self._log_warning("Login fallido", action="usuario_login_failed")
            raise CredencialesInvalidasException()

        if not usuario.cuenta_activa:
            self._log_warning("Login de cuenta inactiva", action="usuario_login_inactive",
                              usuario_id=usuario.id)
            raise CuentaInactivaException()

        usuario.ultimo_acceso = datetime.utcnow()
        self.db.commit()

        self._log_info("Login correcto", action="usuario_login", usuario_id=usuario.id)
        return {"usuario": usuario.to_dict(), "session": create_session(usuario)}

    def refrescar_sesion(self, refresh_token: Optional[str]) -> Dict[str, Any]:
        """
        Emite una sesión nueva a partir de un refresh token vigente.

        Cualquier fallo del token (expirado, firma, sesión cerrada) se
        presenta al cliente como sesión expirada.
        """
        if not refresh_token:
            raise ValidacionException("Refresh token requerido")

        try:
            usuario = resolve_usuario(self.db, refresh_token, expected_type="refresh")
        except CuentaInactivaException:
            raise
        except AutenticacionException:
            self._log_info("Refresh rechazado", action="token_refresh_failed")
            raise TokenExpiredException()

        self._log_info("Sesión refrescada", action="token_refresh", usuario_id=usuario.id)
        return {"usuario": usuario.to_dict(), "session": create_session(usuario)}

    def logout(self, usuario: Usuario) -> None:
        """Invalida todos los tokens emitidos hasta ahora."""
        usuario.sesion_version += 1
        self.db.commit()
        self._log_info("Logout", action="usuario_logout", usuario_id=usuario.id)

    # =========================================================
    # PERFIL Y CONTRASEÑAS
    # =========================================================

    def actualizar_perfil(self, usuario: Usuario, cambios: Dict[str, Any]) -> Dict[str, Any]:
        """Aplica cambios de perfil descartando los campos protegidos."""
        aplicados = self._aplicar_cambios(usuario, cambios, CAMPOS_PERFIL - CAMPOS_PROTEGIDOS_PERFIL)
        self.db.commit()
        self.db.refresh(usuario)
        self._log_info("Perfil actualizado", action="usuario_profile_update",
                       usuario_id=usuario.id, campos=sorted(aplicados))
        return usuario.to_dict()

    def cambiar_contrasena(
        self,
        usuario: Usuario,
        contrasena_actual: Optional[str],
        nueva_contrasena: Optional[str],
        confirmar_contrasena: Optional[str],
    ) -> None:
        if not contrasena_actual or not nueva_contrasena or not confirmar_contrasena:
            raise ValidacionException("Todos los campos son requeridos")
        self._validar_nueva_contrasena(nueva_contrasena, confirmar_contrasena)

        if not verify_password(contrasena_actual, usuario.password_hash):
            raise ValidacionException(
                "La contraseña actual es incorrecta",
                errores={"contrasena_actual": "La contraseña actual es incorrecta"},
            )

        usuario.password_hash = hash_password(nueva_contrasena)
        usuario.sesion_version += 1
        self.db.commit()
        self._log_info("Contraseña cambiada", action="usuario_password_change",
                       usuario_id=usuario.id)

    def recuperar_contrasena(
        self,
        email: Optional[str],
        nueva_contrasena: Optional[str],
        confirmar_contrasena: Optional[str],
    ) -> None:
        """
        Restablece la contraseña de una cuenta activa.

        No se envía ningún correo: el flujo de verificación de identidad
        queda fuera de este sistema.
        """
        if not email or not nueva_contrasena or not confirmar_contrasena:
            raise ValidacionException("Todos los campos son requeridos")
        self._validar_nueva_contrasena(nueva_contrasena, confirmar_contrasena)

        usuario = self._buscar_por_email(email)
        if usuario is None:
            raise UsuarioNoEncontradoException()
        if not usuario.cuenta_activa:
            raise ValidacionException("La cuenta está inactiva. Solicite la reactivación.")

        usuario.password_hash = hash_password(nueva_contrasena)
        usuario.sesion_version += 1
        self.db.commit()
        self._log_info("Contraseña restablecida", action="usuario_password_reset",
                       usuario_id=usuario.id)

    def solicitar_reactivacion(self, email: Optional[str]) -> Dict[str, Any]:
        """Crea un token de reactivación válido `reactivacion_token_horas`."""
        if not email:
            raise ValidacionException("Email requerido")

        usuario = self._buscar_por_email(email)
        if usuario is None:
            raise UsuarioNoEncontradoException()
        if usuario.cuenta_activa:
            raise ValidacionException("La cuenta ya está activa")

        expira_en = datetime.utcnow() + timedelta(hours=get_settings().reactivacion_token_horas)
        token = TokenReactivacion(
            usuario_id=usuario.id,
            token=secrets.token_urlsafe(32),
            expira_en=expira_en,
        )
        self.db.add(token)
        self.db.commit()

        self._log_info("Reactivación solicitada", action="usuario_reactivation_request",
                       usuario_id=usuario.id)
        return {"email": usuario.email, "expira_en": expira_en.isoformat()}

    # =========================================================
    # ADMINISTRACIÓN
    # =========================================================

    def obtener(self, usuario_id: str, ctx: Optional[AuthContext] = None) -> Usuario:
        """
        Raises:
            PermisoDenegadoException: si ctx no es admin ni el propio usuario
            UsuarioNoEncontradoException
        """
        if ctx is not None and not ctx.puede_gestionar(usuario_id):
            raise PermisoDenegadoException()
        usuario = self.db.query(Usuario).filter(Usuario.id == usuario_id).first()
        if usuario is None:
            raise UsuarioNoEncontradoException(usuario_id)
        return usuario

    def listar(self) -> List[Dict[str, Any]]:
        usuarios = self.db.query(Usuario).order_by(Usuario.created_at.desc()).all()
        return [u.to_dict() for u in usuarios]

    def buscar(
        self,
        rol: Optional[str] = None,
        cuenta_activa: Optional[bool] = None,
        nombre: Optional[str] = None,
        cedula: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = self.db.query(Usuario)
        if rol:
            query = query.filter(Usuario.rol == rol)
        if cuenta_activa is not None:
            query = query.filter(Usuario.cuenta_activa == cuenta_activa)
        if nombre:
            query = query.filter(Usuario.nombre_completo.ilike(f"%{nombre}%"))
        if cedula:
            query = query.filter(Usuario.cedula == cedula)
        return [u.to_dict() for u in query.order_by(Usuario.created_at.desc()).all()]

    def actualizar(self, usuario_id: str, cambios: Dict[str, Any], ctx: AuthContext) -> Dict[str, Any]:
        usuario = self.obtener(usuario_id, ctx)
        permitidos = CAMPOS_PERFIL if ctx.es_admin else CAMPOS_EDITABLES_PROPIOS
        aplicados = self._aplicar_cambios(usuario, cambios, permitidos)
        self.db.commit()
        self.db.refresh(usuario)
        self._log_info("Usuario actualizado", action="usuario_update", usuario_id=usuario.id,
                       por=ctx.usuario_id, campos=sorted(aplicados))
        return usuario.to_dict()

    def cambiar_estado_cuenta(self, usuario_id: str, activa: bool, ctx: AuthContext) -> Dict[str, Any]:
        usuario = self.obtener(usuario_id)
        if not activa and usuario.es_admin and self._admins_activos() <= 1:
            raise ValidacionException("No se puede desactivar al último administrador activo")

        usuario.cuenta_activa = activa
        if not activa:
            usuario.sesion_version += 1
        else:
            self.db.query(TokenReactivacion).filter(
                TokenReactivacion.usuario_id == usuario.id,
                TokenReactivacion.usado.is_(False),
            ).update({"usado": True}, synchronize_session=False)
        self.db.commit()
        self.db.refresh(usuario)

        self._log_info("Estado de cuenta cambiado", action="usuario_account_state",
                       usuario_id=usuario.id, activa=activa, por=ctx.usuario_id)
        return usuario.to_dict()

    def cambiar_rol(self, usuario_id: str, rol: str, ctx: AuthContext) -> Dict[str, Any]:
        if rol not in ROLES_USUARIO:
            raise ValidacionException(
                f"Rol inválido. Roles permitidos: {', '.join(ROLES_USUARIO)}",
                errores={"rol": "Rol inválido"},
            )
        usuario = self.obtener(usuario_id)
        if (
            usuario.es_admin
            and rol != "admin"
            and usuario.cuenta_activa
            and self._admins_activos() <= 1
        ):
            raise ValidacionException("No se puede quitar el rol al último administrador activo")

        anterior = usuario.rol
        usuario.rol = rol
        # Los tokens llevan el rol: obligar a iniciar sesión de nuevo
        usuario.sesion_version += 1
        self.db.commit()
        self.db.refresh(usuario)

        self._log_info("Rol cambiado", action="usuario_role_change", usuario_id=usuario.id,
                       rol_anterior=anterior, rol_nuevo=rol, por=ctx.usuario_id)
        return usuario.to_dict()

    def reportes_de_usuario(self, usuario_id: str, ctx: AuthContext) -> Dict[str, Any]:
        self.obtener(usuario_id, ctx)
        reportes = (
            self.db.query(Reporte)
            .filter(Reporte.usuario_id == usuario_id)
            .order_by(Reporte.created_at.desc())
            .all()
        )
        hace_un_mes = datetime.utcnow() - timedelta(days=30)
        return {
            "reportes": [
                {
                    "id": r.id,
                    "zona": r.zona,
                    "distrito": r.distrito,
                    "circuito": r.circuito,
                    "fecha": r.fecha.isoformat(),
                    "estado": r.estado,
                    "created_at": r.created_at.isoformat(),
                }
                for r in reportes
            ],
            "total": len(reportes),
            "ultimo_mes": sum(1 for r in reportes if r.created_at >= hace_un_mes),
        }

    def reporte_actividad(self, usuario_id: str, ctx: AuthContext) -> Dict[str, Any]:
        usuario = self.obtener(usuario_id, ctx)
        reportes = self.db.query(Reporte).filter(Reporte.usuario_id == usuario_id).all()
        ultimo = max((r.created_at for r in reportes), default=None)
        return {
            "usuario": {
                "id": usuario.id,
                "nombre_completo": usuario.nombre_completo,
                "rol": usuario.rol,
                "ultimo_acceso": usuario.ultimo_acceso.isoformat() if usuario.ultimo_acceso else None,
            },
            "total_reportes": len(reportes),
            "por_estado": dict(Counter(r.estado for r in reportes)),
            "por_mes": dict(sorted(Counter(r.fecha.strftime("%Y-%m") for r in reportes).items())),
            "ultimo_reporte": ultimo.isoformat() if ultimo else None,
        }

    def estadisticas(self) -> Dict[str, Any]:
        usuarios = self.db.query(Usuario.rol, Usuario.cuenta_activa).all()
        activos = sum(1 for _, activa in usuarios if activa)
        return {
            "total": len(usuarios),
            "por_rol": dict(Counter(rol for rol, _ in usuarios)),
            "activos": activos,
            "inactivos": len(usuarios) - activos,
        }

    # =========================================================
    # HELPERS
    # =========================================================

    def _buscar_por_email(self, email: str) -> Optional[Usuario]:
        return (
            self.db.query(Usuario)
            .filter(func.lower(Usuario.email) == normalizar_email(email))
            .first()
        )

    def _admins_activos(self) -> int:
        return (
            self.db.query(Usuario)
            .filter(Usuario.rol == "admin", Usuario.cuenta_activa.is_(True))
            .count()
        )

    @staticmethod
    def _validar_nueva_contrasena(nueva: str, confirmacion: str) -> None:
        if len(nueva) < LONGITUD_MINIMA_PASSWORD:
            raise ValidacionException(
                f"La contraseña debe tener al menos {LONGITUD_MINIMA_PASSWORD} caracteres",
                errores={"nueva_contrasena": "Mínimo 6 caracteres"},
            )
        if nueva != confirmacion:
            raise ValidacionException(
                "Las contraseñas no coinciden",
                errores={"confirmar_contrasena": "Las contraseñas no coinciden"},
            )

    @staticmethod
    def _aplicar_cambios(usuario: Usuario, cambios: Dict[str, Any], permitidos: set) -> List[str]:
        aplicados = []
        for campo, valor in cambios.items():
            if campo not in permitidos:
                continue
            if campo == "nombre_completo" and isinstance(valor, str):
                valor = valor.strip().upper()
                if not valor:
                    continue
            setattr(usuario, campo, valor)
            aplicados.append(campo)
        if aplicados:
            usuario.updated_at = datetime.utcnow()
        return aplicados
