"""
ENDPOINTS DE USUARIOS.

Administración de cuentas (admin) y consultas sobre la propia cuenta.
Las comprobaciones de disponibilidad son públicas: las usa el formulario
de registro mientras el usuario escribe.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.api.respuestas import respuesta_ok
from app.core.database import get_db
from app.core.exceptions import ValidacionException
from app.core.security import AuthContext, require_admin, require_auth
from app.schemas import CambioRolRequest
from app.services.usuario_service import UsuarioService

router = APIRouter(
    prefix="/usuarios",
    tags=["usuarios"],
)


# =========================================================
# DISPONIBILIDAD (PÚBLICO)
# =========================================================

@router.get("/verificar-email")
def verificar_email(email: Optional[str] = Query(None), db: Session = Depends(get_db)):
    if not email:
        raise ValidacionException("Email requerido", errores={"email": "Campo requerido"})
    return respuesta_ok({"email": email, "disponible": UsuarioService(db).email_disponible(email)})


@router.get("/verificar-cedula")
def verificar_cedula(cedula: Optional[str] = Query(None), db: Session = Depends(get_db)):
    if not cedula:
        raise ValidacionException("Cédula requerida", errores={"cedula": "Campo requerido"})
    return respuesta_ok({"cedula": cedula, "disponible": UsuarioService(db).cedula_disponible(cedula)})


# =========================================================
# ADMINISTRACIÓN
# =========================================================

@router.get("")
def listar_usuarios(ctx: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    usuarios = UsuarioService(db).listar()
    return respuesta_ok(usuarios, total=len(usuarios))


@router.get("/buscar")
def buscar_usuarios(
    rol: Optional[str] = None,
    cuenta_activa: Optional[bool] = None,
    nombre: Optional[str] = None,
    cedula: Optional[str] = None,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    usuarios = UsuarioService(db).buscar(rol, cuenta_activa, nombre, cedula)
    return respuesta_ok(usuarios, total=len(usuarios))


@router.get("/estadisticas")
def estadisticas_usuarios(ctx: AuthContext = Depends(require_admin), db: Session = Depends(get_db)):
    return respuesta_ok(UsuarioService(db).estadisticas())


@router.get("/{usuario_id}")
def obtener_usuario(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Admin o el propio usuario."""
    return respuesta_ok(UsuarioService(db).obtener(usuario_id, ctx).to_dict())


@router.put("/{usuario_id}")
def actualizar_usuario(
    usuario_id: str,
    cambios: Dict[str, Any] = Body(...),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """
    Admin: cualquier campo de perfil.
    Propio usuario: solo datos de contacto y personales.
    """
    data = UsuarioService(db).actualizar(usuario_id, cambios, ctx)
    return respuesta_ok(data, "Usuario actualizado exitosamente")


@router.put("/{usuario_id}/desactivar")
def desactivar_usuario(
    usuario_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = UsuarioService(db).cambiar_estado_cuenta(usuario_id, False, ctx)
    return respuesta_ok(data, "Usuario desactivado exitosamente")


@router.put("/{usuario_id}/reactivar")
def reactivar_usuario(
    usuario_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = UsuarioService(db).cambiar_estado_cuenta(usuario_id, True, ctx)
    return respuesta_ok(data, "Usuario reactivado exitosamente")


@router.put("/{usuario_id}/cambiar-rol")
def cambiar_rol(
    usuario_id: str,
    payload: CambioRolRequest,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = UsuarioService(db).cambiar_rol(usuario_id, payload.rol, ctx)
    return respuesta_ok(data, "Rol actualizado exitosamente")


@router.get("/{usuario_id}/reportes")
def reportes_de_usuario(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    data = UsuarioService(db).reportes_de_usuario(usuario_id, ctx)
    return respuesta_ok(data["reportes"], total=data["total"], ultimo_mes=data["ultimo_mes"])


@router.get("/{usuario_id}/reporte-actividad")
def reporte_actividad(
    usuario_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return respuesta_ok(UsuarioService(db).reporte_actividad(usuario_id, ctx))
