"""
ENDPOINTS DE AUTENTICACIÓN.

Registro, login, refresco y cierre de sesión, perfil propio y
recuperación de cuenta. La lógica vive en UsuarioService; aquí solo se
traduce HTTP.
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from app.api.respuestas import respuesta_ok
from app.core.database import get_db
from app.core.security import get_current_usuario, limiter
from app.models.usuario import Usuario
from app.schemas import (
    CambioContrasenaRequest,
    LoginRequest,
    ReactivacionRequest,
    RecuperarContrasenaRequest,
    RefreshTokenRequest,
    RegistroRequest,
)
from app.services.usuario_service import UsuarioService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/register", status_code=201)
@limiter.limit("10/minute")
def register(
    request: Request,
    payload: RegistroRequest,
    db: Session = Depends(get_db),
):
    """
    Crea una cuenta con el rol por defecto y devuelve la sesión.

    409 con `campo` si el email o la cédula ya existen.
    """
    resultado = UsuarioService(db).registrar(payload)
    return respuesta_ok(resultado, "Usuario registrado exitosamente")


@router.post("/login")
@limiter.limit("20/minute")
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
):
    resultado = UsuarioService(db).login(payload.email, payload.password)
    return respuesta_ok(resultado, "Login exitoso")


@router.post("/refresh-token")
def refresh_token(payload: RefreshTokenRequest, db: Session = Depends(get_db)):
    """Intercambia un refresh token vigente por una sesión nueva."""
    resultado = UsuarioService(db).refrescar_sesion(payload.refresh_token)
    return respuesta_ok(resultado, "Sesión renovada")


@router.get("/verify-session")
def verify_session(usuario: Usuario = Depends(get_current_usuario)):
    return respuesta_ok({"valid": True, "usuario": usuario.to_dict()})


@router.get("/profile")
def get_profile(usuario: Usuario = Depends(get_current_usuario)):
    return respuesta_ok(usuario.to_dict())


@router.put("/profile")
def update_profile(
    cambios: Dict[str, Any] = Body(...),
    usuario: Usuario = Depends(get_current_usuario),
    db: Session = Depends(get_db),
):
    """id, email, cedula, rol, password y cuenta_activa se ignoran."""
    data = UsuarioService(db).actualizar_perfil(usuario, cambios)
    return respuesta_ok(data, "Perfil actualizado exitosamente")


@router.post("/change-password")
def change_password(
    payload: CambioContrasenaRequest,
    usuario: Usuario = Depends(get_current_usuario),
    db: Session = Depends(get_db),
):
    """Cierra todas las sesiones abiertas del usuario."""
    UsuarioService(db).cambiar_contrasena(
        usuario,
        payload.contrasena_actual,
        payload.nueva_contrasena,
        payload.confirmar_contrasena,
    )
    return respuesta_ok(None, "Contraseña actualizada exitosamente")


@router.post("/logout")
def logout(usuario: Usuario = Depends(get_current_usuario), db: Session = Depends(get_db)):
    UsuarioService(db).logout(usuario)
    return respuesta_ok(None, "Sesión cerrada exitosamente")


@router.post("/recuperar-contrasena")
@limiter.limit("5/minute")
def recuperar_contrasena(
    request: Request,
    payload: RecuperarContrasenaRequest,
    db: Session = Depends(get_db),
):
    UsuarioService(db).recuperar_contrasena(
        payload.email, payload.nueva_contrasena, payload.confirmar_contrasena
    )
    return respuesta_ok(None, "Contraseña restablecida exitosamente")


@router.post("/solicitar-reactivacion")
@limiter.limit("5/minute")
def solicitar_reactivacion(
    request: Request,
    payload: ReactivacionRequest,
    db: Session = Depends(get_db),
):
    data = UsuarioService(db).solicitar_reactivacion(payload.email)
    return respuesta_ok(data, "Solicitud de reactivación registrada")
