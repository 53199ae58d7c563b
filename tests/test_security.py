"""
Tests para hash de contraseñas, tokens JWT y AuthContext.
"""
from datetime import timedelta

import pytest

from app.core.exceptions import (
    CuentaInactivaException,
    InvalidTokenException,
    TokenExpiredException,
)
from app.core.security import (
    AuthContext,
    create_access_token,
    create_refresh_token,
    create_session,
    decode_token,
    hash_password,
    resolve_usuario,
    verify_password,
)


def test_password_hashing():
    """Test: Hash y verificación de passwords."""
    hashed = hash_password("Clave123")

    assert hashed != "Clave123"
    assert verify_password("Clave123", hashed)
    assert not verify_password("otra", hashed)


def test_access_token_lleva_usuario_rol_y_version(usuario_acm):
    """Test: Payload del token de acceso."""
    token, expira = create_access_token(usuario_acm)
    payload = decode_token(token)

    assert payload["sub"] == usuario_acm.id
    assert payload["rol"] == "acm"
    assert payload["type"] == "access"
    assert payload["ver"] == usuario_acm.sesion_version
    assert expira is not None


def test_token_expirado(usuario_acm):
    """Test: Token vencido."""
    token, _ = create_access_token(usuario_acm, expires_delta=timedelta(seconds=-1))

    with pytest.raises(TokenExpiredException):
        decode_token(token)


def test_token_de_otro_tipo(usuario_acm):
    """Test: Un refresh token no sirve como token de acceso."""
    refresh, _ = create_refresh_token(usuario_acm)

    with pytest.raises(InvalidTokenException):
        decode_token(refresh, expected_type="access")
    assert decode_token(refresh, expected_type="refresh")["sub"] == usuario_acm.id


def test_token_manipulado():
    with pytest.raises(InvalidTokenException):
        decode_token("no.es.un-token")


def test_session_formato_cliente(usuario_acm):
    session = create_session(usuario_acm)

    assert set(session) == {"access_token", "refresh_token", "token_type", "expires_at"}
    assert session["token_type"] == "bearer"
    assert isinstance(session["expires_at"], int)


def test_resolve_usuario_sesion_cerrada(db_session, usuario_acm):
    """Test: Tras un logout (sesion_version++) el token anterior deja de valer."""
    token, _ = create_access_token(usuario_acm)
    assert resolve_usuario(db_session, token).id == usuario_acm.id

    usuario_acm.sesion_version += 1
    db_session.commit()

    with pytest.raises(InvalidTokenException):
        resolve_usuario(db_session, token)


def test_resolve_usuario_cuenta_inactiva(db_session, nuevo_usuario):
    usuario = nuevo_usuario("inactivo@seguraep.gob.ec", "0934567890", activo=False)
    token, _ = create_access_token(usuario)

    with pytest.raises(CuentaInactivaException):
        resolve_usuario(db_session, token)


# =========================================================
# AUTH CONTEXT
# =========================================================

def test_contexto_publico():
    ctx = AuthContext.publico()

    assert ctx.es_publico
    assert not ctx.es_admin
    assert ctx.nombre_completo == "Usuario Público"
    assert ctx.cedula == "0000000000"
    assert not ctx.puede_gestionar(None)


def test_contexto_usuario(usuario_acm, otro_acm):
    ctx = AuthContext.desde_usuario(usuario_acm)

    assert not ctx.es_publico
    assert ctx.puede_gestionar(usuario_acm.id)
    assert not ctx.puede_gestionar(otro_acm.id)
    assert not ctx.puede_gestionar(None)


def test_contexto_admin(admin, usuario_acm):
    ctx = AuthContext.desde_usuario(admin)

    assert ctx.es_admin
    assert ctx.puede_gestionar(usuario_acm.id)
