"""
ENDPOINTS DEL CATÁLOGO DE LEYES / NORMAS.

Lectura para cualquier sesión (y variantes públicas para el formulario
anónimo); altas, cambios y bajas solo para administradores.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.respuestas import respuesta_ok
from app.core.database import get_db
from app.core.security import AuthContext, require_admin, require_auth
from app.schemas import ArticuloCreate, ArticuloUpdate, LeyNormaCreate, LeyNormaUpdate
from app.services.ley_norma_service import LeyNormaService

router = APIRouter(
    prefix="/leyes-normas",
    tags=["leyes-normas"],
)


# =========================================================
# CONSULTAS
# =========================================================

@router.get("")
def listar(ctx: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    leyes = LeyNormaService(db).listar()
    return respuesta_ok(leyes, total=len(leyes))


@router.get("/publico")
def listar_publico(db: Session = Depends(get_db)):
    leyes = LeyNormaService(db).listar()
    return respuesta_ok(leyes, total=len(leyes))


@router.get("/categorias")
def categorias(ctx: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return respuesta_ok(LeyNormaService(db).categorias())


@router.get("/categorias/publico")
def categorias_publico(db: Session = Depends(get_db)):
    return respuesta_ok(LeyNormaService(db).categorias())


@router.get("/categoria/{categoria}")
def por_categoria(
    categoria: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    leyes = LeyNormaService(db).por_categoria(categoria)
    return respuesta_ok(leyes, total=len(leyes))


@router.get("/buscar")
def buscar(
    termino: str = Query(""),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Coincidencia parcial en nombre o descripción (mínimo 3 caracteres)."""
    leyes = LeyNormaService(db).buscar(termino)
    return respuesta_ok(leyes, total=len(leyes))


@router.get("/estructura-completa")
def estructura_completa(ctx: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return respuesta_ok(LeyNormaService(db).estructura_completa())


@router.get("/mas-utilizadas")
def mas_utilizadas(
    limite: int = Query(10, ge=1, le=100),
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return respuesta_ok(LeyNormaService(db).mas_utilizadas(limite))


@router.get("/{ley_norma_id}")
def obtener(
    ley_norma_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """400 si el id no es un UUID, 404 si no existe."""
    ley = LeyNormaService(db).obtener(ley_norma_id)
    return respuesta_ok(ley.to_dict(con_articulos=True))


@router.get("/{ley_norma_id}/articulos")
def articulos(
    ley_norma_id: str,
    ctx: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    data = LeyNormaService(db).articulos(ley_norma_id)
    return respuesta_ok(data, total=len(data))


# =========================================================
# CRUD (ADMIN)
# =========================================================

@router.post("", status_code=201)
def crear(
    payload: LeyNormaCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return respuesta_ok(LeyNormaService(db).crear(payload), "Ley/norma creada exitosamente")


@router.put("/articulos/{articulo_id}")
def actualizar_articulo(
    articulo_id: str,
    payload: ArticuloUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = LeyNormaService(db).actualizar_articulo(articulo_id, payload)
    return respuesta_ok(data, "Artículo actualizado exitosamente")


@router.delete("/articulos/{articulo_id}")
def eliminar_articulo(
    articulo_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    LeyNormaService(db).eliminar_articulo(articulo_id)
    return respuesta_ok(None, "Artículo eliminado exitosamente")


@router.put("/{ley_norma_id}")
def actualizar(
    ley_norma_id: str,
    payload: LeyNormaUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = LeyNormaService(db).actualizar(ley_norma_id, payload)
    return respuesta_ok(data, "Ley/norma actualizada exitosamente")


@router.delete("/{ley_norma_id}")
def eliminar(
    ley_norma_id: str,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    LeyNormaService(db).eliminar(ley_norma_id)
    return respuesta_ok(None, "Ley/norma eliminada exitosamente")


@router.post("/{ley_norma_id}/articulos", status_code=201)
def agregar_articulo(
    ley_norma_id: str,
    payload: ArticuloCreate,
    ctx: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = LeyNormaService(db).agregar_articulo(ley_norma_id, payload)
    return respuesta_ok(data, "Artículo creado exitosamente")
