"""
Inicialización de la base de datos.

- Crea todas las tablas definidas en los modelos
- Carga el catálogo base de leyes/normas si está vacío
- Crea el administrador inicial si ADMIN_EMAIL y ADMIN_PASSWORD están definidos

Uso: python -m app.core.init_db
"""
import re
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import Base, get_engine, get_session
from app.core.logger import get_logger
from app.core.security import hash_password
from app.models.hoja_vida import HojaVida  # noqa: F401
from app.models.ley_norma import ArticuloLeyNorma, LeyNorma, ReporteLeyNorma  # noqa: F401
from app.models.reporte import ImagenReporte, Reporte  # noqa: F401
from app.models.usuario import TokenReactivacion, Usuario  # noqa: F401

logger = get_logger()

# (nombre, categoria, descripcion) -> artículos "Art. N - descripción"
CATALOGO_BASE: Dict[Tuple[str, str, str], List[str]] = {
    ("Constitución del Ecuador", "Constitucional",
     "Constitución de la República del Ecuador"): [
        "Art. 3 - Seguridad y convivencia a través del estado",
        "Art. 10 - Titularidad de derechos",
        "Art. 11 - Derecho de igualdad y no discriminación",
        "Art. 226 - Principio de legalidad y competencias",
        "Art. 264 - Competencias exclusivas de los gobiernos municipales",
    ],
    ("COIP - Código Orgánico Integral Penal", "Penal",
     "Código Orgánico Integral Penal"): [
        "Art. 205 - Ocupación, uso indebido de suelo o tránsito de vía pública",
        "Art. 207 - Invasión de áreas de importancia ecológica o de uso público",
        "Art. 282 - Destrucción de señalización de tránsito",
        "Art. 389 - Comercialización ilícita de productos",
        "Art. 393 - Venta de productos en mal estado",
        "Art. 398 - Contaminación del ambiente",
    ],
    ("COESCOP - Código Orgánico de las Entidades de Seguridad Ciudadana", "Seguridad",
     "Código Orgánico de las Entidades de Seguridad Ciudadana y Orden Público"): [
        "Art. 45 - Atribuciones del Control Municipal",
        "Art. 46 - Control del espacio público",
        "Art. 47 - Prevención de infracciones",
        "Art. 48 - Colaboración con autoridades",
        "Art. 52 - Uso progresivo de la fuerza",
        "Art. 163 - Régimen disciplinario",
    ],
    ("Ordenanza Municipal de Control y Espacio Público", "Municipal",
     "Ordenanza de uso y control del espacio público de Guayaquil"): [
        "Art. 3 - Uso adecuado del espacio público",
        "Art. 5 - Prohibición de venta ambulante no autorizada",
        "Art. 6 - Prohibición de construcciones no autorizadas",
        "Art. 8 - Control de establecimientos comerciales",
        "Art. 9 - Áreas verdes y parques",
        "Art. 12 - Sanciones por ocupación indebida del espacio público",
        "Art. 13 - Mobiliario urbano",
        "Art. 15 - Horarios de funcionamiento de comercios",
        "Art. 16 - Propaganda y publicidad en vía pública",
        "Art. 18 - Requisitos para permisos de funcionamiento",
        "Art. 20 - Permisos para eventos en espacios públicos",
        "Art. 22 - Procedimiento de decomiso",
    ],
    ("Ley Orgánica de Transporte Terrestre", "Transporte",
     "Ley Orgánica de Transporte Terrestre, Tránsito y Seguridad Vial"): [
        "Art. 140 - Transporte comercial no autorizado",
        "Art. 142 - Zonas de carga y descarga",
        "Art. 211 - Estacionamiento en vía pública",
        "Art. 215 - Vehículos abandonados",
        "Art. 385 - Sanciones por mal estacionamiento",
        "Art. 389 - Obstaculización de vía pública",
    ],
}

_ARTICULO = re.compile(r"^Art\.\s*(\S+)\s*-\s*(.+)$")


def crear_tablas() -> List[str]:
    Base.metadata.create_all(bind=get_engine())
    return sorted(Base.metadata.tables.keys())


def cargar_catalogo(db: Session) -> int:
    """Inserta el catálogo base solo si no hay ninguna ley. Devuelve las leyes creadas."""
    if db.query(LeyNorma.id).first() is not None:
        return 0

    for (nombre, categoria, descripcion), articulos in CATALOGO_BASE.items():
        ley = LeyNorma(nombre=nombre, categoria=categoria, descripcion=descripcion)
        for texto in articulos:
            numero, corta = _ARTICULO.match(texto).groups()
            ley.articulos.append(
                ArticuloLeyNorma(numero_articulo=numero, descripcion_corta=corta, contenido=texto)
            )
        db.add(ley)
    db.flush()
    return len(CATALOGO_BASE)


def crear_admin(db: Session) -> bool:
    config = get_settings()
    if not config.admin_email or not config.admin_password:
        return False
    email = config.admin_email.strip().lower()
    if db.query(Usuario.id).filter(Usuario.email == email).first() is not None:
        return False

    db.add(
        Usuario(
            email=email,
            password_hash=hash_password(config.admin_password),
            nombre_completo=config.admin_nombre.upper(),
            cedula=config.admin_cedula,
            rol="admin",
            cuenta_activa=True,
        )
    )
    db.flush()
    return True


def init_db() -> None:
    """Idempotente: se ejecuta en cada arranque de la API."""
    tablas = crear_tablas()
    with get_session() as db:
        leyes = cargar_catalogo(db)
        admin = crear_admin(db)
    logger.info(
        "Base de datos inicializada",
        action="init_db",
        tablas=len(tablas),
        leyes_cargadas=leyes,
        admin_creado=admin,
    )


def main():
    init_db()
    tablas = sorted(Base.metadata.tables.keys())
    print("✅ Tablas creadas / registradas en SQLAlchemy:")
    for table in tablas:
        print(f"   - {table}")
    print(f"\n📊 Total tablas: {len(tablas)}")


if __name__ == "__main__":
    main()
