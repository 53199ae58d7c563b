from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from app.api.auth import router as auth_router
from app.api.health import router as health_router
from app.api.hojas_vida import router as hojas_vida_router
from app.api.leyes_normas import router as leyes_normas_router
from app.api.reportes import router as reportes_router
from app.api.respuestas import respuesta_error
from app.api.usuarios import router as usuarios_router
from app.core.config import get_settings
from app.core.exceptions import AcmException
from app.core.init_db import init_db
from app.core.logger import get_logger
from app.core.security import limiter


# =========================================================
# CARGA DE ENTORNO
# =========================================================

load_dotenv()

settings = get_settings()
logger = get_logger()

MENSAJE_ERROR_INTERNO = "Error interno del servidor"


# =========================================================
# FASTAPI APP (ENTRYPOINT ASGI)
# =========================================================

app = FastAPI(title=settings.app_name, version=settings.app_version)

# CORS
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Rate limiting (slowapi)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Bucket de archivos: imágenes y documentos generados
settings.storage_dir.mkdir(parents=True, exist_ok=True)
app.mount(
    settings.storage_public_url,
    StaticFiles(directory=str(settings.storage_dir)),
    name="storage",
)

app.include_router(auth_router)
app.include_router(usuarios_router)
app.include_router(reportes_router)
app.include_router(leyes_normas_router)
app.include_router(hojas_vida_router)
app.include_router(health_router)


# =========================================================
# EXCEPTION HANDLERS (sobre {success: false, message, ...})
# =========================================================

@app.exception_handler(AcmException)
async def acm_exception_handler(request: Request, exc: AcmException):
    if exc.http_status >= 500:
        logger.error(
            exc.message,
            action="api_error",
            path=request.url.path,
            error_code=exc.code,
            error=exc.original_error or exc,
        )
        return JSONResponse(respuesta_error(exc.message), status_code=exc.http_status)

    logger.warning(
        exc.message, action="api_error", path=request.url.path, error_code=exc.code
    )
    return JSONResponse(respuesta_error(exc.message, **exc.details), status_code=exc.http_status)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errores = {}
    for error in exc.errors():
        campo = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path", "form"))
        errores[campo or "request"] = error.get("msg", "Valor inválido")
    return JSONResponse(
        respuesta_error("Datos de entrada inválidos", errores=errores), status_code=400
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    mensaje = exc.detail if isinstance(exc.detail, str) else "Error en la petición"
    return JSONResponse(respuesta_error(mensaje), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit excedido", action="rate_limit", path=request.url.path)
    return JSONResponse(
        respuesta_error("Demasiadas solicitudes, intente más tarde"), status_code=429
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Excepción no controlada", action="api_error", path=request.url.path, error=exc
    )
    return JSONResponse(respuesta_error(MENSAJE_ERROR_INTERNO), status_code=500)


# =========================================================
# ARRANQUE
# =========================================================

@app.on_event("startup")
def on_startup():
    init_db()
    logger.info(
        "API iniciada",
        action="startup",
        environment=settings.environment,
        version=settings.app_version,
    )
