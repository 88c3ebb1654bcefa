"""
Punto de entrada principal de la aplicacion FastAPI.

Aqui se:
1. Crea la instancia de la aplicacion FastAPI.
2. Configuran los middlewares (CORS, tope del body, log de peticiones).
3. Registran los exception handlers ({"error": ...} para todo).
4. Registran las rutas de comentarios y el health check.

Arquitectura de la aplicacion:
------------------------------
    main.py (punto de entrada)
        |
        +-- routes/
        |    +-- comments.py     (GET/POST/DELETE /api/comments)
        |
        +-- services/
        |    +-- validator.py    (sanitizacion y validacion)
        |    +-- store.py        (document store: disco o S3)
        |    +-- repository.py   (leer-modificar-escribir)
        |
        +-- models/
        |    +-- schemas.py
        |
        +-- config.py            (configuracion centralizada)
        +-- limiter.py           (rate limiting)
        +-- errors.py            (taxonomia de errores)
        +-- middleware.py        (tope del body)
        +-- logging_config.py
        +-- client.py            (cliente HTTP de la API)

El flujo de una peticion HTTP es:
    Cliente -> CORS -> log -> tope del body -> rate limiter -> endpoint -> respuesta
"""

import uvicorn
from fastapi import FastAPI, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from comment_board.config import settings
from comment_board.errors import (
    CommentBoardError,
    NotFoundError,
    comment_board_error_handler,
    http_exception_handler,
    rate_limit_exceeded_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from comment_board.limiter import COMMENTS_SCOPE, STUDENT_HEADER, limiter
from comment_board.logging_config import get_logger, setup_logging
from comment_board.middleware import BodySizeLimitMiddleware
from comment_board.routes.comments import router as comments_router

setup_logging(settings.LOG_LEVEL, production=settings.LOG_JSON)
request_logger = get_logger("requests")

app = FastAPI(title="Student Comment Board")

# ---------- Rate limiter ----------

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# ---------- Errores ----------

app.add_exception_handler(CommentBoardError, comment_board_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# ---------- Middlewares ----------

# Rechaza con 413 los bodies de mas de MAX_BODY_BYTES (4 KB), traigan o no
# Content-Length.
app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.MAX_BODY_BYTES)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_logger.info(
        "%s %s - Student: %s",
        request.method,
        request.url.path,
        request.headers.get(STUDENT_HEADER) or "none",
    )
    return await call_next(request)


# Se agrega al final para que sea el middleware mas externo: hasta las
# respuestas 413 llevan los headers CORS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Health Check ----------

@app.get("/api/health")
async def health_check():
    """Retorna {"status": "ok"} si el servidor esta funcionando."""
    return {"status": "ok"}


# ---------- Registro de rutas ----------

app.include_router(comments_router)


# Cualquier otra ruta bajo /api tambien consume la cuota de la identidad
# antes de responder 404. Va despues de include_router para no tapar las
# rutas reales.
@app.api_route(
    "/api/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"],
    include_in_schema=False,
)
@limiter.shared_limit(settings.RATE_LIMIT, scope=COMMENTS_SCOPE)
async def unmatched_api_route(request: Request, response: Response, path: str):
    raise NotFoundError("Endpoint not found")


def run():
    """Arranca el servidor con uvicorn en el puerto PORT."""
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
