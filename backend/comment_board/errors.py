"""
Taxonomia de errores de la API y sus exception handlers.

Cada error del dominio sabe su codigo HTTP. Los handlers de las rutas
solo lanzan la excepcion adecuada; los exception handlers registrados
en main.py la convierten en una respuesta JSON uniforme:

    {"error": "<mensaje>"}

    ClientInputError   -> 400  (falta un campo o es invalido)
    AuthFormatError    -> 401  (X-Student-Number con formato invalido)
    NotFoundError      -> 404  (el comentario a borrar no existe)
    RateLimitError     -> 429  (se excedio la cuota por minuto)
    InternalError      -> 500  (store caido, mala configuracion, bug)

Los errores internos NUNCA exponen detalles al cliente: el mensaje es
siempre "Internal server error" y el detalle queda en los logs.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from comment_board.config import settings
from comment_board.limiter import rate_limit_message

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"
RATE_LIMIT_MESSAGE = rate_limit_message(settings.RATE_LIMIT)


class CommentBoardError(Exception):
    """Error base con el codigo HTTP y el mensaje que vera el cliente."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(CommentBoardError):
    status_code = 400


class AuthFormatError(CommentBoardError):
    status_code = 401


class NotFoundError(CommentBoardError):
    status_code = 404


class RateLimitError(CommentBoardError):
    status_code = 429

    def __init__(self, message: str = RATE_LIMIT_MESSAGE):
        super().__init__(message)


class InternalError(CommentBoardError):
    status_code = 500

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE):
        super().__init__(message)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def comment_board_error_handler(request: Request, exc: CommentBoardError):
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Errores HTTP generados por Starlette (ruta inexistente, metodo no
    permitido). Cualquier ruta no registrada responde 404 con el mismo
    cuerpo, sin importar el metodo.
    """
    if exc.status_code in (404, 405):
        return error_response(404, "Endpoint not found")
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Body que no es JSON valido o que no encaja en CommentCreate.

    FastAPI responderia 422; la API documenta 400 para cualquier campo
    faltante o invalido.
    """
    logger.info("Rejected request body on %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(400, "Invalid request body")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Version propia de slowapi._rate_limit_exceeded_handler: mismo manejo
    de headers (X-RateLimit-*, Retry-After), pero con nuestro cuerpo
    {"error": ...}.
    """
    response = error_response(RateLimitError.status_code, RATE_LIMIT_MESSAGE)
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_rate_limit)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, INTERNAL_ERROR_MESSAGE)
