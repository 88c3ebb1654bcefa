"""
Modulo de rutas de comentarios.

Define los tres endpoints del tablero:

    GET    /api/comments?site=...            -> lista los comentarios
    POST   /api/comments                     -> crea un comentario
    DELETE /api/comments/{comment_id}?site=  -> borra un comentario

Cada peticion sigue la misma maquina de estados y se corta en el primer
error:

    Validar -> Verificar formato de identidad -> Ejecutar -> Responder

Seguridad implementada:
-----------------------
- Identidad: el header X-Student-Number debe ser alfanumerico (3-20).
  Es parte de la ruta del documento, asi que un valor invalido nunca
  llega al store.
- Sanitizacion: sitio, texto y remitente se limpian antes de persistir.
- Rate limiting: 10 peticiones por minuto por identidad, compartidas
  entre los tres endpoints.
- Errores internos: se registran en el log con la operacion y la clave,
  y el cliente solo recibe "Internal server error".

GET y DELETE son funciones `def` (no `async def`): FastAPI las ejecuta
en su pool de threads, y el store (disco o boto3) es bloqueante. POST es
`async def` porque lee el body a mano, despues del rate limiter y de la
identidad; su llamada al store pasa por run_in_threadpool.
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Header, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from comment_board.config import settings
from comment_board.errors import AuthFormatError, ClientInputError, InternalError, NotFoundError
from comment_board.limiter import COMMENTS_SCOPE, limiter
from comment_board.models.schemas import Comment, CommentCreate, CommentKey, ErrorResponse, MessageResponse
from comment_board.services.repository import comment_repository
from comment_board.services.validator import (
    generate_id,
    sanitize_site_name,
    sanitize_text,
    validate_comment_text,
    validate_student_number,
)

logger = logging.getLogger(__name__)

# Documenta en /docs el cuerpo {"error": ...} de cada respuesta de error.
router = APIRouter(
    responses={
        code: {"model": ErrorResponse} for code in (400, 401, 404, 413, 429, 500)
    }
)


def _require_student_number(student_number: str | None) -> str:
    # GET y POST distinguen "falta" (400) de "formato invalido" (401).
    if not student_number:
        raise ClientInputError("Missing X-Student-Number header")
    if not validate_student_number(student_number):
        raise AuthFormatError("Invalid student number format")
    return student_number


def _require_site(site: str | None) -> str:
    if not site:
        raise ClientInputError("Missing site parameter")
    sanitized = sanitize_site_name(site)
    if not sanitized:
        raise ClientInputError("Invalid site parameter")
    return sanitized


def _timestamp() -> str:
    # ISO-8601 en UTC con milisegundos: 2026-10-18T09:15:02.123Z
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _read_payload(request: Request) -> CommentCreate:
    # Body vacio equivale a {}: el handler responde "Missing required fields".
    raw = await request.body()
    if not raw.strip():
        return CommentCreate()
    try:
        return CommentCreate.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        logger.info("Rejected request body on %s %s: %s", request.method, request.url.path, exc)
        raise ClientInputError("Invalid request body") from exc


@router.get("/api/comments", response_model=list[Comment])
@limiter.shared_limit(settings.RATE_LIMIT, scope=COMMENTS_SCOPE)
def list_comments(
    request: Request,
    response: Response,
    site: str | None = None,
    x_student_number: str | None = Header(None, alias="X-Student-Number"),
):
    """
    Lista los comentarios de (estudiante, sitio) en orden de creacion.

    Una clave sin comentarios responde 200 con [].
    """
    student_number = _require_student_number(x_student_number)
    sanitized_site = _require_site(site)
    key = CommentKey(student_number, sanitized_site)

    try:
        return comment_repository.list(key)
    except Exception as exc:
        logger.exception("Error getting comments for %s", key)
        raise InternalError() from exc


@router.post(
    "/api/comments",
    response_model=Comment,
    status_code=201,
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {"application/json": {"schema": CommentCreate.model_json_schema()}},
        }
    },
)
@limiter.shared_limit(settings.RATE_LIMIT, scope=COMMENTS_SCOPE)
async def create_comment(
    request: Request,
    response: Response,
    x_student_number: str | None = Header(None, alias="X-Student-Number"),
):
    """
    Crea un comentario y lo agrega al final de la lista de la clave.

    Flujo:
    1. Identidad presente (400) y con formato valido (401).
    2. Body JSON con la forma de CommentCreate (400).
    3. `site` y `text` presentes (400).
    4. Sanitiza sitio, texto y remitente.
    5. Sitio no vacio y texto de 1 a 280 caracteres (400).
    6. Construye el Comment con id nuevo y hora actual, y lo persiste.
    7. Responde 201 con el comentario creado.

    El body se lee aca adentro y no como parametro del endpoint: asi el
    rate limiter y la identidad se verifican antes que el body, y un body
    invalido tambien consume cuota.
    """
    student_number = _require_student_number(x_student_number)
    payload = await _read_payload(request)

    if not payload.site or not payload.text:
        raise ClientInputError("Missing required fields: site and text")

    sanitized_site = sanitize_site_name(payload.site)
    text_result = validate_comment_text(payload.text)
    sender = sanitize_text(payload.sender)

    if not sanitized_site:
        raise ClientInputError("Invalid site parameter")
    if not text_result.is_valid:
        raise ClientInputError(text_result.error)

    comment = Comment(
        id=generate_id(),
        site=sanitized_site,
        sender=sender,
        text=text_result.value,
        ts=_timestamp(),
    )
    key = CommentKey(student_number, sanitized_site)

    try:
        # El store es bloqueante: se ejecuta en el pool de threads.
        stored = await run_in_threadpool(comment_repository.append, key, comment)
    except Exception as exc:
        logger.exception("Error posting comment for %s", key)
        raise InternalError() from exc

    logger.info("Comment added for student %s on site %s", student_number, sanitized_site)
    return stored


@router.delete("/api/comments/{comment_id}", response_model=MessageResponse)
@limiter.shared_limit(settings.RATE_LIMIT, scope=COMMENTS_SCOPE)
def delete_comment(
    request: Request,
    response: Response,
    comment_id: str,
    site: str | None = None,
    x_student_number: str | None = Header(None, alias="X-Student-Number"),
):
    """
    Borra el comentario `comment_id` de la lista de (estudiante, sitio).

    A diferencia de GET/POST, un header ausente y uno con formato
    invalido responden igual: 401.
    """
    if not x_student_number or not validate_student_number(x_student_number):
        raise AuthFormatError("Invalid or missing student number")
    sanitized_site = _require_site(site)
    key = CommentKey(x_student_number, sanitized_site)

    try:
        result = comment_repository.remove_by_id(key, comment_id)
    except Exception as exc:
        logger.exception("Error deleting comment %s for %s", comment_id, key)
        raise InternalError() from exc

    if not result.found:
        raise NotFoundError("Comment not found")

    logger.info(
        "Comment %s deleted for student %s on site %s", comment_id, x_student_number, sanitized_site
    )
    return MessageResponse(message="Comment deleted successfully")
