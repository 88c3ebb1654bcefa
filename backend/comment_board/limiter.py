"""
Modulo de limitacion de tasa de peticiones (Rate Limiting).

Restringe cuantas peticiones puede hacer un mismo cliente en una
ventana fija de 60 segundos: 10 por minuto por identidad.

Como identificamos al cliente?
------------------------------
Por su numero de estudiante (header X-Student-Number). Si el header no
viene, caemos a la direccion IP. Asi un salon de clases detras de una
misma IP no comparte el mismo contador, pero una peticion sin identidad
igual queda limitada.

Como funciona?
--------------
SlowAPI (un wrapper de la libreria "limits") envuelve cada endpoint
decorado con @limiter.shared_limit(...) y verifica el contador ANTES de
ejecutar el codigo del endpoint. Los tres endpoints de comentarios
comparten UN contador (scope="comments"): 4 GET + 6 POST = 10.

El almacenamiento en memoria de "limits" protege cada incremento con un
lock, asi que dos peticiones simultaneas de la misma identidad no
pueden contarse como una sola.

Con headers_enabled=True SlowAPI agrega los headers estandar
(X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset y
Retry-After) a las respuestas.
"""

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from comment_board.config import settings

STUDENT_HEADER = "X-Student-Number"

# Nombre del contador compartido por todas las rutas de comentarios.
COMMENTS_SCOPE = "comments"


def student_or_remote_address(request: Request) -> str:
    """Clave del rate limiting: el numero de estudiante o la IP."""
    student_number = request.headers.get(STUDENT_HEADER)
    if student_number:
        return student_number
    return get_remote_address(request)


def rate_limit_message(limit_value: str) -> str:
    """
    Mensaje del 429 a partir del limite configurado.

        "10/minute"    -> "...Maximum 10 requests per minute."
        "20/2 minutes" -> "...Maximum 20 requests per 2 minutes."
    """
    item = parse(limit_value)
    period = item.GRANULARITY.name
    if item.multiples > 1:
        period = f"{item.multiples} {period}s"
    return f"Rate limit exceeded. Maximum {item.amount} requests per {period}."


limiter = Limiter(
    key_func=student_or_remote_address,
    strategy="fixed-window",
    storage_uri="memory://",
    headers_enabled=True,
    enabled=settings.RATE_LIMIT_ENABLED,
)
