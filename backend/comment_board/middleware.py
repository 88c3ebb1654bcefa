"""
Middleware ASGI que pone un tope al tamano del body.

Por que ASGI puro y no @app.middleware("http")?
-----------------------------------------------
Un body con Transfer-Encoding: chunked no trae Content-Length. Para
rechazarlo hay que contar los bytes que realmente llegan, y eso solo se
puede hacer envolviendo `receive`.

    Con Content-Length  -> se decide por el header, sin leer nada.
    Sin Content-Length  -> se leen los mensajes http.request contando
                           bytes; al pasar el tope se responde 413 sin
                           llamar a la app. Si el body cabe, se le
                           entrega a la app tal cual llego.

El tope es de unos pocos KB, asi que guardar el body en memoria mientras
se cuenta no cuesta nada.
"""

import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from comment_board.errors import error_response

logger = logging.getLogger(__name__)

BODY_TOO_LARGE_MESSAGE = "Request body too large"


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                await error_response(400, "Invalid Content-Length header")(scope, receive, send)
                return
            if size > self.max_body_bytes:
                await self._reject(scope, receive, send, size)
                return
            await self.app(scope, receive, send)
            return

        buffered: list[Message] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                # http.disconnect: la app lo vera al leer el body.
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            more_body = message.get("more_body", False)

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.info(
            "Rejected %s %s: body of %d bytes exceeds %d",
            scope["method"], scope["path"], size, self.max_body_bytes,
        )
        await error_response(413, BODY_TOO_LARGE_MESSAGE)(scope, receive, send)
