"""
Cliente HTTP de la API de comentarios.

Lo usan los sitios de los estudiantes (o scripts) para hablar con el
tablero sin construir las peticiones a mano:

    client = CommentsClient("https://comments.example.com/api", "abc123")
    client.post_comment("homepage", "Great page!", sender="Ana")
    client.get_comments("homepage")
    client.delete_comment("homepage", "mgwjz3k1_4f9qz0ab")

Hace las mismas verificaciones basicas que el servidor antes de enviar
nada, para fallar rapido sin gastar una peticion del rate limit.

Patron de diseno: Inyeccion de dependencias
-------------------------------------------
Acepta un `http_client` opcional (cualquier httpx.Client). En tests se
le pasa el TestClient de FastAPI, que es un httpx.Client que habla
directamente con la app en memoria.
"""

from urllib.parse import quote

import httpx

from comment_board.config import settings
from comment_board.limiter import STUDENT_HEADER


class CommentsClientError(Exception):
    """
    Error del cliente: validacion local o respuesta no exitosa.

    Atributos:
        status_code (int | None): Codigo HTTP de la respuesta, o None si
            el error se detecto antes de enviar la peticion.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CommentsClient:
    def __init__(
        self,
        base_url: str,
        student_number: str,
        http_client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        if not student_number:
            raise CommentsClientError("Student number is required")
        self.base_url = base_url.rstrip("/")
        self.student_number = student_number
        self.http = http_client or httpx.Client(timeout=timeout)

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, default_error: str, **kwargs):
        headers = {STUDENT_HEADER: self.student_number, "Content-Type": "application/json"}
        try:
            response = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise CommentsClientError(f"{default_error}: {exc}") from exc

        if response.is_error:
            try:
                message = response.json().get("error") or default_error
            except (ValueError, AttributeError):
                message = default_error
            raise CommentsClientError(message, status_code=response.status_code)
        return response.json()

    def get_comments(self, site: str) -> list[dict]:
        """Lista los comentarios del sitio (lista vacia si no hay)."""
        if not site:
            raise CommentsClientError("Site parameter is required")
        return self._request("GET", "/comments", "Failed to get comments", params={"site": site})

    def post_comment(self, site: str, text: str, sender: str = "Anonymous") -> dict:
        """Publica un comentario y retorna el comentario creado."""
        if not site or not text:
            raise CommentsClientError("Site and text are required")
        if len(text) > settings.MAX_TEXT_LENGTH:
            raise CommentsClientError(
                f"Comment text must be {settings.MAX_TEXT_LENGTH} characters or less"
            )
        return self._request(
            "POST",
            "/comments",
            "Failed to post comment",
            json={"site": site, "text": text, "sender": sender},
        )

    def delete_comment(self, site: str, comment_id: str) -> dict:
        if not site or not comment_id:
            raise CommentsClientError("Site and commentId are required")
        return self._request(
            "DELETE",
            f"/comments/{quote(comment_id, safe='')}",
            "Failed to delete comment",
            params={"site": site},
        )
