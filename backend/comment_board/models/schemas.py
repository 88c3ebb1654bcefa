"""
Modulo de esquemas (schemas) de datos de la API.

Define la ESTRUCTURA EXACTA de los datos que entran y salen del tablero,
usando Pydantic. Es el "contrato" entre el frontend y el backend.

Flujo tipico:
    JSON del cliente -> CommentCreate -> sanitizacion -> Comment -> store
    store -> list[Comment] -> JSON de respuesta

Comment tambien es el formato persistido: cada documento del store es
un array JSON de Comment.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


class Comment(BaseModel):
    """
    Un comentario ya sanitizado y persistido.

    Atributos:
        id (str): "<timestamp base36>_<sufijo base36>", inmutable.
        site (str): Nombre del sitio sanitizado ([A-Za-z0-9._-]+).
        sender (str): Remitente sanitizado; puede ser "".
        text (str): Texto sanitizado, 1 a 280 caracteres.
        ts (str): Fecha de creacion ISO-8601 en UTC, con milisegundos y
            sufijo "Z" (ej: "2026-10-18T09:15:02.123Z").
    """
    id: str
    site: str
    sender: str = ""
    text: str
    ts: str


class CommentCreate(BaseModel):
    """
    Body de POST /api/comments.

    Todos los campos son opcionales a nivel de schema: la presencia de
    `site` y `text` la verifica el handler, DESPUES de validar el header
    X-Student-Number, para respetar el orden de los errores
    (400/401 por identidad antes que 400 por campos).

    Un body que no es un objeto JSON, o cuyos campos no son strings,
    falla aqui y termina en 400 "Invalid request body".
    """
    model_config = ConfigDict(extra="ignore")

    site: str | None = None
    text: str | None = None
    sender: str | None = None


class MessageResponse(BaseModel):
    """Respuesta de DELETE exitoso: {"message": "..."}."""
    message: str


class ErrorResponse(BaseModel):
    """
    Schema estandar para respuestas de error.

    Todas las respuestas de error de la API usan {"error": "..."}.
    """
    error: str


@dataclass(frozen=True)
class CommentKey:
    """
    Clave (numero de estudiante, sitio) de una lista de comentarios.

    Ambos valores llegan ya validados/sanitizados. La clave determina de
    forma univoca la ubicacion del documento: "{student}_{site}.json".
    """
    student_number: str
    site: str

    @property
    def document_name(self) -> str:
        return f"{self.student_number}_{self.site}.json"

    def __str__(self) -> str:
        return f"{self.student_number}/{self.site}"


@dataclass
class RemovalResult:
    """Resultado de CommentRepository.remove_by_id."""
    found: bool
    comments: list[Comment] = field(default_factory=list)
