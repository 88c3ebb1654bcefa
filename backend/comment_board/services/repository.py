"""
Repositorio de comentarios: operaciones leer-modificar-escribir.

Construido encima de un CommentStore. Cada operacion lee el documento
completo de la clave, lo modifica en memoria y (si hace falta) escribe
el documento completo de vuelta.

Concurrencia
------------
Las operaciones NO son atomicas entre la lectura y la escritura y no
hay ningun lock por clave: si dos peticiones escriben la misma clave a
la vez, la segunda escritura pisa a la primera (lost update). Es una
limitacion aceptada: una clave pertenece a un solo estudiante y a un
solo sitio, y el acceso concurrente real a una misma clave es raro.
"""

import logging

from comment_board.models.schemas import Comment, CommentKey, RemovalResult
from comment_board.services.store import CommentStore, build_store
from comment_board.services.validator import generate_id


class CommentRepository:
    """
    Parametros:
        store: Backend del document store. Si es None se crea con
            build_store() en el primer uso, de modo que una configuracion
            invalida falla en la primera peticion (como un 500) y no al
            importar la aplicacion.
        logger: Logger inyectado. Por defecto el del modulo.
    """

    def __init__(self, store: CommentStore | None = None, logger: logging.Logger | None = None):
        self._store = store
        self.logger = logger or logging.getLogger(__name__)

    @property
    def store(self) -> CommentStore:
        if self._store is None:
            self._store = build_store()
        return self._store

    def list(self, key: CommentKey) -> list[Comment]:
        return [Comment.model_validate(item) for item in self.store.read(key)]

    def append(self, key: CommentKey, comment: Comment) -> Comment:
        """
        Agrega `comment` al final de la lista de `key` y la persiste.

        Si el id ya existe en la lista (colision del generador) se genera
        uno nuevo; retorna el comentario tal como quedo guardado.
        """
        comments = self.list(key)
        existing_ids = {c.id for c in comments}
        while comment.id in existing_ids:
            new_id = generate_id()
            self.logger.warning("Comment id collision on %s: %s -> %s", key, comment.id, new_id)
            comment = comment.model_copy(update={"id": new_id})

        comments.append(comment)
        self.store.write(key, [c.model_dump() for c in comments])
        return comment

    def remove_by_id(self, key: CommentKey, comment_id: str) -> RemovalResult:
        comments = self.list(key)
        remaining = [c for c in comments if c.id != comment_id]
        if len(remaining) == len(comments):
            return RemovalResult(found=False, comments=comments)

        self.store.write(key, [c.model_dump() for c in remaining])
        return RemovalResult(found=True, comments=remaining)


# Instancia global del repositorio (Singleton implicito), usada por las
# rutas. En tests se reemplaza con unittest.mock.patch.
comment_repository = CommentRepository()
