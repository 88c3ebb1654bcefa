"""
Modulo del document store: donde viven las listas de comentarios.

Cada clave (numero de estudiante, sitio) corresponde a UN documento JSON
que contiene el array completo de comentarios. El store solo sabe leer
y escribir ese documento entero; la logica de agregar/borrar vive en el
repositorio (repository.py).

Dos backends intercambiables:
-----------------------------
- FileCommentStore: un archivo por clave en disco local. Consistencia
  fuerte y sincrona. Ideal para desarrollo y para un solo servidor.
      data/comments/{student}_{site}.json

- S3CommentStore: un objeto por clave en un bucket de Amazon S3.
      s3://{bucket}/comments/{student}_{site}.json
  Antes de leer hace un paso de "descubrimiento" (list_objects_v2) para
  ubicar el objeto, y cachea el resultado en un LocationCache para no
  repetirlo en cada peticion.

Contrato comun (CommentStore):
    read(key)            -> list[dict]   ([] si el documento no existe)
    write(key, comments) -> None         (StoreError si falla)

Que el documento no exista NUNCA es un error: la lista se crea
implicitamente en la primera escritura.

Patron de diseno: Inyeccion de dependencias
-------------------------------------------
S3CommentStore acepta un `client` opcional, igual que antes S3Service:
en produccion se crea el cliente real de boto3; en tests se pasa el
cliente de moto.
"""

import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from comment_board.config import Settings, settings as default_settings
from comment_board.models.schemas import CommentKey

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """El store no pudo leer o escribir un documento."""


class StoreConfigurationError(StoreError):
    """Falta configuracion obligatoria (ej: S3_BUCKET) o es invalida."""


class CommentStore(Protocol):
    def read(self, key: CommentKey) -> list[dict]:
        ...

    def write(self, key: CommentKey, comments: list[dict]) -> None:
        ...


def _decode_document(raw: bytes | str, key: CommentKey) -> list[dict]:
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise StoreError(f"Corrupt comments document for {key}") from exc
    if not isinstance(document, list):
        raise StoreError(f"Comments document for {key} is not a JSON array")
    return document


def _encode_document(comments: list[dict]) -> str:
    return json.dumps(comments, ensure_ascii=False, indent=2)


class FileCommentStore:
    """
    Backend de archivos locales.

    La escritura es atomica: se escribe un archivo temporal en el mismo
    directorio y luego os.replace() lo pone en su lugar. Un lector ve la
    lista anterior completa o la nueva completa, nunca un archivo a medias.
    """

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def path_for(self, key: CommentKey) -> Path:
        return self.data_dir / key.document_name

    def read(self, key: CommentKey) -> list[dict]:
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StoreError(f"Could not read comments for {key}") from exc
        return _decode_document(raw, key)

    def write(self, key: CommentKey, comments: list[dict]) -> None:
        path = self.path_for(key)
        tmp_path = self.data_dir / f".{key.document_name}.{uuid.uuid4().hex}.tmp"
        try:
            # El directorio se crea en la primera escritura.
            if not self.data_dir.exists():
                self.data_dir.mkdir(parents=True, exist_ok=True)
                logger.info("Created data directory: %s", self.data_dir)

            # 0o666 menos el umask: los mismos permisos que una escritura normal.
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(_encode_document(comments))
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StoreError(f"Could not write comments for {key}") from exc
        finally:
            # Tras os.replace ya no existe; si algo fallo antes, se borra.
            tmp_path.unlink(missing_ok=True)


class LocationCache:
    """
    Cache clave -> ubicacion del objeto en S3.

    Es propiedad de UN S3CommentStore (no un global del proceso) y es
    seguro para peticiones concurrentes: FastAPI ejecuta los endpoints
    sincronos en un pool de threads, asi que todas las operaciones
    pasan por un Lock.
    """

    def __init__(self):
        self._locations: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._locations.get(name)

    def set(self, name: str, location: str) -> None:
        with self._lock:
            self._locations[name] = location

    def discard(self, name: str) -> None:
        with self._lock:
            self._locations.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._locations.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._locations)


class S3CommentStore:
    """
    Backend de Amazon S3.

    Atributos:
        bucket (str): Bucket donde viven los documentos. Si esta vacio, el
            primer read/write lanza StoreConfigurationError.
        prefix (str): "Carpeta" de los documentos dentro del bucket.
        cache (LocationCache): Ubicaciones ya descubiertas.

    El cliente de boto3 se crea de forma perezosa (en el primer uso), con
    timeouts acotados y SIN reintentos automaticos: si S3 falla, la
    peticion falla con 500 y el cliente decide si reintentar.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "comments",
        region: str = "us-east-1",
        client=None,
        cache: LocationCache | None = None,
        timeout: float = 5.0,
    ):
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region = region
        self.timeout = timeout
        self.cache = cache if cache is not None else LocationCache()
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self):
        if not self.bucket:
            raise StoreConfigurationError("S3_BUCKET is not configured for the s3 comment store")
        with self._client_lock:
            if self._client is None:
                self._client = boto3.client(
                    "s3",
                    region_name=self.region,
                    config=Config(
                        connect_timeout=self.timeout,
                        read_timeout=self.timeout,
                        retries={"max_attempts": 0},
                    ),
                )
            return self._client

    def object_key(self, key: CommentKey) -> str:
        if self.prefix:
            return f"{self.prefix}/{key.document_name}"
        return key.document_name

    def _locate(self, object_key: str) -> str | None:
        """
        Paso de descubrimiento: busca el objeto exacto bajo su prefijo.

        list_objects_v2 con Prefix tambien devolveria, por ejemplo,
        "comments/abc_site.json.bak", por eso comparamos la key completa.
        Retorna None si el objeto no existe ("not found" = lista vacia).
        """
        response = self.client.list_objects_v2(Bucket=self.bucket, Prefix=object_key)
        for obj in response.get("Contents", []):
            if obj["Key"] == object_key:
                return obj["Key"]
        return None

    def read(self, key: CommentKey) -> list[dict]:
        object_key = self.object_key(key)
        try:
            location = self.cache.get(object_key)
            if location is None:
                location = self._locate(object_key)
                if location is None:
                    return []
                self.cache.set(object_key, location)

            try:
                response = self.client.get_object(Bucket=self.bucket, Key=location)
            except ClientError as exc:
                # La ubicacion cacheada ya no existe (borrada por fuera):
                # se descarta y se trata como lista vacia.
                if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                    self.cache.discard(object_key)
                    return []
                raise
            raw = response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Could not read comments for {key} from S3") from exc
        return _decode_document(raw, key)

    def write(self, key: CommentKey, comments: list[dict]) -> None:
        object_key = self.object_key(key)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=_encode_document(comments).encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Could not write comments for {key} to S3") from exc
        self.cache.set(object_key, object_key)


def build_store(config: Settings = default_settings) -> CommentStore:
    """Crea el backend indicado por COMMENTS_STORE_BACKEND."""
    if config.STORE_BACKEND == "filesystem":
        return FileCommentStore(config.DATA_DIR)
    if config.STORE_BACKEND == "s3":
        return S3CommentStore(
            bucket=config.S3_BUCKET,
            prefix=config.COMMENTS_PREFIX,
            region=config.AWS_REGION,
            timeout=config.STORE_TIMEOUT_SECONDS,
        )
    raise StoreConfigurationError(f"Unknown comment store backend: {config.STORE_BACKEND!r}")
