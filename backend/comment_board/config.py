"""
Modulo de configuracion centralizada del tablero de comentarios.

Todas las constantes que el backend necesita viven aqui y se leen de
variables de entorno con un valor por defecto. Asi la misma aplicacion
corre en desarrollo (archivos locales) y en produccion (bucket S3) sin
tocar el codigo fuente.

Patron de diseno utilizado: **Singleton implicito**
La instancia `settings` se crea UNA sola vez al importar este modulo.
Cada archivo que haga `from comment_board.config import settings`
recibe la MISMA instancia.

Variables de entorno reconocidas:
    COMMENTS_STORE_BACKEND  "filesystem" (por defecto) o "s3"
    COMMENTS_DATA_DIR       directorio raiz del backend de archivos
    COMMENTS_PREFIX         prefijo de los documentos ("comments")
    S3_BUCKET               bucket del backend S3 (obligatorio si backend=s3)
    AWS_REGION              region del bucket
    STORE_TIMEOUT_SECONDS   timeout de conexion/lectura contra S3
    RATE_LIMIT              limite por identidad ("10/minute")
    RATE_LIMIT_ENABLED      "0" para desactivar el rate limiting
    CORS_ORIGINS            origenes permitidos separados por coma ("*")
    MAX_BODY_BYTES          tamano maximo del body (4096)
    LOG_LEVEL / LOG_JSON    nivel y formato de los logs
    PORT                    puerto de escucha
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    # "1", "true", "yes" y "on" (sin importar mayusculas) cuentan como verdadero
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Clase que encapsula toda la configuracion de la aplicacion.

    Los valores se leen en __init__ (y no como atributos de clase) para
    que en tests podamos crear una instancia nueva despues de modificar
    el entorno con monkeypatch.setenv().
    """

    def __init__(self):
        # ---------- Almacenamiento de documentos ----------

        # Backend del document store. "filesystem" guarda un archivo JSON
        # por clave en disco; "s3" guarda un objeto por clave en un bucket.
        self.STORE_BACKEND: str = os.getenv("COMMENTS_STORE_BACKEND", "filesystem").strip().lower()

        # Directorio raiz del backend de archivos. Los documentos quedan en
        # {COMMENTS_DATA_DIR}/{student}_{site}.json
        self.DATA_DIR: str = os.getenv("COMMENTS_DATA_DIR", os.path.join(".", "data", "comments"))

        # Prefijo ("carpeta") de los objetos en S3:
        #   comments/{student}_{site}.json
        self.COMMENTS_PREFIX: str = os.getenv("COMMENTS_PREFIX", "comments")

        # Sin valor por defecto: si el backend es S3 y falta el bucket,
        # el store falla en su primer uso con un error de configuracion.
        self.S3_BUCKET: str = os.getenv("S3_BUCKET", "")
        self.AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")

        # Ninguna operacion contra el store debe bloquear indefinidamente.
        self.STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

        # ---------- Rate limiting ----------

        # Formato de la libreria "limits": "10/minute" = 10 peticiones
        # por ventana fija de 60 segundos.
        self.RATE_LIMIT: str = os.getenv("RATE_LIMIT", "10/minute")
        self.RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", True)

        # ---------- HTTP ----------

        self.CORS_ORIGINS: list[str] = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]

        # Tope del body de cualquier peticion (4 KB).
        self.MAX_BODY_BYTES: int = int(os.getenv("MAX_BODY_BYTES", "4096"))

        self.PORT: int = int(os.getenv("PORT", "3000"))

        # ---------- Comentarios ----------

        # Longitud maxima del texto despues de sanitizar.
        self.MAX_TEXT_LENGTH: int = 280

        # ---------- Logging ----------

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_JSON: bool = _env_bool("LOG_JSON", False)


# Instancia unica de configuracion (patron Singleton implicito).
settings = Settings()
