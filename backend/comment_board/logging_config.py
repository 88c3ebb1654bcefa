"""
Configuracion de logging del backend.

Dos formatos de salida:
- JSON estructurado para produccion (LOG_JSON=1), una linea por evento,
  facil de indexar en CloudWatch, Datadog, etc.
- Formato legible para desarrollo:
      09:15:02 [INFO] comments: Comment added for student abc123 on site home

Todos los modulos usan logging.getLogger(__name__), asi que sus loggers
son hijos de "comment_board" y heredan el handler configurado aqui.
"""

import json
import logging
import sys
from datetime import datetime, timezone

ROOT_LOGGER_NAME = "comment_board"


class StructuredFormatter(logging.Formatter):
    """Formatter JSON para produccion."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


class DevelopmentFormatter(logging.Formatter):
    FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"

    def __init__(self):
        super().__init__(self.FORMAT, datefmt="%H:%M:%S")


def setup_logging(level: str = "INFO", production: bool = False) -> logging.Logger:
    """
    Configura el logger raiz de la aplicacion.

    Parametros:
        level (str): DEBUG, INFO, WARNING, ERROR o CRITICAL.
        production (bool): True para logs JSON.

    Retorna:
        logging.Logger: El logger "comment_board" ya configurado.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Llamar setup_logging dos veces no duplica las lineas.
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if production else DevelopmentFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
