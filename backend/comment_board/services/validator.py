"""
Modulo de validacion y sanitizacion de la entrada.

Este servicio es la PRIMERA linea de defensa del tablero: todo lo que
llega del cliente (numero de estudiante, nombre del sitio, texto y
remitente del comentario) pasa por aqui ANTES de tocar el store.

Que hace cada funcion?
----------------------
- validate_student_number: el numero de estudiante es la identidad del
  cliente y forma parte de la ruta del documento. Solo aceptamos
  alfanumericos de 3 a 20 caracteres, asi que nunca puede contener "/",
  ".." ni nada que permita escapar del directorio de datos.
- sanitize_site_name: en vez de rechazar el sitio, eliminamos todo lo que
  no sea [A-Za-z0-9._-]. Si no queda nada, el caller lo rechaza.
- sanitize_text: elimina etiquetas HTML (<b>, <script>, ...) para que un
  comentario no pueda inyectar markup en la pagina que lo muestra.
- generate_id: identificador del comentario.

Todas son funciones puras: sin I/O y sin estado compartido.

Patron de diseno: Resultado como dataclass
------------------------------------------
validate_comment_text retorna un ValidationResult en vez de lanzar
excepciones. El handler decide que codigo HTTP corresponde.
"""

import re
import secrets
import string
import time
from dataclasses import dataclass

from comment_board.config import settings

# fullmatch() en vez de match(): con "$" un salto de linea final
# ("abc\n") pasaria la validacion.
STUDENT_NUMBER_PATTERN = re.compile(r"[A-Za-z0-9]{3,20}")

# Cualquier caracter fuera de la lista blanca se elimina.
SITE_DISALLOWED_PATTERN = re.compile(r"[^A-Za-z0-9._\-]")

# Etiqueta HTML: "<", cualquier cosa que no sea ">", y ">".
# [^>]* equivale a un ".*?" no codicioso pero sin backtracking.
HTML_TAG_PATTERN = re.compile(r"<[^>]*>")

BASE36_ALPHABET = string.digits + string.ascii_lowercase

# Longitud del sufijo aleatorio del id: 36^8 ~ 2.8e12 combinaciones
# por milisegundo.
ID_SUFFIX_LENGTH = 8


@dataclass
class ValidationResult:
    """
    Resultado de validar el texto de un comentario.

    Atributos:
        is_valid (bool): True si el texto paso la validacion.
        value (str): Texto ya sanitizado (se retorna aunque sea invalido).
        error (str): Mensaje para el cliente; vacio si is_valid es True.
    """
    is_valid: bool
    value: str = ""
    error: str = ""


def validate_student_number(value) -> bool:
    """True si `value` es un string alfanumerico de 3 a 20 caracteres."""
    if not isinstance(value, str):
        return False
    return STUDENT_NUMBER_PATTERN.fullmatch(value) is not None


def sanitize_site_name(value) -> str:
    """
    Limpia el nombre del sitio dejando solo [A-Za-z0-9._-].

    Ejemplos:
        >>> sanitize_site_name("about page!")
        'aboutpage'
        >>> sanitize_site_name("../etc/passwd")
        '..etcpasswd'
        >>> sanitize_site_name(42)
        ''
    """
    if not isinstance(value, str):
        return ""
    return SITE_DISALLOWED_PATTERN.sub("", value).strip()


def sanitize_text(value) -> str:
    """
    Elimina etiquetas HTML y espacios en los extremos.

    Ejemplos:
        >>> sanitize_text("<b>hi</b>")
        'hi'
        >>> sanitize_text("  hi  ")
        'hi'
    """
    if not isinstance(value, str):
        return ""
    return HTML_TAG_PATTERN.sub("", value).strip()


def validate_comment_text(value) -> ValidationResult:
    """
    Sanitiza el texto de un comentario y verifica su longitud (1 a 280).

    Los mensajes de error son los que el handler devuelve tal cual al
    cliente, por eso estan en ingles como el resto de la API.
    """
    text = sanitize_text(value)
    if not text:
        return ValidationResult(
            is_valid=False,
            value=text,
            error="Text cannot be empty after sanitization",
        )
    if len(text) > settings.MAX_TEXT_LENGTH:
        return ValidationResult(
            is_valid=False,
            value=text,
            error=f"Text exceeds maximum length of {settings.MAX_TEXT_LENGTH} characters",
        )
    return ValidationResult(is_valid=True, value=text)


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_id() -> str:
    """
    Genera el id de un comentario: "<timestamp base36>_<sufijo base36>".

    El prefijo es la hora de creacion en milisegundos, asi que los ids
    de un mismo documento quedan aproximadamente ordenados. El sufijo
    sale de `secrets` para que dos ids del mismo milisegundo no
    coincidan en la practica. No es un identificador criptografico: el
    repositorio igual verifica que el id no exista en la lista.

    Ejemplo: "mgwjz3k1_4f9qz0ab"
    """
    timestamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{timestamp}_{suffix}"
