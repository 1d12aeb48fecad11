"""
Configuración del sistema de logging.
El nivel se elige al arrancar el proceso (Settings.LOG_LEVEL).
"""

import logging
import sys

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)


def setup_logging(log_level: str = "INFO", format_string: str | None = None) -> None:
    """
    Configura el logger raíz con salida a consola.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR o CRITICAL.
        format_string: Formato opcional personalizado.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Librerías ruidosas
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging configurado en nivel %s", log_level.upper())
