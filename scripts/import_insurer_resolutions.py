"""
Script para aplicar resoluciones de aseguradora desde un archivo.

Uso:
    python scripts/import_insurer_resolutions.py --file data/resoluciones.txt
    python scripts/import_insurer_resolutions.py --file data/validaciones.xlsx

Formatos:
    - .txt / .csv: una línea por episodio, "episodio,resolución"
    - .xlsx: primera hoja con columnas Episodio y Validación
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from saludia.config import get_settings
from saludia.core.exceptions import ValidationException
from saludia.core.logging_config import setup_logging
from saludia.database import async_session_factory, engine
from saludia.services.insurer_service import apply_bulk_resolutions, read_resolutions_file

logger = logging.getLogger(__name__)


async def import_resolutions(path: Path) -> int:
    if not path.exists():
        print(f"ERROR: No se encontró el archivo: {path}")
        return 1

    try:
        content = read_resolutions_file(path)
        async with async_session_factory() as session:
            summary = await apply_bulk_resolutions(session, None, content)
    except ValidationException as e:
        print(f"ERROR: {e.detail}")
        return 1
    finally:
        await engine.dispose()

    print(f"Líneas procesadas:      {summary.total_lines}")
    print(f"Líneas aplicadas:       {summary.updated_lines}")
    print(f"Casos actualizados:     {summary.updated_cases}")
    print(f"Episodios sin casos:    {summary.not_found}")
    for episodio in summary.not_found_episodes:
        print(f"  - {episodio}")
    print(f"Errores:                {summary.errors}")
    for error in summary.error_details:
        print(f"  - línea {error.line_number}: {error.error}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Importar resoluciones de aseguradora")
    parser.add_argument("--file", required=True, type=Path, help="Archivo .txt, .csv o .xlsx")
    args = parser.parse_args()

    setup_logging(get_settings().LOG_LEVEL)
    sys.exit(asyncio.run(import_resolutions(args.file)))


if __name__ == "__main__":
    main()
