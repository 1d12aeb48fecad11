"""
Schemas para el seguimiento de resoluciones de aseguradoras.
"""

from pydantic import BaseModel, Field

from saludia.models.case import InsurerResolutionState


class InsurerStateUpdate(BaseModel):
    state: InsurerResolutionState


class BulkImportRequest(BaseModel):
    content: str = Field(
        ..., min_length=1,
        description="Líneas 'episodio,resolución' separadas por salto de línea"
    )


class BulkLineError(BaseModel):
    line_number: int
    line: str
    error: str


class BulkImportSummary(BaseModel):
    total_lines: int
    updated_lines: int
    updated_cases: int
    not_found: int
    not_found_episodes: list[str] = []
    errors: int
    error_details: list[BulkLineError] = []
    partial: bool
