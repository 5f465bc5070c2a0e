from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ImportRowsRequest(BaseModel):
    """Rows already decoded from a sheet: header -> raw cell value."""
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ImportStatsSchema(BaseModel):
    input_rows: int = 0
    output_rows: int = 0
    mapped_cells: int = 0
    unmapped_cells: int = 0
    null_coercions: int = 0
    unmapped_headers: List[str] = Field(default_factory=list)


class ImportRowsResponse(BaseModel):
    success: bool
    collection: str
    records_imported: int
    stats: ImportStatsSchema
    message: Optional[str] = None


class PreviewRowsResponse(BaseModel):
    success: bool
    collection: str
    records: List[Dict[str, Any]]
    stats: ImportStatsSchema
