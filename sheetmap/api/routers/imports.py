"""
Import endpoints: map decoded sheet rows onto a collection's schema.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from sheetmap.api.dependencies import get_import_sink, get_schema_source
from sheetmap.api.schemas.shared import (
    ImportRowsRequest,
    ImportRowsResponse,
    ImportStatsSchema,
    PreviewRowsResponse,
)
from sheetmap.domain.imports.schema_source import SchemaSource
from sheetmap.domain.imports.service import ImportService
from sheetmap.domain.imports.sink import ImportSink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/utils", tags=["imports"])


def _ensure_collection(collection: str, source: SchemaSource) -> None:
    if not source.has_entity(collection):
        raise HTTPException(status_code=404, detail=f"Collection '{collection}' not found")


def _ensure_rows(request: ImportRowsRequest) -> None:
    if not request.rows:
        raise HTTPException(status_code=400, detail='"rows" must contain at least one row')


@router.post("/import/{collection}", response_model=ImportRowsResponse)
def import_collection_rows(
    collection: str,
    request: ImportRowsRequest,
    source: SchemaSource = Depends(get_schema_source),
    sink: ImportSink = Depends(get_import_sink),
):
    """
    Map rows onto the collection schema and hand them to the import sink.

    Headers that match no field are kept under their original name.
    """
    _ensure_collection(collection, source)
    _ensure_rows(request)

    result = ImportService(source, sink).import_rows(collection, request.rows)
    stats = result.stats.to_dict()
    return ImportRowsResponse(
        success=True,
        collection=collection,
        records_imported=len(result.records),
        stats=ImportStatsSchema(**stats),
        message=(
            f"{len(stats['unmapped_headers'])} header(s) did not match any field"
            if stats["unmapped_headers"] else None
        ),
    )


@router.post("/import/{collection}/preview", response_model=PreviewRowsResponse)
def preview_collection_rows(
    collection: str,
    request: ImportRowsRequest,
    source: SchemaSource = Depends(get_schema_source),
):
    """Return the mapped records without importing them."""
    _ensure_collection(collection, source)
    _ensure_rows(request)

    result = ImportService(source).preview_rows(collection, request.rows)
    return PreviewRowsResponse(
        success=True,
        collection=collection,
        records=result.records,
        stats=ImportStatsSchema(**result.stats.to_dict()),
    )
