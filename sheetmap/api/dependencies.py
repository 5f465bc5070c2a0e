"""
Shared dependencies for the API routers.

The schema source and the import sink are resolved through FastAPI
dependencies so tests (and other deployments) can override them.
"""
from functools import lru_cache

from sheetmap.core.config import settings
from sheetmap.domain.imports.schema_source import (
    InMemorySchemaSource,
    SchemaSource,
    load_schema_snapshot_file,
)
from sheetmap.domain.imports.sink import ImportSink, InMemoryImportSink

import_sink = InMemoryImportSink()


@lru_cache(maxsize=1)
def _configured_schema_source() -> SchemaSource:
    if settings.schema_snapshot_path:
        return load_schema_snapshot_file(settings.schema_snapshot_path)
    return InMemorySchemaSource({})


def get_schema_source() -> SchemaSource:
    return _configured_schema_source()


def get_import_sink() -> ImportSink:
    return import_sink
