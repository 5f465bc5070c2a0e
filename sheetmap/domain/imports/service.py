"""
Import service: one request's worth of index building, row mapping and
hand-off to the sink.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sheetmap.domain.imports.models import FieldIndex
from sheetmap.domain.imports.pipeline import ImportPipeline, TransformStats
from sheetmap.domain.imports.policy import HeaderPolicy, get_header_policy
from sheetmap.domain.imports.schema_index import SchemaIndexBuilder
from sheetmap.domain.imports.schema_source import SchemaSource
from sheetmap.domain.imports.sink import ImportSink
from sheetmap.utils.serialization import dumps_records

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    entity: str
    records: List[Dict[str, Any]]
    stats: TransformStats


class ImportService:
    def __init__(
        self,
        source: SchemaSource,
        sink: Optional[ImportSink] = None,
        policy: Optional[HeaderPolicy] = None,
        conflict_policy: Optional[str] = None,
        parallel: bool = False,
    ):
        self.source = source
        self.sink = sink
        self.policy = policy or get_header_policy()
        self.conflict_policy = conflict_policy
        self.parallel = parallel

    def build_index(self, entity: str) -> FieldIndex:
        return SchemaIndexBuilder(self.source, self.policy, self.conflict_policy).build(entity)

    def preview_rows(self, entity: str, rows: Sequence[Mapping[str, Any]]) -> ImportResult:
        """Map rows without handing them to the sink."""
        start = time.time()
        index = self.build_index(entity)
        pipeline = ImportPipeline(index, self.policy)
        if self.parallel:
            records, stats = pipeline.transform_parallel(list(rows))
        else:
            records, stats = pipeline.transform_with_stats(rows)
        logger.info(
            "Mapped %d row(s) for '%s' in %.2fs (%d mapped cells, %d unmapped)",
            stats.output_rows,
            entity,
            time.time() - start,
            stats.mapped_cells,
            stats.unmapped_cells,
        )
        return ImportResult(entity=entity, records=records, stats=stats)

    def import_rows(self, entity: str, rows: Sequence[Mapping[str, Any]]) -> ImportResult:
        """Map rows and hand the JSON payload to the sink."""
        if self.sink is None:
            raise ValueError("ImportService was created without an import sink")
        result = self.preview_rows(entity, rows)
        self.sink.import_records(entity, dumps_records(result.records))
        return result
