"""
Row pipeline: normalize → resolve → coerce → write for every cell.

Rows are independent; the only shared state is the read-only ``FieldIndex``,
so chunks of rows can be mapped on a thread pool and reassembled by chunk
number without changing the output order.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from sheetmap.core.config import settings
from sheetmap.domain.imports.coercion import coerce_phone_value, coerce_value, is_empty_cell
from sheetmap.domain.imports.headers import HeaderNormalizer, HeaderResolver
from sheetmap.domain.imports.models import FieldIndex
from sheetmap.domain.imports.path_writer import PathWriter
from sheetmap.domain.imports.policy import HeaderPolicy, get_header_policy
from sheetmap.utils.phone import is_phone_key

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
OutputRecord = Dict[str, Any]


@dataclass
class TransformStats:
    """Statistics about a transform run."""
    input_rows: int = 0
    output_rows: int = 0
    mapped_cells: int = 0
    unmapped_cells: int = 0
    null_coercions: int = 0
    unmapped_headers: Set[str] = field(default_factory=set)

    def merge(self, other: "TransformStats") -> None:
        self.input_rows += other.input_rows
        self.output_rows += other.output_rows
        self.mapped_cells += other.mapped_cells
        self.unmapped_cells += other.unmapped_cells
        self.null_coercions += other.null_coercions
        self.unmapped_headers.update(other.unmapped_headers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary for serialization."""
        return {
            "input_rows": self.input_rows,
            "output_rows": self.output_rows,
            "mapped_cells": self.mapped_cells,
            "unmapped_cells": self.unmapped_cells,
            "null_coercions": self.null_coercions,
            "unmapped_headers": sorted(self.unmapped_headers),
        }


class ImportPipeline:
    """
    Turn flat spreadsheet rows into nested records for one field index.

    Unresolved headers are copied through under their trimmed header with
    the raw value, so nothing the user uploaded silently disappears.
    """

    def __init__(
        self,
        index: FieldIndex,
        policy: Optional[HeaderPolicy] = None,
        writer: Optional[PathWriter] = None,
    ):
        self.index = index
        self.policy = policy or get_header_policy()
        self.normalizer = HeaderNormalizer(self.policy)
        self.resolver = HeaderResolver(index, self.policy, self.normalizer)
        self.writer = writer or PathWriter()

    def transform_row(self, row: Row, stats: Optional[TransformStats] = None) -> OutputRecord:
        record: OutputRecord = {}
        for header, raw_value in row.items():
            match = self.resolver.match(header)

            if match.path is None:
                record[str(header).strip()] = raw_value
                if stats is not None:
                    stats.unmapped_cells += 1
                    stats.unmapped_headers.add(str(header).strip())
                continue

            field_type = self.index.field_type(match.path)
            if raw_value is not None and is_phone_key(match.path, match.key, markers=self.policy.phone_markers):
                value = coerce_phone_value(raw_value, field_type, self.policy)
            else:
                value = coerce_value(raw_value, field_type, self.policy)

            logger.debug("Mapped header '%s' -> '%s' via %s", header, match.path, match.strategy)
            self.writer.write(record, match.path, value)
            if stats is not None:
                stats.mapped_cells += 1
                if value is None and not is_empty_cell(raw_value):
                    stats.null_coercions += 1
        return record

    def _transform_rows(self, rows: Iterable[Row]) -> Tuple[List[OutputRecord], TransformStats]:
        stats = TransformStats()
        records = []
        for row in rows:
            stats.input_rows += 1
            records.append(self.transform_row(row, stats))
        stats.output_rows = len(records)
        return records, stats

    def _log_summary(self, stats: TransformStats) -> None:
        if stats.unmapped_headers:
            logger.info(
                "Passed through %d unmapped header(s) for '%s': %s",
                len(stats.unmapped_headers),
                self.index.root_entity,
                sorted(stats.unmapped_headers),
            )
        if stats.null_coercions:
            logger.info("%d cell(s) could not be coerced and were set to null", stats.null_coercions)

    def transform_with_stats(self, rows: Iterable[Row]) -> Tuple[List[OutputRecord], TransformStats]:
        records, stats = self._transform_rows(rows)
        self._log_summary(stats)
        return records, stats

    def transform(self, rows: Iterable[Row]) -> List[OutputRecord]:
        records, _ = self.transform_with_stats(rows)
        return records

    def _map_chunk(self, chunk_rows: List[Row], chunk_num: int) -> Tuple[int, List[OutputRecord], TransformStats]:
        chunk_start = time.time()
        records, stats = self._transform_rows(chunk_rows)
        logger.debug(
            "Chunk %d: mapped %d rows in %.3fs",
            chunk_num,
            len(records),
            time.time() - chunk_start,
        )
        return chunk_num, records, stats

    def transform_parallel(
        self,
        rows: List[Row],
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ) -> Tuple[List[OutputRecord], TransformStats]:
        """
        Map row chunks on a thread pool; output order equals input order.
        """
        max_workers = max(1, max_workers or settings.map_parallel_max_workers)
        chunk_size = max(1, chunk_size or settings.map_parallel_chunk_size)
        rows = list(rows)

        if len(rows) <= chunk_size or max_workers == 1:
            return self.transform_with_stats(rows)

        chunks = [rows[start:start + chunk_size] for start in range(0, len(rows), chunk_size)]
        logger.info("Mapping %d rows in %d chunks with %d workers", len(rows), len(chunks), max_workers)

        chunk_results: Dict[int, List[OutputRecord]] = {}
        total_stats = TransformStats()
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._map_chunk, chunk_rows, chunk_num)
                for chunk_num, chunk_rows in enumerate(chunks)
            ]
            for future in futures:
                chunk_num, records, stats = future.result()
                chunk_results[chunk_num] = records
                total_stats.merge(stats)

        all_records: List[OutputRecord] = []
        for chunk_num in range(len(chunks)):
            all_records.extend(chunk_results[chunk_num])
        self._log_summary(total_stats)
        return all_records, total_stats


def transform(rows: Iterable[Row], index: FieldIndex, policy: Optional[HeaderPolicy] = None) -> List[OutputRecord]:
    """Map ``rows`` against ``index`` sequentially, preserving row order."""
    return ImportPipeline(index, policy).transform(rows)
