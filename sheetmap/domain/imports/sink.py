"""
Import sink boundary: whatever persists the mapped records.

The engine hands over a JSON payload (a list of entity creation records with
nested relation ``create`` blocks) and never touches storage itself.
"""
import json
import logging
import threading
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)


class ImportSink(Protocol):
    def import_records(self, entity: str, payload: str) -> None:
        ...


class InMemoryImportSink:
    """Keeps every payload it receives; used by the HTTP adapter and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self.payloads: List[Tuple[str, str]] = []

    def import_records(self, entity: str, payload: str) -> None:
        with self._lock:
            self.payloads.append((entity, payload))
        logger.info("Received import payload for '%s' (%d bytes)", entity, len(payload))

    def records_for(self, entity: str) -> List[Dict[str, Any]]:
        with self._lock:
            payloads = [payload for name, payload in self.payloads if name == entity]
        records: List[Dict[str, Any]] = []
        for payload in payloads:
            records.extend(json.loads(payload))
        return records

    def clear(self) -> None:
        with self._lock:
            self.payloads.clear()
