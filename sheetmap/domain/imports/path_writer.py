"""
Write values into nested output records by dotted path.

``owner.name`` builds ``{"owner": {"name": ...}}``. A ``create`` segment marks a
one-to-many relation and produces the relation payload shape::

    {"cars": {"create": [{"model": ...}], "update": [], "delete": []}}

Only the first ``create`` element is ever populated, so every header of a
row that targets the same relation lands in the same nested record.
"""
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

CREATE_KEY = "create"


def new_relation_payload() -> Dict[str, List[Any]]:
    return {"create": [{}], "update": [], "delete": []}


def _ensure_relation_payload(container: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Return ``create[0]`` of the relation under ``key``, repairing malformed values."""
    relation = container.get(key)
    if not isinstance(relation, dict):
        if relation is not None:
            logger.debug("Replacing non-relation value under '%s' with a relation payload", key)
        relation = new_relation_payload()
        container[key] = relation

    create = relation.get("create")
    if not isinstance(create, list) or not create:
        relation["create"] = create = [{}]
    if not isinstance(relation.get("update"), list):
        relation["update"] = []
    if not isinstance(relation.get("delete"), list):
        relation["delete"] = []

    if not isinstance(create[0], dict):
        create[0] = {}
    return create[0]


def _ensure_child(container: Dict[str, Any], key: str) -> Dict[str, Any]:
    child = container.get(key)
    if not isinstance(child, dict):
        if child is not None:
            logger.debug("Replacing scalar value under '%s' with a nested record", key)
        child = {}
        container[key] = child
    return child


def write_path(record: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    Assign ``value`` at ``path`` inside ``record`` and return the record.

    A ``create`` segment that follows another segment and is not the last one
    switches into the relation's single create element.
    """
    keys = path.split(".")
    current = record
    i = 0
    last = len(keys) - 1

    while i < last:
        key = keys[i]
        if keys[i + 1] == CREATE_KEY and i + 1 < last:
            current = _ensure_relation_payload(current, key)
            i += 2
            continue
        current = _ensure_child(current, key)
        i += 1

    current[keys[last]] = value
    return record


class PathWriter:
    """Callable wrapper so the pipeline can swap in a different writer."""

    def write(self, record: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
        return write_path(record, path, value)

    __call__ = write
