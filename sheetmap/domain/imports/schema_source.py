"""
Schema source boundary.

The engine only ever queries the schema: which fields an entity has and, for
one-to-many fields, which entity owns the related rows. ``InMemorySchemaSource``
answers those queries from a schema snapshot (the ``fields`` / ``relations``
export of the metadata service).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from sheetmap.domain.imports.models import (
    FieldType,
    OneToManyRelation,
    RelationKind,
    SchemaField,
)

logger = logging.getLogger(__name__)

_SPECIAL_TO_RELATION = {
    "m2o": RelationKind.MANY_TO_ONE,
    "o2o": RelationKind.ONE_TO_ONE,
    "o2m": RelationKind.ONE_TO_MANY,
}


class SchemaSource(Protocol):
    def has_entity(self, entity: str) -> bool:
        ...

    def read_fields(self, entity: str) -> List[SchemaField]:
        ...

    def find_one_to_many(self, entity: str, field: str) -> Optional[OneToManyRelation]:
        ...


class InMemorySchemaSource:
    """Schema source backed by plain dictionaries."""

    def __init__(
        self,
        fields_by_entity: Dict[str, Iterable[SchemaField]],
        one_to_many: Optional[Dict[Tuple[str, str], OneToManyRelation]] = None,
    ):
        self._fields = {entity: list(fields) for entity, fields in fields_by_entity.items()}
        self._one_to_many = dict(one_to_many or {})

    @property
    def entities(self) -> List[str]:
        return list(self._fields)

    def has_entity(self, entity: str) -> bool:
        return entity in self._fields

    def read_fields(self, entity: str) -> List[SchemaField]:
        fields = self._fields.get(entity)
        if fields is None:
            logger.debug("Entity '%s' has no fields in the schema", entity)
            return []
        return list(fields)

    def find_one_to_many(self, entity: str, field: str) -> Optional[OneToManyRelation]:
        return self._one_to_many.get((entity, field))


# ---------------------------------------------------------------------------
# Snapshot format
# ---------------------------------------------------------------------------

class SnapshotTranslation(BaseModel):
    language: Optional[str] = None
    translation: Optional[str] = None


class SnapshotFieldMeta(BaseModel):
    special: Optional[List[str]] = None
    translations: Optional[List[SnapshotTranslation]] = None


class SnapshotFieldSchema(BaseModel):
    foreign_key_table: Optional[str] = None


class SnapshotField(BaseModel):
    collection: str
    field: str
    type: Optional[str] = None
    meta: Optional[SnapshotFieldMeta] = None
    schema_: Optional[SnapshotFieldSchema] = Field(default=None, alias="schema")


class SnapshotRelationMeta(BaseModel):
    one_field: Optional[str] = None


class SnapshotRelation(BaseModel):
    collection: str
    field: str
    related_collection: Optional[str] = None
    meta: Optional[SnapshotRelationMeta] = None


class SchemaSnapshot(BaseModel):
    fields: List[SnapshotField] = Field(default_factory=list)
    relations: List[SnapshotRelation] = Field(default_factory=list)


def _relation_kind(meta: Optional[SnapshotFieldMeta]) -> RelationKind:
    special = (meta.special if meta else None) or []
    for marker in special:
        kind = _SPECIAL_TO_RELATION.get(marker)
        if kind is not None:
            return kind
    return RelationKind.NONE


def load_schema_snapshot(data: Any) -> InMemorySchemaSource:
    """
    Build a schema source from a snapshot mapping.

    Many-to-one / one-to-one targets come from ``schema.foreign_key_table``,
    falling back to the relation whose ``collection``/``field`` match. A
    one-to-many field on entity E is owned by the relation with
    ``related_collection == E`` and ``meta.one_field`` equal to the field.
    """
    snapshot = data if isinstance(data, SchemaSnapshot) else SchemaSnapshot.model_validate(data)

    many_to_one_targets: Dict[Tuple[str, str], str] = {}
    one_to_many: Dict[Tuple[str, str], OneToManyRelation] = {}
    for relation in snapshot.relations:
        if relation.related_collection:
            many_to_one_targets[(relation.collection, relation.field)] = relation.related_collection
            one_field = relation.meta.one_field if relation.meta else None
            if one_field:
                one_to_many[(relation.related_collection, one_field)] = OneToManyRelation(
                    owning_entity=relation.collection,
                    linking_field=relation.field,
                )

    fields_by_entity: Dict[str, List[SchemaField]] = {}
    for snapshot_field in snapshot.fields:
        kind = _relation_kind(snapshot_field.meta)
        related = None
        if kind in (RelationKind.MANY_TO_ONE, RelationKind.ONE_TO_ONE):
            related = (
                (snapshot_field.schema_.foreign_key_table if snapshot_field.schema_ else None)
                or many_to_one_targets.get((snapshot_field.collection, snapshot_field.field))
            )
        elif kind == RelationKind.ONE_TO_MANY:
            relation = one_to_many.get((snapshot_field.collection, snapshot_field.field))
            related = relation.owning_entity if relation else None

        translations = [
            item.translation
            for item in ((snapshot_field.meta.translations if snapshot_field.meta else None) or [])
            if item.translation
        ]
        fields_by_entity.setdefault(snapshot_field.collection, []).append(
            SchemaField(
                name=snapshot_field.field,
                type=FieldType.parse(snapshot_field.type),
                translations=translations,
                relation_kind=kind,
                related_entity=related,
            )
        )

    logger.info(
        "Loaded schema snapshot with %d entities, %d fields and %d relations",
        len(fields_by_entity),
        len(snapshot.fields),
        len(snapshot.relations),
    )
    return InMemorySchemaSource(fields_by_entity, one_to_many)


def load_schema_snapshot_file(path: str) -> InMemorySchemaSource:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return load_schema_snapshot(payload)
