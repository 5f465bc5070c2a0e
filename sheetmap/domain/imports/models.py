"""
Core types shared by the import mapping engine.

The schema source hands out ``SchemaField`` objects per entity; the index
builder turns them into path-addressed ``FieldDescriptor`` entries inside a
``FieldIndex`` that the row pipeline consults read-only.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(str, Enum):
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "dateTime"
    TIMESTAMP = "timestamp"
    JSON = "json"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "FieldType":
        """Map a schema type name onto the closed set; unknown names become OTHER."""
        if isinstance(raw, FieldType):
            return raw
        if raw is None:
            return cls.OTHER
        name = str(raw).strip()
        if name in _TYPE_ALIASES:
            return _TYPE_ALIASES[name]
        try:
            return cls(name)
        except ValueError:
            pass
        # Case-insensitive second chance ("DATETIME", "Integer")
        for member in cls:
            if member.value.lower() == name.lower():
                return member
        return cls.OTHER


_TYPE_ALIASES: Dict[str, FieldType] = {
    "bigInteger": FieldType.INTEGER,
    "uuid": FieldType.OTHER,
    "hash": FieldType.OTHER,
    "csv": FieldType.OTHER,
    "time": FieldType.OTHER,
    "alias": FieldType.OTHER,
    "unknown": FieldType.OTHER,
}

DATE_TYPES = frozenset({FieldType.DATE, FieldType.DATETIME, FieldType.TIMESTAMP})
TEXT_TYPES = frozenset({FieldType.STRING, FieldType.TEXT, FieldType.OTHER})
NUMERIC_TYPES = frozenset({FieldType.INTEGER, FieldType.FLOAT, FieldType.DECIMAL})


class RelationKind(str, Enum):
    NONE = "none"
    MANY_TO_ONE = "many-to-one"
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"


class SchemaField(BaseModel):
    """A field as reported by the schema source for one entity."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType = FieldType.OTHER
    translations: List[str] = Field(default_factory=list)
    relation_kind: RelationKind = RelationKind.NONE
    related_entity: Optional[str] = None

    @field_validator("type", mode="before")
    def parse_type(cls, value: Any) -> FieldType:
        return FieldType.parse(value)


class OneToManyRelation(BaseModel):
    """Owning side of a one-to-many field: the child entity and its back-reference."""
    model_config = ConfigDict(frozen=True)

    owning_entity: str
    linking_field: str


@dataclass(frozen=True)
class FieldDescriptor:
    path: str
    name: str
    type: FieldType
    label_variants: FrozenSet[str] = frozenset()
    relation_kind: RelationKind = RelationKind.NONE
    related_entity: Optional[str] = None

    @property
    def in_relation_create(self) -> bool:
        return ".create." in self.path


@dataclass
class FieldIndex:
    """
    Label lookup tables for one root entity.

    ``by_label`` holds direct field names, translations and full dotted paths;
    ``by_relation_label`` only fields reached through a one-to-many create branch.
    Built once per import and only read afterwards.
    """
    root_entity: str
    by_label: Dict[str, str] = field(default_factory=dict)
    by_relation_label: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, FieldDescriptor] = field(default_factory=dict)

    @property
    def type_by_path(self) -> Dict[str, FieldType]:
        return {path: descriptor.type for path, descriptor in self.fields.items()}

    def field_type(self, path: str) -> FieldType:
        descriptor = self.fields.get(path)
        return descriptor.type if descriptor else FieldType.OTHER
