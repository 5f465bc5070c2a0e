"""
Pytest configuration and fixtures for SheetMap tests.

The shared fixture is a small dealership schema:

- ``clients`` (root) with scalar fields, a many-to-one ``consultant`` and a
  one-to-many ``cars`` relation
- ``consultants`` pointing back at ``clients`` (cycle)
- ``cars`` owned by ``clients`` through ``client``
"""
import pytest

from sheetmap.domain.imports.models import (
    FieldType,
    OneToManyRelation,
    RelationKind,
    SchemaField,
)
from sheetmap.domain.imports.schema_index import build_field_index
from sheetmap.domain.imports.schema_source import InMemorySchemaSource


def _field(name, field_type="string", translations=None, relation_kind=RelationKind.NONE, related_entity=None):
    return SchemaField(
        name=name,
        type=field_type,
        translations=translations or [],
        relation_kind=relation_kind,
        related_entity=related_entity,
    )


@pytest.fixture
def dealership_source():
    fields = {
        "clients": [
            _field("first_name", translations=["Имя", "First name"]),
            _field("last_name", translations=["Фамилия"]),
            _field("phone", translations=["Телефон"]),
            _field("arrival_date", FieldType.DATE, translations=["Дата прибытия"]),
            _field("is_vip", FieldType.BOOLEAN, translations=["VIP"]),
            _field("visits", FieldType.INTEGER, translations=["Визиты"]),
            _field("notes", FieldType.JSON),
            _field(
                "consultant",
                FieldType.INTEGER,
                relation_kind=RelationKind.MANY_TO_ONE,
                related_entity="consultants",
            ),
            _field("cars", "alias", relation_kind=RelationKind.ONE_TO_MANY),
        ],
        "consultants": [
            _field("full_name", translations=["Имя консультанта"]),
            _field(
                "favourite_client",
                FieldType.INTEGER,
                relation_kind=RelationKind.MANY_TO_ONE,
                related_entity="clients",
            ),
        ],
        "cars": [
            _field("model", translations=["Модель автомобиля"]),
            _field("year", FieldType.INTEGER, translations=["Год выпуска"]),
            _field("purchased_at", FieldType.DATETIME, translations=["Дата покупки"]),
            _field(
                "client",
                FieldType.INTEGER,
                relation_kind=RelationKind.MANY_TO_ONE,
                related_entity="clients",
            ),
        ],
    }
    relations = {
        ("clients", "cars"): OneToManyRelation(owning_entity="cars", linking_field="client"),
    }
    return InMemorySchemaSource(fields, relations)


@pytest.fixture
def dealership_index(dealership_source):
    return build_field_index(dealership_source, "clients")


@pytest.fixture
def phone_only_index():
    source = InMemorySchemaSource({"contacts": [_field("phone")]})
    return build_field_index(source, "contacts")


@pytest.fixture
def make_field():
    return _field
