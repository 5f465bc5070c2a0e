"""
Tests for the HTTP import endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from sheetmap.api.dependencies import get_import_sink, get_schema_source
from sheetmap.domain.imports.sink import InMemoryImportSink
from sheetmap.main import app


@pytest.fixture
def sink():
    return InMemoryImportSink()


@pytest.fixture
def client(dealership_source, sink):
    app.dependency_overrides[get_schema_source] = lambda: dealership_source
    app.dependency_overrides[get_import_sink] = lambda: sink
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "SheetMap API", "version": "0.1.0"}


def test_import_rows(client, sink):
    response = client.post(
        "/utils/import/clients",
        json={"rows": [{"Номер телефона": "89991234567", "VIP": "да", "Extra": "x"}]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["collection"] == "clients"
    assert data["records_imported"] == 1
    assert data["stats"]["mapped_cells"] == 2
    assert data["stats"]["unmapped_headers"] == ["Extra"]
    assert data["message"] == "1 header(s) did not match any field"
    assert sink.records_for("clients") == [{"phone": "79991234567", "is_vip": True, "Extra": "x"}]


def test_import_without_unmapped_headers_has_no_message(client):
    response = client.post("/utils/import/clients", json={"rows": [{"Визиты": 3}]})

    assert response.status_code == 200
    assert response.json()["message"] is None


def test_preview_rows(client, sink):
    response = client.post(
        "/utils/import/clients/preview",
        json={"rows": [{"Модель автомобиля": "Camry", "Дата покупки": 45292}]},
    )

    assert response.status_code == 200
    assert response.json()["records"] == [
        {
            "cars": {
                "create": [{"model": "Camry", "purchased_at": "2024-01-01T00:00:00.000Z"}],
                "update": [],
                "delete": [],
            }
        }
    ]
    assert sink.payloads == []


def test_unknown_collection(client):
    response = client.post("/utils/import/dealers", json={"rows": [{"a": 1}]})
    assert response.status_code == 404


def test_empty_rows(client):
    response = client.post("/utils/import/clients", json={"rows": []})
    assert response.status_code == 400
