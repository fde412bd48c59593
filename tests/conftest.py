import json

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def app_settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", log_level="DEBUG")


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


@pytest.fixture
def create_product(client):
    def _create(name="Masala Tea", price=20, category="Drinks", filename="tea.png", data=b"tea-image"):
        fields = {"name": name, "price": price, "category": category}
        response = client.post(
            "/api/products",
            data={"product": json.dumps(fields)},
            files={"image": (filename, data, "image/png")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def valid_order():
    return {
        "name": "Alice",
        "phone": "9876543210",
        "tableNumber": "4",
        "items": [{"name": "Tea", "qty": 1}],
        "totalPrice": 20,
    }
