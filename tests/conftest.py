from datetime import date

import pytest
from fastapi.testclient import TestClient

from payment_instructions_api.config import settings
from payment_instructions_api.main import app, get_today

TODAY = date(2025, 1, 15)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'requests.db'}")
    monkeypatch.setattr(settings, "api_key", None)
    monkeypatch.setattr(settings, "disable_request_log", False)
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
