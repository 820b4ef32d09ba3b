"""Fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from piecejob.api.app import create_app
from piecejob.api.config import Settings
from piecejob.bootstrap import build_marketplace


@pytest.fixture
def settings():
    return Settings(monitor_enabled=False, rate_limit_enabled=False, seed_demo_data=True)


@pytest.fixture
def marketplace():
    """A seeded marketplace shared with the app under test."""
    return build_marketplace(instance_id="api-test")


@pytest.fixture
def app(marketplace, settings):
    return create_app(service=marketplace, settings=settings)


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def customer_headers():
    return {"X-Actor-Id": "customer1"}


@pytest.fixture
def new_job(client):
    """Post a job through the API and return its JSON."""
    response = client.post(
        "/jobs",
        json={
            "customer_id": "customer1",
            "title": "Clean gutters",
            "description": "Single storey, roughly 30 metres of gutter",
            "category": "Handyman",
            "location": "Sandton, Johannesburg",
            "budget": "R500 - R700",
            "estimated_duration": 3,
            "coordinates": {"latitude": -26.1076, "longitude": 28.0567},
        },
    )
    assert response.status_code == 201
    return response.json()
