"""
Pytest fixtures and test configuration for PieceJob tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest

from piecejob.config import MarketplaceConfig
from piecejob.geo import Coordinates
from piecejob.marketplace.models import Provider
from piecejob.marketplace.service import MarketplaceService
from piecejob.marketplace.storage import InMemoryMarketplaceStorage
from piecejob.notifications import NotificationCenter
from piecejob.safety.monitor import SafetyMonitor

START = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)

SANDTON = Coordinates(-26.1076, 28.0567)


class FakeClock:
    """Controllable clock for time-dependent tests."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingSink:
    """Safety sink that records every event it receives."""

    def __init__(self):
        self.events: List[Tuple] = []

    def on_alert_level_changed(self, job_id, level):
        self.events.append(("alert_level_changed", job_id, level))

    def on_emergency_check_required(self, job_id):
        self.events.append(("emergency_check_required", job_id))

    def on_emergency_alert(self, job_id, elapsed_hours):
        self.events.append(("emergency_alert", job_id))

    def on_safety_confirmed(self, job_id, user_id=None):
        self.events.append(("safety_confirmed", job_id))

    def on_emergency_help_requested(self, job_id):
        self.events.append(("emergency_help_requested", job_id))

    def names(self) -> List[str]:
        return [e[0] for e in self.events]


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep log and event files inside a temp directory."""
    monkeypatch.setenv("PIECEJOB_DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    """Create in-memory storage for testing."""
    return InMemoryMarketplaceStorage()


@pytest.fixture
def config():
    """Create test configuration."""
    return MarketplaceConfig()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifications(clock):
    return NotificationCenter(clock=clock)


@pytest.fixture
def monitor(sink, config, clock):
    return SafetyMonitor(sink=sink, config=config, clock=clock)


@pytest.fixture
def service(storage, config, monitor, notifications, clock):
    """Create a marketplace service with a monitor and inbox attached."""
    return MarketplaceService(
        storage=storage,
        config=config,
        monitor=monitor,
        notifications=notifications,
        clock=clock,
    )


@pytest.fixture
def make_provider():
    """Factory for provider profiles."""

    def _make(provider_id: str = "provider1", **overrides) -> Provider:
        fields = dict(
            id=provider_id,
            name=f"Provider {provider_id}",
            specialty="Cleaning",
            location="Sandton",
            hourly_rate="R180/hour",
            coordinates=SANDTON,
        )
        fields.update(overrides)
        return Provider(**fields)

    return _make


@pytest.fixture
def providers(service, make_provider):
    """Register two providers with the service."""
    return [
        service.register_provider(make_provider("provider1", name="Sarah Mokoena")),
        service.register_provider(make_provider("provider5", name="Linda Nkomo")),
    ]


@pytest.fixture
def post_job(service):
    """Post a job with sensible defaults."""

    def _post(customer_id: str = "customer1", **overrides):
        fields = dict(
            customer_id=customer_id,
            title="Deep Clean 3-Bedroom House",
            description="Kitchen, bathrooms and all living areas.",
            category="Cleaning",
            location="Sandton, Johannesburg",
            budget="R800 - R1200",
            estimated_duration=4,
            coordinates=SANDTON,
        )
        fields.update(overrides)
        return service.create_job(**fields)

    return _post


@pytest.fixture
def bid_on(service):
    """Submit a bid with sensible defaults."""

    def _bid(job_id: str, provider_id: str = "provider1", **overrides):
        fields = dict(
            job_id=job_id,
            provider_id=provider_id,
            amount="R950",
            message="Eight years of deep cleaning experience.",
            estimated_duration=4,
        )
        fields.update(overrides)
        return service.submit_bid(**fields)

    return _bid


@pytest.fixture
def in_progress_job(service, providers, post_job, bid_on):
    """A job that has been bid on, accepted and started."""
    job = post_job()
    bid = bid_on(job.id)
    service.accept_bid(bid.id)
    return service.start_job(job.id)
