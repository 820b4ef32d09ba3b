"""Wiring for a ready-to-use marketplace instance."""

import logging
from typing import Optional

from piecejob.config import MarketplaceConfig
from piecejob.marketplace.service import MarketplaceService
from piecejob.marketplace.storage import InMemoryMarketplaceStorage
from piecejob.notifications import (
    FanOutSink,
    LoggingNotificationSink,
    NotificationCenter,
    SafetyAlertNotifier,
)
from piecejob.safety.monitor import SafetyMonitor
from piecejob.seed import load_demo_data

logger = logging.getLogger(__name__)


def build_marketplace(
    config: Optional[MarketplaceConfig] = None,
    seed: bool = True,
    instance_id: str = "default",
    record_events: bool = False,
) -> MarketplaceService:
    """Create a marketplace with an inbox and a safety monitor attached.

    Safety events are logged and delivered to the affected customer's (and,
    for help requests, the provider's) inbox.

    Args:
        config: Tuning values. Defaults to ``MarketplaceConfig()``.
        seed: Load the demo jobs, bids and providers.
        instance_id: Name used in logs and the event log.
        record_events: Write the daily marketplace event log.
    """
    config = config or MarketplaceConfig()
    storage = InMemoryMarketplaceStorage()
    notifications = NotificationCenter()
    sink = FanOutSink(
        LoggingNotificationSink(instance_id=instance_id, write_event_log=record_events),
        SafetyAlertNotifier(notifications, storage.get_job),
    )
    monitor = SafetyMonitor(sink=sink, config=config)
    service = MarketplaceService(
        storage=storage,
        config=config,
        monitor=monitor,
        notifications=notifications,
        instance_id=instance_id,
        record_events=record_events,
    )
    if seed:
        load_demo_data(service)
    logger.debug("Marketplace %s ready (seeded=%s)", instance_id, seed)
    return service
