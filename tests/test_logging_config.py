"""Tests for piecejob.logging_config module."""

import logging

import pytest

from piecejob.logging_config import (
    log_bid_accepted,
    log_bid_submitted,
    log_job_posted,
    log_job_transition,
    log_marketplace_event,
    log_safety_alert,
    setup_piecejob_logging,
)


@pytest.fixture(autouse=True)
def clean_piecejob_logger():
    """Remove all handlers from the piecejob logger before/after each test."""
    logger = logging.getLogger("piecejob")
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    yield
    for h in logger.handlers:
        h.close()
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    """Set PIECEJOB_DATA_DIR so logs go to a temp directory."""
    monkeypatch.setenv("PIECEJOB_DATA_DIR", str(tmp_path))
    return tmp_path / "logs"


def _read_events(log_dir):
    event_files = list(log_dir.glob("marketplace-events-*.log"))
    assert len(event_files) == 1
    return event_files[0].read_text()


class TestSetupPiecejobLogging:
    """Tests for setup_piecejob_logging."""

    def test_returns_logger(self, log_dir):
        """Should return the piecejob logger."""
        logger = setup_piecejob_logging(instance_id="test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "piecejob"

    def test_creates_log_directory(self, log_dir):
        assert not log_dir.exists()
        setup_piecejob_logging(instance_id="test")
        assert log_dir.exists()

    def test_log_file_named_with_date(self, log_dir):
        """Should create a log file named local-{date}.log."""
        setup_piecejob_logging(instance_id="test")
        log_files = list(log_dir.glob("local-*.log"))
        assert len(log_files) == 1

    def test_default_level_info(self, log_dir):
        logger = setup_piecejob_logging(instance_id="test")
        assert logger.level == logging.INFO

    def test_custom_level_case_insensitive(self, log_dir):
        logger = setup_piecejob_logging(instance_id="test", level="warning")
        assert logger.level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self, log_dir):
        logger = setup_piecejob_logging(instance_id="test", level="LOUD")
        assert logger.level == logging.INFO

    def test_debug_adds_console_handler(self, log_dir):
        """DEBUG level should add a StreamHandler in addition to FileHandler."""
        logger = setup_piecejob_logging(instance_id="test", level="DEBUG")
        stream_handlers = [
            h
            for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert len(stream_handlers) == 1

    def test_no_duplicate_handlers(self, log_dir):
        """Calling setup twice should not add duplicate handlers."""
        logger1 = setup_piecejob_logging(instance_id="test")
        logger2 = setup_piecejob_logging(instance_id="test")
        assert logger1 is logger2
        file_handlers = [h for h in logger1.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1

    def test_log_format(self, log_dir):
        logger = setup_piecejob_logging(instance_id="test", level="INFO")
        logging.getLogger("piecejob.marketplace.service").info("format check")
        for h in logger.handlers:
            h.flush()
        content = list(log_dir.glob("local-*.log"))[0].read_text()
        assert " | INFO | piecejob.marketplace.service | format check" in content


class TestLogMarketplaceEvent:
    """Tests for log_marketplace_event."""

    def test_event_log_format(self, log_dir):
        log_marketplace_event("job_posted", "job=abc", instance_id="api")
        assert "job_posted | instance=api | job=abc" in _read_events(log_dir)

    def test_event_log_appends(self, log_dir):
        log_marketplace_event("a", "first event")
        log_marketplace_event("b", "second event")
        lines = [line for line in _read_events(log_dir).strip().split("\n") if line]
        assert len(lines) == 2
        assert "first event" in lines[0]
        assert "second event" in lines[1]

    def test_default_instance_id(self, log_dir):
        log_marketplace_event("sync", "details")
        assert "instance=default" in _read_events(log_dir)


class TestConvenienceFunctions:
    """Tests for the per-event helpers."""

    def test_log_job_posted(self, log_dir):
        log_job_posted("cli", "job-1", "Cleaning", "customer1")
        content = _read_events(log_dir)
        assert "job_posted | instance=cli" in content
        assert "category=Cleaning" in content
        assert "customer=customer1" in content

    def test_log_bid_submitted(self, log_dir):
        log_bid_submitted("cli", "bid-1", "job-1", "R950")
        assert "bid=bid-1, job=job-1, amount=R950" in _read_events(log_dir)

    def test_log_bid_accepted(self, log_dir):
        log_bid_accepted("cli", "bid-1", "job-1", rejected=2)
        assert "bid_accepted | instance=cli | bid=bid-1, job=job-1, rejected=2" in _read_events(
            log_dir
        )

    def test_log_job_transition(self, log_dir):
        log_job_transition("cli", "job-1", None, "posted")
        assert "job=job-1, - -> posted, actor=system" in _read_events(log_dir)

    def test_log_safety_alert(self, log_dir):
        log_safety_alert("cli", "job-1", "emergency_alert", 6.5)
        assert "alert=emergency_alert, elapsed_hours=6.50" in _read_events(log_dir)


class TestServiceEventLog:
    """The marketplace writes its event log only when asked to."""

    def test_service_records_events(self, log_dir, storage, clock):
        from piecejob.marketplace.service import MarketplaceService

        service = MarketplaceService(storage=storage, clock=clock, record_events=True)
        service.create_job(
            customer_id="customer1",
            title="Paint fence",
            description="Ten metres of wooden fence",
            category="Painting",
            location="Parkhurst",
            budget="R600",
            estimated_duration=3,
        )

        content = _read_events(log_dir)
        assert "job_posted" in content
        assert "- -> posted" in content

    def test_service_quiet_by_default(self, log_dir, service, post_job):
        post_job()
        assert list(log_dir.glob("marketplace-events-*.log")) == []
