"""
Logging configuration for PieceJob.

Two outputs live under ``<data_dir>/logs``:

- ``local-YYYY-MM-DD.log``: the regular ``piecejob`` logger output.
- ``marketplace-events-YYYY-MM-DD.log``: one line per marketplace event
  (job posted, bid accepted, safety alert, ...) for auditing a session.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from piecejob.utils import get_piecejob_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _logs_dir() -> Path:
    path = get_piecejob_home() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def setup_piecejob_logging(instance_id: str = "default", level: str = "INFO") -> logging.Logger:
    """Configure the ``piecejob`` logger.

    Safe to call more than once: handlers are only attached the first time.

    Args:
        instance_id: Identifier of the running marketplace instance.
        level: Log level name, case-insensitive. Unknown names fall back to INFO.

    Returns:
        The configured ``piecejob`` logger.
    """
    logger = logging.getLogger("piecejob")

    log_level = getattr(logging, str(level).upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logger.setLevel(log_level)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_file = _logs_dir() / f"local-{_today()}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    if log_level == logging.DEBUG:
        has_console = any(
            isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            for h in logger.handlers
        )
        if not has_console:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(console)

    logger.debug("Logging configured for instance=%s", instance_id)
    return logger


def log_marketplace_event(event_type: str, details: str, instance_id: str = "default") -> None:
    """Append a single event line to the daily marketplace event log."""
    event_file = _logs_dir() / f"marketplace-events-{_today()}.log"
    timestamp = datetime.now().isoformat(timespec="seconds")
    with open(event_file, "a", encoding="utf-8") as f:
        f.write(f"{timestamp} | {event_type} | instance={instance_id} | {details}\n")


def log_job_posted(instance_id: str, job_id: str, category: str, customer_id: str) -> None:
    log_marketplace_event(
        "job_posted",
        f"job={job_id}, category={category}, customer={customer_id}",
        instance_id=instance_id,
    )


def log_bid_submitted(instance_id: str, bid_id: str, job_id: str, amount: str) -> None:
    log_marketplace_event(
        "bid_submitted",
        f"bid={bid_id}, job={job_id}, amount={amount}",
        instance_id=instance_id,
    )


def log_bid_accepted(instance_id: str, bid_id: str, job_id: str, rejected: int = 0) -> None:
    log_marketplace_event(
        "bid_accepted",
        f"bid={bid_id}, job={job_id}, rejected={rejected}",
        instance_id=instance_id,
    )


def log_job_transition(
    instance_id: str,
    job_id: str,
    from_status: Optional[str],
    to_status: str,
    actor_id: Optional[str] = None,
) -> None:
    log_marketplace_event(
        "transition",
        f"job={job_id}, {from_status or '-'} -> {to_status}, actor={actor_id or 'system'}",
        instance_id=instance_id,
    )


def log_safety_alert(instance_id: str, job_id: str, alert: str, elapsed_hours: float) -> None:
    log_marketplace_event(
        "safety",
        f"job={job_id}, alert={alert}, elapsed_hours={elapsed_hours:.2f}",
        instance_id=instance_id,
    )
