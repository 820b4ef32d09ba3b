"""
PieceJob - Local services marketplace core.

Customers post jobs, providers bid on them, and active jobs are watched
by a time-based safety monitor.
"""

from .marketplace import MarketplaceService
from .safety import SafetyMonitor

try:
    from importlib.metadata import version

    __version__ = version("piecejob")
except Exception:
    __version__ = "0.0.0"

__all__ = ["MarketplaceService", "SafetyMonitor"]
