"""CLI command modules for PieceJob.

Each module holds the handlers for one command group.
"""

from piecejob.cli.commands.bids import cmd_bids
from piecejob.cli.commands.demo import cmd_demo
from piecejob.cli.commands.jobs import cmd_jobs
from piecejob.cli.commands.providers import cmd_providers
from piecejob.cli.commands.safety import cmd_safety

__all__ = [
    "cmd_bids",
    "cmd_demo",
    "cmd_jobs",
    "cmd_providers",
    "cmd_safety",
]
