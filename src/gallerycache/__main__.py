"""
Gallery Cache Package Main Entry Point

Runs the administration CLI with ``python -m gallerycache``.
"""

import logging
import sys

from gallerycache.cli.typer_app import app
from gallerycache.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(CLIDefaults.EXIT_ERROR)
