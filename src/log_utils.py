"""
Logging utilities for the Rancher in-service upgrader.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    verbose: bool = False, log_file: Optional[str] = "rancher-upgrade.log"
) -> logging.Logger:
    """
    Set up logging for an upgrade run.

    Progress goes to stdout and, unless ``log_file`` is None, to a file so a
    failed rollout can be inspected after the process exits.

    Args:
        verbose: Enable verbose (DEBUG) logging, including HTTP traffic
        log_file: Path to log file, or None for stdout only

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # urllib3 logs every connection at DEBUG; only show it when asked
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)

    return logging.getLogger("rancher_upgrade")
