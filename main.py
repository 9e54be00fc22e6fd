#!/usr/bin/env python3
"""
Rancher In-Service Upgrade Tool

Upgrades one Rancher service to a new image in place, finishes the upgrade
and waits until the service is active again.

This script supports running directly from a source checkout. It adds the
local `src/` directory to sys.path before importing the CLI. For production
use, prefer installing the project and using the `rancher-upgrade` console
script.

Examples:
  python3 main.py --service web --image-repo org/app --image-tag v2
  python3 main.py --service web --image-repo org/app --env LOG_LEVEL=debug --batch-size 2
"""

import os
import sys

REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_PATH = os.path.join(REPO_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
