"""Console entry point for the Rancher in-service upgrader CLI."""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Dict, List

from clients import RancherRestClient
from config import UpgraderConfig
from errors import ConfigurationError
from log_utils import setup_logging
from models import UpgradeRequest
from upgrader import ServiceUpgrader

logger = logging.getLogger(__name__)


def parse_env_pairs(pairs: List[str] | None) -> Dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a dict; later keys win."""
    environment: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid environment entry '{pair}', expected KEY=VALUE")
        environment[key] = value
    return environment


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Rancher in-service upgrade of a single service"
    )
    parser.add_argument("--service", required=True, help="Rancher service name")
    parser.add_argument(
        "--image-repo", required=True, help="Docker image repository (e.g. org/app)"
    )
    parser.add_argument("--image-tag", help="Docker image tag (e.g. v2)")
    parser.add_argument(
        "--env",
        action="append",
        metavar="KEY=VALUE",
        help="Environment variable to set or override (repeatable)",
    )
    parser.add_argument("--batch-size", type=int, default=1)
    parser.add_argument("--interval-millis", type=int, default=30 * 1000)
    parser.add_argument(
        "--no-start-first",
        dest="start_first",
        action="store_false",
        help="Stop old containers before starting new ones",
    )

    parser.add_argument(
        "--endpoint",
        default=os.environ.get("RANCHER_URL"),
        help="Rancher API endpoint (default: $RANCHER_URL)",
    )
    parser.add_argument(
        "--apikey",
        default=os.environ.get("RANCHER_ACCESS_KEY"),
        help="Rancher API key (default: $RANCHER_ACCESS_KEY)",
    )
    parser.add_argument(
        "--apisecret",
        default=os.environ.get("RANCHER_SECRET_KEY"),
        help="Rancher API secret (default: $RANCHER_SECRET_KEY)",
    )
    parser.add_argument("--status-check-frequency", type=int, default=20 * 1000)
    parser.add_argument("--service-active-timeout", type=int, default=3 * 60 * 1000)
    parser.add_argument(
        "--service-upgraded-timeout", type=int, default=3 * 60 * 1000
    )
    parser.add_argument("--report-file", help="Write a JSON upgrade report here")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    try:
        environment = parse_env_pairs(args.env)
        config = UpgraderConfig.from_args(args)
    except (ValueError, ConfigurationError) as e:
        parser.error(str(e))

    setup_logging(verbose=config.verbose)

    request = UpgradeRequest(
        service_name=args.service,
        image_repo=args.image_repo,
        image_tag=args.image_tag,
        environment=environment,
        batch_size=args.batch_size,
        interval_millis=args.interval_millis,
        start_first=args.start_first,
    )

    upgrader = ServiceUpgrader(RancherRestClient.from_config(config), config)
    result = upgrader.run(request)

    if args.report_file:
        try:
            with open(args.report_file, "w") as f:
                json.dump(result.to_dict(), f, indent=2)
            logger.info(f"Detailed report exported to: {args.report_file}")
        except OSError as e:
            logger.error(f"Could not write report to {args.report_file}: {e}")

    return 0 if result.succeeded else 1
