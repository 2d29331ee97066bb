#!/usr/bin/env python3
"""
Redis Cluster connectivity check

Run this to quickly verify your cluster is working.

Usage:
    redis-cluster-probe [--node HOST:PORT ...] [--tls] [--username USER] [--password PASS]

Exit codes:
    0: all checks passed
    1: the cluster failed a check
    2: invalid configuration
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from cluster_probe.config import (
    ClusterEndpointConfig,
    CONNECTION_TIMEOUT,
    DEFAULT_STARTUP_NODES,
    ENV_NODES,
    ENV_PASSWORD,
    ENV_TLS,
    ENV_USERNAME,
    TEST_KEY,
    TEST_VALUE,
    env_flag,
)
from cluster_probe.errors import ConfigurationError
from cluster_probe.render import render_json, render_text
from cluster_probe.runner import ProbeRunner

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="redis-cluster-probe",
        description="Check Redis cluster connectivity with PING, CLUSTER INFO and SET/GET/DEL",
    )
    parser.add_argument("--node", action="append", dest="nodes", metavar="HOST:PORT",
                        help=f"seed node, repeatable or comma-separated "
                             f"(default: from {ENV_NODES} env var or {','.join(DEFAULT_STARTUP_NODES)})")
    parser.add_argument("--tls", action="store_true", default=env_flag(os.environ.get(ENV_TLS)),
                        help=f"connect with TLS (default: from {ENV_TLS} env var)")
    parser.add_argument("--tls-insecure", action="store_true",
                        help="with --tls, skip certificate and hostname verification")
    parser.add_argument("--username", default=os.environ.get(ENV_USERNAME),
                        help=f"ACL username (default: from {ENV_USERNAME} env var)")
    parser.add_argument("--password", default=os.environ.get(ENV_PASSWORD),
                        help=f"password (default: from {ENV_PASSWORD} env var)")
    parser.add_argument("--timeout", type=float, default=CONNECTION_TIMEOUT,
                        help=f"time budget per step in seconds (default: {CONNECTION_TIMEOUT})")
    parser.add_argument("--key", default=TEST_KEY,
                        help=f"test key to write and delete (default: {TEST_KEY})")
    parser.add_argument("--value", default=TEST_VALUE,
                        help="value written under the test key")
    parser.add_argument("--unique-key", action="store_true",
                        help="append a random suffix to the test key, for parallel probes")
    parser.add_argument("--allow-degraded", action="store_true",
                        help="do not fail when cluster_state is not ok")
    parser.add_argument("--json", action="store_true",
                        help="print the report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="enable debug logging")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False):
    """Send log records to stderr; stdout carries the report"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_config(args: argparse.Namespace) -> ClusterEndpointConfig:
    """Endpoint config from --node flags, falling back to the environment"""
    if args.nodes:
        nodes = [n for value in args.nodes for n in value.split(",")]
    else:
        nodes = os.environ.get(ENV_NODES, ",".join(DEFAULT_STARTUP_NODES)).split(",")
    return ClusterEndpointConfig.from_strings(
        nodes,
        tls=args.tls,
        tls_insecure=args.tls_insecure,
        username=args.username,
        password=args.password,
    )


def probe(argv: Optional[List[str]] = None) -> int:
    """Run the probe and print the report; returns the process exit code"""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.timeout <= 0:
            raise ConfigurationError("--timeout must be positive")
        config = build_config(args)
        runner = ProbeRunner(
            step_timeout=args.timeout,
            test_key=args.key,
            test_value=args.value,
            unique_key=args.unique_key,
            require_cluster_ok=not args.allow_degraded,
        )
        report = runner.run(config)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    print(render_json(report) if args.json else render_text(report))
    if not report.ok:
        logger.warning("Cluster check failed for %s", report.endpoint)
        return EXIT_FAILED
    return EXIT_OK


def main():
    """Main entry point"""
    sys.exit(probe())


if __name__ == "__main__":
    main()
