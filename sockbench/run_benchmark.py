#!/usr/bin/env python3
"""Run the socket benchmark against every configured target.

With no arguments the compiled-in target list is used. LOG_MESSAGES=1 in the
environment prints every received payload.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import yaml

from sockbench.analysis.report import render_report
from sockbench.config import BenchConfig
from sockbench.runner.connection import Dialer, MockDialer
from sockbench.runner.controller import BenchmarkRunner


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Benchmark WebSocket, TCP and UDP servers"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file overriding the built-in targets and timings",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use in-memory connections instead of real sockets",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved plan without connecting",
    )
    return parser.parse_args(argv)


def print_plan(config: BenchConfig) -> None:
    print(f"Config Hash: {config.config_hash()}")
    print(f"Clients per target: {config.clients_per_target}")
    print(f"Send interval: {config.send_interval_sec * 1000:.0f}ms")
    print(f"Observation window: {config.duration_sec:.1f}s")
    for target in config.targets:
        print(f"  - {target.name} ({target.protocol.value}) at {target.address}")


async def run(config: BenchConfig, dialer: Dialer) -> int:
    if not config.targets:
        print("No results to report: no targets configured", file=sys.stderr)
        await dialer.close()
        return 0
    results = await BenchmarkRunner(config, dialer).run()
    print(render_report(results))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.config is not None:
        if not args.config.exists():
            print(f"Error: Config file not found: {args.config}", file=sys.stderr)
            return 1
        try:
            config = BenchConfig.from_yaml(args.config)
        except (ValueError, KeyError, TypeError, yaml.YAMLError) as e:
            print(f"Error: Invalid config {args.config}: {e}", file=sys.stderr)
            return 1
    else:
        config = BenchConfig.from_env()

    if args.dry_run:
        print_plan(config)
        print("\n[Dry run - not connecting]")
        return 0

    if args.mock:
        dialer: Dialer = MockDialer()
    else:
        dialer = Dialer(connect_timeout_sec=config.connect_timeout_sec)

    return asyncio.run(run(config, dialer))


if __name__ == "__main__":
    sys.exit(main())
