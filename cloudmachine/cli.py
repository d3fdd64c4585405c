"""Command-line entry points.

    cloudmachine machine-up machine.yml
    cloudmachine cluster-up cluster.yml --concurrency 4

Also installed as the ``machine-up`` and ``cluster-up`` scripts.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from injector import Binder, Injector
from loguru import logger

from cloudmachine.auth import resolve_credentials
from cloudmachine.cluster import ClusterExpander
from cloudmachine.config import resolve_aws
from cloudmachine.descriptors import load_cluster, load_machine
from cloudmachine.exceptions import CloudMachineError
from cloudmachine.logging import LogConfig, setup_logging, teardown_logging
from cloudmachine.machine import MachineOrchestrator
from cloudmachine.observability import Reporter, ReporterModule
from cloudmachine.providers.aws import AWS, AWSModule, ComputeFactory

log = logger.bind(component="cli")

MACHINE_UP = "machine-up"
CLUSTER_UP = "cluster-up"


def _add_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--access-key", type=str, default=None, help="AWS access key")
    parser.add_argument("--secret-key", type=str, default=None, help="AWS secret key")
    parser.add_argument("--region", type=str, default=None, help="Default region")
    parser.add_argument(
        "--workdir", type=Path, default=None,
        help="Directory for generated formatting cloud-configs",
    )
    parser.add_argument(
        "--log-level", type=str, default="WARNING",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--log-file", type=str, default=None, help="Also log to this file")


def _add_cluster_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--concurrency", type=int, default=None,
        help="Nodes provisioned at the same time (default: 1, sequential)",
    )
    parser.add_argument(
        "--fail-fast", action="store_true",
        help="Stop starting new nodes after the first failure",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cloudmachine", description="Provision EC2 machines")
    commands = parser.add_subparsers(dest="command", required=True)

    machine = commands.add_parser(MACHINE_UP, help="Create or load a single machine")
    machine.add_argument("descriptor", type=Path, help="Machine YAML file")
    _add_options(machine)

    cluster = commands.add_parser(CLUSTER_UP, help="Create every node of a cluster")
    cluster.add_argument("descriptor", type=Path, help="Cluster YAML file")
    _add_options(cluster)
    _add_cluster_options(cluster)

    return parser


def build_injector(args: argparse.Namespace) -> Injector:
    config = resolve_aws(
        region=args.region,
        workdir=args.workdir,
        concurrency=getattr(args, "concurrency", None),
    )
    credentials = resolve_credentials(args.access_key, args.secret_key, profile=config.profile)
    config = replace(config, credentials=credentials)

    def bind_config(binder: Binder) -> None:
        binder.bind(AWS, to=config)

    return Injector([bind_config, AWSModule(), ReporterModule()])


def build_orchestrator(injector: Injector) -> MachineOrchestrator:
    config = injector.get(AWS)
    return MachineOrchestrator(
        injector.get(ComputeFactory),
        reporter=injector.get(Reporter),
        poll=config.poll_policy(),
        region=config.region,
        workdir=config.workdir,
        format_image_id=config.format_image_id,
        format_instance_type=config.format_instance_type,
    )


async def machine_up(injector: Injector, path: Path) -> int:
    machine = load_machine(path)
    await build_orchestrator(injector).provision(machine)
    injector.get(Reporter).node_finished(machine.instance.id, machine.instance.private_ip)
    return 0


async def cluster_up(injector: Injector, path: Path, *, fail_fast: bool) -> int:
    config = injector.get(AWS)
    expander = ClusterExpander(
        build_orchestrator(injector),
        load_machine,
        concurrency=config.concurrency,
        fail_fast=fail_fast,
        reporter=injector.get(Reporter),
    )
    report = await expander.provision(load_cluster(path))
    return 0 if report.ok else 1


def run(args: argparse.Namespace) -> int:
    handler_ids = setup_logging(LogConfig(level=args.log_level, file=args.log_file))
    try:
        injector = build_injector(args)
        if args.command == MACHINE_UP:
            return asyncio.run(machine_up(injector, args.descriptor))
        return asyncio.run(cluster_up(injector, args.descriptor, fail_fast=args.fail_fast))
    except CloudMachineError as e:
        log.debug("Run failed: {error!r}", error=e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    finally:
        teardown_logging(handler_ids)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


def cli() -> None:
    sys.exit(main())


def machine_up_cli() -> None:
    sys.exit(main([MACHINE_UP, *sys.argv[1:]]))


def cluster_up_cli() -> None:
    sys.exit(main([CLUSTER_UP, *sys.argv[1:]]))


if __name__ == "__main__":
    cli()
