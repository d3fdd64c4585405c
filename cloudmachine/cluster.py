"""Cluster expansion: replicate machine templates across N nodes.

Every cluster entry names a machine template and a node count. The template
is loaded once, cluster defaults are cascaded into it, and node ``i`` is a
clone whose instance and volume names carry a ``-i`` suffix.

Nodes are independent, so a failing node is recorded in the report and the
remaining nodes still run. Configuration errors abort the whole run because
every other node would hit them too.
"""

from __future__ import annotations

from typing import TypeAlias

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from cloudmachine.cascade import apply_defaults, suffix_machine
from cloudmachine.exceptions import CloudMachineError, ConfigurationError
from cloudmachine.machine import MachineOrchestrator, check_cloud_config
from cloudmachine.observability.reporter import Reporter
from cloudmachine.types import Cluster, Machine

log = logger.bind(component="cluster")

MachineLoader: TypeAlias = Callable[[str], Machine]


@dataclass(slots=True)
class NodeResult:
    """Outcome of one node: the provisioned machine or the error that stopped it."""

    cluster: int
    node: int
    machine: Machine
    error: CloudMachineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def name(self) -> str:
        return self.machine.instance.name


@dataclass(slots=True)
class ClusterReport:
    results: list[NodeResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> list[NodeResult]:
        return [r for r in self.results if not r.ok]


def _raise_configuration_error(results: list[NodeResult]) -> None:
    for result in results:
        if isinstance(result.error, ConfigurationError):
            raise result.error


class ClusterExpander:
    """Expands a cluster file into machines and provisions them.

    Args:
        orchestrator: Provisions a single machine.
        load_machine: Decodes a machine template from its path.
        concurrency: Nodes provisioned at the same time. 1 is strictly sequential.
        fail_fast: Stop starting new nodes after the first failure.
        reporter: Progress output.
    """

    def __init__(
        self,
        orchestrator: MachineOrchestrator,
        load_machine: MachineLoader,
        *,
        concurrency: int = 1,
        fail_fast: bool = False,
        reporter: Reporter | None = None,
    ) -> None:
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {concurrency}")
        self._orchestrator = orchestrator
        self._load_machine = load_machine
        self._concurrency = concurrency
        self._fail_fast = fail_fast
        self._reporter = reporter or Reporter.quiet()

    def expand(self, cluster: Cluster) -> list[list[Machine]]:
        """Node machines per cluster entry, in order. Templates are not mutated."""
        expanded: list[list[Machine]] = []
        for entry in cluster.entries:
            template = apply_defaults(self._load_machine(entry.machine), cluster.defaults)
            check_cloud_config(template)
            expanded.append([suffix_machine(template, i) for i in range(1, entry.nodes + 1)])
        return expanded

    async def provision(self, cluster: Cluster) -> ClusterReport:
        expanded = self.expand(cluster)
        report = ClusterReport()
        semaphore = asyncio.Semaphore(self._concurrency)
        stop = asyncio.Event()

        async def run_node(index: int, node: int, machine: Machine) -> NodeResult:
            async with semaphore:
                result = NodeResult(cluster=index, node=node, machine=machine)
                if stop.is_set():
                    result.error = CloudMachineError("skipped after an earlier failure")
                    return result

                self._reporter.info(f"Running machine: {machine.instance.name}")
                try:
                    await self._orchestrator.provision(machine)
                except CloudMachineError as e:
                    log.error("Node {name} failed: {error}", name=result.name, error=e)
                    self._reporter.node_failed(result.name, e)
                    result.error = e
                    if self._fail_fast or isinstance(e, ConfigurationError):
                        stop.set()
                    return result

                self._reporter.node_finished(machine.instance.id, machine.instance.private_ip)
                return result

        for index, machines in enumerate(expanded, start=1):
            self._reporter.cluster_started(index)
            if self._concurrency == 1:
                batch = []
                for node, machine in enumerate(machines, start=1):
                    batch.append(await run_node(index, node, machine))
                    _raise_configuration_error(batch[-1:])
            else:
                async with asyncio.TaskGroup() as tg:
                    tasks = [
                        tg.create_task(run_node(index, node, machine))
                        for node, machine in enumerate(machines, start=1)
                    ]
                batch = [t.result() for t in tasks]
                _raise_configuration_error(batch)
            report.results.extend(batch)

        log.info(
            "Cluster run finished: {ok}/{total} node(s) provisioned",
            ok=len(report.results) - len(report.failed), total=len(report.results),
        )
        return report
