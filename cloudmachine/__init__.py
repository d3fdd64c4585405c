"""cloudmachine - Provision EC2 machines and clusters from YAML descriptors.

Example:

    import asyncio

    from cloudmachine import MachineOrchestrator, load_machine
    from cloudmachine.providers.aws import AWS, AWSModule, ComputeFactory
    from injector import Injector

    injector = Injector([AWSModule(), lambda b: b.bind(AWS, to=AWS())])
    orchestrator = MachineOrchestrator(injector.get(ComputeFactory))
    machine = asyncio.run(orchestrator.provision(load_machine("machine.yml")))
"""

# Library logging stays off until setup_logging() is called
from cloudmachine import logging  # noqa: F401

from cloudmachine.cascade import apply_defaults, inherit_tags, suffix_machine
from cloudmachine.cluster import ClusterExpander, ClusterReport, NodeResult
from cloudmachine.descriptors import cluster_from_dict, load_cluster, load_machine, machine_from_dict
from cloudmachine.exceptions import (
    CloudMachineError,
    ConfigurationError,
    NotFoundError,
    PartialStateError,
    ProviderError,
    WaitTimeoutError,
)
from cloudmachine.instance import InstanceResolver
from cloudmachine.machine import MachineOrchestrator
from cloudmachine.observability import Reporter
from cloudmachine.providers import Compute, PollPolicy, wait_until_state
from cloudmachine.types import (
    Cluster,
    ClusterDefaults,
    ClusterEntry,
    Instance,
    InstanceState,
    Machine,
    Tag,
    Volume,
    VolumeState,
)
from cloudmachine.volume import VolumeResolver

__version__ = "0.1.0"

__all__ = [
    # Descriptors
    "Volume",
    "Instance",
    "Machine",
    "Cluster",
    "ClusterDefaults",
    "ClusterEntry",
    "Tag",
    "VolumeState",
    "InstanceState",
    "load_machine",
    "load_cluster",
    "machine_from_dict",
    "cluster_from_dict",
    # Cascade
    "apply_defaults",
    "inherit_tags",
    "suffix_machine",
    # Provisioning
    "Compute",
    "PollPolicy",
    "wait_until_state",
    "VolumeResolver",
    "InstanceResolver",
    "MachineOrchestrator",
    "ClusterExpander",
    "ClusterReport",
    "NodeResult",
    "Reporter",
    # Errors
    "CloudMachineError",
    "ConfigurationError",
    "NotFoundError",
    "ProviderError",
    "PartialStateError",
    "WaitTimeoutError",
]
