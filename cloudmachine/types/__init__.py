"""Descriptor and observed-state types for cloudmachine."""

from cloudmachine.types.descriptors import (
    Cluster,
    ClusterDefaults,
    ClusterEntry,
    Instance,
    Machine,
    Volume,
)
from cloudmachine.types.observed import (
    InstanceState,
    SecurityGroupRef,
    Tag,
    VolumeAttachment,
    VolumeState,
)

__all__ = [
    # Descriptors
    "Volume",
    "Instance",
    "Machine",
    "ClusterDefaults",
    "ClusterEntry",
    "Cluster",
    # Observed state
    "Tag",
    "SecurityGroupRef",
    "VolumeAttachment",
    "VolumeState",
    "InstanceState",
]
