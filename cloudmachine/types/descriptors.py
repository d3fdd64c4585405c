"""Desired-state descriptors for volumes, instances, machines and clusters.

Descriptors are built once from configuration and mutated in place by the
resolvers: the identifier and the ``observed`` record are filled in after a
successful create or load. Everything the provider reports lives in
``observed``; the merge functions decide which observed values overwrite
the desired ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from cloudmachine.types.observed import InstanceState, Tag, VolumeState

__all__ = [
    "Volume",
    "Instance",
    "Machine",
    "ClusterDefaults",
    "ClusterEntry",
    "Cluster",
]


@dataclass(slots=True)
class Volume:
    """Block-storage volume descriptor.

    An empty ``id`` means the volume does not exist yet and will be created.
    """

    id: str = ""
    name: str = ""
    type: str = ""
    size: int = 0
    iops: int = 0
    availability_zone: str = ""
    snapshot_id: str = ""
    device: str = ""
    mount: str = ""
    filesystem: str = ""
    tags: list[Tag] = field(default_factory=list)
    observed: VolumeState | None = field(default=None, repr=False, compare=False)

    @property
    def status(self) -> str:
        return self.observed.status if self.observed else ""

    @property
    def is_new(self) -> bool:
        """True when the volume would be created blank and needs formatting."""
        return not self.id and not self.snapshot_id


@dataclass(slots=True)
class Instance:
    """Compute instance descriptor.

    An empty ``id`` means the instance does not exist yet and will be created.
    ``cloud_config`` is an optional path to a user-data template.
    """

    id: str = ""
    name: str = ""
    type: str = ""
    image_id: str = ""
    region: str = ""
    key_name: str = ""
    security_groups: list[str] = field(default_factory=list)
    subnet_id: str = ""
    availability_zone: str = ""
    cloud_config: str = ""
    ebs_optimized: bool = False
    shutdown_behavior: str = ""
    enable_api_termination: bool = False
    placement_group: str = ""
    tags: list[Tag] = field(default_factory=list)
    observed: InstanceState | None = field(default=None, repr=False, compare=False)

    @property
    def state(self) -> str:
        return self.observed.state if self.observed else ""

    @property
    def private_ip(self) -> str:
        return self.observed.private_ip if self.observed else ""

    @property
    def public_ip(self) -> str:
        return self.observed.public_ip if self.observed else ""

    def template_context(self) -> dict[str, object]:
        """Descriptor fields exposed to cloud-config templates."""
        context: dict[str, object] = {
            f.name: getattr(self, f.name) for f in fields(self) if f.name != "observed"
        }
        context["private_ip"] = self.private_ip
        context["public_ip"] = self.public_ip
        return context


@dataclass(slots=True)
class Machine:
    """One instance plus the volumes it owns."""

    instance: Instance = field(default_factory=Instance)
    volumes: list[Volume] = field(default_factory=list)

    @property
    def new_volumes(self) -> list[Volume]:
        return [v for v in self.volumes if v.is_new]


@dataclass(slots=True)
class ClusterDefaults:
    """Values inherited by every machine of a cluster file."""

    image_id: str = ""
    region: str = ""
    key_name: str = ""
    security_groups: list[str] = field(default_factory=list)
    subnet_id: str = ""
    availability_zone: str = ""
    tags: list[Tag] = field(default_factory=list)


@dataclass(slots=True)
class ClusterEntry:
    """A machine template path replicated ``nodes`` times."""

    machine: str
    nodes: int = 1


@dataclass(slots=True)
class Cluster:
    defaults: ClusterDefaults = field(default_factory=ClusterDefaults)
    entries: list[ClusterEntry] = field(default_factory=list)
