"""Provider capability consumed by the resolvers.

Implementations return observed-state records and raise the errors from
``cloudmachine.exceptions``: ``NotFoundError`` when an identifier is unknown
and ``ProviderError`` for anything the API rejects.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from cloudmachine.types import InstanceState, Tag, VolumeState


@dataclass(frozen=True, slots=True)
class VolumeRequest:
    """Parameters for a new volume. Zero/empty values are omitted."""

    availability_zone: str
    volume_type: str = ""
    size: int = 0
    snapshot_id: str = ""
    iops: int = 0


@dataclass(frozen=True, slots=True)
class InstanceRequest:
    """Parameters for a new instance. Empty optional values are omitted."""

    image_id: str
    instance_type: str
    key_name: str = ""
    security_group_ids: tuple[str, ...] = ()
    subnet_id: str = ""
    availability_zone: str = ""
    ebs_optimized: bool = False
    disable_api_termination: bool = True
    shutdown_behavior: str = ""
    placement_group: str = ""
    user_data: str = ""


@runtime_checkable
class Compute(Protocol):
    """Instances, volumes and tags of one provider region."""

    async def create_volume(self, request: VolumeRequest) -> VolumeState: ...

    async def describe_volume(self, volume_id: str) -> VolumeState: ...

    async def create_instance(self, request: InstanceRequest) -> InstanceState: ...

    async def describe_instance(self, instance_id: str) -> InstanceState: ...

    async def create_tags(self, resource_id: str, tags: Sequence[Tag]) -> None: ...

    async def attach_volume(self, volume_id: str, instance_id: str, device: str) -> None: ...

    async def reboot_instance(self, instance_id: str) -> None: ...

    async def terminate_instance(self, instance_id: str) -> None: ...
