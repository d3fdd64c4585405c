"""Observed state of remote resources as reported by the provider.

These records are never written by callers: the provider adapter builds
them from API responses and the resolvers merge them into descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Tag",
    "SecurityGroupRef",
    "VolumeAttachment",
    "VolumeState",
    "InstanceState",
]


@dataclass(frozen=True, slots=True)
class Tag:
    """Key/value resource tag."""

    key: str
    value: str


@dataclass(frozen=True, slots=True)
class SecurityGroupRef:
    id: str
    name: str = ""


@dataclass(frozen=True, slots=True)
class VolumeAttachment:
    instance_id: str
    device: str
    state: str


@dataclass(frozen=True, slots=True)
class VolumeState:
    """Volume as last described by the provider."""

    id: str
    status: str
    size: int = 0
    iops: int = 0
    availability_zone: str = ""
    volume_type: str = ""
    snapshot_id: str = ""
    tags: tuple[Tag, ...] = ()
    attachments: tuple[VolumeAttachment, ...] = ()


@dataclass(frozen=True, slots=True)
class InstanceState:
    """Instance as last described by the provider."""

    id: str
    state: str
    instance_type: str = ""
    image_id: str = ""
    key_name: str = ""
    subnet_id: str = ""
    vpc_id: str = ""
    availability_zone: str = ""
    ebs_optimized: bool = False
    security_groups: tuple[SecurityGroupRef, ...] = ()
    tags: tuple[Tag, ...] = ()
    private_ip: str = ""
    public_ip: str = ""
    launch_time: str = ""
