"""EC2 implementation of the provider capability.

Translates between boto responses and the observed-state records, and maps
``ClientError`` codes onto the cloudmachine error taxonomy.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from cloudmachine.exceptions import NotFoundError, ProviderError
from cloudmachine.providers.protocol import InstanceRequest, VolumeRequest
from cloudmachine.types import (
    InstanceState,
    SecurityGroupRef,
    Tag,
    VolumeAttachment,
    VolumeState,
)

from .clients import EC2ClientFactory

log = logger.bind(component="aws-compute")


@contextmanager
def _translate(operation: str, resource: str = "", resource_id: str = "") -> Iterator[None]:
    try:
        yield
    except ClientError as e:
        error = e.response.get("Error", {})
        code = error.get("Code", "")
        if resource_id and code.endswith(".NotFound"):
            raise NotFoundError(resource, resource_id) from e
        raise ProviderError(error.get("Message", str(e)), code=code, operation=operation) from e
    except BotoCoreError as e:
        raise ProviderError(str(e), operation=operation) from e


def _tags(raw: list[dict[str, str]] | None) -> tuple[Tag, ...]:
    return tuple(Tag(t["Key"], t.get("Value", "")) for t in raw or ())


def parse_volume(raw: dict[str, Any]) -> VolumeState:
    return VolumeState(
        id=raw["VolumeId"],
        status=raw.get("State", ""),
        size=raw.get("Size", 0),
        iops=raw.get("Iops", 0),
        availability_zone=raw.get("AvailabilityZone", ""),
        volume_type=raw.get("VolumeType", ""),
        snapshot_id=raw.get("SnapshotId", ""),
        tags=_tags(raw.get("Tags")),
        attachments=tuple(
            VolumeAttachment(
                instance_id=a.get("InstanceId", ""),
                device=a.get("Device", ""),
                state=a.get("State", ""),
            )
            for a in raw.get("Attachments", ())
        ),
    )


def parse_instance(raw: dict[str, Any]) -> InstanceState:
    launch_time = raw.get("LaunchTime")
    return InstanceState(
        id=raw["InstanceId"],
        state=raw.get("State", {}).get("Name", ""),
        instance_type=raw.get("InstanceType", ""),
        image_id=raw.get("ImageId", ""),
        key_name=raw.get("KeyName", ""),
        subnet_id=raw.get("SubnetId", ""),
        vpc_id=raw.get("VpcId", ""),
        availability_zone=raw.get("Placement", {}).get("AvailabilityZone", ""),
        ebs_optimized=raw.get("EbsOptimized", False),
        security_groups=tuple(
            SecurityGroupRef(id=g["GroupId"], name=g.get("GroupName", ""))
            for g in raw.get("SecurityGroups", ())
        ),
        tags=_tags(raw.get("Tags")),
        private_ip=raw.get("PrivateIpAddress", ""),
        public_ip=raw.get("PublicIpAddress", ""),
        launch_time=launch_time.isoformat() if launch_time is not None else "",
    )


def volume_params(request: VolumeRequest) -> dict[str, Any]:
    params: dict[str, Any] = {"AvailabilityZone": request.availability_zone}
    if request.volume_type:
        params["VolumeType"] = request.volume_type
    if request.size > 0:
        params["Size"] = request.size
    if request.snapshot_id:
        params["SnapshotId"] = request.snapshot_id
    if request.iops > 0:
        params["Iops"] = request.iops
    return params


def instance_params(request: InstanceRequest) -> dict[str, Any]:
    params: dict[str, Any] = {
        "ImageId": request.image_id,
        "InstanceType": request.instance_type,
        "MinCount": 1,
        "MaxCount": 1,
        "EbsOptimized": request.ebs_optimized,
        "DisableApiTermination": request.disable_api_termination,
    }
    if request.key_name:
        params["KeyName"] = request.key_name
    if request.security_group_ids:
        params["SecurityGroupIds"] = list(request.security_group_ids)
    if request.subnet_id:
        params["SubnetId"] = request.subnet_id

    placement: dict[str, str] = {}
    if request.availability_zone:
        placement["AvailabilityZone"] = request.availability_zone
    if request.placement_group:
        placement["GroupName"] = request.placement_group
    if placement:
        params["Placement"] = placement

    if request.shutdown_behavior:
        params["InstanceInitiatedShutdownBehavior"] = request.shutdown_behavior
    if request.user_data:
        # botocore base64-encodes UserData for RunInstances
        params["UserData"] = request.user_data
    return params


class EC2Compute:
    """Instances, volumes and tags of one EC2 region."""

    def __init__(self, ec2: EC2ClientFactory, region: str) -> None:
        self._ec2 = ec2
        self.region = region

    async def create_volume(self, request: VolumeRequest) -> VolumeState:
        with _translate("CreateVolume"):
            async with self._ec2(self.region) as ec2:
                response = await ec2.create_volume(**volume_params(request))
        return parse_volume(response)

    async def describe_volume(self, volume_id: str) -> VolumeState:
        with _translate("DescribeVolumes", "volume", volume_id):
            async with self._ec2(self.region) as ec2:
                response = await ec2.describe_volumes(VolumeIds=[volume_id])
        volumes = response.get("Volumes", [])
        if not volumes:
            raise NotFoundError("volume", volume_id)
        return parse_volume(volumes[0])

    async def create_instance(self, request: InstanceRequest) -> InstanceState:
        with _translate("RunInstances"):
            async with self._ec2(self.region) as ec2:
                response = await ec2.run_instances(**instance_params(request))
        instances = response.get("Instances", [])
        if not instances:
            raise ProviderError("No instance was created", operation="RunInstances")
        return parse_instance(instances[0])

    async def describe_instance(self, instance_id: str) -> InstanceState:
        with _translate("DescribeInstances", "instance", instance_id):
            async with self._ec2(self.region) as ec2:
                response = await ec2.describe_instances(InstanceIds=[instance_id])
        instances = [i for r in response.get("Reservations", []) for i in r.get("Instances", [])]
        if not instances:
            raise NotFoundError("instance", instance_id)
        return parse_instance(instances[0])

    async def create_tags(self, resource_id: str, tags: Sequence[Tag]) -> None:
        with _translate("CreateTags"):
            async with self._ec2(self.region) as ec2:
                await ec2.create_tags(
                    Resources=[resource_id],
                    Tags=[{"Key": t.key, "Value": t.value} for t in tags],
                )

    async def attach_volume(self, volume_id: str, instance_id: str, device: str) -> None:
        with _translate("AttachVolume"):
            async with self._ec2(self.region) as ec2:
                await ec2.attach_volume(VolumeId=volume_id, InstanceId=instance_id, Device=device)

    async def reboot_instance(self, instance_id: str) -> None:
        with _translate("RebootInstances"):
            async with self._ec2(self.region) as ec2:
                await ec2.reboot_instances(InstanceIds=[instance_id])

    async def terminate_instance(self, instance_id: str) -> None:
        with _translate("TerminateInstances"):
            async with self._ec2(self.region) as ec2:
                await ec2.terminate_instances(InstanceIds=[instance_id])
        log.info("Terminated instance {id}", id=instance_id)
