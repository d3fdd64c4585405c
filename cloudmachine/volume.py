"""Volume resolver: get-or-create a block-storage volume and wait for it.

A volume without an id is created, tagged and polled until ``available``;
a volume with an id is loaded. Either way the provider's view is merged back
into the descriptor.
"""

from __future__ import annotations

from loguru import logger

from cloudmachine.cascade import with_name_tag
from cloudmachine.constants import (
    DEFAULT_AVAILABILITY_ZONE,
    NAME_TAG,
    PROVISIONED_IOPS_TYPES,
    VolumeStatus,
)
from cloudmachine.exceptions import ConfigurationError, PartialStateError, ProviderError
from cloudmachine.observability.reporter import Reporter
from cloudmachine.providers.protocol import Compute, VolumeRequest
from cloudmachine.providers.wait import PollPolicy, wait_until_state
from cloudmachine.types import Tag, Volume, VolumeState

log = logger.bind(component="volume")


def merge_volume(volume: Volume, observed: VolumeState) -> None:
    """Overwrite desired fields with what the provider reports.

    The ``Name`` tag moves into ``volume.name``; other tags are kept as-is.
    """
    volume.observed = observed
    volume.id = observed.id
    volume.size = observed.size
    volume.iops = observed.iops
    volume.availability_zone = observed.availability_zone
    volume.type = observed.volume_type

    if observed.tags:
        tags: list[Tag] = []
        for tag in observed.tags:
            if tag.key == NAME_TAG:
                volume.name = tag.value
            else:
                tags.append(tag)
        volume.tags = tags


class VolumeResolver:
    """Resolves volume descriptors against one provider region."""

    def __init__(
        self,
        compute: Compute,
        *,
        reporter: Reporter | None = None,
        poll: PollPolicy | None = None,
    ) -> None:
        self._compute = compute
        self._reporter = reporter or Reporter.quiet()
        self._poll = poll or PollPolicy()

    async def resolve(self, volume: Volume) -> VolumeState:
        """Create the volume if it has no id, otherwise load it."""
        created = not volume.id
        self._reporter.resolving("volume", volume.id)

        observed = await self.create(volume) if created else await self.load(volume)

        fields: dict[str, object] = {
            "Id": volume.id,
            "Name": volume.name,
            "Type": volume.type,
            "Size": volume.size,
        }
        if volume.iops > 0:
            fields["IOPS"] = volume.iops
        fields |= {
            "Available Zone": volume.availability_zone,
            "Device": volume.device,
            "Mount": volume.mount,
            "File System": volume.filesystem,
        }
        self._reporter.resource("volume", created, fields)
        return observed

    async def load(self, volume: Volume) -> VolumeState:
        if not volume.id:
            raise ConfigurationError("To load a volume you need to pass its id")

        observed = await self._compute.describe_volume(volume.id)
        merge_volume(volume, observed)
        return observed

    async def create(self, volume: Volume) -> VolumeState:
        request = VolumeRequest(
            availability_zone=volume.availability_zone or DEFAULT_AVAILABILITY_ZONE,
            volume_type=volume.type,
            size=max(volume.size, 0),
            snapshot_id=volume.snapshot_id,
            iops=volume.iops if volume.type in PROVISIONED_IOPS_TYPES else 0,
        )
        observed = await self._compute.create_volume(request)
        log.info("Created volume {id} ({name})", id=observed.id, name=volume.name)

        try:
            await self._compute.create_tags(observed.id, with_name_tag(volume.name, volume.tags))
        except ProviderError as e:
            raise PartialStateError("volume", observed.id, "tagging", str(e)) from e

        merge_volume(volume, observed)
        await self.wait_until_state(volume, VolumeStatus.AVAILABLE)
        return volume.observed or observed

    async def wait_until_state(self, volume: Volume, state: str) -> None:
        self._reporter.waiting("volume", volume.status, state)
        try:
            await wait_until_state(
                current=lambda: volume.status,
                reload=lambda: self.load(volume),
                target=state,
                policy=self._poll,
                description=f"volume {volume.id}",
                on_poll=self._reporter.poll,
            )
        except Exception:
            self._reporter.settled(False)
            raise
        self._reporter.settled(True)
