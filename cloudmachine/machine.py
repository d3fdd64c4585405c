"""Machine orchestration: volumes, formatting, instance, attachment, reboot.

For one machine the order is fixed:

    resolve volumes -> format new volumes -> resolve instance
        -> attach volumes -> reboot instance

Any failure aborts the machine; nothing already created is rolled back.
"""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from cloudmachine.bootstrap.format import FormatWorkflow
from cloudmachine.constants import (
    CLOUD_CONFIG_DIR,
    DEFAULT_FORMAT_IMAGE_ID,
    DEFAULT_FORMAT_INSTANCE_TYPE,
    DEFAULT_REGION,
    VOLUME_IN_USE,
)
from cloudmachine.exceptions import ConfigurationError, PartialStateError, ProviderError
from cloudmachine.instance import InstanceResolver
from cloudmachine.observability.reporter import Reporter
from cloudmachine.providers.protocol import Compute
from cloudmachine.providers.wait import PollPolicy
from cloudmachine.types import Machine, Volume
from cloudmachine.volume import VolumeResolver

log = logger.bind(component="machine")

ComputeFactory: TypeAlias = Callable[[str], Compute]
"""Returns the provider capability for a region."""


async def attach_volumes(compute: Compute, instance_id: str, volumes: Sequence[Volume]) -> None:
    """Attach every volume to ``instance_id`` at its configured device.

    A volume the provider reports as already in use is skipped.

    Raises:
        PartialStateError: For any other attach failure.
    """
    for volume in volumes:
        try:
            await compute.attach_volume(volume.id, instance_id, volume.device)
        except ProviderError as e:
            if e.code == VOLUME_IN_USE:
                log.debug("Volume {id} already attached, skipping", id=volume.id)
                continue
            raise PartialStateError("volume", volume.id, f"attach to {instance_id}", str(e)) from e
        log.info(
            "Attached {volume} to {instance} at {device}",
            volume=volume.id, instance=instance_id, device=volume.device,
        )


def check_cloud_config(machine: Machine) -> None:
    """Fail before touching the provider when the cloud-config file is missing."""
    path = machine.instance.cloud_config
    if path and not Path(path).is_file():
        raise ConfigurationError(f"Cloud-config file not found: {path}")


class MachineOrchestrator:
    """Brings one machine descriptor into existence."""

    def __init__(
        self,
        compute_for: ComputeFactory,
        *,
        reporter: Reporter | None = None,
        poll: PollPolicy | None = None,
        region: str = DEFAULT_REGION,
        workdir: Path = Path(CLOUD_CONFIG_DIR),
        format_image_id: str = DEFAULT_FORMAT_IMAGE_ID,
        format_instance_type: str = DEFAULT_FORMAT_INSTANCE_TYPE,
    ) -> None:
        self._compute_for = compute_for
        self._reporter = reporter or Reporter.quiet()
        self._poll = poll or PollPolicy()
        self._region = region
        self._workdir = workdir
        self._format_image_id = format_image_id
        self._format_instance_type = format_instance_type

    async def provision(self, machine: Machine) -> Machine:
        """Resolve, format, attach and reboot. Mutates and returns ``machine``."""
        check_cloud_config(machine)

        instance = machine.instance
        instance.region = instance.region or self._region
        compute = self._compute_for(instance.region)

        volumes = VolumeResolver(compute, reporter=self._reporter, poll=self._poll)
        instances = InstanceResolver(compute, reporter=self._reporter, poll=self._poll)

        # Taken before resolving, which assigns ids
        to_format = machine.new_volumes
        for volume in machine.volumes:
            if instance.availability_zone:
                volume.availability_zone = instance.availability_zone
            await volumes.resolve(volume)

        if to_format:
            async def attach(instance_id: str, targets: Sequence[Volume]) -> None:
                await attach_volumes(compute, instance_id, targets)

            workflow = FormatWorkflow(
                instances,
                attach,
                workdir=self._workdir,
                image_id=self._format_image_id,
                instance_type=self._format_instance_type,
                reporter=self._reporter,
            )
            await workflow.run(machine, to_format)

        await instances.resolve(instance)
        await attach_volumes(compute, instance.id, machine.volumes)
        await instances.reboot(instance)

        log.info(
            "Machine {name} ready: {id} ({ip})",
            name=instance.name, id=instance.id, ip=instance.private_ip,
        )
        self._reporter.machine_ready(instance.id, instance.private_ip, len(machine.volumes))
        return machine
