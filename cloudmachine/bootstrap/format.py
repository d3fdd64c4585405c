"""Format new volumes on a disposable bootstrap instance.

Blank volumes must be formatted and mounted before the real instance uses
them. A small instance is launched with a generated cloud-config whose units
wipe and format every new volume, mount it, then power the instance off;
with ``shutdown-behavior = terminate`` the instance terminates itself.
"""

from __future__ import annotations

from typing import TypeAlias

from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from loguru import logger

from cloudmachine.constants import (
    CLOUD_CONFIG_DIR,
    DEFAULT_FORMAT_IMAGE_ID,
    DEFAULT_FORMAT_INSTANCE_TYPE,
    FORMAT_INSTANCE_SUFFIX,
    FORMAT_SHUTDOWN_BEHAVIOR,
    InstanceStatus,
)
from cloudmachine.exceptions import ConfigurationError
from cloudmachine.instance import InstanceResolver
from cloudmachine.observability.reporter import Reporter
from cloudmachine.types import Instance, Machine, Volume

log = logger.bind(component="format")

AttachFn: TypeAlias = Callable[[str, Sequence[Volume]], Awaitable[None]]


def mount_unit_name(mount: str) -> str:
    """``/var/lib/data`` -> ``var-lib-data``."""
    return mount.strip("/").replace("/", "-")


def format_unit(volume: Volume) -> str:
    """Format service and mount unit for one volume."""
    name = volume.name
    device = volume.device
    fs = volume.filesystem
    mount = volume.mount
    return f"""
    - name: format-{name}.service
      command: start
      content: |
        [Unit]
        Description=Formats {name} drive
        [Service]
        Type=oneshot
        RemainAfterExit=yes
        ExecStart=/usr/sbin/wipefs -f {device}
        ExecStart=/usr/sbin/mkfs.{fs} {device}
    - name: {mount_unit_name(mount)}.mount
      command: start
      content: |
        [Unit]
        Description=Mount {name} drive to {mount}
        Requires=format-{name}.service
        Before=shutdown.service
        After=format-{name}.service
        [Mount]
        What={device}
        Where={mount}
        Type={fs}
        Options=defaults,noatime,noexec,nobarrier"""


def format_cloud_config(units: str) -> str:
    """Full boot document: the volume units, a final poweroff, masked services."""
    return f"""#cloud-config

coreos:
  units:{units}
    - name: shutdown.service
      command: start
      content: |
        [Unit]
        Description=Shutdown instance after format and mount all volumes
        [Service]
        Type=oneshot
        ExecStart=/usr/sbin/shutdown -h now
    - name: etcd.service
      mask: true
    - name: fleet.service
      mask: true
    - name: docker.service
      mask: true
  update:
      group: stable
      reboot-strategy: off"""


def write_cloud_config(workdir: Path, name: str, volumes: Sequence[Volume]) -> Path:
    """Write the formatting cloud-config for ``volumes`` to ``workdir/<name>.yml``.

    Raises:
        ConfigurationError: If the directory or the file cannot be written.
    """
    try:
        workdir.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create {workdir}: {e}") from e

    path = workdir / f"{name}.yml"
    document = format_cloud_config("".join(format_unit(v) for v in volumes))
    try:
        path.write_text(document)
    except OSError as e:
        raise ConfigurationError(f"Cannot write {path}: {e}") from e
    return path


class FormatWorkflow:
    """Formats and mounts blank volumes before they reach the real instance."""

    def __init__(
        self,
        instances: InstanceResolver,
        attach: AttachFn,
        *,
        workdir: Path = Path(CLOUD_CONFIG_DIR),
        image_id: str = DEFAULT_FORMAT_IMAGE_ID,
        instance_type: str = DEFAULT_FORMAT_INSTANCE_TYPE,
        reporter: Reporter | None = None,
    ) -> None:
        self._instances = instances
        self._attach = attach
        self._workdir = workdir
        self._image_id = image_id
        self._instance_type = instance_type
        self._reporter = reporter or Reporter.quiet()

    def bootstrap_instance(self, machine: Machine, cloud_config: Path) -> Instance:
        target = machine.instance
        return Instance(
            name=target.name + FORMAT_INSTANCE_SUFFIX,
            cloud_config=str(cloud_config),
            image_id=self._image_id,
            type=self._instance_type,
            region=target.region,
            key_name=target.key_name,
            security_groups=list(target.security_groups),
            subnet_id=target.subnet_id,
            availability_zone=target.availability_zone,
            shutdown_behavior=FORMAT_SHUTDOWN_BEHAVIOR,
        )

    async def run(self, machine: Machine, volumes: Sequence[Volume]) -> Instance:
        """Format ``volumes`` and wait until the bootstrap instance terminated.

        Returns:
            The terminated bootstrap instance descriptor.
        """
        name = machine.instance.name + FORMAT_INSTANCE_SUFFIX
        cloud_config = write_cloud_config(self._workdir, name, volumes)
        log.info("Wrote {path} for {n} volume(s)", path=cloud_config, n=len(volumes))

        bootstrap = self.bootstrap_instance(machine, cloud_config)
        await self._instances.resolve(bootstrap)

        await self._attach(bootstrap.id, volumes)
        await self._instances.reboot(bootstrap)

        self._reporter.info(f"Waiting while {len(volumes)} volumes are formatting...")
        await self._instances.wait_until_state(bootstrap, InstanceStatus.TERMINATED)
        log.info("Bootstrap instance {id} terminated", id=bootstrap.id)
        return bootstrap
