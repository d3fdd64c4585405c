from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from cloudmachine.bootstrap.format import (
    FormatWorkflow,
    format_cloud_config,
    format_unit,
    mount_unit_name,
    write_cloud_config,
)
from cloudmachine.exceptions import ConfigurationError
from cloudmachine.instance import InstanceResolver
from cloudmachine.types import Instance, Machine, Volume

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

EXPECTED_UNIT = """
    - name: format-data.service
      command: start
      content: |
        [Unit]
        Description=Formats data drive
        [Service]
        Type=oneshot
        RemainAfterExit=yes
        ExecStart=/usr/sbin/wipefs -f /dev/xvdf
        ExecStart=/usr/sbin/mkfs.ext4 /dev/xvdf
    - name: var-lib-data.mount
      command: start
      content: |
        [Unit]
        Description=Mount data drive to /var/lib/data
        Requires=format-data.service
        Before=shutdown.service
        After=format-data.service
        [Mount]
        What=/dev/xvdf
        Where=/var/lib/data
        Type=ext4
        Options=defaults,noatime,noexec,nobarrier"""


def _volume(name: str = "data", device: str = "/dev/xvdf", mount: str = "/var/lib/data") -> Volume:
    return Volume(name=name, device=device, mount=mount, filesystem="ext4", size=10)


class TestCloudConfig:
    def test_mount_unit_name(self):
        assert mount_unit_name("/var/lib/data") == "var-lib-data"
        assert mount_unit_name("/data") == "data"

    def test_unit_text(self):
        assert format_unit(_volume()) == EXPECTED_UNIT

    def test_document_wraps_units(self):
        document = format_cloud_config(EXPECTED_UNIT)
        assert document.startswith("#cloud-config\n\ncoreos:\n  units:\n    - name: format-data.service")
        assert "Options=defaults,noatime,noexec,nobarrier\n    - name: shutdown.service" in document
        assert "ExecStart=/usr/sbin/shutdown -h now" in document
        for service in ("etcd", "fleet", "docker"):
            assert f"    - name: {service}.service\n      mask: true" in document
        assert document.endswith("  update:\n      group: stable\n      reboot-strategy: off")

    def test_units_in_volume_order(self):
        document = format_cloud_config(
            format_unit(_volume("a", "/dev/xvdf", "/a")) + format_unit(_volume("b", "/dev/xvdg", "/b"))
        )
        assert document.index("format-a.service") < document.index("format-b.service")

    def test_write_creates_directory(self, tmp_path: Path):
        workdir = tmp_path / "cloud-config" / "nested"
        path = write_cloud_config(workdir, "web-format-volumes", [_volume()])

        assert path == workdir / "web-format-volumes.yml"
        assert path.read_text() == format_cloud_config(EXPECTED_UNIT)

    def test_write_overwrites(self, tmp_path: Path):
        path = tmp_path / "web.yml"
        path.write_text("old")
        write_cloud_config(tmp_path, "web", [_volume()])
        assert path.read_text().startswith("#cloud-config")

    def test_unwritable_workdir(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ConfigurationError):
            write_cloud_config(blocker / "sub", "web", [_volume()])


class TestFormatWorkflow:
    @pytest.mark.asyncio
    async def test_bootstrap_lifecycle(self, compute, poll, reporter, tmp_path: Path):
        compute.instance_states["i-1"] = ["running", "terminated"]
        attached: list[tuple[str, list[str]]] = []

        async def attach(instance_id: str, volumes: Sequence[Volume]) -> None:
            attached.append((instance_id, [v.id for v in volumes]))

        machine = Machine(
            instance=Instance(name="web", region="us-west-2", key_name="ops",
                              security_groups=["sg-1"], subnet_id="subnet-1",
                              availability_zone="us-west-2b", image_id="ami-real", type="m4.large"),
            volumes=[_volume()],
        )
        machine.volumes[0].id = "vol-1"

        workflow = FormatWorkflow(
            InstanceResolver(compute, reporter=reporter, poll=poll),
            attach,
            workdir=tmp_path,
            reporter=reporter,
        )
        bootstrap = await workflow.run(machine, machine.volumes)

        request = compute.calls[0][1]
        assert request.image_id == "ami-ed8b90dd"
        assert request.instance_type == "t2.micro"
        assert request.shutdown_behavior == "terminate"
        assert request.key_name == "ops"
        assert request.security_group_ids == ("sg-1",)
        assert request.subnet_id == "subnet-1"
        assert request.availability_zone == "us-west-2b"
        assert request.user_data == (tmp_path / "web-format-volumes.yml").read_text()

        assert bootstrap.name == "web-format-volumes"
        assert bootstrap.state == "terminated"
        assert attached == [("i-1", ["vol-1"])]
        assert compute.methods == [
            "create_instance", "create_tags", "describe_instance",
            "reboot_instance", "describe_instance",
        ]
