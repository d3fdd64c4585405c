from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

import pytest

from cloudmachine.exceptions import NotFoundError
from cloudmachine.observability import Reporter
from cloudmachine.providers import InstanceRequest, PollPolicy, VolumeRequest
from cloudmachine.types import InstanceState, Tag, VolumeState


async def _no_sleep(_seconds: float) -> None:
    return None


class FakeCompute:
    """In-memory provider recording every call in order.

    ``volume_states`` / ``instance_states`` script the states returned by
    successive describe calls for one id; once a script is exhausted the
    last state sticks. ``errors`` maps a method name to the exception it
    raises, optionally only for one resource id via ``(method, id)``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.volumes: dict[str, VolumeState] = {}
        self.instances: dict[str, InstanceState] = {}
        self.volume_states: dict[str, list[str]] = {}
        self.instance_states: dict[str, list[str]] = {}
        self.errors: dict[Any, Exception] = {}
        self.tags: dict[str, list[Tag]] = {}
        self._next_volume = 0
        self._next_instance = 0

    @property
    def methods(self) -> list[str]:
        return [c[0] for c in self.calls]

    def _raise(self, method: str, resource_id: str = "") -> None:
        error = self.errors.get((method, resource_id)) or self.errors.get(method)
        if error is not None:
            raise error

    def add_volume(self, state: VolumeState) -> None:
        self.volumes[state.id] = state

    def add_instance(self, state: InstanceState) -> None:
        self.instances[state.id] = state

    async def create_volume(self, request: VolumeRequest) -> VolumeState:
        self.calls.append(("create_volume", request))
        self._raise("create_volume")
        self._next_volume += 1
        state = VolumeState(
            id=f"vol-{self._next_volume}",
            status="creating",
            size=request.size,
            iops=request.iops,
            availability_zone=request.availability_zone,
            volume_type=request.volume_type or "standard",
            snapshot_id=request.snapshot_id,
        )
        self.volumes[state.id] = state
        self.volume_states.setdefault(state.id, ["available"])
        return state

    async def describe_volume(self, volume_id: str) -> VolumeState:
        self.calls.append(("describe_volume", volume_id))
        self._raise("describe_volume", volume_id)
        if volume_id not in self.volumes:
            raise NotFoundError("volume", volume_id)
        script = self.volume_states.get(volume_id)
        if script:
            status = script.pop(0) if len(script) > 1 else script[0]
            self.volumes[volume_id] = replace(self.volumes[volume_id], status=status)
        state = self.volumes[volume_id]
        return replace(state, tags=tuple(self.tags.get(volume_id, state.tags)))

    async def create_instance(self, request: InstanceRequest) -> InstanceState:
        self.calls.append(("create_instance", request))
        self._raise("create_instance")
        self._next_instance += 1
        state = InstanceState(
            id=f"i-{self._next_instance}",
            state="pending",
            instance_type=request.instance_type,
            image_id=request.image_id,
            key_name=request.key_name,
            subnet_id=request.subnet_id,
            availability_zone=request.availability_zone,
            ebs_optimized=request.ebs_optimized,
            private_ip=f"10.0.0.{self._next_instance}",
        )
        self.instances[state.id] = state
        self.instance_states.setdefault(state.id, ["running"])
        return state

    async def describe_instance(self, instance_id: str) -> InstanceState:
        self.calls.append(("describe_instance", instance_id))
        self._raise("describe_instance", instance_id)
        if instance_id not in self.instances:
            raise NotFoundError("instance", instance_id)
        script = self.instance_states.get(instance_id)
        if script:
            status = script.pop(0) if len(script) > 1 else script[0]
            self.instances[instance_id] = replace(self.instances[instance_id], state=status)
        state = self.instances[instance_id]
        return replace(state, tags=tuple(self.tags.get(instance_id, state.tags)))

    async def create_tags(self, resource_id: str, tags: Sequence[Tag]) -> None:
        self.calls.append(("create_tags", resource_id, list(tags)))
        self._raise("create_tags", resource_id)
        self.tags[resource_id] = list(tags)

    async def attach_volume(self, volume_id: str, instance_id: str, device: str) -> None:
        self.calls.append(("attach_volume", volume_id, instance_id, device))
        self._raise("attach_volume", volume_id)

    async def reboot_instance(self, instance_id: str) -> None:
        self.calls.append(("reboot_instance", instance_id))
        self._raise("reboot_instance", instance_id)

    async def terminate_instance(self, instance_id: str) -> None:
        self.calls.append(("terminate_instance", instance_id))
        self._raise("terminate_instance", instance_id)


@pytest.fixture
def compute() -> FakeCompute:
    return FakeCompute()


@pytest.fixture
def poll() -> PollPolicy:
    return PollPolicy(interval=0, max_polls=20, sleep=_no_sleep)


@pytest.fixture
def reporter() -> Reporter:
    return Reporter.quiet()
