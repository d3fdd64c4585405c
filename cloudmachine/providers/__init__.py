"""Provider capability, polling and provider implementations."""

from cloudmachine.providers.protocol import Compute, InstanceRequest, VolumeRequest
from cloudmachine.providers.wait import PollPolicy, wait_until_state

__all__ = [
    "Compute",
    "InstanceRequest",
    "VolumeRequest",
    "PollPolicy",
    "wait_until_state",
]
