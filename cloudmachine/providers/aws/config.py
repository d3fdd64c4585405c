"""AWS provider configuration.

Immutable settings for connecting to EC2 and running the provisioning
workflow. All fields have sensible defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from cloudmachine.auth import Credentials
from cloudmachine.constants import (
    CLOUD_CONFIG_DIR,
    DEFAULT_FORMAT_IMAGE_ID,
    DEFAULT_FORMAT_INSTANCE_TYPE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REGION,
)
from cloudmachine.providers.wait import PollPolicy


@dataclass(frozen=True, slots=True)
class AWS:
    """AWS provider configuration.

    Example:
        >>> from cloudmachine.providers.aws import AWS
        >>> config = AWS(region="us-east-1", poll_timeout=600)

    Args:
        region: Region used when a machine does not name one.
        credentials: Explicit credentials. If None, boto's own chain is used.
        profile: Shared credentials profile.
        poll_interval: Seconds between state polls.
        poll_timeout: Give up waiting after this many seconds. None waits forever.
        workdir: Directory for generated formatting cloud-configs.
        format_image_id: Image of the volume formatting instance.
        format_instance_type: Type of the volume formatting instance.
        concurrency: Cluster nodes provisioned at the same time.
    """

    region: str = DEFAULT_REGION
    credentials: Credentials | None = None
    profile: str = "default"
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float | None = None
    workdir: Path = Path(CLOUD_CONFIG_DIR)
    format_image_id: str = DEFAULT_FORMAT_IMAGE_ID
    format_instance_type: str = DEFAULT_FORMAT_INSTANCE_TYPE
    concurrency: int = 1

    def poll_policy(self) -> PollPolicy:
        return PollPolicy(interval=self.poll_interval, timeout=self.poll_timeout)
