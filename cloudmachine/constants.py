"""Centralized constants and enums for cloudmachine.

Provider state names, defaults and file layout used across the resolvers
and the volume formatting workflow.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# EC2 State Names
# =============================================================================


class InstanceStatus(StrEnum):
    """EC2 instance lifecycle state names."""

    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    STOPPED = "stopped"


class VolumeStatus(StrEnum):
    """EBS volume state names."""

    CREATING = "creating"
    AVAILABLE = "available"
    IN_USE = "in-use"
    DELETING = "deleting"
    DELETED = "deleted"
    ERROR = "error"


# =============================================================================
# Tags & Error Codes
# =============================================================================

NAME_TAG: Final = "Name"
VOLUME_IN_USE: Final = "VolumeInUse"

# Volume types that take an explicit IOPS value on creation
PROVISIONED_IOPS_TYPES: Final = frozenset({"io1", "io2"})


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_REGION: Final = "us-west-2"
DEFAULT_AVAILABILITY_ZONE: Final = "us-west-2a"
DEFAULT_POLL_INTERVAL: Final = 2.0

# Bootstrap instance used to format new volumes
DEFAULT_FORMAT_IMAGE_ID: Final = "ami-ed8b90dd"
DEFAULT_FORMAT_INSTANCE_TYPE: Final = "t2.micro"
FORMAT_INSTANCE_SUFFIX: Final = "-format-volumes"
FORMAT_SHUTDOWN_BEHAVIOR: Final = "terminate"

# Generated boot configuration files
CLOUD_CONFIG_DIR: Final = "cloud-config"
