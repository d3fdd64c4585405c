"""AWS EC2 provider for cloudmachine."""

from cloudmachine.providers.aws.clients import AWSModule, ComputeFactory, EC2ClientFactory
from cloudmachine.providers.aws.compute import EC2Compute
from cloudmachine.providers.aws.config import AWS

__all__ = [
    "AWS",
    "AWSModule",
    "ComputeFactory",
    "EC2ClientFactory",
    "EC2Compute",
]
