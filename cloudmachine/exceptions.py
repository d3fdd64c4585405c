"""Custom exception hierarchy for cloudmachine.

All cloudmachine-specific exceptions inherit from CloudMachineError, enabling
callers to catch every provisioning failure with a single except clause.
"""

from __future__ import annotations


class CloudMachineError(Exception):
    """Base exception for all cloudmachine errors."""


class ConfigurationError(CloudMachineError):
    """Raised for invalid descriptors, unreadable templates or settings."""


class NotFoundError(CloudMachineError):
    """Raised when the provider does not recognize a resource identifier."""

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"No {resource} was found with id <{resource_id}>")


class ProviderError(CloudMachineError):
    """Raised when a provider API call is rejected or the transport fails."""

    def __init__(self, message: str, *, code: str = "", operation: str = "") -> None:
        self.code = code
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        suffix = f" ({code})" if code else ""
        super().__init__(f"{prefix}{message}{suffix}")


class PartialStateError(CloudMachineError):
    """Raised when a resource exists remotely but a dependent step failed.

    The remote resource is left as it is; no compensating action is taken.
    """

    def __init__(self, resource: str, resource_id: str, step: str, reason: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.step = step
        super().__init__(f"{resource} <{resource_id}> was created but {step} failed: {reason}")


class WaitTimeoutError(CloudMachineError):
    """Raised when a bounded poll gives up before the target state is reached."""

    def __init__(self, description: str, target: str, last_state: str) -> None:
        self.target = target
        self.last_state = last_state
        super().__init__(
            f"Timeout waiting for {description} to reach <{target}>, last state <{last_state}>"
        )
