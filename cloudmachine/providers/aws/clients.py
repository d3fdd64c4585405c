"""Injector wiring for EC2.

One aioboto3 session per process; every provider call opens a short-lived
EC2 client for the region it targets.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, TYPE_CHECKING, TypeAlias

import aioboto3
from injector import Module, provider, singleton

from .config import AWS

if TYPE_CHECKING:
    from .compute import EC2Compute

ClientContext: TypeAlias = AbstractAsyncContextManager[Any]


# =============================================================================
# Injectable factories
# =============================================================================


class EC2ClientFactory:
    """``factory(region)`` opens an EC2 client as an async context manager."""

    def __init__(self, factory: Callable[[str], ClientContext]) -> None:
        self._factory = factory

    def __call__(self, region: str) -> ClientContext:
        return self._factory(region)


class ComputeFactory:
    """``compute_for(region)`` returns the provider capability for that region."""

    def __init__(self, ec2: EC2ClientFactory) -> None:
        self._ec2 = ec2

    def __call__(self, region: str) -> EC2Compute:
        from .compute import EC2Compute

        return EC2Compute(self._ec2, region)


# =============================================================================
# Module
# =============================================================================


def _session(config: AWS) -> aioboto3.Session:
    if config.credentials is not None:
        return aioboto3.Session(
            aws_access_key_id=config.credentials.access_key,
            aws_secret_access_key=config.credentials.secret_key,
            aws_session_token=config.credentials.session_token,
        )
    if config.profile != "default":
        return aioboto3.Session(profile_name=config.profile)
    return aioboto3.Session()


class AWSModule(Module):
    """Binds ``EC2ClientFactory`` and ``ComputeFactory`` from the ``AWS`` settings.

    The ``AWS`` instance itself must be bound by the caller:

        >>> injector = Injector([AWSModule(), lambda b: b.bind(AWS, to=AWS(region="eu-west-1"))])
        >>> compute = injector.get(ComputeFactory)("eu-west-1")
    """

    @singleton
    @provider
    def provide_session(self, config: AWS) -> aioboto3.Session:
        return _session(config)

    @singleton
    @provider
    def provide_ec2(self, session: aioboto3.Session) -> EC2ClientFactory:
        @asynccontextmanager
        async def open_client(region: str) -> AsyncIterator[Any]:
            async with session.client("ec2", region_name=region) as ec2:
                yield ec2

        return EC2ClientFactory(open_client)

    @singleton
    @provider
    def provide_compute(self, ec2: EC2ClientFactory) -> ComputeFactory:
        return ComputeFactory(ec2)


__all__ = [
    "AWSModule",
    "ComputeFactory",
    "EC2ClientFactory",
]
