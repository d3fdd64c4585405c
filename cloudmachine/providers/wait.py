"""Poll-until-state shared by the volume and instance resolvers.

The production policy polls every two seconds with no deadline, so a
resource that never reaches its target blocks until the task is cancelled.
Tests inject a zero-delay sleep and a bounded deadline instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    stop_any,
    stop_never,
    wait_fixed,
)
from tenacity.stop import stop_base

from cloudmachine.constants import DEFAULT_POLL_INTERVAL
from cloudmachine.exceptions import WaitTimeoutError

log = logger.bind(component="wait")


@dataclass(frozen=True, slots=True)
class PollPolicy:
    """How to wait for a provider state transition.

    Args:
        interval: Seconds between two reloads.
        timeout: Give up after this many seconds. None waits forever.
        max_polls: Give up after this many reloads. None polls forever.
        sleep: Coroutine used to sleep between polls.
    """

    interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None
    max_polls: int | None = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def stop(self) -> stop_base:
        conditions: list[stop_base] = []
        if self.timeout is not None:
            conditions.append(stop_after_delay(self.timeout))
        if self.max_polls is not None:
            # First attempt only reads the cached state
            conditions.append(stop_after_attempt(self.max_polls + 1))
        return stop_any(*conditions) if conditions else stop_never


async def wait_until_state(
    current: Callable[[], str],
    reload: Callable[[], Awaitable[object]],
    target: str,
    *,
    policy: PollPolicy,
    description: str = "resource",
    on_poll: Callable[[str], None] | None = None,
) -> None:
    """Block until ``current()`` equals ``target``.

    The cached state is checked first; only when it differs does the loop
    sleep, call ``reload`` and check again. Errors raised by ``reload``
    abort the wait unchanged.

    Args:
        current: Returns the last known state of the resource.
        reload: Refreshes the resource from the provider.
        target: State to wait for (exact, case-sensitive match).
        policy: Interval, deadline and sleep implementation.
        description: Resource description for logs and errors.
        on_poll: Called with the state observed after every reload.

    Raises:
        WaitTimeoutError: If the policy's deadline or poll budget runs out.
    """
    polls = 0

    async def observe() -> str:
        nonlocal polls
        if polls:
            await reload()
            state = current()
            if on_poll is not None:
                on_poll(state)
        polls += 1
        return current()

    def before_sleep(retry_state: RetryCallState) -> None:
        state = retry_state.outcome.result() if retry_state.outcome else ""
        log.debug(
            "{description} is <{state}>, waiting for <{target}>",
            description=description, state=state, target=target,
        )

    retrying = AsyncRetrying(
        wait=wait_fixed(policy.interval),
        stop=policy.stop(),
        retry=retry_if_result(lambda state: state != target),
        sleep=policy.sleep,
        before_sleep=before_sleep,
        reraise=True,
    )

    try:
        await retrying(observe)
    except RetryError:
        raise WaitTimeoutError(description, target, current()) from None

    log.debug("{description} reached <{target}>", description=description, target=target)
