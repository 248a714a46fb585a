"""Poll-until-terminal loop shared by every watched feature."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from jobwatch.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def next_delay(current: float, *, base: float, backoff: float, max_interval: float | None, failed: bool) -> float:
    """Return the sleep before the next tick.

    A successful tick resets to ``base``; a failed tick multiplies the current
    delay by ``backoff`` up to ``max_interval``.
    """
    if not failed or backoff <= 1:
        return base
    grown = (current or base) * backoff
    if max_interval is not None:
        grown = min(grown, max(max_interval, base))
    return grown


async def poll_until_terminal(
    fetch_status: Callable[[], Awaitable[T]],
    is_terminal: Callable[[T], bool],
    on_update: Callable[[T], None],
    interval: float,
    *,
    backoff: float = 1.0,
    max_interval: float | None = None,
    should_continue: Callable[[], bool] | None = None,
    stop_on: tuple[type[Exception], ...] = (),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T | None:
    """Fetch a job's status until it reaches a terminal state.

    Only one ``fetch_status`` call is ever outstanding. A failed fetch is
    logged and retried on the next tick. Cancelling
    the surrounding task stops polling immediately. Exceptions listed in
    ``stop_on`` end the loop and propagate to the caller.

    Returns the terminal snapshot, or ``None`` when ``should_continue``
    reports that nobody is interested any more.
    """
    delay = interval
    while True:
        if should_continue is not None and not should_continue():
            return None

        failed = False
        try:
            snapshot = await fetch_status()
        except asyncio.CancelledError:
            raise
        except stop_on:
            raise
        except Exception as exc:  # noqa: BLE001
            failed = True
            logger.warning("status_poll_failed", error=str(exc), error_type=type(exc).__name__)
        else:
            on_update(snapshot)
            if is_terminal(snapshot):
                return snapshot

        delay = next_delay(delay, base=interval, backoff=backoff, max_interval=max_interval, failed=failed)
        await sleep(delay)
