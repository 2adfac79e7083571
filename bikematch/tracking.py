# bikematch/tracking.py
"""
Live location simulation for a matched cyclist.

After a match the UI follows the cyclist on a map. There is no real position
feed, so each subscription owns a private simulated position that moves a
fixed fraction of the remaining offset toward the requester on every tick,
plus a small wobble. The position converges exponentially and never lands
exactly on the anchor.

Subscriptions run as asyncio tasks and must be created while an event loop
is running.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, List, Optional

from . import config, utils
from .models import Coordinate

logger = logging.getLogger(__name__)

LocationCallback = Callable[[Coordinate], None]
Canceller = Callable[[], None]


def step_toward(
    current: Coordinate,
    anchor: Coordinate,
    rng: random.Random,
    factor: float = config.CONVERGENCE_FACTOR,
    jitter_spread: float = config.TRACKING_JITTER_SPREAD,
) -> Coordinate:
    """
    Advance a simulated position one tick toward the anchor.

    Args:
        current: Position before the tick
        anchor: Where the cyclist is heading (the requester)
        rng: Random source for the wobble
        factor: Fraction of the remaining offset covered
        jitter_spread: Total width of the wobble box in degrees

    Returns:
        The new position
    """
    lat_diff = anchor.latitude - current.latitude
    lng_diff = anchor.longitude - current.longitude
    return Coordinate(
        latitude=current.latitude + lat_diff * factor + (rng.random() - 0.5) * jitter_spread,
        longitude=current.longitude + lng_diff * factor + (rng.random() - 0.5) * jitter_spread,
    )


class LocationSubscription:
    """
    One live-location stream for a matched cyclist.

    Each subscription owns its position; nothing else can read or move it
    except through the callback it delivers.

    Attributes:
        candidate_id: Cyclist being followed
        anchor: Requester location the cyclist converges toward
        location: Last simulated position
        updates_delivered: Number of callback invocations so far
    """

    def __init__(
        self,
        candidate_id: str,
        anchor: Coordinate,
        on_location_update: LocationCallback,
        rng: Optional[random.Random] = None,
        interval: float = config.LOCATION_UPDATE_INTERVAL_SECONDS,
        start: Optional[Coordinate] = None,
    ) -> None:
        self.candidate_id = candidate_id
        self.anchor = anchor
        self._callback = on_location_update
        self._rng = rng or random.Random()
        self._interval = interval
        self.location: Coordinate = start or utils.jitter(anchor, config.TRACKING_START_SPREAD, self._rng)
        self.updates_delivered = 0

        self._cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._cancelled

    def start(self) -> LocationSubscription:
        """
        Schedule the update loop on the running event loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        if self._task is None and not self._cancelled:
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run(), name=f"track-{self.candidate_id}")
        return self

    def cancel(self) -> None:
        """
        Stop further updates. Safe to call any number of times.

        The flag is set before the task is cancelled, and the loop checks it
        right before every callback, so a tick that already woke up cannot
        deliver after this returns.
        """
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()
        logger.debug(f"Stopped tracking {self.candidate_id} after {self.updates_delivered} updates")

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                break

            self.location = step_toward(self.location, self.anchor, self._rng)
            self.updates_delivered += 1
            try:
                self._callback(self.location)
            except Exception:
                logger.exception(f"Location callback failed for {self.candidate_id}")


def subscribe_to_candidate_location(
    candidate_id: str,
    anchor: Coordinate,
    on_location_update: LocationCallback,
    rng: Optional[random.Random] = None,
    interval: float = config.LOCATION_UPDATE_INTERVAL_SECONDS,
    start: Optional[Coordinate] = None,
) -> Canceller:
    """
    Start a simulated live-location stream for a matched cyclist.

    Must be called from code running inside an asyncio event loop.

    Args:
        candidate_id: Cyclist to follow
        anchor: Requester location the cyclist moves toward
        on_location_update: Called with every new position
        rng: Random source (defaults to a fresh unseeded generator)
        interval: Seconds between updates
        start: Initial position (defaults to a random point near the anchor)

    Returns:
        A canceller; calling it stops the stream and is idempotent
    """
    subscription = LocationSubscription(
        candidate_id, anchor, on_location_update, rng=rng, interval=interval, start=start
    ).start()
    logger.debug(f"Tracking {candidate_id} toward {anchor}")
    return subscription.cancel


async def collect_locations(
    candidate_id: str,
    anchor: Coordinate,
    count: int,
    rng: Optional[random.Random] = None,
    interval: float = config.LOCATION_UPDATE_INTERVAL_SECONDS,
    start: Optional[Coordinate] = None,
) -> List[Coordinate]:
    """
    Follow a cyclist for a fixed number of updates, then cancel.

    Convenience for callers without a long-lived event loop (CLI, dashboard).

    Returns:
        The positions received, in delivery order
    """
    positions: List[Coordinate] = []
    if count <= 0:
        return positions

    done = asyncio.Event()

    def on_update(location: Coordinate) -> None:
        if len(positions) < count:
            positions.append(location)
        if len(positions) >= count:
            done.set()

    cancel = subscribe_to_candidate_location(
        candidate_id, anchor, on_update, rng=rng, interval=interval, start=start
    )
    try:
        await done.wait()
    finally:
        cancel()
    return positions
