"""
Startup Gate

Holds the control loop back until every sensor has reported at least once.
There is no timeout: heating never runs against unknown sensor state.
"""

import asyncio
import logging

from .measurements import MeasurementStore

logger = logging.getLogger(__name__)


async def wait_for_sensors(store: MeasurementStore, poll_interval: float = 15.0, sleep=asyncio.sleep):
    """Block until no sensor holds the sentinel value.

    Args:
        store: Measurement store filled by the bus handler
        poll_interval: Seconds between checks
        sleep: Awaitable sleep function (injectable for tests)
    """
    while True:
        missing = store.missing_sensors()
        if not missing:
            break
        logger.info(f"Waiting {poll_interval:g}s for sensors data. Currently lacking: {' '.join(missing)}")
        await sleep(poll_interval)

    logger.info(f"Starting with sensors data received: {store.as_dict()['sensors']}")
