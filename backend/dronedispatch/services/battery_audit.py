"""Periodic battery audit.

Every pass walks the whole fleet, forces drones that are LOADING or LOADED on
a battery below the loading threshold back to IDLE, and appends one battery
snapshot per drone. Passes run in a worker thread; stopping the task waits for
the pass in flight instead of interrupting it.
"""

import asyncio
from typing import Optional

import structlog
from sqlalchemy.orm import sessionmaker

from dronedispatch.db.repository import DroneRepository
from dronedispatch.services.audit_service import log_battery_level

logger = structlog.get_logger(__name__)


def run_audit_pass(session_factory: sessionmaker, shutdown_log: bool = False) -> int:
    """Run one audit pass and return the number of log rows written."""
    written = 0
    with session_factory() as db:
        drones = DroneRepository(db)
        for drone in drones.list_all():
            if drone.should_state_be_reset():
                previous = drone.state.name
                drones.reset_state(drone)
                logger.info(
                    "Drone state reset due to low battery",
                    drone=drone.serial_number,
                    previous_state=previous,
                    battery_level=drone.battery_level,
                )

            log_battery_level(db, drone, shutdown_log=shutdown_log)
            written += 1
            logger.debug("Battery level logged", drone=drone.serial_number, battery_level=drone.battery_level)

    logger.info("Battery audit pass complete", logged=written, shutdown_log=shutdown_log)
    return written


class BatteryAuditTask:
    def __init__(self, session_factory: sessionmaker, interval: float = 240):
        self.session_factory = session_factory
        self.interval = interval
        self.passes = 0
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="battery-audit")
        logger.info("Battery audit task started", interval=self.interval)

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await asyncio.to_thread(run_audit_pass, self.session_factory)
                self.passes += 1
            except Exception:
                # A failed pass must not kill the schedule
                logger.exception("Battery audit pass failed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def stop(self, final_pass: bool = True) -> None:
        """Let the pass in flight finish, then optionally log once more as a shutdown snapshot."""
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        if final_pass:
            await asyncio.to_thread(run_audit_pass, self.session_factory, True)
        logger.info("Battery audit task stopped", passes=self.passes)
