"""Application context: settings, database handles and the audit scheduler.

Built once per process by ``create_app`` and handed to whoever needs it
through ``app.state.context``.
"""

from typing import Optional

import structlog

from dronedispatch.core.config import Settings
from dronedispatch.db.database import Base, build_engine, build_session_factory
from dronedispatch.services.battery_audit import BatteryAuditTask

logger = structlog.get_logger(__name__)


class AppContext:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = build_engine(settings.DATABASE_URL)
        self.session_factory = build_session_factory(self.engine)
        self.audit_task: Optional[BatteryAuditTask] = None

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    async def start(self) -> None:
        self.create_schema()
        if self.settings.BATTERY_AUDIT_ENABLED:
            self.audit_task = BatteryAuditTask(self.session_factory, self.settings.BATTERY_LOG_INTERVAL)
            self.audit_task.start()
        logger.info("Application context started", database=self.engine.url.render_as_string(hide_password=True))

    async def stop(self) -> None:
        if self.audit_task is not None:
            await self.audit_task.stop()
            self.audit_task = None
        self.engine.dispose()
        logger.info("Application context stopped")
