from datetime import datetime

from dronedispatch.schemas.common import CamelModel

class BatteryAuditLogResponse(CamelModel):
    id: int
    drone_sn: str
    logged_battery_level: int
    shutdown_log: bool
    timestamp: datetime
