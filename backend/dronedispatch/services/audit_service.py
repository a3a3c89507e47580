from sqlalchemy.orm import Session
from dronedispatch.db.models import BatteryAuditLog, Drone
from dronedispatch.db.repository import BatteryAuditLogRepository

def log_battery_level(
    db: Session,
    drone: Drone,
    shutdown_log: bool = False
) -> BatteryAuditLog:
    """
    Append a battery snapshot of the drone to the audit log.
    """
    new_log = BatteryAuditLog(drone, shutdown_log=shutdown_log)
    BatteryAuditLogRepository(db).add_new(new_log)
    return new_log
