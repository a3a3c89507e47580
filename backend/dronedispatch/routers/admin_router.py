from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from dronedispatch.db.database import get_db
from dronedispatch.db.repository import BatteryAuditLogRepository
from dronedispatch.schemas.audit_schemas import BatteryAuditLogResponse
from dronedispatch.schemas.common import DataResponse

router = APIRouter()

@router.get(
    "/battery-logs",
    response_model=DataResponse[List[BatteryAuditLogResponse]],
    summary="Battery audit journal"
)
def read_battery_logs(
    limit: int = Query(100, ge=1, le=1000),
    drone_serial: Optional[str] = Query(None, alias="droneSerial"),
    db: Session = Depends(get_db)
):
    """
    Latest battery snapshots written by the audit task, newest first.
    """
    return {"data": BatteryAuditLogRepository(db).list_all(limit=limit, drone_sn=drone_serial)}
