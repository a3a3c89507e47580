from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from dronedispatch.core.exceptions import CapacityExceeded, OperationConflict, UnmetConditions
from dronedispatch.db.models import Drone, Medication, load_weight
from dronedispatch.db.repository import DroneRepository, MedicationRepository

logger = structlog.get_logger(__name__)


@dataclass
class LoadResult:
    medication: Medication
    changed: bool
    message: str


def load_medication(db: Session, serial_number: str, code: str) -> LoadResult:
    """
    Associate a medication with a drone.
    The drone row stays locked until commit, so two loads onto the same drone
    cannot both pass the capacity check against the same load.
    """
    drone = DroneRepository(db).get_for_update(serial_number)
    medication = MedicationRepository(db).get(code.upper())

    if medication.is_associated_with(drone):
        return LoadResult(medication, False, f"Medication {medication.code} is already associated to drone {drone.serial_number}")

    if medication.associated_drone is not None:
        owner = medication.associated_drone.serial_number
        raise OperationConflict(f"Medication {medication.code} is already loaded on drone {owner}")

    load = MedicationRepository(db).load_of(drone.serial_number)
    if not drone.can_hold(medication.weight, load):
        raise CapacityExceeded(
            f"Drone {drone.serial_number} cannot hold {medication.weight} more "
            f"(carrying {load_weight(load)} of {drone.weight_limit})"
        )

    medication.set_associated_drone(drone)
    db.commit()
    logger.info("Medication loaded", drone=drone.serial_number, medication=medication.code, weight=medication.weight)
    return LoadResult(medication, True, f"Medication {medication.code} loaded on drone {drone.serial_number}")


def unload_medication(db: Session, serial_number: str, code: str) -> LoadResult:
    drone = DroneRepository(db).get_for_update(serial_number)
    medication = MedicationRepository(db).get(code.upper())

    if medication.associated_drone is None:
        raise UnmetConditions(f"Medication {medication.code} is not loaded on any drone")

    if not medication.is_associated_with(drone):
        owner = medication.associated_drone.serial_number
        raise OperationConflict(f"Medication {medication.code} is loaded on drone {owner}, not on {drone.serial_number}")

    medication.set_associated_drone(None)
    db.commit()
    logger.info("Medication unloaded", drone=drone.serial_number, medication=medication.code)
    return LoadResult(medication, True, f"Medication {medication.code} unloaded from drone {drone.serial_number}")


def drone_status(drone: Drone, load: Optional[List[Medication]] = None) -> Dict[str, Any]:
    if load is None:
        load = drone.current_load()
    carried = load_weight(load)
    return {
        "serial_number": drone.serial_number,
        "state": drone.state,
        "battery_level": drone.battery_level,
        "weight_limit": drone.weight_limit,
        "load_weight": carried,
        "remaining_capacity": max(drone.weight_limit - carried, 0),
        "item_count": len(load),
        "can_be_loaded": drone.can_be_loaded(),
        "can_be_unloaded": drone.can_be_unloaded(),
    }
