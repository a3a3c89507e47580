from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List

from pydantic import ValidationError

from dronedispatch.core.exceptions import DroneServiceError, InvalidBulkItem
from dronedispatch.db.database import get_db
from dronedispatch.db.models import Drone
from dronedispatch.db.repository import DroneRepository, MedicationRepository
from dronedispatch.schemas.common import BulkResponse, DataResponse, ErrorResponse, MessageDataResponse
from dronedispatch.schemas.drone_schemas import (
    DroneBulkCreate,
    DroneCreate,
    DroneResponse,
    DroneStatusResponse,
    LoadRequest,
)
from dronedispatch.schemas.medication_schemas import MedicationResponse
from dronedispatch.services.load_service import drone_status, load_medication, unload_medication
from dronedispatch.services.updater import apply_updates

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Drone not found"}}


def build_drone(drone_in: DroneCreate) -> Drone:
    return Drone(
        serial_number=drone_in.serial_number,
        model=drone_in.model,
        state=drone_in.state,
        weight_limit=drone_in.weight_limit,
        battery_level=drone_in.battery_level,
    )


# FLEET
@router.get(
    "",
    response_model=DataResponse[List[DroneResponse]],
    summary="List every registered drone"
)
def read_drones(db: Session = Depends(get_db)):
    return {"data": DroneRepository(db).list_all()}


@router.get(
    "/available",
    response_model=DataResponse[List[DroneResponse]],
    summary="Drones available for loading",
    description="IDLE or LOADING drones whose battery is above the loading threshold."
)
def read_available_drones(db: Session = Depends(get_db)):
    return {"data": DroneRepository(db).list_available()}


@router.get(
    "/{serial_number}",
    response_model=DataResponse[DroneResponse],
    summary="Get a drone",
    responses=NOT_FOUND
)
def read_drone(serial_number: str, db: Session = Depends(get_db)):
    return {"data": DroneRepository(db).get(serial_number)}


@router.get(
    "/{serial_number}/battery",
    response_model=DataResponse[int],
    summary="Battery level of a drone",
    responses=NOT_FOUND
)
def read_battery_level(serial_number: str, db: Session = Depends(get_db)):
    return {"data": DroneRepository(db).get(serial_number).battery_level}


@router.get(
    "/{serial_number}/items",
    response_model=DataResponse[List[MedicationResponse]],
    summary="Medications loaded on a drone",
    responses=NOT_FOUND
)
def read_drone_items(serial_number: str, db: Session = Depends(get_db)):
    drone = DroneRepository(db).get(serial_number)
    return {"data": MedicationRepository(db).load_of(drone.serial_number)}


@router.get(
    "/{serial_number}/status",
    response_model=DataResponse[DroneStatusResponse],
    summary="Load and availability summary of a drone",
    responses=NOT_FOUND
)
def read_drone_status(serial_number: str, db: Session = Depends(get_db)):
    drone = DroneRepository(db).get(serial_number)
    return {"data": drone_status(drone, MedicationRepository(db).load_of(drone.serial_number))}


# REGISTRATION
@router.post(
    "",
    response_model=DataResponse[DroneResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a drone",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid field, battery too low for LOADING or serial already taken"}
    }
)
def create_drone(drone_in: DroneCreate, db: Session = Depends(get_db)):
    drone = build_drone(drone_in)
    DroneRepository(db).add_new(drone)
    return {"data": drone}


@router.post(
    "/bulk",
    response_model=BulkResponse[DroneResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register several drones at once",
    description="Either every drone in the bulk is stored or none is.",
    responses={
        400: {"model": ErrorResponse, "description": "An item of the bulk is incomplete or invalid"},
        422: {"model": ErrorResponse, "description": "The bulk could not be stored"}
    }
)
def create_drones_bulk(payload: DroneBulkCreate, db: Session = Depends(get_db)):
    drones = []
    for item in payload.bulk:
        try:
            drones.append(build_drone(DroneCreate.model_validate(item)))
        except ValidationError as ex:
            raise InvalidBulkItem(item, f"{ex.error_count()} invalid field(s)") from ex
        except DroneServiceError as ex:
            raise InvalidBulkItem(item, ex.message) from ex

    count, created = DroneRepository(db).add_new_bulk(drones)
    return {"bulkSize": count, "data": created}


# UPDATE / DELETE
@router.patch(
    "/{serial_number}",
    response_model=DataResponse[DroneResponse],
    summary="Update drone attributes",
    description="Applies every attribute of the payload; nothing is stored unless all of them are valid.",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown attribute or rejected value"},
        **NOT_FOUND
    }
)
def update_drone(serial_number: str, changes: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    drones = DroneRepository(db)
    drone = drones.get_for_update(serial_number)
    apply_updates(drone, changes)
    drones.update(drone)
    return {"data": drone}


@router.delete(
    "/{serial_number}",
    response_model=DataResponse[bool],
    summary="Delete a drone",
    responses={
        409: {"model": ErrorResponse, "description": "Drone is not IDLE"},
        **NOT_FOUND
    }
)
def delete_drone(serial_number: str, db: Session = Depends(get_db)):
    return {"data": DroneRepository(db).delete(serial_number)}


# LOAD / UNLOAD
@router.post(
    "/{serial_number}/load",
    response_model=MessageDataResponse[MedicationResponse],
    summary="Load a medication onto a drone",
    description="Loading a medication the drone already carries succeeds without changes.",
    responses={
        400: {"model": ErrorResponse, "description": "The drone cannot hold the extra weight"},
        404: {"model": ErrorResponse, "description": "Drone or medication not found"},
        409: {"model": ErrorResponse, "description": "Medication is loaded on another drone"}
    }
)
def load_drone(serial_number: str, request: LoadRequest, db: Session = Depends(get_db)):
    result = load_medication(db, serial_number, request.code)
    return {"data": result.medication, "message": result.message}


@router.post(
    "/{serial_number}/unload",
    response_model=MessageDataResponse[MedicationResponse],
    summary="Unload a medication from a drone",
    responses={
        400: {"model": ErrorResponse, "description": "Medication is not loaded"},
        404: {"model": ErrorResponse, "description": "Drone or medication not found"},
        409: {"model": ErrorResponse, "description": "Medication is loaded on another drone"}
    }
)
def unload_drone(serial_number: str, request: LoadRequest, db: Session = Depends(get_db)):
    result = unload_medication(db, serial_number, request.code)
    return {"data": result.medication, "message": result.message}
