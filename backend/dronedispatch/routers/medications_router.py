from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List

from pydantic import ValidationError

from dronedispatch.core.exceptions import DroneServiceError, InvalidBulkItem
from dronedispatch.db.database import get_db
from dronedispatch.db.models import Medication
from dronedispatch.db.repository import DroneRepository, MedicationRepository
from dronedispatch.schemas.common import BulkResponse, DataResponse, ErrorResponse
from dronedispatch.schemas.medication_schemas import MedicationBulkCreate, MedicationCreate, MedicationResponse
from dronedispatch.services.updater import apply_updates

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Medication not found"}}


def build_medication(medication_in: MedicationCreate) -> Medication:
    return Medication(
        code=medication_in.code,
        name=medication_in.name,
        weight=medication_in.weight,
        medication_case_image_url=medication_in.medication_case_image_url,
    )


@router.get(
    "",
    response_model=DataResponse[List[MedicationResponse]],
    summary="List every medication"
)
def read_medications(db: Session = Depends(get_db)):
    return {"data": MedicationRepository(db).list_all()}


@router.get(
    "/{code}",
    response_model=DataResponse[MedicationResponse],
    summary="Get a medication",
    responses=NOT_FOUND
)
def read_medication(code: str, db: Session = Depends(get_db)):
    return {"data": MedicationRepository(db).get(code.upper())}


@router.post(
    "",
    response_model=DataResponse[MedicationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a medication",
    description="The code is upper-cased before it is validated.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid code, name or weight, or code already taken"}
    }
)
def create_medication(medication_in: MedicationCreate, db: Session = Depends(get_db)):
    medication = build_medication(medication_in)
    MedicationRepository(db).add_new(medication)
    return {"data": medication}


@router.post(
    "/bulk",
    response_model=BulkResponse[MedicationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register several medications at once",
    description="Either every medication in the bulk is stored or none is.",
    responses={
        400: {"model": ErrorResponse, "description": "An item of the bulk is incomplete or invalid"},
        422: {"model": ErrorResponse, "description": "The bulk could not be stored"}
    }
)
def create_medications_bulk(payload: MedicationBulkCreate, db: Session = Depends(get_db)):
    medications = []
    for item in payload.bulk:
        try:
            medications.append(build_medication(MedicationCreate.model_validate(item)))
        except ValidationError as ex:
            raise InvalidBulkItem(item, f"{ex.error_count()} invalid field(s)") from ex
        except DroneServiceError as ex:
            raise InvalidBulkItem(item, ex.message) from ex

    count, created = MedicationRepository(db).add_new_bulk(medications)
    return {"bulkSize": count, "data": created}


@router.patch(
    "/{code}",
    response_model=DataResponse[MedicationResponse],
    summary="Update medication attributes",
    description="The association to a drone is ignored here, use the drone load/unload endpoints.",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown attribute, rejected value or weight the drone cannot hold"},
        **NOT_FOUND
    }
)
def update_medication(code: str, changes: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    medications = MedicationRepository(db)
    medication = medications.get(code.upper())
    if medication.associated_drone_sn is not None:
        # Weight changes are checked against the carrying drone, lock it first
        DroneRepository(db).get_for_update(medication.associated_drone_sn)
    apply_updates(medication, changes)
    medications.update(medication)
    return {"data": medication}


@router.delete(
    "/{code}",
    response_model=DataResponse[bool],
    summary="Delete a medication",
    responses={
        409: {"model": ErrorResponse, "description": "Medication is loaded on a drone"},
        **NOT_FOUND
    }
)
def delete_medication(code: str, db: Session = Depends(get_db)):
    return {"data": MedicationRepository(db).delete(code.upper())}
