import enum
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, select
from sqlalchemy.orm import object_session, relationship

from dronedispatch.core.exceptions import InvalidInputFormat, OperationConflict, UnmetConditions
from dronedispatch.core.validation import (
    validate_bounded_int,
    validate_enum_name,
    validate_max_length,
    validate_non_negative_int,
    validate_pattern,
)
from dronedispatch.db.database import Base

MIN_LOADING_BATTERY = 25
MAX_WEIGHT_LIMIT = 500
MAX_SERIAL_LENGTH = 100
# "/drones/available" shadows a drone with this serial
RESERVED_SERIALS = frozenset({"available"})


class DroneModel(enum.Enum):
    UNKNOWN = "UNKNOWN"  # default until the real model is known
    LIGHTWEIGHT = "LIGHTWEIGHT"
    MIDDLEWEIGHT = "MIDDLEWEIGHT"
    CRUISERWEIGHT = "CRUISERWEIGHT"
    HEAVYWEIGHT = "HEAVYWEIGHT"


class DroneState(enum.Enum):
    UNKNOWN = "UNKNOWN"
    IDLE = "IDLE"
    LOADING = "LOADING"
    LOADED = "LOADED"
    DELIVERING = "DELIVERING"
    DELIVERED = "DELIVERED"
    RETURNING = "RETURNING"


LOADABLE_STATES = frozenset({DroneState.IDLE, DroneState.LOADING})
UNLOADABLE_STATES = frozenset({DroneState.IDLE, DroneState.LOADING, DroneState.LOADED, DroneState.DELIVERED})
RESETTABLE_STATES = frozenset({DroneState.LOADING, DroneState.LOADED})


def load_query(serial_number: str):
    """Medications currently associated with the given drone."""
    return select(Medication).where(Medication.associated_drone_sn == serial_number).order_by(Medication.code)


def load_weight(load: Iterable["Medication"]) -> int:
    return sum(medication.weight for medication in load)


# 1. DRONES
class Drone(Base):
    __tablename__ = "drones"

    # "load" is derived from the medications table, never written through a drone
    ignored_update_attributes = frozenset({"load"})

    serial_number = Column("sn", String(MAX_SERIAL_LENGTH), primary_key=True)
    model = Column(Enum(DroneModel, native_enum=False, length=20), nullable=False, default=DroneModel.UNKNOWN)
    state = Column(Enum(DroneState, native_enum=False, length=20), nullable=False, default=DroneState.UNKNOWN)
    weight_limit = Column(Integer, nullable=False, default=MAX_WEIGHT_LIMIT)
    battery_level = Column(Integer, nullable=False, default=0)

    def __init__(
        self,
        serial_number: str,
        model: str = DroneModel.UNKNOWN.name,
        state: str = DroneState.UNKNOWN.name,
        weight_limit: int = MAX_WEIGHT_LIMIT,
        battery_level: int = 0,
    ):
        # Battery first: the state guard reads it
        self.set_serial_number(serial_number)
        self.set_model(model)
        self.set_weight_limit(weight_limit)
        self.set_battery_level(battery_level)
        self.set_state(state)

    def __repr__(self) -> str:
        return f"<Drone {self.serial_number} {self.state.name if self.state else None} {self.battery_level}%>"

    def set_serial_number(self, serial_number: str) -> None:
        serial_number = validate_max_length(serial_number, MAX_SERIAL_LENGTH, "serialNumber")
        if serial_number in RESERVED_SERIALS:
            raise InvalidInputFormat(f'Invalid input format: serialNumber "{serial_number}" is reserved')
        self.serial_number = serial_number

    def set_model(self, model: str) -> None:
        self.model = validate_enum_name(DroneModel, model, "model")

    def set_state(self, state: str) -> None:
        """Any state may follow any other; only LOADING is gated by the battery."""
        new_state = validate_enum_name(DroneState, state, "state")
        if new_state is DroneState.LOADING and (self.battery_level or 0) < MIN_LOADING_BATTERY:
            raise UnmetConditions(
                f"Drone {self.serial_number} cannot enter LOADING with battery at "
                f"{self.battery_level}% (minimum {MIN_LOADING_BATTERY}%)"
            )
        self.state = new_state

    def set_weight_limit(self, weight_limit: int) -> None:
        weight_limit = validate_bounded_int(weight_limit, 0, MAX_WEIGHT_LIMIT, "weightLimit")
        carried = load_weight(self.current_load())
        if carried > weight_limit:
            raise UnmetConditions(
                f"Drone {self.serial_number} already carries {carried} and cannot lower its limit to {weight_limit}"
            )
        self.weight_limit = weight_limit

    def set_battery_level(self, battery_level: int) -> None:
        self.battery_level = validate_bounded_int(battery_level, 0, 100, "batteryLevel")

    def current_load(self) -> List["Medication"]:
        """Query the drone's load through its own session; a detached drone carries nothing."""
        session = object_session(self)
        if session is None or self.serial_number is None:
            return []
        return list(session.scalars(load_query(self.serial_number)))

    def can_hold(self, additional_weight: int, load: Optional[Iterable["Medication"]] = None) -> bool:
        if load is None:
            load = self.current_load()
        return load_weight(load) + additional_weight <= self.weight_limit

    def can_hold_weight_difference(
        self, old_weight: int, new_weight: int, load: Optional[Iterable["Medication"]] = None
    ) -> bool:
        """Resize check for a medication that is already counted in the load."""
        if load is None:
            load = self.current_load()
        return load_weight(load) - old_weight + new_weight <= self.weight_limit

    def can_be_loaded(self) -> bool:
        return self.state in LOADABLE_STATES and self.battery_level > MIN_LOADING_BATTERY

    def can_be_unloaded(self) -> bool:
        return self.state in UNLOADABLE_STATES

    def should_state_be_reset(self) -> bool:
        return self.battery_level < MIN_LOADING_BATTERY and self.state in RESETTABLE_STATES

    def can_be_deleted(self) -> bool:
        if self.state is not DroneState.IDLE:
            raise OperationConflict(
                f"Drone {self.serial_number} can only be deleted while IDLE (current state: {self.state.name})"
            )
        return True


# 2. MEDICATIONS
class Medication(Base):
    __tablename__ = "medications"

    # The association is changed only through load/unload
    ignored_update_attributes = frozenset({"associatedDrone"})

    CODE_PATTERN = re.compile(r"[A-Z0-9_]+")
    NAME_PATTERN = re.compile(r"[A-Za-z0-9\-_]+")

    code = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    weight = Column(Integer, nullable=False, default=0)
    medication_case_image_url = Column(String, nullable=True)
    associated_drone_sn = Column(
        String(MAX_SERIAL_LENGTH),
        ForeignKey("drones.sn", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )

    associated_drone = relationship("Drone", foreign_keys=[associated_drone_sn], lazy="joined")

    def __init__(self, code: str, name: str, weight: int, medication_case_image_url: Optional[str] = None):
        self.set_code(code)
        self.set_name(name)
        self.set_weight(weight)
        self.set_medication_case_image_url(medication_case_image_url)

    def __repr__(self) -> str:
        return f"<Medication {self.code} {self.weight}>"

    def set_code(self, code: str) -> None:
        if not isinstance(code, str):
            raise InvalidInputFormat.for_pattern(code, self.CODE_PATTERN.pattern)
        self.code = validate_pattern(code.upper(), self.CODE_PATTERN, "code")

    def set_name(self, name: str) -> None:
        self.name = validate_pattern(name, self.NAME_PATTERN, "name")

    def set_weight(self, weight: int, load: Optional[Iterable["Medication"]] = None) -> None:
        weight = validate_non_negative_int(weight, "weight")
        drone = self.associated_drone
        if drone is not None and not drone.can_hold_weight_difference(self.weight or 0, weight, load):
            raise OperationConflict("The weight difference cannot be held by the associated drone!")
        self.weight = weight

    def set_medication_case_image_url(self, image_url: Optional[str]) -> None:
        if image_url is None or (isinstance(image_url, str) and not image_url.strip()):
            self.medication_case_image_url = None
            return
        if not isinstance(image_url, str):
            raise InvalidInputFormat(f"Invalid input format: medicationCaseImageUrl must be a string, got {image_url!r}")
        self.medication_case_image_url = image_url.strip()

    def set_associated_drone(self, drone: Optional[Drone]) -> None:
        # Capacity is checked by the caller before associating
        self.associated_drone = drone

    def is_associated_with(self, drone: Drone) -> bool:
        return self.associated_drone is not None and self.associated_drone.serial_number == drone.serial_number

    def can_be_deleted(self) -> bool:
        if self.associated_drone is not None:
            raise OperationConflict("Cannot delete medication when it is associated to a drone load!")
        return True


# 3. BATTERY AUDIT
class BatteryAuditLog(Base):
    __tablename__ = "battery_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # Plain serial, not a foreign key: the log outlives the drone
    drone_sn = Column(String(MAX_SERIAL_LENGTH), nullable=False, index=True)
    logged_battery_level = Column(Integer, nullable=False)
    # Written by the final pass after a shutdown request
    shutdown_log = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    def __init__(self, drone: Drone, shutdown_log: bool = False):
        self.drone_sn = drone.serial_number
        self.logged_battery_level = drone.battery_level
        self.shutdown_log = shutdown_log
        self.timestamp = datetime.now(timezone.utc)

    def can_be_deleted(self) -> bool:
        raise OperationConflict("Battery audit logs are append-only")
