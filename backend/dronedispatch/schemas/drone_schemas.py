from pydantic import Field
from typing import List

from dronedispatch.db.models import DroneModel, DroneState
from dronedispatch.schemas.common import CamelModel

# --- Drones ---
# Model and state stay plain strings here: the entity validates the names
class DroneCreate(CamelModel):
    serial_number: str
    model: str
    state: str
    weight_limit: int
    battery_level: int

class DroneBulkCreate(CamelModel):
    bulk: List[dict] = Field(min_length=1)

class DroneResponse(CamelModel):
    serial_number: str
    model: DroneModel
    state: DroneState
    weight_limit: int
    battery_level: int

class DroneStatusResponse(CamelModel):
    serial_number: str
    state: DroneState
    battery_level: int
    weight_limit: int
    load_weight: int
    remaining_capacity: int
    item_count: int
    can_be_loaded: bool
    can_be_unloaded: bool

# --- Load / unload ---
class LoadRequest(CamelModel):
    code: str
