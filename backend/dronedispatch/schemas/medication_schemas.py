from pydantic import Field
from typing import List, Optional

from dronedispatch.schemas.common import CamelModel

class MedicationCreate(CamelModel):
    code: str
    name: str
    weight: int
    medication_case_image_url: Optional[str] = None

class MedicationBulkCreate(CamelModel):
    bulk: List[dict] = Field(min_length=1)

class MedicationResponse(CamelModel):
    code: str
    name: str
    weight: int
    medication_case_image_url: Optional[str] = None
    # Serial of the carrying drone, exposed under the relation's name
    associated_drone_sn: Optional[str] = Field(default=None, serialization_alias="associatedDrone")
