from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, List, TypeVar

T = TypeVar("T")

# Wire format is camelCase, Python side stays snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class DataResponse(BaseModel, Generic[T]):
    data: T

class MessageDataResponse(DataResponse[T], Generic[T]):
    message: str

class BulkResponse(CamelModel, Generic[T]):
    bulk_size: int
    data: List[T]

class ErrorResponse(BaseModel):
    message: str
