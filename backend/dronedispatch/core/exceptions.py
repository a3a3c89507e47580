"""Error taxonomy shared by the entities, the updater and the routers.

Every error carries the HTTP status the API reports it with, so
the exception handlers in ``main.py`` never need to know the concrete type.
"""

from typing import Any, Dict, Optional


class DroneServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def body(self) -> Dict[str, Any]:
        return {"message": self.message}


class InvalidInputFormat(DroneServiceError):
    """A field failed its format, range or pattern rule."""

    status_code = 400

    @classmethod
    def for_pattern(cls, value: Any, pattern: str) -> "InvalidInputFormat":
        return cls(f'Invalid input format: Input "{value}" doesn\'t match expected pattern "{pattern}"')


class UnmetConditions(DroneServiceError):
    """A business-rule precondition failed."""

    status_code = 400


class CapacityExceeded(UnmetConditions):
    pass


class ResourceNotFound(DroneServiceError):
    status_code = 404

    @classmethod
    def for_id(cls, entity_id: Any, entity_type: type) -> "ResourceNotFound":
        return cls(f"Could not find {entity_type.__name__} of ID {entity_id}")


class RequestProcessing(DroneServiceError):
    """Internal failure not attributable to bad input."""

    status_code = 500


class OperationConflict(RequestProcessing):
    # Refused because of the entity's current state, not because of the input
    status_code = 409


class InvalidBulkItem(InvalidInputFormat):
    def __init__(self, item: Any, reason: Optional[str] = None):
        message = f"An item in the bulk is not properly defined: {item}"
        super().__init__(f"{message} ({reason})" if reason else message)

    def body(self) -> Dict[str, Any]:
        return {"message": self.message, "bulkSize": 0, "data": []}


class BulkInsertFailed(RequestProcessing):
    status_code = 422

    def body(self) -> Dict[str, Any]:
        return {"message": self.message, "bulkSize": 0, "data": []}
