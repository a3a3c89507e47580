"""Generic attribute updates driven by untyped payload values.

Each entity type registers a dispatch table once, mapping the external
attribute name to the kind of value it takes and the validated setter that
applies it. Updates never assign columns directly, so every rule enforced by
the setters holds for partial updates too.
"""

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Type

import structlog
from sqlalchemy.exc import IntegrityError

from dronedispatch.core.exceptions import (
    DroneServiceError,
    InvalidInputFormat,
    OperationConflict,
    RequestProcessing,
    UnmetConditions,
)
from dronedispatch.db.models import Drone, Medication

logger = structlog.get_logger(__name__)


class AttributeKind(enum.Enum):
    INTEGER = "integer"
    ENUM_NAME = "enum_name"
    STRING = "string"


@dataclass(frozen=True)
class AttributeSetter:
    kind: AttributeKind
    apply: Callable[[Any, Any], None]
    nullable: bool = False


_REGISTRY: Dict[type, Dict[str, AttributeSetter]] = {}


def register_entity(entity_type: type, setters: Mapping[str, AttributeSetter]) -> None:
    _REGISTRY[entity_type] = dict(setters)


def setters_for(entity_type: Type) -> Dict[str, AttributeSetter]:
    for klass in entity_type.__mro__:
        if klass in _REGISTRY:
            return _REGISTRY[klass]
    return {}


def _coerce_integer(attribute: str, value: Any) -> int:
    if isinstance(value, bool):
        raise UnmetConditions(f"{attribute} expects an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise UnmetConditions(f"{attribute} expects an integer, got {value!r}")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise UnmetConditions(f"{attribute} expects an integer, got {value!r}") from None
    raise UnmetConditions(f"{attribute} expects an integer, got {value!r}")


def _coerce_string(attribute: str, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise UnmetConditions(f"{attribute} expects a string, got {value!r}")
    return value if isinstance(value, str) else str(value)


def _coerce(attribute: str, setter: AttributeSetter, value: Any) -> Any:
    if value is None:
        if setter.nullable:
            return None
        raise UnmetConditions(f"{attribute} cannot be null")
    if setter.kind is AttributeKind.INTEGER:
        return _coerce_integer(attribute, value)
    # Enumerations go through their name setter so unknown names fail validation
    return _coerce_string(attribute, value)


def update_attribute(entity: Any, attribute: str, value: Any) -> None:
    """Apply one attribute to ``entity`` in place. Nothing is persisted."""
    attribute = attribute.strip()
    if attribute in getattr(entity, "ignored_update_attributes", ()):
        return

    setter = setters_for(type(entity)).get(attribute)
    if setter is None:
        raise UnmetConditions(f"{attribute} does not exist")

    coerced = _coerce(attribute, setter, value)
    try:
        setter.apply(entity, coerced)
    except (InvalidInputFormat, UnmetConditions, OperationConflict) as ex:
        raise UnmetConditions(ex.message) from ex
    except IntegrityError as ex:
        # A query inside the setter flushed an earlier attribute of the batch
        raise UnmetConditions(f"Could not update {attribute}: identifier already exists") from ex
    except DroneServiceError:
        raise
    except Exception as ex:
        raise RequestProcessing(f"Could not update {attribute}: {ex}") from ex


def apply_updates(entity: Any, payload: Mapping[str, Any]) -> Any:
    """Apply a batch of attributes in order, stopping at the first failure."""
    for attribute, value in payload.items():
        update_attribute(entity, attribute, value)
    logger.debug("Attribute batch applied", entity=type(entity).__name__, attributes=sorted(payload))
    return entity


register_entity(
    Drone,
    {
        "serialNumber": AttributeSetter(AttributeKind.STRING, Drone.set_serial_number),
        "model": AttributeSetter(AttributeKind.ENUM_NAME, Drone.set_model),
        "state": AttributeSetter(AttributeKind.ENUM_NAME, Drone.set_state),
        "weightLimit": AttributeSetter(AttributeKind.INTEGER, Drone.set_weight_limit),
        "batteryLevel": AttributeSetter(AttributeKind.INTEGER, Drone.set_battery_level),
    },
)

register_entity(
    Medication,
    {
        "code": AttributeSetter(AttributeKind.STRING, Medication.set_code),
        "name": AttributeSetter(AttributeKind.STRING, Medication.set_name),
        "weight": AttributeSetter(AttributeKind.INTEGER, Medication.set_weight),
        "medicationCaseImageUrl": AttributeSetter(
            AttributeKind.STRING, Medication.set_medication_case_image_url, nullable=True
        ),
    },
)
