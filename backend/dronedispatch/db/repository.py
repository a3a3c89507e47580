"""Persistence gateway: CRUD primitives keyed by entity identifier."""

from typing import Generic, List, Optional, Sequence, Tuple, Type, TypeVar

import structlog
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dronedispatch.core.exceptions import BulkInsertFailed, RequestProcessing, ResourceNotFound, UnmetConditions
from dronedispatch.db.models import BatteryAuditLog, Drone, DroneState, Medication, load_query

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BaseCrudRepository(Generic[T]):
    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get(self, entity_id: str) -> T:
        entity = self.db.get(self.model, entity_id)
        if entity is None:
            raise ResourceNotFound.for_id(entity_id, self.model)
        return entity

    def exists(self, entity_id: str) -> bool:
        return self.db.get(self.model, entity_id) is not None

    def list_all(self) -> List[T]:
        return list(self.db.scalars(select(self.model)))

    def add_new(self, entity: T) -> bool:
        identity = tuple(inspect(self.model).primary_key_from_instance(entity))
        if self.db.get(self.model, identity) is not None:
            raise UnmetConditions(f"{self.model.__name__} could not be created: identifier already exists")
        self.db.add(entity)
        try:
            self.db.commit()
        except IntegrityError as ex:
            self.db.rollback()
            raise UnmetConditions(f"{self.model.__name__} could not be created: identifier already exists") from ex
        logger.info("Entity created", entity=self.model.__name__)
        return True

    def add_new_bulk(self, entities: Sequence[T]) -> Tuple[int, List[T]]:
        """Persist every entity or none of them."""
        try:
            self.db.add_all(entities)
            self.db.commit()
        except SQLAlchemyError as ex:
            self.db.rollback()
            logger.warning("Bulk insert rolled back", entity=self.model.__name__, size=len(entities), error=str(ex))
            raise BulkInsertFailed(f"Bulk insert of {len(entities)} {self.model.__name__} items failed, none were stored") from ex
        logger.info("Bulk insert committed", entity=self.model.__name__, size=len(entities))
        return len(entities), list(entities)

    def update(self, entity: T) -> bool:
        try:
            self.db.commit()
        except IntegrityError as ex:
            self.db.rollback()
            raise UnmetConditions(f"{self.model.__name__} could not be updated: identifier already exists") from ex
        except SQLAlchemyError as ex:
            self.db.rollback()
            raise RequestProcessing(f"{self.model.__name__} could not be updated: {ex}") from ex
        self.db.refresh(entity)
        return True

    def delete(self, entity_id: str) -> bool:
        entity = self.get(entity_id)
        entity.can_be_deleted()
        self.db.delete(entity)
        self.db.commit()
        logger.info("Entity deleted", entity=self.model.__name__, entity_id=entity_id)
        return True


class DroneRepository(BaseCrudRepository[Drone]):
    def __init__(self, db: Session):
        super().__init__(db, Drone)

    def get_for_update(self, serial_number: str) -> Drone:
        """Fetch a drone holding its row lock until the transaction ends."""
        drone = self.db.scalars(
            select(Drone).where(Drone.serial_number == serial_number).with_for_update()
        ).first()
        if drone is None:
            raise ResourceNotFound.for_id(serial_number, Drone)
        return drone

    def list_available(self) -> List[Drone]:
        candidates = self.db.scalars(
            select(Drone).where(Drone.state.in_([DroneState.IDLE, DroneState.LOADING])).order_by(Drone.serial_number)
        )
        return [drone for drone in candidates if drone.can_be_loaded()]

    def reset_state(self, drone: Drone) -> bool:
        drone.set_state(DroneState.IDLE.name)
        self.db.commit()
        return True


class MedicationRepository(BaseCrudRepository[Medication]):
    def __init__(self, db: Session):
        super().__init__(db, Medication)

    def load_of(self, serial_number: str) -> List[Medication]:
        return list(self.db.scalars(load_query(serial_number)))


class BatteryAuditLogRepository:
    """Append-only: logs are never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def add_new(self, log: BatteryAuditLog) -> bool:
        self.db.add(log)
        self.db.commit()
        return True

    def list_all(self, limit: int = 100, drone_sn: Optional[str] = None) -> List[BatteryAuditLog]:
        query = select(BatteryAuditLog)
        if drone_sn:
            query = query.where(BatteryAuditLog.drone_sn == drone_sn)
        return list(self.db.scalars(query.order_by(BatteryAuditLog.timestamp.desc(), BatteryAuditLog.id.desc()).limit(limit)))

    def list_for_drone(self, drone_sn: str, limit: int = 100) -> List[BatteryAuditLog]:
        return self.list_all(limit=limit, drone_sn=drone_sn)
