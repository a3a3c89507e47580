"""Loads racing for the same drone on a file-backed SQLite database."""

import threading
import time

import pytest

from dronedispatch.core.exceptions import CapacityExceeded
from dronedispatch.db.database import Base, build_engine, build_session_factory
from dronedispatch.db.models import Drone, Medication, load_weight
from dronedispatch.db.repository import DroneRepository, MedicationRepository
from dronedispatch.services.load_service import load_medication


@pytest.fixture()
def file_session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'fleet.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def slow_capacity_check(monkeypatch):
    can_hold = Drone.can_hold

    def slow_can_hold(self, additional_weight, load=None):
        # Widen the window between reading the load and committing
        time.sleep(0.2)
        return can_hold(self, additional_weight, load)

    monkeypatch.setattr(Drone, "can_hold", slow_can_hold)


class TestConcurrentLoads:
    def test_capacity_holds_under_concurrent_loads(self, file_session_factory, slow_capacity_check):
        with file_session_factory() as db:
            DroneRepository(db).add_new(Drone("D1", "LIGHTWEIGHT", "IDLE", 100, 50))
            MedicationRepository(db).add_new(Medication(code="A", name="Aspirin", weight=60))
            MedicationRepository(db).add_new(Medication(code="B", name="Ibuprofen", weight=60))

        start = threading.Barrier(2)
        loaded, refused, failures = [], [], []

        def load(code):
            start.wait()
            with file_session_factory() as db:
                try:
                    load_medication(db, "D1", code)
                    loaded.append(code)
                except CapacityExceeded:
                    refused.append(code)
                except Exception as ex:
                    failures.append(ex)

        threads = [threading.Thread(target=load, args=(code,)) for code in ("A", "B")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert failures == []
        assert len(loaded) == 1
        assert len(refused) == 1
        with file_session_factory() as db:
            assert load_weight(MedicationRepository(db).load_of("D1")) == 60
