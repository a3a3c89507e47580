"""Drone construction, setters and capacity rules, without a database."""

import random

import pytest

from dronedispatch.core.exceptions import InvalidInputFormat, OperationConflict, UnmetConditions
from dronedispatch.db.models import MIN_LOADING_BATTERY, Drone, DroneModel, DroneState, Medication


def make_drone(**overrides):
    attributes = {
        "serial_number": "D1",
        "model": "LIGHTWEIGHT",
        "state": "IDLE",
        "weight_limit": 100,
        "battery_level": 50,
    }
    attributes.update(overrides)
    return Drone(**attributes)


def medication(code, weight):
    return Medication(code=code, name=f"Med-{code}", weight=weight)


class TestDroneConstruction:
    def test_valid_drone(self):
        drone = make_drone()

        assert drone.serial_number == "D1"
        assert drone.model is DroneModel.LIGHTWEIGHT
        assert drone.state is DroneState.IDLE
        assert drone.weight_limit == 100
        assert drone.battery_level == 50

    def test_defaults(self):
        drone = Drone("D2")

        assert drone.model is DroneModel.UNKNOWN
        assert drone.state is DroneState.UNKNOWN
        assert drone.weight_limit == 500
        assert drone.battery_level == 0

    @pytest.mark.parametrize("weight_limit", [0, 500])
    def test_weight_limit_bounds_are_inclusive(self, weight_limit):
        assert make_drone(weight_limit=weight_limit).weight_limit == weight_limit

    @pytest.mark.parametrize("weight_limit", [-1, 501])
    def test_weight_limit_out_of_range(self, weight_limit):
        with pytest.raises(InvalidInputFormat):
            make_drone(weight_limit=weight_limit)

    @pytest.mark.parametrize("battery_level", [-1, 101])
    def test_battery_level_out_of_range(self, battery_level):
        with pytest.raises(InvalidInputFormat):
            make_drone(battery_level=battery_level)

    def test_boolean_is_not_an_integer(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(battery_level=True)

    def test_reserved_serial_number(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(serial_number="available")

    def test_serial_number_too_long(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(serial_number="D" * 101)

    def test_empty_serial_number(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(serial_number="")

    def test_unknown_model_name(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(model="FEATHERWEIGHT")

    def test_state_names_are_case_sensitive(self):
        with pytest.raises(InvalidInputFormat):
            make_drone(state="idle")

    def test_loading_requires_battery(self):
        with pytest.raises(UnmetConditions):
            make_drone(state="LOADING", battery_level=24)

    def test_loading_at_threshold_is_allowed(self):
        assert make_drone(state="LOADING", battery_level=25).state is DroneState.LOADING


class TestDroneState:
    def test_any_transition_is_allowed(self):
        drone = make_drone(state="IDLE")

        drone.set_state("DELIVERING")
        drone.set_state("UNKNOWN")
        drone.set_state("RETURNING")

        assert drone.state is DroneState.RETURNING

    def test_loading_guard_on_transition(self):
        drone = make_drone(battery_level=10)

        with pytest.raises(UnmetConditions):
            drone.set_state("LOADING")
        assert drone.state is DroneState.IDLE

    def test_battery_drop_does_not_change_state(self):
        drone = make_drone(state="LOADING", battery_level=30)

        drone.set_battery_level(5)

        assert drone.state is DroneState.LOADING
        assert drone.should_state_be_reset() is True

    @pytest.mark.parametrize("battery_level", range(0, 101))
    @pytest.mark.parametrize("state", [state.name for state in DroneState])
    def test_loading_guard_for_every_state_and_battery(self, state, battery_level):
        drone = make_drone(state="UNKNOWN", battery_level=battery_level)
        refused = state == "LOADING" and battery_level < MIN_LOADING_BATTERY

        if refused:
            with pytest.raises(UnmetConditions):
                drone.set_state(state)
            assert drone.state is DroneState.UNKNOWN
        else:
            drone.set_state(state)
            assert drone.state is DroneState[state]

    @pytest.mark.parametrize("battery_level", range(0, 101))
    @pytest.mark.parametrize("state", [state.name for state in DroneState])
    def test_construction_guard_for_every_state_and_battery(self, state, battery_level):
        if state == "LOADING" and battery_level < MIN_LOADING_BATTERY:
            with pytest.raises(UnmetConditions):
                make_drone(state=state, battery_level=battery_level)
        else:
            assert make_drone(state=state, battery_level=battery_level).state is DroneState[state]


class TestDroneCapacity:
    def test_can_hold_within_limit(self):
        drone = make_drone(weight_limit=100)

        assert drone.can_hold(60, [medication("A", 40)]) is True

    def test_can_hold_over_limit(self):
        drone = make_drone(weight_limit=100)

        assert drone.can_hold(61, [medication("A", 40)]) is False

    def test_detached_drone_carries_nothing(self):
        drone = make_drone(weight_limit=100)

        assert drone.current_load() == []
        assert drone.can_hold(100) is True

    def test_weight_difference_counts_old_weight_once(self):
        drone = make_drone(weight_limit=100)

        assert drone.can_hold_weight_difference(50, 60, [medication("A", 50)]) is True

    def test_weight_difference_over_limit(self):
        drone = make_drone(weight_limit=55)

        assert drone.can_hold_weight_difference(50, 60, [medication("A", 50)]) is False

    def test_shrinking_is_always_possible_within_limit(self):
        drone = make_drone(weight_limit=80)

        assert drone.can_hold_weight_difference(50, 10, [medication("A", 50), medication("B", 30)]) is True

    def test_can_hold_at_exact_limit(self):
        drone = make_drone(weight_limit=100)

        assert drone.can_hold(60, [medication("A", 40)]) is True
        assert drone.can_hold_weight_difference(40, 100, [medication("A", 40)]) is True

    def test_can_hold_randomized_loads(self):
        rng = random.Random(20240601)
        for _ in range(500):
            weight_limit = rng.randint(0, 500)
            load = [medication(f"M{i}", rng.randint(0, 120)) for i in range(rng.randint(0, 6))]
            carried = sum(item.weight for item in load)
            additional = rng.randint(0, 300)
            drone = make_drone(weight_limit=weight_limit)

            assert drone.can_hold(additional, load) is (carried + additional <= weight_limit)
            if carried <= weight_limit:
                # Filling the remaining room exactly is allowed, one more is not
                assert drone.can_hold(weight_limit - carried, load) is True
                assert drone.can_hold(weight_limit - carried + 1, load) is False

    def test_can_hold_weight_difference_randomized_loads(self):
        rng = random.Random(20240602)
        for _ in range(500):
            weight_limit = rng.randint(0, 500)
            load = [medication(f"M{i}", rng.randint(0, 120)) for i in range(rng.randint(1, 6))]
            carried = sum(item.weight for item in load)
            resized = rng.choice(load)
            new_weight = rng.randint(0, 300)
            drone = make_drone(weight_limit=weight_limit)

            expected = carried - resized.weight + new_weight <= weight_limit
            assert drone.can_hold_weight_difference(resized.weight, new_weight, load) is expected
            if carried - resized.weight <= weight_limit:
                exact = weight_limit - (carried - resized.weight)
                assert drone.can_hold_weight_difference(resized.weight, exact, load) is True
                assert drone.can_hold_weight_difference(resized.weight, exact + 1, load) is False


class TestDroneAvailability:
    @pytest.mark.parametrize(
        "state,battery_level,expected",
        [
            ("IDLE", 26, True),
            ("LOADING", 80, True),
            ("IDLE", 25, False),
            ("LOADED", 90, False),
            ("DELIVERING", 90, False),
        ],
    )
    def test_can_be_loaded(self, state, battery_level, expected):
        assert make_drone(state=state, battery_level=battery_level).can_be_loaded() is expected

    @pytest.mark.parametrize(
        "state,expected",
        [
            ("IDLE", True),
            ("LOADING", True),
            ("LOADED", True),
            ("DELIVERED", True),
            ("DELIVERING", False),
            ("RETURNING", False),
            ("UNKNOWN", False),
        ],
    )
    def test_can_be_unloaded(self, state, expected):
        assert make_drone(state=state).can_be_unloaded() is expected

    @pytest.mark.parametrize(
        "state,battery_level,expected",
        [
            ("LOADED", 24, True),
            ("LOADED", 25, False),
            ("IDLE", 5, False),
            ("DELIVERING", 5, False),
        ],
    )
    def test_should_state_be_reset(self, state, battery_level, expected):
        assert make_drone(state=state, battery_level=battery_level).should_state_be_reset() is expected


class TestDroneDeletion:
    def test_idle_drone_can_be_deleted(self):
        assert make_drone(state="IDLE").can_be_deleted() is True

    @pytest.mark.parametrize("state", ["LOADED", "DELIVERING", "UNKNOWN"])
    def test_busy_drone_cannot_be_deleted(self, state):
        with pytest.raises(OperationConflict):
            make_drone(state=state).can_be_deleted()
