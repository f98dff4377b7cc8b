"""
Tests for the entity store operations.
"""

import time
import pytest
from datetime import timedelta
from uuid import uuid4
from sqlalchemy import select, update

from conftest import driver_values, vehicle_values
from fleet.src import exceptions
from fleet.src.allocator import utcToday
from fleet.src.db import Driver, DriverStatusHistory, Vehicle
from fleet.src.entities import DRIVER, USER, VEHICLE
from fleet.src.enums import DriverStatus, VehicleStatus
from fleet.src.store import EntityStore


@pytest.fixture
def vehicles(session, bus_type):
    return EntityStore(session, VEHICLE)


@pytest.fixture
def drivers(session):
    return EntityStore(session, DRIVER)


class TestCreate:
    def test_initial_status_and_identifiers(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        assert vehicle.status == VehicleStatus.ACTIVE
        assert vehicle.id.version == 4
        assert vehicle.created_at == vehicle.updated_at
        assert "internal_id" not in vehicle.model_dump()

    def test_duplicate_unique_key(self, vehicles):
        vehicles.create(vehicle_values(license_plate="KBA100A"))
        with pytest.raises(exceptions.UniqueViolation):
            vehicles.create(vehicle_values(license_plate="KBA100A"))

    def test_duplicate_leaves_first_row_untouched(self, vehicles):
        first = vehicles.create(vehicle_values(license_plate="KBA100A", make="Isuzu"))
        with pytest.raises(exceptions.AlreadyExists):
            vehicles.create(vehicle_values(license_plate="KBA100A", make="Scania"))
        assert vehicles.get(first.id).make == "Isuzu"
        rows, _ = vehicles.list()
        assert len(rows) == 1

    def test_missing_required_value(self, vehicles):
        values = vehicle_values()
        del values["make"]
        with pytest.raises(exceptions.NotNullViolation):
            vehicles.create(values)


class TestGet:
    def test_unknown_id(self, vehicles):
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.get(uuid4())

    def test_malformed_id(self, vehicles):
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.get("not-a-uuid")

    def test_string_id(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        assert vehicles.get(str(vehicle.id)).id == vehicle.id

    def test_get_by_unique_key(self, vehicles):
        vehicle = vehicles.create(vehicle_values(license_plate="KBA200B"))
        assert vehicles.getBy(Vehicle.license_plate, "KBA200B").id == vehicle.id
        assert vehicles.getBy(Vehicle.license_plate, "KBA999Z") is None

    def test_corrupted_status(self, session, vehicles):
        vehicle = vehicles.create(vehicle_values())
        session.execute(
            update(Vehicle)
            .where(Vehicle.external_id == vehicle.id)
            .values(status="PARKED")
        )
        session.commit()
        with pytest.raises(exceptions.CorruptedValue):
            vehicles.get(vehicle.id)


class TestList:
    def test_unknown_filter(self, vehicles):
        with pytest.raises(exceptions.InvalidFilter):
            vehicles.list(filters={"colour": "red"})

    def test_scope(self, session):
        users = EntityStore(session, USER)
        users.create(
            {
                "first_name": "Amani",
                "last_name": "Otieno",
                "email": "amani@example.com",
                "password_hash": "hash",
            }
        )
        rows, _ = users.list(scope={"email": "amani@example.com"})
        assert len(rows) == 1
        rows, _ = users.list(scope={"email": "other@example.com"})
        assert rows == []


class TestUpdate:
    def test_mask_isolates_fields(self, vehicles):
        vehicle = vehicles.create(vehicle_values(make="Isuzu", color="Blue"))
        updated = vehicles.update(
            vehicle.id, {"make": "Scania", "color": "Red"}, ["color"]
        )
        assert updated.color == "Red"
        assert updated.make == "Isuzu"

    def test_mask_field_without_value_is_cleared(self, vehicles):
        vehicle = vehicles.create(vehicle_values(engine_number="ENG-7"))
        updated = vehicles.update(vehicle.id, {}, ["engine_number"])
        assert updated.engine_number == ""

    def test_without_mask_skips_empty_values(self, vehicles):
        vehicle = vehicles.create(vehicle_values(make="Isuzu", color="Blue"))
        updated = vehicles.update(vehicle.id, {"make": "", "color": "Red"})
        assert updated.make == "Isuzu"
        assert updated.color == "Red"

    def test_unknown_mask_field(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        with pytest.raises(exceptions.InvalidFieldMask):
            vehicles.update(vehicle.id, {"status": "RETIRED"}, ["status"])
        assert vehicles.get(vehicle.id).status == VehicleStatus.ACTIVE

    def test_unknown_id(self, vehicles):
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.update(uuid4(), {"make": "Scania"})

    def test_updated_at_advances(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        updated = vehicles.update(vehicle.id, {"color": "Red"})
        assert updated.updated_at > vehicle.updated_at
        assert updated.created_at == vehicle.created_at

    def test_duplicate_unique_key(self, vehicles):
        vehicles.create(vehicle_values(license_plate="KBA100A"))
        other = vehicles.create(vehicle_values(license_plate="KBA100B"))
        with pytest.raises(exceptions.UniqueViolation):
            vehicles.update(other.id, {"license_plate": "KBA100A"})
        assert vehicles.get(other.id).license_plate == "KBA100B"


class TestTransition:
    def test_valid_edge(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        moved = vehicles.transition(vehicle.id, VehicleStatus.ASSIGNED)
        assert moved.status == VehicleStatus.ASSIGNED
        assert moved.updated_at > vehicle.updated_at

    def test_invalid_edge(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        vehicles.transition(vehicle.id, "RETIRED")
        with pytest.raises(exceptions.InvalidStateTransition):
            vehicles.transition(vehicle.id, "ACTIVE")

    def test_self_edge(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        with pytest.raises(exceptions.InvalidStateTransition):
            vehicles.transition(vehicle.id, "ACTIVE")

    def test_unknown_status(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        with pytest.raises(exceptions.InvalidValue):
            vehicles.transition(vehicle.id, "PARKED")

    def test_unknown_id(self, vehicles):
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.transition(uuid4(), "ASSIGNED")

    def test_license_guard(self, session, drivers):
        driver = drivers.create(driver_values())
        session.execute(
            update(Driver)
            .where(Driver.external_id == driver.id)
            .values(license_expiry=utcToday() - timedelta(days=1))
        )
        session.commit()
        with pytest.raises(exceptions.LicenseExpired):
            drivers.transition(driver.id, DriverStatus.ACTIVE)
        assert drivers.get(driver.id).status == DriverStatus.PENDING_VERIFICATION

    def test_license_valid_through_expiry_day(self, drivers):
        driver = drivers.create(driver_values(license_expiry=utcToday()))
        assert drivers.transition(driver.id, "ACTIVE").status == DriverStatus.ACTIVE

    def test_history_row_written(self, session, drivers):
        driver = drivers.create(driver_values())
        drivers.transition(driver.id, DriverStatus.ACTIVE, "documents checked")
        history = session.scalars(
            select(DriverStatusHistory).where(DriverStatusHistory.driver_id == driver.id)
        ).all()
        assert len(history) == 1
        assert history[0].previous_status == DriverStatus.PENDING_VERIFICATION.value
        assert history[0].new_status == DriverStatus.ACTIVE.value
        assert history[0].reason == "documents checked"

    def test_stale_status(self, session, drivers, monkeypatch):
        """A status changed after it was validated is not overwritten."""
        driver = drivers.create(driver_values())
        drivers.transition(driver.id, DriverStatus.ACTIVE)
        load = drivers.load

        def staleLoad(externalID):
            record = load(externalID)
            session.execute(
                update(Driver)
                .where(Driver.external_id == externalID)
                .values(status=DriverStatus.SUSPENDED.value)
            )
            return record

        monkeypatch.setattr(drivers, "load", staleLoad)
        with pytest.raises(exceptions.ConcurrentModification):
            drivers.transition(driver.id, DriverStatus.INACTIVE)
        monkeypatch.undo()
        assert drivers.get(driver.id).status == DriverStatus.ACTIVE
        history = session.scalars(select(DriverStatusHistory)).all()
        assert len(history) == 1


class TestSoftDelete:
    def test_moves_to_terminal_status(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        vehicles.softDelete(vehicle.id)
        assert vehicles.get(vehicle.id).status == VehicleStatus.RETIRED

    def test_second_delete_is_not_found(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        vehicles.softDelete(vehicle.id)
        retired = vehicles.get(vehicle.id)
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.softDelete(vehicle.id)
        assert vehicles.get(vehicle.id).updated_at == retired.updated_at

    def test_unknown_id(self, vehicles):
        with pytest.raises(exceptions.InvalidIdentifier):
            vehicles.softDelete(uuid4())

    def test_assigned_vehicle_is_in_use(self, vehicles):
        vehicle = vehicles.create(vehicle_values())
        vehicles.transition(vehicle.id, VehicleStatus.ASSIGNED)
        with pytest.raises(exceptions.DataInUse):
            vehicles.softDelete(vehicle.id)
        assert vehicles.get(vehicle.id).status == VehicleStatus.ASSIGNED

    def test_any_driver_status_can_be_deactivated(self, drivers):
        driver = drivers.create(driver_values())
        drivers.transition(driver.id, DriverStatus.ACTIVE)
        drivers.transition(driver.id, DriverStatus.SUSPENDED)
        drivers.softDelete(driver.id)
        assert drivers.get(driver.id).status == DriverStatus.INACTIVE

    def test_driver_deletion_is_recorded(self, session, drivers):
        driver = drivers.create(driver_values())
        drivers.transition(driver.id, DriverStatus.ACTIVE)
        drivers.softDelete(driver.id)
        history = session.scalars(
            select(DriverStatusHistory)
            .where(DriverStatusHistory.driver_id == driver.id)
            .order_by(DriverStatusHistory.id)
        ).all()
        assert [(row.previous_status, row.new_status) for row in history] == [
            (DriverStatus.PENDING_VERIFICATION.value, DriverStatus.ACTIVE.value),
            (DriverStatus.ACTIVE.value, DriverStatus.INACTIVE.value),
        ]
        assert history[1].reason is None

    def test_refused_deletion_writes_no_history(self, session, drivers):
        driver = drivers.create(driver_values())
        drivers.softDelete(driver.id)
        with pytest.raises(exceptions.InvalidIdentifier):
            drivers.softDelete(driver.id)
        history = session.scalars(select(DriverStatusHistory)).all()
        assert len(history) == 1


class TestDeadline:
    def test_expired_deadline(self, session, bus_type):
        store = EntityStore(session, VEHICLE, deadline=time.monotonic() - 1)
        with pytest.raises(exceptions.DeadlineExceeded):
            store.create(vehicle_values())
        rows, _ = EntityStore(session, VEHICLE).list()
        assert rows == []
