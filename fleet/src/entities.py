"""
Entity types handled by the store.

An `EntitySpec` tells `EntityStore` everything that differs between entity
types: table, record schema, status lifecycle, updatable fields, supported
list filters and the business rules layered above the status machine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Type
from pydantic import BaseModel
from sqlalchemy.orm import Session

from fleet.src import validators
from fleet.src.db import (
    Vehicle,
    Driver,
    DriverCertification,
    DriverStatusHistory,
    User,
)
from fleet.src.enums import (
    VehicleStatus,
    FuelType,
    DriverStatus,
    LicenseClass,
    CertificationStatus,
    UserStatus,
)
from fleet.src.filters import (
    Filter,
    EqualsFilter,
    ContainsFilter,
    ExpiringWithinFilter,
    ExpiredWithinFilter,
    LapsedFilter,
    ValidOnlyFilter,
)
from fleet.src.schemas import (
    Record,
    VehicleSchema,
    DriverSchema,
    CertificationSchema,
    UserSchema,
)
from fleet.src.transitions import (
    StatusMachine,
    VEHICLE_TRANSITIONS,
    DRIVER_TRANSITIONS,
    CERTIFICATION_TRANSITIONS,
    USER_TRANSITIONS,
)


@dataclass(frozen=True)
class EntitySpec:
    model: Any
    record: Type[Record]
    statusEnum: Type[Enum]
    machine: StatusMachine
    initialStatus: Enum
    terminalStatus: Enum
    updatable: tuple[str, ...]
    filters: dict[str, Filter] = field(default_factory=dict)
    # Statuses from which a soft delete is refused with DataInUse
    undeletable: tuple[Enum, ...] = ()
    # Checks run before moving into a status, keyed by the target status
    guards: dict[Enum, Callable[[BaseModel], Any]] = field(default_factory=dict)
    # Writes the audit row of a status change, inside the same transaction
    history: Callable[..., Any] | None = None

    @property
    def name(self) -> str:
        return self.model.__name__


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------
def requireValidLicense(driver: DriverSchema):
    validators.unexpiredLicense(driver.license_expiry)


def recordDriverStatus(
    session: Session, driver_id, previous_status, new_status, reason, changed_at
):
    session.add(
        DriverStatusHistory(
            driver_id=driver_id,
            previous_status=previous_status,
            new_status=new_status,
            reason=reason,
            changed_at=changed_at,
        )
    )


# ---------------------------------------------------------------------------
# Entity types
# ---------------------------------------------------------------------------
VEHICLE = EntitySpec(
    model=Vehicle,
    record=VehicleSchema,
    statusEnum=VehicleStatus,
    machine=VEHICLE_TRANSITIONS,
    initialStatus=VehicleStatus.ACTIVE,
    terminalStatus=VehicleStatus.RETIRED,
    updatable=(
        Vehicle.vehicle_type_id.key,
        Vehicle.license_plate.key,
        Vehicle.make.key,
        Vehicle.model.key,
        Vehicle.year.key,
        Vehicle.color.key,
        Vehicle.seating_capacity.key,
        Vehicle.fuel_type.key,
        Vehicle.engine_number.key,
        Vehicle.chassis_number.key,
        Vehicle.registration_date.key,
        Vehicle.insurance_expiry.key,
    ),
    filters={
        "status": EqualsFilter(Vehicle.status, VehicleStatus),
        "vehicle_type_id": EqualsFilter(Vehicle.vehicle_type_id),
        "fuel_type": EqualsFilter(Vehicle.fuel_type, FuelType),
        "make": ContainsFilter(Vehicle.make),
        "insurance_expiring_within": ExpiringWithinFilter(Vehicle.insurance_expiry),
    },
    undeletable=(VehicleStatus.ASSIGNED,),
)

DRIVER = EntitySpec(
    model=Driver,
    record=DriverSchema,
    statusEnum=DriverStatus,
    machine=DRIVER_TRANSITIONS,
    initialStatus=DriverStatus.PENDING_VERIFICATION,
    terminalStatus=DriverStatus.INACTIVE,
    updatable=(
        Driver.license_number.key,
        Driver.license_class.key,
        Driver.license_expiry.key,
        Driver.experience_years.key,
        Driver.phone_number.key,
        Driver.emergency_contact_name.key,
        Driver.emergency_contact_phone.key,
    ),
    filters={
        "status": EqualsFilter(Driver.status, DriverStatus),
        "license_class": EqualsFilter(Driver.license_class, LicenseClass),
        "license_expiring_within": ExpiringWithinFilter(Driver.license_expiry),
        "valid_license": ValidOnlyFilter(Driver.license_expiry),
    },
    guards={DriverStatus.ACTIVE: requireValidLicense},
    history=recordDriverStatus,
)

CERTIFICATION = EntitySpec(
    model=DriverCertification,
    record=CertificationSchema,
    statusEnum=CertificationStatus,
    machine=CERTIFICATION_TRANSITIONS,
    initialStatus=CertificationStatus.CERT_ACTIVE,
    terminalStatus=CertificationStatus.CERT_REVOKED,
    updatable=(
        DriverCertification.certification_name.key,
        DriverCertification.issued_by.key,
        DriverCertification.issue_date.key,
        DriverCertification.expiry_date.key,
    ),
    filters={
        "status": EqualsFilter(DriverCertification.status, CertificationStatus),
        "expiring_within": ExpiringWithinFilter(DriverCertification.expiry_date),
        "expired": LapsedFilter(
            DriverCertification.expiry_date,
            DriverCertification.status,
            (CertificationStatus.CERT_ACTIVE, CertificationStatus.CERT_EXPIRED),
        ),
        "expired_within": ExpiredWithinFilter(DriverCertification.expiry_date),
    },
)

USER = EntitySpec(
    model=User,
    record=UserSchema,
    statusEnum=UserStatus,
    machine=USER_TRANSITIONS,
    initialStatus=UserStatus.ACTIVE,
    terminalStatus=UserStatus.CLOSED,
    updatable=(
        User.first_name.key,
        User.last_name.key,
        User.email.key,
    ),
    filters={
        "status": EqualsFilter(User.status, UserStatus),
        "name": ContainsFilter(
            User.first_name, User.first_name + " " + User.last_name
        ),
        "email": ContainsFilter(User.email),
    },
)
