from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar
from uuid import UUID
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from fleet.src.allocator import utcToday
from fleet.src.enums import (
    VehicleStatus,
    FuelType,
    DriverStatus,
    LicenseClass,
    CertificationStatus,
    UserStatus,
    AuthMethod,
)

RecordT = TypeVar("RecordT")


class RequestInfo(BaseModel):
    method: str
    path: str
    app_id: int


class HealthStatus(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: str


class Page(BaseModel, Generic[RecordT]):
    items: List[RecordT]
    next_page_token: str = ""


## Entity records
class Record(BaseModel):
    """
    Read model of a stored entity.

    Built from ORM rows. The external identifier is published as `id` and
    the internal identifier is never part of a record.
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID = Field(validation_alias=AliasChoices("external_id", "id"))
    updated_at: datetime
    created_at: datetime


class VehicleTypeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    created_at: datetime


class VehicleSchema(Record):
    vehicle_type_id: int
    license_plate: str
    make: str
    model: str
    year: int
    color: str
    seating_capacity: int
    fuel_type: FuelType
    engine_number: Optional[str]
    chassis_number: Optional[str]
    registration_date: date
    insurance_expiry: date
    status: VehicleStatus


class DriverSchema(Record):
    user_id: UUID
    license_number: str
    license_class: LicenseClass
    license_expiry: date
    experience_years: int
    phone_number: str
    emergency_contact_name: Optional[str]
    emergency_contact_phone: Optional[str]
    hire_date: date
    status: DriverStatus

    @computed_field
    @property
    def license_expired(self) -> bool:
        return self.license_expiry < utcToday()

    @computed_field
    @property
    def days_until_license_expiry(self) -> int:
        return (self.license_expiry - utcToday()).days


class CertificationSchema(Record):
    driver_id: UUID
    certification_name: str
    issued_by: str
    issue_date: date
    expiry_date: date
    status: CertificationStatus

    @computed_field
    @property
    def is_expired(self) -> bool:
        return self.expiry_date < utcToday()

    @computed_field
    @property
    def days_until_expiry(self) -> int:
        return (self.expiry_date - utcToday()).days


class StatusHistorySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    driver_id: UUID
    previous_status: DriverStatus
    new_status: DriverStatus
    reason: Optional[str]
    changed_at: datetime


class UserSchema(Record):
    first_name: str
    last_name: str
    email: str
    sso_id: Optional[str] = None
    password_hash: Optional[str] = Field(default=None, exclude=True, repr=False)
    terms_accepted_at: Optional[datetime]
    status: UserStatus

    @computed_field
    @property
    def auth_method(self) -> AuthMethod:
        if self.sso_id is not None:
            return AuthMethod.SSO
        return AuthMethod.PASSWORD
