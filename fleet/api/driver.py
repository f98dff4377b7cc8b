from datetime import date
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, field_validator

from fleet.src.db import Driver, DriverStatusHistory, sessionMaker
from fleet.src import exceptions, getters
from fleet.src.allocator import utcToday
from fleet.src.constants import LICENSE_EXPIRY_WINDOW
from fleet.src.loggers import logEvent
from fleet.src.enums import DriverStatus, LicenseClass
from fleet.src.entities import DRIVER
from fleet.src.functions import enumStr, makeExceptionResponses
from fleet.src.schemas import DriverSchema, Page, StatusHistorySchema
from fleet.src.store import EntityStore
from fleet.src.urls import (
    URL_DRIVER,
    URL_DRIVER_BY_ID,
    URL_DRIVER_STATUS,
    URL_DRIVER_LICENSE,
    URL_DRIVER_HISTORY,
    URL_DRIVER_BY_USER,
)

route_staff = APIRouter()


## Output Schema
class LicenseSchema(BaseModel):
    driver_id: UUID
    license_number: str
    license_class: LicenseClass
    license_expiry: date
    license_expired: bool
    days_until_license_expiry: int
    expiring_soon: bool
    can_drive: bool


## Input Forms
class CreateForm(BaseModel):
    user_id: UUID
    license_number: str = Field(min_length=1, max_length=50)
    license_class: LicenseClass = Field(description=enumStr(LicenseClass))
    license_expiry: date
    experience_years: int = Field(default=0, ge=0, le=80)
    phone_number: str = Field(min_length=1, max_length=20)
    emergency_contact_name: str | None = Field(default=None, max_length=100)
    emergency_contact_phone: str | None = Field(default=None, max_length=20)
    hire_date: date | None = None

    @field_validator("license_number")
    @classmethod
    def normalizeLicense(cls, value: str) -> str:
        return value.strip().upper()


class UpdateForm(BaseModel):
    id: UUID
    update_mask: list[str] | None = Field(
        default=None,
        description="Fields to write. Without a mask, every non empty field is written",
    )
    license_number: str | None = Field(default=None, max_length=50)
    license_class: LicenseClass | None = Field(
        default=None, description=enumStr(LicenseClass)
    )
    license_expiry: date | None = None
    experience_years: int | None = Field(default=None, ge=0, le=80)
    phone_number: str | None = Field(default=None, max_length=20)
    emergency_contact_name: str | None = Field(default=None, max_length=100)
    emergency_contact_phone: str | None = Field(default=None, max_length=20)

    @field_validator("license_number")
    @classmethod
    def normalizeLicense(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None


class StatusForm(BaseModel):
    id: UUID
    status: DriverStatus = Field(description=enumStr(DriverStatus))
    reason: str | None = Field(default=None, max_length=500)


class DeleteForm(BaseModel):
    id: UUID


## Query Parameters
class QueryParams(BaseModel):
    # filters
    status: DriverStatus | None = Field(default=None, description=enumStr(DriverStatus))
    license_class: LicenseClass | None = Field(
        default=None, description=enumStr(LicenseClass)
    )
    license_expiring_within: int | None = Field(
        default=None, description="Licence ending within this many days"
    )
    valid_license: bool = Field(
        default=False, description="Only drivers whose licence has not expired"
    )
    # Pagination
    page_size: int = 0
    page_token: str | None = None


## Function
def uniqueDriver(store: EntityStore, column, value, driverID: UUID = None):
    driver = store.getBy(column, value)
    if driver is not None and driver.id != driverID:
        raise exceptions.UniqueViolation(f"For {column.key} value {value} already exists")


## API endpoints
@route_staff.post(
    URL_DRIVER,
    tags=["Driver"],
    response_model=DriverSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.UniqueViolation, exceptions.InvalidValue]
    ),
    description="""
    Registers a new driver in PENDING_VERIFICATION status.
    The licence number and the user account must not belong to another driver.
    A driver can not be registered with an expired licence.
    """,
)
async def create_driver(
    fParam: CreateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, DRIVER, deadline)
        if fParam.license_expiry < utcToday():
            raise exceptions.InvalidValue(Driver.license_expiry)
        uniqueDriver(store, Driver.license_number, fParam.license_number)
        uniqueDriver(store, Driver.user_id, fParam.user_id)

        values = fParam.model_dump()
        if values["hire_date"] is None:
            values["hire_date"] = utcToday()
        driver = store.create(values)
        driverData = jsonable_encoder(driver)
        logEvent(request_info, driverData)
        return driverData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.patch(
    URL_DRIVER,
    tags=["Driver"],
    response_model=DriverSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.UniqueViolation,
            exceptions.InvalidFieldMask,
        ]
    ),
    description="""
    Updates an existing driver.
    With `update_mask`, exactly the named fields are written, a named field
    left out of the body is cleared.
    Without it, every field supplied with a non empty value is written.
    """,
)
async def update_driver(
    fParam: UpdateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, DRIVER, deadline)
        values = fParam.model_dump(exclude={"id", "update_mask"}, exclude_unset=True)
        fieldMask = fParam.update_mask or None
        if values.get("license_number"):
            uniqueDriver(store, Driver.license_number, values["license_number"], fParam.id)

        driver = store.update(fParam.id, values, fieldMask)
        driverData = jsonable_encoder(driver)
        logEvent(request_info, driverData)
        return driverData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.patch(
    URL_DRIVER_STATUS,
    tags=["Driver"],
    response_model=DriverSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InvalidStateTransition,
            exceptions.LicenseExpired,
            exceptions.ConcurrentModification,
        ]
    ),
    description="""
    Moves a driver to another status and records the change with its reason.
    A driver whose licence has expired can not be moved to ACTIVE.
    """,
)
async def update_driver_status(
    fParam: StatusForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, DRIVER, deadline)
        driver = store.transition(fParam.id, fParam.status, fParam.reason)
        driverData = jsonable_encoder(driver)
        logEvent(request_info, {**driverData, "reason": fParam.reason})
        return driverData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.delete(
    URL_DRIVER,
    tags=["Driver"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Deactivates a driver. The row is kept in INACTIVE status.
    Deactivating an unknown or already inactive driver is reported as not found.
    """,
)
async def delete_driver(
    fParam: DeleteForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        EntityStore(session, DRIVER, deadline).softDelete(fParam.id)
        logEvent(request_info, {"id": str(fParam.id)})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_DRIVER,
    tags=["Driver"],
    response_model=Page[DriverSchema],
    responses=makeExceptionResponses([exceptions.InvalidPageToken]),
    description="""
    Lists drivers, newest first.
    Pass the returned `next_page_token` as `page_token` to fetch the next page.
    `page_size` defaults to 50 and is capped at 100.
    """,
)
async def fetch_drivers(
    qParam: QueryParams = Depends(),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, DRIVER, deadline)
        drivers, nextToken = store.list(
            qParam.page_size,
            qParam.page_token,
            qParam.model_dump(exclude={"page_size", "page_token"}),
        )
        return Page[DriverSchema](items=drivers, next_page_token=nextToken)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_DRIVER_BY_USER,
    tags=["Driver"],
    response_model=DriverSchema,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Fetches the driver profile linked to a user account.
    """,
)
async def fetch_driver_by_user(user_id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        driver = EntityStore(session, DRIVER, deadline).getBy(Driver.user_id, user_id)
        if driver is None:
            raise exceptions.InvalidIdentifier()
        return driver
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_DRIVER_BY_ID,
    tags=["Driver"],
    response_model=DriverSchema,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Fetches one driver by its id.
    """,
)
async def fetch_driver(id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        return EntityStore(session, DRIVER, deadline).get(id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_DRIVER_LICENSE,
    tags=["Driver"],
    response_model=LicenseSchema,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Reports whether the licence of a driver is still valid.
    `expiring_soon` flags licences ending within the next 30 days.
    `can_drive` is true only for ACTIVE drivers holding a valid licence.
    """,
)
async def fetch_driver_license(id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        driver = EntityStore(session, DRIVER, deadline).get(id)
        return LicenseSchema(
            driver_id=driver.id,
            license_number=driver.license_number,
            license_class=driver.license_class,
            license_expiry=driver.license_expiry,
            license_expired=driver.license_expired,
            days_until_license_expiry=driver.days_until_license_expiry,
            expiring_soon=not driver.license_expired
            and driver.days_until_license_expiry <= LICENSE_EXPIRY_WINDOW,
            can_drive=driver.status == DriverStatus.ACTIVE
            and not driver.license_expired,
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_DRIVER_HISTORY,
    tags=["Driver"],
    response_model=List[StatusHistorySchema],
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Lists the status changes of a driver, latest first.
    """,
)
async def fetch_driver_history(id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        driver = EntityStore(session, DRIVER, deadline).get(id)
        return (
            session.query(DriverStatusHistory)
            .filter(DriverStatusHistory.driver_id == driver.id)
            .order_by(DriverStatusHistory.changed_at.desc(), DriverStatusHistory.id.desc())
            .all()
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
