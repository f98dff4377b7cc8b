from datetime import date
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, field_validator

from fleet.src.db import Vehicle, VehicleType, sessionMaker
from fleet.src import exceptions, getters
from fleet.src.loggers import logEvent
from fleet.src.enums import VehicleStatus, FuelType
from fleet.src.entities import VEHICLE
from fleet.src.functions import enumStr, makeExceptionResponses
from fleet.src.schemas import Page, VehicleSchema
from fleet.src.store import EntityStore
from fleet.src.urls import (
    URL_VEHICLE,
    URL_VEHICLE_BY_ID,
    URL_VEHICLE_STATUS,
)

route_vehicle = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    vehicle_type_id: int = Field(gt=0)
    license_plate: str = Field(min_length=1, max_length=20)
    make: str = Field(min_length=1, max_length=50)
    model: str = Field(min_length=1, max_length=50)
    year: int = Field(ge=1900, le=2100)
    color: str = Field(min_length=1, max_length=30)
    seating_capacity: int = Field(ge=1, le=100)
    fuel_type: FuelType = Field(description=enumStr(FuelType))
    engine_number: str | None = Field(default=None, max_length=50)
    chassis_number: str | None = Field(default=None, max_length=50)
    registration_date: date
    insurance_expiry: date

    @field_validator("license_plate")
    @classmethod
    def normalizePlate(cls, value: str) -> str:
        return value.strip().upper()


class UpdateForm(BaseModel):
    id: UUID
    update_mask: list[str] | None = Field(
        default=None,
        description="Fields to write. Without a mask, every non empty field is written",
    )
    vehicle_type_id: int | None = Field(default=None, gt=0)
    license_plate: str | None = Field(default=None, max_length=20)
    make: str | None = Field(default=None, max_length=50)
    model: str | None = Field(default=None, max_length=50)
    year: int | None = Field(default=None, ge=1900, le=2100)
    color: str | None = Field(default=None, max_length=30)
    seating_capacity: int | None = Field(default=None, ge=1, le=100)
    fuel_type: FuelType | None = Field(default=None, description=enumStr(FuelType))
    engine_number: str | None = Field(default=None, max_length=50)
    chassis_number: str | None = Field(default=None, max_length=50)
    registration_date: date | None = None
    insurance_expiry: date | None = None

    @field_validator("license_plate")
    @classmethod
    def normalizePlate(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None


class StatusForm(BaseModel):
    id: UUID
    status: VehicleStatus = Field(description=enumStr(VehicleStatus))


class DeleteForm(BaseModel):
    id: UUID


## Query Parameters
class QueryParams(BaseModel):
    # filters
    status: VehicleStatus | None = Field(default=None, description=enumStr(VehicleStatus))
    vehicle_type_id: int | None = None
    fuel_type: FuelType | None = Field(default=None, description=enumStr(FuelType))
    make: str | None = None
    insurance_expiring_within: int | None = Field(
        default=None, description="Insurance ending within this many days"
    )
    # Pagination
    page_size: int = 0
    page_token: str | None = None


## Function
def uniquePlate(store: EntityStore, licensePlate: str, vehicleID: UUID = None):
    vehicle = store.getBy(Vehicle.license_plate, licensePlate)
    if vehicle is not None and vehicle.id != vehicleID:
        raise exceptions.UniqueViolation(
            f"For license_plate value {licensePlate} already exists"
        )


def knownVehicleType(session, vehicleTypeID: int):
    if session.get(VehicleType, vehicleTypeID) is None:
        raise exceptions.InvalidValue(Vehicle.vehicle_type_id)


def updateValues(fParam: UpdateForm) -> tuple[dict, list[str] | None]:
    values = fParam.model_dump(exclude={"id", "update_mask"}, exclude_unset=True)
    # An empty mask behaves as no mask
    return values, (fParam.update_mask or None)


## API endpoints
@route_vehicle.post(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.UniqueViolation, exceptions.InvalidValue]
    ),
    description="""
    Registers a new vehicle in ACTIVE status.
    The license plate must not belong to another vehicle.
    Logs the vehicle creation activity with the request metadata.
    """,
)
async def create_vehicle(
    fParam: CreateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, VEHICLE, deadline)
        knownVehicleType(session, fParam.vehicle_type_id)
        uniquePlate(store, fParam.license_plate)

        vehicle = store.create(fParam.model_dump())
        vehicleData = jsonable_encoder(vehicle)
        logEvent(request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.patch(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.UniqueViolation,
            exceptions.InvalidFieldMask,
            exceptions.InvalidValue,
        ]
    ),
    description="""
    Updates an existing vehicle.
    With `update_mask`, exactly the named fields are written, a named field
    left out of the body is cleared.
    Without it, every field supplied with a non empty value is written.
    Status is changed through the status endpoint only.
    """,
)
async def update_vehicle(
    fParam: UpdateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, VEHICLE, deadline)
        values, fieldMask = updateValues(fParam)
        writes = fieldMask if fieldMask is not None else values.keys()
        if "license_plate" in writes and values.get("license_plate"):
            uniquePlate(store, values["license_plate"], fParam.id)
        if "vehicle_type_id" in writes and values.get("vehicle_type_id"):
            knownVehicleType(session, values["vehicle_type_id"])

        vehicle = store.update(fParam.id, values, fieldMask)
        vehicleData = jsonable_encoder(vehicle)
        logEvent(request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.patch(
    URL_VEHICLE_STATUS,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InvalidStateTransition,
            exceptions.ConcurrentModification,
        ]
    ),
    description="""
    Moves a vehicle to another status.
    Allowed moves: ACTIVE to ASSIGNED, MAINTENANCE or RETIRED;
    ASSIGNED to ACTIVE or MAINTENANCE; MAINTENANCE to ACTIVE or RETIRED.
    RETIRED is final.
    """,
)
async def update_vehicle_status(
    fParam: StatusForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, VEHICLE, deadline)
        vehicle = store.transition(fParam.id, fParam.status)
        vehicleData = jsonable_encoder(vehicle)
        logEvent(request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.delete(
    URL_VEHICLE,
    tags=["Vehicle"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses(
        [exceptions.InvalidIdentifier, exceptions.DataInUse]
    ),
    description="""
    Retires a vehicle. The row is kept in RETIRED status.
    A vehicle that is currently ASSIGNED can not be retired.
    Retiring an unknown or already retired vehicle is reported as not found.
    """,
)
async def delete_vehicle(
    fParam: DeleteForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, VEHICLE, deadline)
        store.softDelete(fParam.id)
        logEvent(request_info, {"id": str(fParam.id)})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=Page[VehicleSchema],
    responses=makeExceptionResponses(
        [exceptions.InvalidPageToken, exceptions.InvalidValue]
    ),
    description="""
    Lists vehicles, newest first.
    Pass the returned `next_page_token` as `page_token` to fetch the next page.
    `page_size` defaults to 50 and is capped at 100.
    """,
)
async def fetch_vehicles(
    qParam: QueryParams = Depends(),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, VEHICLE, deadline)
        vehicles, nextToken = store.list(
            qParam.page_size,
            qParam.page_token,
            qParam.model_dump(exclude={"page_size", "page_token"}),
        )
        return Page[VehicleSchema](items=vehicles, next_page_token=nextToken)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE_BY_ID,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Fetches one vehicle by its id.
    """,
)
async def fetch_vehicle(id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        return EntityStore(session, VEHICLE, deadline).get(id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
