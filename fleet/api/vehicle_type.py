from typing import List
from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from fleet.src.db import VehicleType, sessionMaker
from fleet.src import exceptions, getters
from fleet.src.loggers import logEvent
from fleet.src.functions import makeExceptionResponses
from fleet.src.schemas import VehicleTypeSchema
from fleet.src.urls import URL_VEHICLE_TYPE

route_vehicle = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str | None = Field(default=None)


## API endpoints
@route_vehicle.post(
    URL_VEHICLE_TYPE,
    tags=["Vehicle type"],
    response_model=VehicleTypeSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses([exceptions.UniqueViolation]),
    description="""
    Adds a new vehicle category.
    The category name must be unique.
    """,
)
async def create_vehicle_type(
    fParam: CreateForm,
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        vehicleType = VehicleType(
            name=fParam.name.strip().lower(),
            description=fParam.description,
        )
        session.add(vehicleType)
        session.commit()
        session.refresh(vehicleType)

        vehicleTypeData = jsonable_encoder(VehicleTypeSchema.model_validate(vehicleType))
        logEvent(request_info, vehicleTypeData)
        return vehicleTypeData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_vehicle.get(
    URL_VEHICLE_TYPE,
    tags=["Vehicle type"],
    response_model=List[VehicleTypeSchema],
    description="""
    Lists every vehicle category, ordered by name.
    """,
)
async def fetch_vehicle_types():
    try:
        session = sessionMaker()
        return session.query(VehicleType).order_by(VehicleType.name).all()
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
