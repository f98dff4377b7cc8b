from datetime import date
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from fleet.src.db import Driver, DriverCertification, sessionMaker
from fleet.src import exceptions, getters, validators
from fleet.src.loggers import logEvent
from fleet.src.enums import CertificationStatus, DriverStatus
from fleet.src.entities import CERTIFICATION, DRIVER
from fleet.src.functions import enumStr, makeExceptionResponses
from fleet.src.schemas import CertificationSchema, Page
from fleet.src.store import EntityStore
from fleet.src.urls import (
    URL_CERTIFICATION,
    URL_CERTIFICATION_STATUS,
    URL_CERTIFICATION_EXPIRED,
)

route_staff = APIRouter()


## Input Forms
class CreateForm(BaseModel):
    driver_id: UUID
    certification_name: str = Field(min_length=1, max_length=100)
    issued_by: str = Field(min_length=1, max_length=100)
    issue_date: date
    expiry_date: date


class UpdateForm(BaseModel):
    id: UUID
    update_mask: list[str] | None = Field(
        default=None,
        description="Fields to write. Without a mask, every non empty field is written",
    )
    certification_name: str | None = Field(default=None, max_length=100)
    issued_by: str | None = Field(default=None, max_length=100)
    issue_date: date | None = None
    expiry_date: date | None = None


class StatusForm(BaseModel):
    id: UUID
    status: CertificationStatus = Field(description=enumStr(CertificationStatus))


class DeleteForm(BaseModel):
    id: UUID


## Query Parameters
class QueryParams(BaseModel):
    driver_id: UUID
    # filters
    status: CertificationStatus | None = Field(
        default=None, description=enumStr(CertificationStatus)
    )
    expiring_within: int | None = Field(
        default=None, description="Certifications ending within this many days"
    )
    expired: bool = Field(
        default=False,
        description="Only lapsed certifications that were not revoked or suspended",
    )
    expired_within: int | None = Field(
        default=None, description="Certifications that ended within the last this many days"
    )
    # Pagination
    page_size: int = 0
    page_token: str | None = None


class ExpiredQueryParams(BaseModel):
    expired_within: int | None = Field(
        default=None,
        description="Only certifications that ended within the last this many days",
    )
    # Pagination
    page_size: int = 0
    page_token: str | None = None


## Function
def activeDriver(session, driverID: UUID, deadline: float):
    """Certifications are only issued to drivers that are not INACTIVE."""
    driver = EntityStore(session, DRIVER, deadline).get(driverID)
    if driver.status == DriverStatus.INACTIVE:
        raise exceptions.InactiveResource(Driver)
    return driver


## API endpoints
@route_staff.post(
    URL_CERTIFICATION,
    tags=["Driver certification"],
    response_model=CertificationSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InactiveResource,
            exceptions.InvalidValue,
        ]
    ),
    description="""
    Adds a certification to a driver in CERT_ACTIVE status.
    The driver must exist and must not be INACTIVE.
    The expiry date must fall after the issue date.
    """,
)
async def create_certification(
    fParam: CreateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        validators.dateOrder(
            fParam.issue_date, fParam.expiry_date, DriverCertification.expiry_date
        )
        activeDriver(session, fParam.driver_id, deadline)

        certification = EntityStore(session, CERTIFICATION, deadline).create(
            fParam.model_dump()
        )
        certificationData = jsonable_encoder(certification)
        logEvent(request_info, certificationData)
        return certificationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.patch(
    URL_CERTIFICATION,
    tags=["Driver certification"],
    response_model=CertificationSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InvalidFieldMask,
            exceptions.InvalidValue,
        ]
    ),
    description="""
    Updates an existing certification.
    With `update_mask`, exactly the named fields are written.
    Without it, every field supplied with a non empty value is written.
    """,
)
async def update_certification(
    fParam: UpdateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, CERTIFICATION, deadline)
        values = fParam.model_dump(exclude={"id", "update_mask"}, exclude_unset=True)
        fieldMask = fParam.update_mask or None

        current = store.get(fParam.id)
        issueDate = values.get("issue_date") or current.issue_date
        expiryDate = values.get("expiry_date") or current.expiry_date
        validators.dateOrder(issueDate, expiryDate, DriverCertification.expiry_date)

        certification = store.update(fParam.id, values, fieldMask)
        certificationData = jsonable_encoder(certification)
        logEvent(request_info, certificationData)
        return certificationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.patch(
    URL_CERTIFICATION_STATUS,
    tags=["Driver certification"],
    response_model=CertificationSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InvalidStateTransition,
            exceptions.ConcurrentModification,
        ]
    ),
    description="""
    Moves a certification to another status.
    CERT_REVOKED is final.
    """,
)
async def update_certification_status(
    fParam: StatusForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, CERTIFICATION, deadline)
        certification = store.transition(fParam.id, fParam.status)
        certificationData = jsonable_encoder(certification)
        logEvent(request_info, certificationData)
        return certificationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.delete(
    URL_CERTIFICATION,
    tags=["Driver certification"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Revokes a certification. The row is kept in CERT_REVOKED status.
    """,
)
async def delete_certification(
    fParam: DeleteForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        EntityStore(session, CERTIFICATION, deadline).softDelete(fParam.id)
        logEvent(request_info, {"id": str(fParam.id)})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_CERTIFICATION,
    tags=["Driver certification"],
    response_model=Page[CertificationSchema],
    responses=makeExceptionResponses([exceptions.InvalidPageToken]),
    description="""
    Lists the certifications of one driver, newest first.
    """,
)
async def fetch_certifications(
    qParam: QueryParams = Depends(),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, CERTIFICATION, deadline)
        certifications, nextToken = store.list(
            qParam.page_size,
            qParam.page_token,
            qParam.model_dump(exclude={"driver_id", "page_size", "page_token"}),
            scope={DriverCertification.driver_id.key: qParam.driver_id},
        )
        return Page[CertificationSchema](items=certifications, next_page_token=nextToken)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_staff.get(
    URL_CERTIFICATION_EXPIRED,
    tags=["Driver certification"],
    response_model=Page[CertificationSchema],
    responses=makeExceptionResponses([exceptions.InvalidPageToken]),
    description="""
    Lists lapsed certifications of every driver, newest first.
    A certification is listed once its expiry date has passed, while it is
    CERT_ACTIVE or CERT_EXPIRED. Revoked and suspended ones are left out.
    `expired_within` keeps only those that ended within the last N days.
    """,
)
async def fetch_expired_certifications(
    qParam: ExpiredQueryParams = Depends(),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, CERTIFICATION, deadline)
        certifications, nextToken = store.list(
            qParam.page_size,
            qParam.page_token,
            {"expired": True, "expired_within": qParam.expired_within},
        )
        return Page[CertificationSchema](items=certifications, next_page_token=nextToken)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
