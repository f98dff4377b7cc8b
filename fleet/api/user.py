from typing import Annotated, Literal, Union
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, EmailStr, Field, field_validator

from fleet.src.db import User, sessionMaker
from fleet.src import argon2, exceptions, getters
from fleet.src.allocator import monotonicNow
from fleet.src.loggers import logEvent
from fleet.src.enums import UserStatus
from fleet.src.entities import USER
from fleet.src.functions import enumStr, makeExceptionResponses
from fleet.src.redis import StateCache
from fleet.src.schemas import Page, UserSchema
from fleet.src.store import EntityStore
from fleet.src.urls import (
    URL_ACCOUNT,
    URL_ACCOUNT_BY_ID,
    URL_ACCOUNT_STATUS,
    URL_ACCOUNT_SSO_STATE,
    URL_ACCOUNT_VERIFY,
)

route_user = APIRouter()


## Output Schema
class SSOStateSchema(BaseModel):
    state: str
    expires_in: int


## Input Forms
class PasswordAuth(BaseModel):
    method: Literal["password"]
    password: str = Field(min_length=8, max_length=128)


class SSOAuth(BaseModel):
    method: Literal["sso"]
    sso_id: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1)


AuthForm = Annotated[Union[PasswordAuth, SSOAuth], Field(discriminator="method")]


class CreateForm(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    auth: AuthForm
    accept_terms: bool = False

    @field_validator("email")
    @classmethod
    def normalizeEmail(cls, value: str) -> str:
        return value.strip().lower()


class UpdateForm(BaseModel):
    id: UUID
    update_mask: list[str] | None = Field(
        default=None,
        description="Fields to write. Without a mask, every non empty field is written",
    )
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None

    @field_validator("email")
    @classmethod
    def normalizeEmail(cls, value: str | None) -> str | None:
        return value.strip().lower() if value is not None else None


class StatusForm(BaseModel):
    id: UUID
    status: UserStatus = Field(description=enumStr(UserStatus))


class DeleteForm(BaseModel):
    id: UUID


class VerifyForm(BaseModel):
    email: EmailStr
    password: str


## Query Parameters
class QueryParams(BaseModel):
    # filters
    status: UserStatus | None = Field(default=None, description=enumStr(UserStatus))
    name: str | None = None
    email: str | None = None
    # Pagination
    page_size: int = 0
    page_token: str | None = None


## Function
def uniqueEmail(store: EntityStore, email: str, userID: UUID = None):
    user = store.getBy(User.email, email)
    if user is not None and user.id != userID:
        raise exceptions.UniqueViolation(f"For email value {email} already exists")


def credentials(auth: PasswordAuth | SSOAuth, stateCache: StateCache) -> dict:
    """Column values of the chosen authentication method."""
    if isinstance(auth, PasswordAuth):
        return {"password_hash": argon2.makePassword(auth.password), "sso_id": None}
    if stateCache.consume(auth.state) is None:
        raise exceptions.InvalidSSOState()
    return {"password_hash": None, "sso_id": auth.sso_id}


## API endpoints
@route_user.post(
    URL_ACCOUNT_SSO_STATE,
    tags=["Account"],
    response_model=SSOStateSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses([exceptions.RedisDBError]),
    description="""
    Issues a one time state for an SSO registration round trip.
    The state expires after a few minutes and can be used once.
    """,
)
async def create_sso_state(stateCache=Depends(getters.stateCache)):
    try:
        return SSOStateSchema(state=stateCache.issue(), expires_in=stateCache.ttl)
    except Exception as e:
        exceptions.handle(e)


@route_user.post(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=UserSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.UniqueViolation, exceptions.InvalidSSOState]
    ),
    description="""
    Registers a new account in ACTIVE status.
    `auth.method` selects password or SSO registration.
    SSO registrations must present a state issued by the SSO state endpoint.
    The state stays valid when the account can not be stored, so the request
    can be retried with it.
    """,
)
async def create_account(
    fParam: CreateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
    stateCache=Depends(getters.stateCache),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, USER, deadline)
        uniqueEmail(store, fParam.email)

        values = {
            "first_name": fParam.first_name,
            "last_name": fParam.last_name,
            "email": fParam.email,
            "terms_accepted_at": monotonicNow() if fParam.accept_terms else None,
            **credentials(fParam.auth, stateCache),
        }
        try:
            user = store.create(values)
        except exceptions.APIException:
            # The state stays usable until an account is actually stored
            if isinstance(fParam.auth, SSOAuth):
                stateCache.restore(fParam.auth.state)
            raise
        userData = jsonable_encoder(user)
        logEvent(request_info, userData)
        return userData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.post(
    URL_ACCOUNT_VERIFY,
    tags=["Account"],
    response_model=UserSchema,
    responses=makeExceptionResponses(
        [exceptions.InvalidCredentials, exceptions.InactiveAccount]
    ),
    description="""
    Checks an email and password pair.
    Only ACTIVE password accounts can be verified.
    """,
)
async def verify_account(
    fParam: VerifyForm,
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        user = EntityStore(session, USER, deadline).getBy(
            User.email, fParam.email.strip().lower()
        )
        if user is None or not argon2.checkPassword(fParam.password, user.password_hash):
            raise exceptions.InvalidCredentials()
        if user.status != UserStatus.ACTIVE:
            raise exceptions.InactiveAccount()
        return user
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=UserSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.UniqueViolation,
            exceptions.InvalidFieldMask,
        ]
    ),
    description="""
    Updates the profile of an account.
    With `update_mask`, exactly the named fields are written.
    Without it, every field supplied with a non empty value is written.
    """,
)
async def update_account(
    fParam: UpdateForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        store = EntityStore(session, USER, deadline)
        values = fParam.model_dump(exclude={"id", "update_mask"}, exclude_unset=True)
        fieldMask = fParam.update_mask or None
        if values.get("email"):
            uniqueEmail(store, values["email"], fParam.id)

        user = store.update(fParam.id, values, fieldMask)
        userData = jsonable_encoder(user)
        logEvent(request_info, userData)
        return userData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.patch(
    URL_ACCOUNT_STATUS,
    tags=["Account"],
    response_model=UserSchema,
    responses=makeExceptionResponses(
        [
            exceptions.InvalidIdentifier,
            exceptions.InvalidStateTransition,
            exceptions.ConcurrentModification,
        ]
    ),
    description="""
    Moves an account to another status. CLOSED is final.
    """,
)
async def update_account_status(
    fParam: StatusForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        user = EntityStore(session, USER, deadline).transition(fParam.id, fParam.status)
        userData = jsonable_encoder(user)
        logEvent(request_info, userData)
        return userData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.delete(
    URL_ACCOUNT,
    tags=["Account"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Closes an account. The row is kept in CLOSED status.
    """,
)
async def delete_account(
    fParam: DeleteForm,
    request_info=Depends(getters.requestInfo),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        EntityStore(session, USER, deadline).softDelete(fParam.id)
        logEvent(request_info, {"id": str(fParam.id)})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=Page[UserSchema],
    responses=makeExceptionResponses([exceptions.InvalidPageToken]),
    description="""
    Lists accounts, newest first.
    `name` matches first and last name, `email` matches part of the address.
    """,
)
async def fetch_accounts(
    qParam: QueryParams = Depends(),
    deadline=Depends(getters.deadline),
):
    try:
        session = sessionMaker()
        users, nextToken = EntityStore(session, USER, deadline).list(
            qParam.page_size,
            qParam.page_token,
            qParam.model_dump(exclude={"page_size", "page_token"}),
        )
        return Page[UserSchema](items=users, next_page_token=nextToken)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_ACCOUNT_BY_ID,
    tags=["Account"],
    response_model=UserSchema,
    responses=makeExceptionResponses([exceptions.InvalidIdentifier]),
    description="""
    Fetches one account by its id.
    """,
)
async def fetch_account(id: UUID, deadline=Depends(getters.deadline)):
    try:
        session = sessionMaker()
        return EntityStore(session, USER, deadline).get(id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
