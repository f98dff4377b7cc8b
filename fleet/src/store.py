"""
Entity Store Engine.

`EntityStore` runs every persistence operation of one entity type against a
SQLAlchemy session: create, lookups, filtered cursor pagination, field mask
updates, guarded status transitions and soft deletion.

Every public method is a single unit of work. Failures roll the session back
and are classified through `exceptions.handle()` before leaving the store, so
callers only ever see `APIException` subclasses.
"""

import time
from functools import wraps
from logging import getLogger
from typing import Any, List
from uuid import UUID
from pydantic import ValidationError
from sqlalchemy import Column, text, update
from sqlalchemy.orm import Session

from fleet.src import exceptions, validators
from fleet.src.allocator import allocate, monotonicNow
from fleet.src.entities import EntitySpec
from fleet.src.filters import composeFilters
from fleet.src.functions import toColumnValue
from fleet.src.pagination import paginate
from fleet.src.schemas import Record
from fleet.src.updates import buildAssignments, selectFields

logger = getLogger("EntityStore")


def unitOfWork(method):
    """Check the deadline first, roll back and classify any failure."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            self.applyDeadline()
            return method(self, *args, **kwargs)
        except Exception as e:
            self.session.rollback()
            exceptions.handle(e)

    return wrapper


class EntityStore:
    def __init__(self, session: Session, spec: EntitySpec, deadline: float = None):
        """
        Args:
            session (Session): Session the operations run in. Owned by the caller.
            spec (EntitySpec): Entity type handled by this store.
            deadline (float): Optional `time.monotonic()` value after which
                operations fail with DeadlineExceeded.
        """
        self.session = session
        self.spec = spec
        self.model = spec.model
        self.deadline = deadline

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------
    def applyDeadline(self):
        if self.deadline is None:
            return
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise exceptions.DeadlineExceeded()
        if self.session.get_bind().dialect.name == "postgresql":
            # Lets the server cancel an in-flight statement once the budget is spent
            timeout = max(1, int(remaining * 1000))
            self.session.execute(text(f"SET LOCAL statement_timeout = {timeout}"))

    def identifier(self, value: Any) -> UUID:
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            raise exceptions.InvalidIdentifier()

    def fetch(self, externalID: UUID):
        return (
            self.session.query(self.model)
            .filter(self.model.external_id == externalID)
            .populate_existing()
            .first()
        )

    def toRecord(self, row) -> Record:
        try:
            return self.spec.record.model_validate(row)
        except ValidationError as e:
            logger.error(
                f"Unreadable {self.spec.name} {row.external_id}: {e.errors()}"
            )
            raise exceptions.CorruptedValue(self.model)

    def load(self, externalID: UUID) -> Record:
        row = self.fetch(externalID)
        if row is None:
            raise exceptions.InvalidIdentifier()
        return self.toRecord(row)

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------
    @unitOfWork
    def create(self, values: dict[str, Any]) -> Record:
        """
        Insert a new row in the initial status of the entity type.

        Raises:
            exceptions.UniqueViolation: If a unique key is already taken.
        """
        internalID, externalID = allocate()
        now = monotonicNow()
        row = self.model(
            **{name: toColumnValue(value) for name, value in values.items()},
            internal_id=internalID,
            external_id=externalID,
            status=self.spec.initialStatus.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.commit()
        return self.load(externalID)

    @unitOfWork
    def get(self, externalID: Any) -> Record:
        return self.load(self.identifier(externalID))

    @unitOfWork
    def getBy(self, column: Column, value: Any) -> Record | None:
        """Lookup on a unique key, used as a friendly pre-check before writes."""
        row = self.session.query(self.model).filter(column == value).first()
        if row is None:
            return None
        return self.toRecord(row)

    @unitOfWork
    def list(
        self,
        pageSize: int = None,
        pageToken: str = None,
        filters: dict[str, Any] = None,
        scope: dict[str, Any] = None,
    ) -> tuple[list[Record], str]:
        """
        Fetch one page of rows, newest first.

        Args:
            pageSize (int): Requested size. Unset or non positive means 50,
                anything above 100 is capped to 100.
            pageToken (str): Token returned with the previous page.
            filters (dict[str, Any]): Values of the entity type's declared filters.
            scope (dict[str, Any]): Fixed column equalities, e.g. the owner of
                dependent rows.

        Returns:
            tuple[list[Record], str]: The page and the next page token.
        """
        query = self.session.query(self.model).filter(
            *composeFilters(self.spec.filters, filters)
        )
        for name, value in (scope or {}).items():
            query = query.filter(getattr(self.model, name) == value)
        rows, nextToken = paginate(query, self.model, pageSize, pageToken)
        return [self.toRecord(row) for row in rows], nextToken

    @unitOfWork
    def update(
        self,
        externalID: Any,
        values: dict[str, Any],
        fieldMask: List[str] | None = None,
    ) -> Record:
        """
        Apply a partial update and return the stored record.

        Raises:
            exceptions.InvalidFieldMask: If the mask names an unknown field.
            exceptions.UniqueViolation: If a unique key is already taken.
            exceptions.InvalidIdentifier: If no row has this id.
        """
        externalID = self.identifier(externalID)
        selected = selectFields(self.model, self.spec.updatable, values, fieldMask)
        statement = (
            update(self.model)
            .where(self.model.external_id == externalID)
            .values(
                **buildAssignments(self.model, self.spec.updatable, selected),
                updated_at=monotonicNow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount == 0:
            raise exceptions.InvalidIdentifier()
        self.session.commit()
        return self.load(externalID)

    @unitOfWork
    def transition(self, externalID: Any, newStatus: Any, reason: str = None) -> Record:
        """
        Move a row to `newStatus`.

        The edge is checked against the status machine, then the guards of
        the target status run. The write only applies while the row still
        holds the status that was validated.

        Raises:
            exceptions.InvalidStateTransition: If the edge does not exist.
            exceptions.FailedPrecondition: If a business rule refuses the move.
            exceptions.ConcurrentModification: If the status changed meanwhile.
        """
        externalID = self.identifier(externalID)
        try:
            newStatus = self.spec.statusEnum(newStatus)
        except ValueError:
            raise exceptions.InvalidValue(self.model.status)

        current = self.load(externalID)
        validators.stateTransition(
            self.spec.machine, current.status, newStatus, self.model.status
        )
        guard = self.spec.guards.get(newStatus)
        if guard is not None:
            guard(current)

        now = monotonicNow()
        result = self.session.execute(
            update(self.model)
            .where(
                self.model.external_id == externalID,
                self.model.status == current.status.value,
            )
            .values(status=newStatus.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise exceptions.ConcurrentModification(self.model)
        if self.spec.history is not None:
            self.spec.history(
                self.session,
                externalID,
                current.status.value,
                newStatus.value,
                reason,
                now,
            )
        self.session.commit()
        logger.info(
            f"{self.spec.name} {externalID}: {current.status.value} -> {newStatus.value}"
        )
        return self.load(externalID)

    @unitOfWork
    def softDelete(self, externalID: Any) -> None:
        """
        Move a row to the terminal status of the entity type.

        A missing row and a row already in the terminal status both raise
        InvalidIdentifier. The move is recorded in the status history of
        entity types that keep one.

        Raises:
            exceptions.DataInUse: If the row is in a status that blocks deletion.
            exceptions.ConcurrentModification: If the status changed meanwhile.
        """
        externalID = self.identifier(externalID)
        terminal = self.spec.terminalStatus.value
        blocked = [status.value for status in self.spec.undeletable]
        row = self.fetch(externalID)
        if row is None or row.status == terminal:
            raise exceptions.InvalidIdentifier()
        if row.status in blocked:
            raise exceptions.DataInUse(self.model)

        previous = row.status
        now = monotonicNow()
        result = self.session.execute(
            update(self.model)
            .where(
                self.model.external_id == externalID,
                self.model.status == previous,
            )
            .values(status=terminal, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise exceptions.ConcurrentModification(self.model)
        if self.spec.history is not None:
            self.spec.history(self.session, externalID, previous, terminal, None, now)
        self.session.commit()
        logger.info(f"{self.spec.name} {externalID}: {previous} -> {terminal} (deleted)")
