"""
Field mask driven partial updates.

An update statement always assigns every updatable column of the entity,
each through `CASE WHEN <flag> = 1 THEN <value> ELSE <column> END`, so the
statement shape does not depend on which fields change.
"""

from typing import Any, Iterable
from sqlalchemy import Integer, case, literal

from fleet.src import exceptions
from fleet.src.functions import isEmpty, toColumnValue, zeroValue


def selectFields(
    model,
    updatable: Iterable[str],
    values: dict[str, Any],
    fieldMask: list[str] | None,
) -> dict[str, Any]:
    """
    Decide which fields an update writes, and with which values.

    With a mask, exactly the named fields are written. A named field without
    a supplied value is written as the zero value of its column. Without a
    mask, every supplied field holding a non empty, non zero value is written.

    Raises:
        exceptions.InvalidFieldMask: If the mask names a field that is not
            updatable for this entity type.
    """
    updatable = list(updatable)
    if fieldMask is not None:
        unknown = [name for name in fieldMask if name not in updatable]
        if unknown:
            raise exceptions.InvalidFieldMask(unknown)
        return {
            name: values[name] if name in values else zeroValue(getattr(model, name))
            for name in fieldMask
        }
    return {
        name: value
        for name, value in values.items()
        if name in updatable and not isEmpty(value)
    }


def buildAssignments(
    model, updatable: Iterable[str], selected: dict[str, Any]
) -> dict[str, Any]:
    """Conditional assignment for every updatable column."""
    assignments = {}
    for name in updatable:
        column = getattr(model, name)
        flag = name in selected
        value = toColumnValue(selected[name]) if flag else zeroValue(column)
        assignments[name] = case(
            (literal(int(flag), Integer) == 1, literal(value, column.type)),
            else_=column,
        )
    return assignments
