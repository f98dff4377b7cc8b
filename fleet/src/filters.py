"""
Composable list filters.

Every declared filter always contributes one clause to the read query, so a
list statement has the same shape whichever filters the caller sets. An
unset filter becomes `(0 = 0 OR <predicate>)` and a set one
`(1 = 0 OR <predicate>)`, with every value sent as a bound parameter.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Type
from sqlalchemy import Date, Integer, and_, literal, or_
from sqlalchemy.sql.elements import ColumnElement

from fleet.src import exceptions
from fleet.src.allocator import utcToday
from fleet.src.functions import isEmpty, toColumnValue, zeroValue


def passThrough(active: bool, predicate: ColumnElement) -> ColumnElement:
    """Clause that is always true while `active` is False."""
    return or_(literal(int(active), Integer) == 0, predicate)


class Filter:
    """Base of all filters. `column` is the model attribute filtered on."""

    def __init__(self, column):
        self.column = column

    def isSet(self, value: Any) -> bool:
        return not isEmpty(value)

    def clause(self, value: Any) -> ColumnElement:
        raise NotImplementedError


class EqualsFilter(Filter):
    """
    Equality on one column.

    With `enumClass` given, values outside the enumeration are rejected.
    """

    def __init__(self, column, enumClass: Type[Enum] | None = None):
        super().__init__(column)
        self.enumClass = enumClass

    def isSet(self, value: Any) -> bool:
        return value is not None and value != ""

    def clause(self, value: Any) -> ColumnElement:
        active = self.isSet(value)
        if active and self.enumClass is not None:
            try:
                value = self.enumClass(value)
            except ValueError:
                raise exceptions.InvalidValue(self.column)
        bound = toColumnValue(value) if active else zeroValue(self.column)
        return passThrough(active, self.column == literal(bound, self.column.type))


class ContainsFilter(Filter):
    """Case insensitive substring match over a column or a column expression."""

    def __init__(self, column, expression=None):
        super().__init__(column)
        self.expression = expression if expression is not None else column

    def clause(self, value: Any) -> ColumnElement:
        active = self.isSet(value)
        pattern = ""
        if active:
            pattern = (
                str(value).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
        return passThrough(
            active, self.expression.ilike(f"%{pattern}%", escape="\\")
        )


class ExpiringWithinFilter(Filter):
    """Dates falling between today and today plus N days, both inclusive."""

    def isSet(self, value: Any) -> bool:
        return value is not None and value > 0

    def clause(self, value: Any) -> ColumnElement:
        active = self.isSet(value)
        today = utcToday()
        until = today + timedelta(days=value if active else 0)
        return passThrough(
            active,
            and_(
                self.column >= literal(today, Date),
                self.column <= literal(until, Date),
            ),
        )


class ValidOnlyFilter(Filter):
    """Dates that have not passed yet, today included."""

    def isSet(self, value: Any) -> bool:
        return bool(value)

    def clause(self, value: Any) -> ColumnElement:
        return passThrough(self.isSet(value), self.column >= literal(utcToday(), Date))


class LapsedFilter(Filter):
    """
    Dates already past, today excluded, on rows still in one of `statuses`.

    Used to find lapsed rows that were not withdrawn by hand.
    """

    def __init__(self, column, statusColumn, statuses: tuple[Enum, ...]):
        super().__init__(column)
        self.statusColumn = statusColumn
        self.statuses = [status.value for status in statuses]

    def isSet(self, value: Any) -> bool:
        return bool(value)

    def clause(self, value: Any) -> ColumnElement:
        return passThrough(
            self.isSet(value),
            and_(
                self.column < literal(utcToday(), Date),
                self.statusColumn.in_(self.statuses),
            ),
        )


class ExpiredWithinFilter(Filter):
    """Dates between today minus N days, inclusive, and today, exclusive."""

    def isSet(self, value: Any) -> bool:
        return value is not None and value > 0

    def clause(self, value: Any) -> ColumnElement:
        active = self.isSet(value)
        today = utcToday()
        since = today - timedelta(days=value if active else 0)
        return passThrough(
            active,
            and_(
                self.column < literal(today, Date),
                self.column >= literal(since, Date),
            ),
        )


def composeFilters(
    declared: dict[str, Filter], values: dict[str, Any] | None
) -> list[ColumnElement]:
    """
    Build one clause per declared filter.

    Args:
        declared (dict[str, Filter]): Filters the entity type supports.
        values (dict[str, Any] | None): Values supplied by the caller. Missing
            names leave their filter unset.

    Raises:
        exceptions.InvalidFilter: If `values` names a filter that is not declared.
    """
    values = values or {}
    unknown = sorted(name for name in values if name not in declared)
    if unknown:
        raise exceptions.InvalidFilter(unknown)
    return [spec.clause(values.get(name)) for name, spec in declared.items()]
