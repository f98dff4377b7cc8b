from enum import Enum
from typing import List, Type, Dict, Any
from sqlalchemy import Column

from fleet.src import schemas
from fleet.src.exceptions import APIException


def makeExceptionResponses(exceptions: List[Type[APIException]]) -> Dict[int, dict]:
    """
    Generate OpenAPI response documentation from APIException classes.

    Exceptions sharing a status code are listed as separate examples of the
    same response.

    Args:
        exceptions (List[Type[APIException]]): Exception classes a route may raise.

    Returns:
        Dict[int, dict]: OpenAPI response specs grouped by status code.
    """
    responses = {}

    for exception in exceptions:
        status_code = exception.status_code
        example_key = exception.__name__
        example_value = {
            "summary": str(exception.headers),
            "value": {"detail": exception.detail},
        }

        if status_code not in responses:
            responses[status_code] = {
                "model": schemas.ErrorResponse,
                "content": {
                    "application/json": {"examples": {example_key: example_value}}
                },
            }
        else:
            responses[status_code]["content"]["application/json"]["examples"][
                example_key
            ] = example_value

    return responses


def enumStr(enumClass) -> str:
    """
    Convert an Enum class into a comma-separated string of its members.

    Example:
        >>> enumStr(FuelType)
        'PETROL: PETROL, DIESEL: DIESEL, ELECTRIC: ELECTRIC, HYBRID: HYBRID'
    """
    return ", ".join(f"{x.name}: {x.value}" for x in enumClass)


def isValidTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any
) -> bool:
    """
    Check if a state transition is valid.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
            Example:
                {
                    "ACTIVE": ["ASSIGNED", "MAINTENANCE"],
                    "ASSIGNED": ["ACTIVE"],
                }
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.

    Returns:
        bool: True if transition is valid, False otherwise.

    Notes:
        - If `old_state` is not in the transitions mapping, this will return False.
        - A state is never a valid successor of itself unless listed.
    """
    if not transitions:
        return False
    if old_state not in transitions:
        return False
    return new_state in transitions[old_state]


def toColumnValue(value: Any) -> Any:
    """Unwrap enum members into the plain value stored in the column."""
    if isinstance(value, Enum):
        return value.value
    return value


def zeroValue(column: Column) -> Any:
    """
    Return the empty value of a column's type.

    Strings map to "", integers to 0 and booleans to False. Every other type
    (dates, timestamps, identifiers) maps to NULL.
    """
    try:
        pythonType = column.type.python_type
    except NotImplementedError:
        return None
    if pythonType is str:
        return ""
    if pythonType is bool:
        return False
    if pythonType is int:
        return 0
    return None


def isEmpty(value: Any) -> bool:
    """True for None, empty strings and numeric or boolean zero."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return value == 0
    return False
