"""
Guard checks for the Fleet Registry API.

This module centralizes guard logic such as:
- State transition enforcement against an entity's status machine
- Business rules layered above the status machines
- Input checks that need more than a single field

All functions raise appropriate exceptions from `fleet.src.exceptions`
when validation fails, ensuring consistent error handling.
"""

from datetime import date
from typing import Any
from sqlalchemy import Column

from fleet.src import exceptions
from fleet.src.allocator import utcToday
from fleet.src.transitions import StatusMachine


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------
def stateTransition(
    machine: StatusMachine, old_state: Any, new_state: Any, state: Column
) -> bool:
    """
    Validate whether a state transition is allowed.

    Args:
        machine (StatusMachine): Lifecycle of the entity type.
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.
        state (Column): Status column (used to format error messages).

    Returns:
        bool: True if the transition is valid.

    Raises:
        exceptions.InvalidStateTransition: If the transition is not permitted.
    """
    if not machine.canTransition(old_state, new_state):
        raise exceptions.InvalidStateTransition(state)
    return True


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------
def unexpiredLicense(license_expiry: date) -> bool:
    """
    Raises:
        exceptions.LicenseExpired: If the licence expired before today.
    """
    if license_expiry < utcToday():
        raise exceptions.LicenseExpired()
    return True


def dateOrder(earlier: date, later: date, column: Column) -> bool:
    """Reject a `later` date that does not fall after `earlier`."""
    if later <= earlier:
        raise exceptions.InvalidValue(column)
    return True
