"""
Status lifecycles of the stored entities.

Each entity type owns one `StatusMachine` built from an explicit edge list.
There are no wildcard edges and a status is never a successor of itself.
"""

from enum import Enum
from typing import Any, Type

from fleet.src.enums import (
    VehicleStatus,
    DriverStatus,
    CertificationStatus,
    UserStatus,
)
from fleet.src.functions import isValidTransition, toColumnValue


class StatusMachine:
    def __init__(self, statusEnum: Type[Enum], transitions: dict[Enum, list[Enum]]):
        self.statusEnum = statusEnum
        self.transitions = {
            old.value: [new.value for new in targets]
            for old, targets in transitions.items()
        }

    @property
    def states(self) -> list[str]:
        return [state.value for state in self.statusEnum]

    @property
    def terminal(self) -> set[str]:
        """States without outgoing edges."""
        return {state for state in self.states if not self.transitions.get(state)}

    def edges(self) -> list[tuple[str, str]]:
        return [(old, new) for old, targets in self.transitions.items() for new in targets]

    def canTransition(self, old_state: Any, new_state: Any) -> bool:
        old_state, new_state = toColumnValue(old_state), toColumnValue(new_state)
        if old_state == new_state:
            return False
        return isValidTransition(self.transitions, old_state, new_state)


DRIVER_TRANSITIONS = StatusMachine(
    DriverStatus,
    {
        DriverStatus.PENDING_VERIFICATION: [
            DriverStatus.ACTIVE,
            DriverStatus.INACTIVE,
        ],
        DriverStatus.ACTIVE: [DriverStatus.SUSPENDED, DriverStatus.INACTIVE],
        DriverStatus.SUSPENDED: [DriverStatus.ACTIVE, DriverStatus.INACTIVE],
        DriverStatus.INACTIVE: [
            DriverStatus.ACTIVE,
            DriverStatus.PENDING_VERIFICATION,
        ],
    },
)

VEHICLE_TRANSITIONS = StatusMachine(
    VehicleStatus,
    {
        VehicleStatus.ACTIVE: [
            VehicleStatus.ASSIGNED,
            VehicleStatus.MAINTENANCE,
            VehicleStatus.RETIRED,
        ],
        VehicleStatus.ASSIGNED: [VehicleStatus.ACTIVE, VehicleStatus.MAINTENANCE],
        VehicleStatus.MAINTENANCE: [VehicleStatus.ACTIVE, VehicleStatus.RETIRED],
        VehicleStatus.RETIRED: [],
    },
)

USER_TRANSITIONS = StatusMachine(
    UserStatus,
    {
        UserStatus.PENDING: [UserStatus.ACTIVE, UserStatus.CLOSED],
        UserStatus.ACTIVE: [UserStatus.SUSPENDED, UserStatus.CLOSED],
        UserStatus.SUSPENDED: [UserStatus.ACTIVE, UserStatus.CLOSED],
        UserStatus.CLOSED: [],
    },
)

CERTIFICATION_TRANSITIONS = StatusMachine(
    CertificationStatus,
    {
        CertificationStatus.CERT_ACTIVE: [
            CertificationStatus.CERT_SUSPENDED,
            CertificationStatus.CERT_EXPIRED,
            CertificationStatus.CERT_REVOKED,
        ],
        CertificationStatus.CERT_SUSPENDED: [
            CertificationStatus.CERT_ACTIVE,
            CertificationStatus.CERT_REVOKED,
        ],
        CertificationStatus.CERT_EXPIRED: [CertificationStatus.CERT_REVOKED],
        CertificationStatus.CERT_REVOKED: [],
    },
)
