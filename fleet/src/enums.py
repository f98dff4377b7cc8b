from enum import Enum, IntEnum


class AppID(IntEnum):
    VEHICLE = 1
    STAFF = 2
    USER = 3


class VehicleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ASSIGNED = "ASSIGNED"
    MAINTENANCE = "MAINTENANCE"
    RETIRED = "RETIRED"


class FuelType(str, Enum):
    PETROL = "PETROL"
    DIESEL = "DIESEL"
    ELECTRIC = "ELECTRIC"
    HYBRID = "HYBRID"


class DriverStatus(str, Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class LicenseClass(str, Enum):
    CLASS_A = "CLASS_A"
    CLASS_B = "CLASS_B"
    CLASS_C = "CLASS_C"
    CLASS_D = "CLASS_D"
    CLASS_E = "CLASS_E"


class CertificationStatus(str, Enum):
    CERT_ACTIVE = "CERT_ACTIVE"
    CERT_EXPIRED = "CERT_EXPIRED"
    CERT_SUSPENDED = "CERT_SUSPENDED"
    CERT_REVOKED = "CERT_REVOKED"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"
    CLOSED = "CLOSED"


class AuthMethod(str, Enum):
    PASSWORD = "password"
    SSO = "sso"
