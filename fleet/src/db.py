from sqlalchemy import (
    TEXT,
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
    create_engine,
    func,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from fleet.src.constants import (
    PSQL_DB_DRIVER,
    PSQL_DB_HOST,
    PSQL_DB_PASSWORD,
    PSQL_DB_NAME,
    PSQL_DB_PORT,
    PSQL_DB_USERNAME,
)
from fleet.src.enums import (
    VehicleStatus,
    DriverStatus,
    CertificationStatus,
    UserStatus,
)


# Global DBMS variables
dbURL = f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}"
engine = create_engine(url=dbURL, echo=False)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


# ----------------------------------- Vehicle DB Models ---------------------------------------#
class VehicleType(ORMbase):
    """
    Lookup table of vehicle categories (cab, bus, matatu, ...).

    Columns:
        id (Integer):
            Primary key. Referenced by `vehicle.vehicle_type_id`.

        name (String(50)):
            Name of the category. Must be unique and not null.

        description (TEXT):
            Optional free text describing the category.

        created_at (DateTime):
            Timestamp indicating when the category was added.
    """

    __tablename__ = "vehicle_type"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(TEXT)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Vehicle(ORMbase):
    """
    Represents a vehicle registered in the fleet.

    Columns:
        internal_id (BigInteger):
            Primary key. Time sortable identifier, never exposed outside the store.

        external_id (Uuid):
            Random identifier used by every caller to address the vehicle.
            Must be unique and not null.

        vehicle_type_id (Integer):
            Category of the vehicle. A category in use can not be deleted.

        license_plate (String(20)):
            Registration plate of the vehicle. Must be unique and not null.

        make, model, color (String(50)):
            Descriptive attributes of the vehicle.

        year (Integer):
            Year of manufacture.

        seating_capacity (Integer):
            Number of passenger seats.

        fuel_type (String(16)):
            One of `FuelType`.

        engine_number, chassis_number (String(50)):
            Optional manufacturer identifiers.

        registration_date (Date):
            Date on which the vehicle was first registered.

        insurance_expiry (Date):
            Date on which the current insurance policy ends.

        status (String(32)):
            Lifecycle status (ACTIVE, ASSIGNED, MAINTENANCE, RETIRED).
            Defaults to `VehicleStatus.ACTIVE`.

        updated_at (DateTime):
            Timestamp of the latest successful write.

        created_at (DateTime):
            Timestamp indicating when the vehicle was registered.
            Used as the pagination sort key.
    """

    __tablename__ = "vehicle"

    internal_id = Column(BigInteger, primary_key=True, autoincrement=False)
    external_id = Column(Uuid, nullable=False, unique=True, index=True)
    vehicle_type_id = Column(
        Integer,
        ForeignKey("vehicle_type.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    license_plate = Column(String(20), nullable=False, unique=True)
    make = Column(String(50), nullable=False, index=True)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(30), nullable=False)
    seating_capacity = Column(Integer, nullable=False)
    fuel_type = Column(String(16), nullable=False)
    engine_number = Column(String(50))
    chassis_number = Column(String(50))
    registration_date = Column(Date, nullable=False)
    insurance_expiry = Column(Date, nullable=False, index=True)
    status = Column(
        String(32), nullable=False, default=VehicleStatus.ACTIVE.value, index=True
    )
    # Metadata
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), index=True
    )


# ----------------------------------- Staff DB Models -----------------------------------------#
class Driver(ORMbase):
    """
    Represents a driver employed by the fleet.

    Columns:
        internal_id (BigInteger):
            Primary key. Never exposed outside the store.

        external_id (Uuid):
            Random identifier used by every caller to address the driver.

        user_id (Uuid):
            Account of the driver in the user service. One driver per account.

        license_number (String(50)):
            Driving licence number. Must be unique and not null.

        license_class (String(16)):
            One of `LicenseClass`.

        license_expiry (Date):
            Last day on which the licence is valid. A driver with an expired
            licence can not be activated.

        experience_years (Integer):
            Years of professional driving experience.

        phone_number (String(20)):
            Contact number of the driver.

        emergency_contact_name, emergency_contact_phone (String):
            Optional emergency contact.

        hire_date (Date):
            Date of joining. Defaults to the creation day.

        status (String(32)):
            Lifecycle status (PENDING_VERIFICATION, ACTIVE, SUSPENDED, INACTIVE).
            Defaults to `DriverStatus.PENDING_VERIFICATION`.

        updated_at, created_at (DateTime):
            Write timestamps. `created_at` is the pagination sort key.
    """

    __tablename__ = "driver"

    internal_id = Column(BigInteger, primary_key=True, autoincrement=False)
    external_id = Column(Uuid, nullable=False, unique=True, index=True)
    user_id = Column(Uuid, nullable=False, unique=True)
    license_number = Column(String(50), nullable=False, unique=True)
    license_class = Column(String(16), nullable=False, index=True)
    license_expiry = Column(Date, nullable=False, index=True)
    experience_years = Column(Integer, nullable=False, default=0)
    phone_number = Column(String(20), nullable=False)
    emergency_contact_name = Column(String(100))
    emergency_contact_phone = Column(String(20))
    hire_date = Column(Date, nullable=False)
    status = Column(
        String(32),
        nullable=False,
        default=DriverStatus.PENDING_VERIFICATION.value,
        index=True,
    )
    # Metadata
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), index=True
    )


class DriverCertification(ORMbase):
    """
    A certification held by a driver (defensive driving, PSV badge, ...).

    Removed together with the owning driver row. Soft deleted rows move to
    `CERT_REVOKED` and are kept.
    """

    __tablename__ = "driver_certification"

    internal_id = Column(BigInteger, primary_key=True, autoincrement=False)
    external_id = Column(Uuid, nullable=False, unique=True, index=True)
    driver_id = Column(
        Uuid,
        ForeignKey("driver.external_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    certification_name = Column(String(100), nullable=False)
    issued_by = Column(String(100), nullable=False)
    issue_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)
    status = Column(
        String(32),
        nullable=False,
        default=CertificationStatus.CERT_ACTIVE.value,
        index=True,
    )
    # Metadata
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), index=True
    )


class DriverStatusHistory(ORMbase):
    """
    Audit trail of driver status changes.

    One row is written in the same transaction as every driver status change.
    """

    __tablename__ = "driver_status_history"

    id = Column(Integer, primary_key=True)
    driver_id = Column(
        Uuid,
        ForeignKey("driver.external_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_status = Column(String(32), nullable=False)
    new_status = Column(String(32), nullable=False)
    reason = Column(TEXT)
    changed_at = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- User DB Models ------------------------------------------#
class User(ORMbase):
    """
    Represents a user account.

    An account authenticates either with a password (stored as an Argon2
    hash) or through single sign-on, never both.

    Columns:
        email (String(255)):
            Login address of the user. Must be unique and not null.

        password_hash (TEXT):
            Argon2 hash of the password. Null for SSO accounts.

        sso_id (String(255)):
            Subject identifier issued by the SSO provider. Null for
            password accounts.

        terms_accepted_at (DateTime):
            Timestamp at which the terms of service were accepted.

        status (String(32)):
            Lifecycle status (ACTIVE, SUSPENDED, PENDING, CLOSED).
    """

    __tablename__ = "user_account"
    __table_args__ = (
        CheckConstraint(
            "(password_hash IS NULL) <> (sso_id IS NULL)",
            name="user_account_single_auth_method",
        ),
    )

    internal_id = Column(BigInteger, primary_key=True, autoincrement=False)
    external_id = Column(Uuid, nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(TEXT)
    sso_id = Column(String(255), unique=True)
    terms_accepted_at = Column(DateTime(timezone=True))
    status = Column(
        String(32), nullable=False, default=UserStatus.ACTIVE.value, index=True
    )
    # Metadata
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), index=True
    )
