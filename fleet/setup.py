import argparse
from http import HTTPStatus
from uuid import uuid4
from requests import post
from datetime import date, timedelta

from fleet.src.enums import FuelType, LicenseClass
from fleet.src.urls import (
    URL_VEHICLE,
    URL_DRIVER,
    URL_CERTIFICATION,
    URL_ACCOUNT,
)
from fleet.src.db import VehicleType, sessionMaker, engine, ORMbase

# Categories every deployment starts with
VEHICLE_TYPES = {
    "cab": "Passenger car for hire",
    "bus": "Large passenger vehicle",
    "matatu": "Shared minibus",
    "bodaboda": "Motorcycle taxi",
    "truck": "Heavy goods vehicle",
    "van": "Light goods or passenger van",
    "pickup": "Light utility vehicle",
}


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    ORMbase.metadata.drop_all(engine)
    print("* All tables deleted")


def createTables():
    ORMbase.metadata.create_all(engine)
    print("* All tables created")


def initDB():
    with sessionMaker() as session:
        existing = {name for (name,) in session.query(VehicleType.name).all()}
        for name, description in VEHICLE_TYPES.items():
            if name not in existing:
                session.add(VehicleType(name=name, description=description))
        session.commit()
    print("* Vehicle types created")


# ----------------------------------- Test Data -----------------------------------------------#
def POST(URL: str, status_code: int = HTTPStatus.CREATED, **kwargs):
    response = post(URL, **kwargs)
    assert response.status_code == status_code, response.text
    return response


def testDB():
    # Base URL
    BASE_URL = "http://127.0.0.1:8080"
    today = date.today()

    # Vehicles
    with sessionMaker() as session:
        busType = session.query(VehicleType).filter(VehicleType.name == "bus").first()
    for index in range(3):
        vehicleData = {
            "vehicle_type_id": busType.id,
            "license_plate": f"KBA{100 + index}A",
            "make": "Isuzu",
            "model": "NQR",
            "year": 2020,
            "color": "White",
            "seating_capacity": 33,
            "fuel_type": FuelType.DIESEL,
            "registration_date": str(today - timedelta(days=365)),
            "insurance_expiry": str(today + timedelta(days=20 * (index + 1))),
        }
        POST(BASE_URL + "/vehicle" + URL_VEHICLE, json=vehicleData)
    print("* Created vehicles")

    # Users
    userData = {
        "first_name": "Amani",
        "last_name": "Otieno",
        "email": "amani@example.com",
        "auth": {"method": "password", "password": "password"},
        "accept_terms": True,
    }
    user = POST(BASE_URL + "/user" + URL_ACCOUNT, json=userData)
    print("* Created user")

    # Drivers
    driverData = {
        "user_id": user.json()["id"],
        "license_number": "DL1234567",
        "license_class": LicenseClass.CLASS_B,
        "license_expiry": str(today + timedelta(days=365)),
        "experience_years": 5,
        "phone_number": "+254700000000",
    }
    driver = POST(BASE_URL + "/staff" + URL_DRIVER, json=driverData)
    print("* Created driver")

    # Certifications
    certificationData = {
        "driver_id": driver.json()["id"],
        "certification_name": "PSV badge",
        "issued_by": "NTSA",
        "issue_date": str(today - timedelta(days=30)),
        "expiry_date": str(today + timedelta(days=335)),
    }
    POST(BASE_URL + "/staff" + URL_CERTIFICATION, json=certificationData)
    print("* Created certification")

    # An unrelated driver account, to exercise listings
    POST(
        BASE_URL + "/staff" + URL_DRIVER,
        json={**driverData, "user_id": str(uuid4()), "license_number": "DL7654321"},
    )
    print("* Created second driver")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="initialize DB")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.init:
        initDB()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
