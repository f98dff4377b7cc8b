from fastapi import FastAPI
from fleet.api import (
    vehicle_type,
    vehicle,
    certification,
    driver,
    user,
)
from fleet.src.enums import AppID


# ------------------------------------------------------
# Create separate FastAPI apps for each service
# ------------------------------------------------------
app_vehicle = FastAPI(title="Vehicle APP")
app_staff = FastAPI(title="Staff APP")
app_user = FastAPI(title="User APP")

# Tag each app with its AppID
app_vehicle.state.id = AppID.VEHICLE
app_staff.state.id = AppID.STAFF
app_user.state.id = AppID.USER


# ------------------------------------------------------
# Vehicle routers
# ------------------------------------------------------
app_vehicle.include_router(vehicle_type.route_vehicle)
app_vehicle.include_router(vehicle.route_vehicle)


# ------------------------------------------------------
# Staff routers
# ------------------------------------------------------
# Certification paths are registered before `/driver/{id}`
app_staff.include_router(certification.route_staff)
app_staff.include_router(driver.route_staff)


# ------------------------------------------------------
# User routers
# ------------------------------------------------------
app_user.include_router(user.route_user)
