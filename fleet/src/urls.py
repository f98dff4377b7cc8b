"""
API Endpoint URL Constants

This module defines the URL paths used throughout the application for
accessing the fleet resources.

These URLs are relative to the sub-application they are mounted on
(`/vehicle`, `/staff` or `/user`).
"""

# -------------------------------
# Vehicle
# -------------------------------
URL_VEHICLE_TYPE = "/vehicle_type"
URL_VEHICLE = "/vehicle"
URL_VEHICLE_BY_ID = "/vehicle/{id}"
URL_VEHICLE_STATUS = "/vehicle/status"

# -------------------------------
# Staff
# -------------------------------
URL_DRIVER = "/driver"
URL_DRIVER_BY_ID = "/driver/{id}"
URL_DRIVER_STATUS = "/driver/status"
URL_DRIVER_LICENSE = "/driver/{id}/license"
URL_DRIVER_HISTORY = "/driver/{id}/history"
URL_DRIVER_BY_USER = "/driver/user/{user_id}"
URL_CERTIFICATION = "/driver/certification"
URL_CERTIFICATION_STATUS = "/driver/certification/status"
URL_CERTIFICATION_EXPIRED = "/driver/certification/expired"

# -------------------------------
# User
# -------------------------------
URL_ACCOUNT = "/account"
URL_ACCOUNT_BY_ID = "/account/{id}"
URL_ACCOUNT_STATUS = "/account/status"
URL_ACCOUNT_SSO_STATE = "/account/sso/state"
URL_ACCOUNT_VERIFY = "/account/verify"
