"""Bearer token authentication against the RADAR Management Portal."""

from src.auth.jwt_auth import MEASUREMENT_CREATE, JwtAuth
from src.auth.token_validator import ManagementPortalTokenValidator

__all__ = ["JwtAuth", "MEASUREMENT_CREATE", "ManagementPortalTokenValidator"]
