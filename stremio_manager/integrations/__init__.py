"""
Clients for external services.
"""
from .stremio_client import LoginResponse, StremioClient, ValidationResult, manifest_url_for

__all__ = ["LoginResponse", "StremioClient", "ValidationResult", "manifest_url_for"]
