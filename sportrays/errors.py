"""
Error taxonomy shared by the upstream adapters, aggregators and poll engine.
"""

from typing import Optional


class SportRaysError(Exception):
    """Base error carrying the HTTP status it maps to."""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UpstreamUnavailable(SportRaysError):
    """Network failure, timeout or non-success status from an upstream API."""
    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class QuotaExceeded(SportRaysError):
    """The daily call budget would be exceeded by this call."""
    status_code = 429


class NotFound(SportRaysError):
    status_code = 404


class RequestValidationFailed(SportRaysError):
    """Malformed request parameters, rejected before any upstream work."""
    status_code = 400


class ConfigurationMissing(SportRaysError):
    """A required API key, secret or endpoint is not configured."""
    status_code = 500


class AdminDisabled(SportRaysError):
    status_code = 503


class Unauthorized(SportRaysError):
    status_code = 401


class VoteConflict(SportRaysError):
    """Duplicate (poll, device) vote. Treated as success by callers."""
    status_code = 200
