"""
Exception types raised by the records layer and mapped to HTTP responses by the API.
"""

from typing import Optional


class PortalError(Exception):
    """Base class for errors the API turns into JSON responses."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class QueryFailure(PortalError):
    """A step of a multi-step fetch failed; the whole fetch is abandoned."""
    status_code = 502

    def __init__(self, step: str, cause: Optional[BaseException] = None):
        super().__init__(f"Query step '{step}' failed")
        self.step = step
        self.cause = cause


class AccessDenied(PortalError):
    status_code = 403


class RecordNotFound(PortalError):
    status_code = 404


class AuthenticationError(PortalError):
    status_code = 401
