"""
Core Exceptions
================

Error types shared by every module. Services raise them; the API layer
turns them into the `{"success": false, "message": ...}` envelope.
"""

from typing import Any, Dict, Optional


class ApplicationException(Exception):
    """Root of the innkeeper error hierarchy; carries structured `details` for logs."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details) if details else {}


class RepositoryException(ApplicationException):
    """The datastore rejected or failed a read or write."""


class ValidationException(ApplicationException):
    """A request or record broke a field rule."""


class ConfigurationException(ApplicationException):
    """Settings or the cluster config file could not be used."""


class ResourceNotFoundException(ApplicationException):
    """Lookup of a single record found nothing, e.g. `Reservation 'svc/db' not found`."""

    def __init__(self, kind: str, key: Optional[str] = None):
        self.kind = kind
        self.key = key
        label = f"{kind} '{key}'" if key else kind
        super().__init__(f"{label} not found", {"kind": kind, "key": key})


class ExternalServiceException(ApplicationException):
    """A dependency outside this process (Slack, a peer node) failed."""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__(f"{service}: {message}", details)


class PeerUnreachableException(ExternalServiceException):
    """A cluster peer did not answer its coordinator poll."""

    def __init__(self, address: str, reason: str):
        self.address = address
        super().__init__("cluster peer", f"{address} unreachable ({reason})", {"address": address})
