"""
Core Module
============

Framework-agnostic building blocks shared by the reservations and
cluster modules.
"""

from innkeeper.core.exceptions import (
    ApplicationException,
    ConfigurationException,
    ExternalServiceException,
    PeerUnreachableException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)

__all__ = [
    "ApplicationException",
    "ConfigurationException",
    "ExternalServiceException",
    "PeerUnreachableException",
    "RepositoryException",
    "ResourceNotFoundException",
    "ValidationException",
]
