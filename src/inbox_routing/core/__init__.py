"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from inbox_routing.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    PreconditionFailedException,
    ConflictException,
    UnauthorizedException,
    ForbiddenException,
    FeatureDisabledException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    AssignmentResolverException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "PreconditionFailedException",
    "ConflictException",
    "UnauthorizedException",
    "ForbiddenException",
    "FeatureDisabledException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "AssignmentResolverException",
]
