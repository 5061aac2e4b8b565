"""
Repository-layer exceptions for load-profile persistence.
"""

from __future__ import annotations


class LoadProfileRepositoryError(Exception):
    """Base exception for load-profile repository failures."""


class InvalidProfilePayloadError(LoadProfileRepositoryError):
    """Raised when a profile handed to the repository breaks its shape rules."""
